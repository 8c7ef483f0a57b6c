"""Shared router dependencies."""
from fastapi import Request

from ..services import WorkflowEngine


def get_engine(request: Request) -> WorkflowEngine:
    """Dependency returning the engine the application was built with."""
    return request.app.state.engine
