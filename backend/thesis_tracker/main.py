from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine
from typing import Optional
import os
import logging
from contextlib import asynccontextmanager

from . import database
from .config import CORS_ORIGINS, LOG_LEVEL, SWEEP_INTERVAL_SECONDS
from .database import check_database_connection, create_tables, session_scope
from .exceptions import (
    ConcurrencyConflict, InvalidTransition, NotFound, Unauthorized, ValidationError, WorkflowError,
)
from .routers import faculty_router, notifications_router, student_router
from .services import DeliveryChannel, SweepScheduler, WorkflowEngine, make_session_factory
from .timeutil import Clock, utcnow

# Configure logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

API_TITLE = "Thesis Tracker Workflow API"
API_VERSION = "0.1.0"

# Checked in order; subclasses share their parent's status
ERROR_STATUS = (
    (InvalidTransition, 409),
    (ConcurrencyConflict, 409),
    (ValidationError, 422),
    (NotFound, 404),
    (Unauthorized, 403),
)


def status_for(exc: WorkflowError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def workflow_error_handler(request: Request, exc: WorkflowError):
    status_code = status_for(exc)
    logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(
    bind: Optional[Engine] = None,
    clock: Clock = utcnow,
    channel: Optional[DeliveryChannel] = None,
    sweep_interval_seconds: int = SWEEP_INTERVAL_SECONDS,
) -> FastAPI:
    """Build the API around a database engine (the configured one by default)."""
    bind = bind or database.engine
    session_factory = database.SessionLocal if bind is database.engine else make_session_factory(bind)
    engine = WorkflowEngine(session_factory, clock=clock, channel=channel)
    scheduler = SweepScheduler(engine.sweeper, sweep_interval_seconds) if sweep_interval_seconds > 0 else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up Thesis Tracker Workflow API...")
        # Strict DB connectivity check in production; only skip during pytest
        if os.getenv("PYTEST_CURRENT_TEST") is not None:
            logger.info("Skipping DB connectivity check during tests")
        elif not check_database_connection(bind):
            logger.error("Database connection failed")
            raise Exception("Cannot connect to database")
        create_tables(bind)
        if scheduler is not None:
            scheduler.start()
        yield
        if scheduler is not None:
            scheduler.stop()
        logger.info("Shutting down Thesis Tracker Workflow API...")

    app = FastAPI(
        title=API_TITLE,
        description="Submission approval, rubric grading and deadline enforcement for thesis projects",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.scheduler = scheduler

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(WorkflowError, workflow_error_handler)

    # Routers
    app.include_router(student_router)
    app.include_router(faculty_router)
    app.include_router(notifications_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": API_TITLE, "version": API_VERSION}

    @app.get("/health")
    def health_check():
        """Health check endpoint with database connectivity test."""
        try:
            with session_scope(engine.session_factory) as db:
                db.execute(text("SELECT 1"))
            return {
                "status": "healthy",
                "database": "connected",
                "sweep_scheduler": "running" if scheduler and scheduler.running else "off",
                "version": API_VERSION,
            }
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return {
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(e),
                "version": API_VERSION,
            }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
