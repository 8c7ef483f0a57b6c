"""HTTP routers exposing the workflow engine."""
from .deps import get_engine
from .student import router as student_router
from .faculty import router as faculty_router
from .notifications import router as notifications_router

__all__ = ['get_engine', 'student_router', 'faculty_router', 'notifications_router']
