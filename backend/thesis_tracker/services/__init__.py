"""Workflow services: state machine, grading, sweep, revisions and notifications."""

from .notifications import (
    NotificationDispatcher, NotificationMessage, DeliveryChannel, LoggingChannel,
)
from .submissions import ApprovalStateMachine, StudentStatus, SlotStatus
from .deadlines import DeadlineRegistry
from .grading import GradingEngine, compute_letter, letter_for_average, rubric_average, validate_rubrics
from .revisions import RevisionController
from .roster import StudentReport, StudentRoster, WorkflowStats
from .sweeper import DeadlineSweeper, SweepScheduler, SweepResult, OverdueStudent
from .engine import WorkflowEngine, make_session_factory

__all__ = [
    "NotificationDispatcher",
    "NotificationMessage",
    "DeliveryChannel",
    "LoggingChannel",
    "ApprovalStateMachine",
    "StudentStatus",
    "SlotStatus",
    "DeadlineRegistry",
    "GradingEngine",
    "compute_letter",
    "letter_for_average",
    "rubric_average",
    "validate_rubrics",
    "RevisionController",
    "StudentRoster",
    "StudentReport",
    "WorkflowStats",
    "DeadlineSweeper",
    "SweepScheduler",
    "SweepResult",
    "OverdueStudent",
    "WorkflowEngine",
    "make_session_factory",
]
