"""SQLAlchemy models for the thesis progress tracker."""

from .enums import (
    UserRole, DocumentType, ApprovalStatus, GradeReason, LetterGrade, NotificationType, NO_SUBMISSION,
)
from .student import Student
from .submission import SubmissionSlot, Submission, Feedback
from .deadline import Deadline
from .grade import Grade, GradeRecord, GradeRelease, RUBRIC_COUNT
from .notification import Notification

__all__ = [
    "UserRole",
    "DocumentType",
    "ApprovalStatus",
    "GradeReason",
    "LetterGrade",
    "NotificationType",
    "NO_SUBMISSION",
    "Student",
    "SubmissionSlot",
    "Submission",
    "Feedback",
    "Deadline",
    "Grade",
    "GradeRecord",
    "GradeRelease",
    "RUBRIC_COUNT",
    "Notification",
]
