"""Shared enums for models and auth."""
import enum


class UserRole(enum.Enum):
    student = "student"
    supervisor = "supervisor"
    evaluation_committee = "evaluation_committee"
    fyp_committee = "fyp_committee"
    admin = "admin"
    system = "system"


class DocumentType(enum.Enum):
    """Milestone documents, in submission order."""
    proposal = "Proposal"
    design_document = "Design Document"
    test_document = "Test Document"
    thesis = "Thesis"

    @classmethod
    def ordered(cls):
        return list(cls)


class ApprovalStatus(enum.Enum):
    pending_approval = "PendingApproval"
    approved = "Approved"
    revision_requested = "RevisionRequested"


# Slot state when no submission row exists yet
NO_SUBMISSION = "NoSubmission"


class GradeReason(enum.Enum):
    rubric = "Rubric"
    missed_deadline = "MissedDeadline"


class LetterGrade(enum.Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class NotificationType(enum.Enum):
    submission_approved = "submission_approved"
    revision_requested = "revision_requested"
    grade_assigned = "grade_assigned"
    deadline_missed = "deadline_missed"
    feedback_added = "feedback_added"
