"""Revision Controller: reopen an approved slot after a failing grade."""

import logging

from ..auth.models import ActorContext, GRADER_ROLES
from ..models import ApprovalStatus, NotificationType, Submission
from .base import coerce_document_type
from .notifications import NotificationMessage
from .submissions import ApprovalStateMachine

logger = logging.getLogger(__name__)


class RevisionController:
    """Thin layer over the state machine, used by the evaluation committee.

    Unlike a supervisor's revision request, it only accepts slots whose
    current submission is Approved, since it exists to reopen work that was
    approved and then graded F.
    """

    def __init__(self, approvals: ApprovalStateMachine):
        self.approvals = approvals

    def reopen_for_revision(self, student_id: int, document_type, actor: ActorContext) -> Submission:
        actor.require(GRADER_ROLES, "reopen documents for revision")
        document_type = coerce_document_type(document_type)
        submission = self.approvals.transition(
            student_id,
            document_type,
            actor,
            allowed_from=frozenset({ApprovalStatus.approved}),
            target=ApprovalStatus.revision_requested,
            notification=NotificationMessage(
                recipient_id=student_id,
                type=NotificationType.revision_requested,
                title=f"Revision required: {document_type.value}",
                message=(
                    f"The evaluation committee has reopened your {document_type.value} for revision. "
                    f"Please upload an improved version."
                ),
            ),
        )
        logger.info(f"Reopened {document_type.value} of student {student_id} for revision")
        return submission
