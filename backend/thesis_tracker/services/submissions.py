"""
Submission Store and Approval State Machine

Per (student, document type) slot:

    NoSubmission -> PendingApproval -> Approved | RevisionRequested
    RevisionRequested -> PendingApproval       (student re-uploads)
    Approved -> RevisionRequested              (reviewer or revision controller)

Every operation on a slot runs under that slot's lock and inside one
transaction, and the slot row carries an optimistic version, so a submit and
an approve on the same slot can never interleave.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..auth.models import ActorContext, REVIEWER_ROLES
from ..exceptions import InvalidTransition, NotFound, Unauthorized, ValidationError
from ..locks import KeyedLocks
from ..timeutil import ensure_utc
from ..models import (
    ApprovalStatus, Deadline, DocumentType, Feedback, NO_SUBMISSION, NotificationType,
    Student, Submission, SubmissionSlot, UserRole,
)
from .base import WorkflowService, coerce_document_type, require_student
from .notifications import NotificationMessage

logger = logging.getLogger(__name__)

SUBMITTABLE_FROM = frozenset({NO_SUBMISSION, ApprovalStatus.revision_requested.value})


@dataclass
class SlotStatus:
    """Read model for one slot in a student's status view."""
    document_type: DocumentType
    status: str
    deadline: Optional[datetime]
    can_submit: bool
    current_submission_id: Optional[int] = None


@dataclass
class StudentStatus:
    student_id: int
    supervisor_id: Optional[int]
    slots: List[SlotStatus]

    def slot(self, document_type: DocumentType) -> SlotStatus:
        return next(s for s in self.slots if s.document_type == document_type)


def slot_state(slot: Optional[SubmissionSlot]) -> str:
    """Status name of a slot, ``NoSubmission`` when no row exists."""
    return NO_SUBMISSION if slot is None else slot.status.value


def require_assigned(actor: ActorContext, student: Student) -> None:
    """Supervisors review only the students assigned to them."""
    if actor.role == UserRole.supervisor and student.supervisor_id != actor.actor_id:
        raise Unauthorized(f"Supervisor {actor.actor_id} is not assigned to student {student.id}")


def load_slot(db: Session, student_id: int, document_type: DocumentType) -> Optional[SubmissionSlot]:
    return db.scalar(
        select(SubmissionSlot)
        .options(selectinload(SubmissionSlot.current_submission))
        .where(SubmissionSlot.student_id == student_id, SubmissionSlot.document_type == document_type)
    )


class ApprovalStateMachine(WorkflowService):
    """Owns Submission, SubmissionSlot and Feedback records."""

    def __init__(self, session_factory, dispatcher, slot_locks: KeyedLocks, **kwargs):
        super().__init__(session_factory, dispatcher, **kwargs)
        self.slot_locks = slot_locks

    # =====================================================
    # STUDENT ACTIONS
    # =====================================================

    def submit(
        self,
        student_id: int,
        document_type: Union[DocumentType, str],
        file_id: str,
        actor: ActorContext,
        filename: Optional[str] = None,
    ) -> Submission:
        """Create a new PendingApproval submission for the slot."""
        if actor.role != UserRole.student or actor.actor_id != student_id:
            raise Unauthorized("Only the student can submit their own documents")
        if file_id is None or not str(file_id).strip():
            raise ValidationError("A file reference is required", field="file_id")
        document_type = coerce_document_type(document_type)

        def work(db: Session, outbox):
            require_student(db, student_id)
            slot = load_slot(db, student_id, document_type)
            state = slot_state(slot)
            if state not in SUBMITTABLE_FROM:
                raise InvalidTransition(
                    f"{document_type.value} already has a submission in state {state}",
                    current_status=state,
                )
            now = self.clock()
            submission = Submission(
                student_id=student_id,
                document_type=document_type,
                file_id=str(file_id),
                filename=filename,
                submitted_at=now,
                approval_status=ApprovalStatus.pending_approval,
            )
            db.add(submission)
            if slot is None:
                slot = SubmissionSlot(student_id=student_id, document_type=document_type)
                db.add(slot)
            slot.status = ApprovalStatus.pending_approval
            slot.current_submission = submission
            slot.updated_at = now
            db.flush()
            logger.info(f"Student {student_id} submitted {document_type.value} (submission {submission.id})")
            return submission

        return self._transact(work, key=(student_id, document_type), locks=self.slot_locks)

    # =====================================================
    # REVIEWER ACTIONS
    # =====================================================

    def approve(self, student_id: int, document_type, actor: ActorContext) -> Submission:
        actor.require(REVIEWER_ROLES, "approve submissions")
        document_type = coerce_document_type(document_type)
        return self.transition(
            student_id,
            document_type,
            actor,
            allowed_from=frozenset({ApprovalStatus.pending_approval}),
            target=ApprovalStatus.approved,
            notification=NotificationMessage(
                recipient_id=student_id,
                type=NotificationType.submission_approved,
                title=f"{document_type.value} approved",
                message=f"Your {document_type.value} has been approved.",
            ),
        )

    def request_revision(self, student_id: int, document_type, actor: ActorContext) -> Submission:
        actor.require(REVIEWER_ROLES, "request revisions")
        document_type = coerce_document_type(document_type)
        return self.transition(
            student_id,
            document_type,
            actor,
            allowed_from=frozenset({ApprovalStatus.pending_approval, ApprovalStatus.approved}),
            target=ApprovalStatus.revision_requested,
            notification=NotificationMessage(
                recipient_id=student_id,
                type=NotificationType.revision_requested,
                title=f"Revision requested: {document_type.value}",
                message=f"Your {document_type.value} needs revision. Please upload a new version.",
            ),
        )

    def transition(
        self,
        student_id: int,
        document_type: DocumentType,
        actor: ActorContext,
        allowed_from: FrozenSet[ApprovalStatus],
        target: ApprovalStatus,
        notification: Optional[NotificationMessage] = None,
    ) -> Submission:
        """Move the slot's current submission to ``target``.

        Callers check the actor's role; a supervisor is also held to their own
        students here.
        """

        def work(db: Session, outbox):
            require_assigned(actor, require_student(db, student_id))
            slot = load_slot(db, student_id, document_type)
            if slot is None or slot.status not in allowed_from:
                state = slot_state(slot)
                raise InvalidTransition(
                    f"Cannot move {document_type.value} from {state} to {target.value}",
                    current_status=state,
                )
            now = self.clock()
            submission = slot.current_submission
            submission.approval_status = target
            submission.reviewed_by = actor.actor_id
            submission.reviewed_at = now
            slot.status = target
            slot.updated_at = now
            db.flush()
            if notification is not None:
                outbox.append(notification)
            logger.info(
                f"{actor.role.value} {actor.actor_id} moved {document_type.value} of student "
                f"{student_id} to {target.value}"
            )
            return submission

        return self._transact(work, key=(student_id, document_type), locks=self.slot_locks)

    def add_feedback(self, submission_id: int, actor: ActorContext, content: str) -> Feedback:
        actor.require(REVIEWER_ROLES, "add feedback")
        if content is None or not content.strip():
            raise ValidationError("Feedback content cannot be empty", field="content")

        def work(db: Session, outbox):
            submission = db.get(Submission, submission_id)
            if submission is None:
                raise NotFound("Submission", submission_id)
            require_assigned(actor, require_student(db, submission.student_id))
            feedback = Feedback(
                submission_id=submission_id,
                author_id=actor.actor_id,
                content=content.strip(),
                created_at=self.clock(),
            )
            db.add(feedback)
            db.flush()
            outbox.append(NotificationMessage(
                recipient_id=submission.student_id,
                type=NotificationType.feedback_added,
                title=f"New feedback on your {submission.document_type.value}",
                message=content.strip(),
            ))
            return feedback

        return self._transact(work)

    # =====================================================
    # QUERIES
    # =====================================================

    def student_status(self, student_id: int, actor: ActorContext) -> StudentStatus:
        actor.require_self_or_staff(student_id, "view submission status")

        def query(db: Session) -> StudentStatus:
            student = require_student(db, student_id)
            slots: Dict[DocumentType, SubmissionSlot] = {
                s.document_type: s
                for s in db.scalars(select(SubmissionSlot).where(SubmissionSlot.student_id == student_id))
            }
            deadlines = {d.document_type: d.due_date for d in db.scalars(select(Deadline))}
            rows = []
            for doc in DocumentType.ordered():
                slot = slots.get(doc)
                state = slot_state(slot)
                rows.append(SlotStatus(
                    document_type=doc,
                    status=state,
                    deadline=ensure_utc(deadlines.get(doc)),
                    can_submit=state in SUBMITTABLE_FROM,
                    current_submission_id=slot.current_submission_id if slot else None,
                ))
            return StudentStatus(student_id=student.id, supervisor_id=student.supervisor_id, slots=rows)

        return self._read(query)

    def list_submissions(self, student_id: int, actor: ActorContext) -> List[Submission]:
        """Every submission of the student, newest first, with feedback loaded."""
        actor.require_self_or_staff(student_id, "list submissions")

        def query(db: Session) -> List[Submission]:
            require_student(db, student_id)
            return list(db.scalars(
                select(Submission)
                .options(selectinload(Submission.feedback))
                .where(Submission.student_id == student_id)
                .order_by(Submission.submitted_at.desc(), Submission.id.desc())
            ))

        return self._read(query)

    def list_approved_submissions(self, actor: ActorContext) -> List[Submission]:
        """Current approved submission of every slot, for the committee dashboard."""
        if not actor.is_staff:
            raise Unauthorized("Only staff can list approved submissions")

        def query(db: Session) -> List[Submission]:
            return list(db.scalars(
                select(Submission)
                .join(SubmissionSlot, SubmissionSlot.current_submission_id == Submission.id)
                .where(SubmissionSlot.status == ApprovalStatus.approved)
                .order_by(Submission.student_id, Submission.document_type)
            ))

        return self._read(query)
