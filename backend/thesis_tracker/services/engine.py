"""Workflow engine facade: one object exposing every workflow operation."""

import logging
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Union

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..auth.models import ActorContext
from ..config import NOTIFICATION_PAGE_SIZE, WORKFLOW_MAX_RETRIES
from ..locks import KeyedLocks
from ..models import Deadline, DocumentType, Feedback, Grade, GradeRecord, Notification, Student, Submission
from ..timeutil import Clock, utcnow
from .deadlines import DeadlineRegistry
from .grading import GradingEngine
from .notifications import DeliveryChannel, NotificationDispatcher
from .revisions import RevisionController
from .roster import StudentReport, StudentRoster, WorkflowStats
from .submissions import ApprovalStateMachine, StudentStatus
from .sweeper import DeadlineSweeper, OverdueStudent, SweepResult

logger = logging.getLogger(__name__)


def make_session_factory(bind: Engine) -> Callable[[], Session]:
    """Session factory the services expect: objects stay readable after commit."""
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


class WorkflowEngine:
    """Wires the workflow components to one session factory, clock and channel.

    Args:
        session_factory: Callable returning sessions with ``expire_on_commit=False``
            (see ``make_session_factory``), or an ``Engine`` to build one from.
        clock: Source of "now"; injectable for tests.
        channel: Notification delivery collaborator.
    """

    def __init__(
        self,
        session_factory: Union[Callable[[], Session], Engine],
        clock: Clock = utcnow,
        channel: Optional[DeliveryChannel] = None,
        max_retries: int = WORKFLOW_MAX_RETRIES,
        page_size: int = NOTIFICATION_PAGE_SIZE,
    ):
        if isinstance(session_factory, Engine):
            session_factory = make_session_factory(session_factory)
        self.session_factory = session_factory
        self.clock = clock

        self.slot_locks = KeyedLocks()
        self.grade_locks = KeyedLocks()

        self.notifications = NotificationDispatcher(session_factory, clock=clock, channel=channel,
                                                    page_size=page_size)
        common = dict(clock=clock, max_retries=max_retries)
        self.roster = StudentRoster(session_factory, self.notifications, **common)
        self.deadlines = DeadlineRegistry(session_factory, self.notifications, **common)
        self.approvals = ApprovalStateMachine(session_factory, self.notifications, self.slot_locks, **common)
        self.grading = GradingEngine(session_factory, self.notifications, self.grade_locks, **common)
        self.revisions = RevisionController(self.approvals)
        self.sweeper = DeadlineSweeper(
            session_factory,
            registry=self.deadlines,
            grading=self.grading,
            dispatcher=self.notifications,
            grade_locks=self.grade_locks,
            clock=clock,
        )

    # Roster
    def enroll_student(self, student_id: int, actor: ActorContext, name: Optional[str] = None,
                       supervisor_id: Optional[int] = None) -> Student:
        return self.roster.enroll_student(student_id, actor, name=name, supervisor_id=supervisor_id)

    def my_students(self, actor: ActorContext) -> List[Student]:
        return self.roster.my_students(actor)

    def student_reports(self, actor: ActorContext) -> List[StudentReport]:
        return self.roster.student_reports(actor)

    def workflow_stats(self, actor: ActorContext) -> WorkflowStats:
        return self.roster.stats(actor)

    # Approval state machine
    def submit(self, student_id: int, document_type, file_id: str, actor: ActorContext,
               filename: Optional[str] = None) -> Submission:
        return self.approvals.submit(student_id, document_type, file_id, actor, filename=filename)

    def approve(self, student_id: int, document_type, actor: ActorContext) -> Submission:
        return self.approvals.approve(student_id, document_type, actor)

    def request_revision(self, student_id: int, document_type, actor: ActorContext) -> Submission:
        return self.approvals.request_revision(student_id, document_type, actor)

    def add_feedback(self, submission_id: int, actor: ActorContext, content: str) -> Feedback:
        return self.approvals.add_feedback(submission_id, actor, content)

    def student_status(self, student_id: int, actor: ActorContext) -> StudentStatus:
        return self.approvals.student_status(student_id, actor)

    def list_submissions(self, student_id: int, actor: ActorContext) -> List[Submission]:
        return self.approvals.list_submissions(student_id, actor)

    def list_approved_submissions(self, actor: ActorContext) -> List[Submission]:
        return self.approvals.list_approved_submissions(actor)

    # Revision controller
    def reopen_for_revision(self, student_id: int, document_type, actor: ActorContext) -> Submission:
        return self.revisions.reopen_for_revision(student_id, document_type, actor)

    # Grading
    def grade_student(self, student_id: int, rubrics: Sequence[int], actor: ActorContext) -> Grade:
        return self.grading.grade_student(student_id, rubrics, actor)

    def get_grade(self, student_id: int, actor: ActorContext) -> Grade:
        return self.grading.get_grade(student_id, actor)

    def list_grades(self, actor: ActorContext) -> List[Grade]:
        return self.grading.list_grades(actor)

    def grade_history(self, student_id: int, actor: ActorContext) -> List[GradeRecord]:
        return self.grading.grade_history(student_id, actor)

    def set_grade_release(self, released: bool, actor: ActorContext) -> bool:
        return self.grading.set_grade_release(released, actor)

    def grade_release_status(self) -> bool:
        return self.grading.grade_release_status()

    # Deadlines
    def set_deadline(self, document_type, due_date: datetime, actor: ActorContext) -> Deadline:
        return self.deadlines.set_deadline(document_type, due_date, actor)

    def get_deadline(self, document_type) -> Optional[Deadline]:
        return self.deadlines.get_deadline(document_type)

    def list_deadlines(self) -> Dict[DocumentType, Optional[datetime]]:
        return self.deadlines.list_deadlines()

    # Sweep
    def run_deadline_sweep(self, actor: Optional[ActorContext] = None) -> SweepResult:
        return self.sweeper.run(actor or ActorContext.system())

    def list_overdue(self, actor: ActorContext) -> List[OverdueStudent]:
        return self.sweeper.list_overdue(actor)

    # Notifications
    def list_notifications(self, recipient_id: int) -> Iterator[Notification]:
        return self.notifications.list_notifications(recipient_id)

    def mark_read(self, notification_id: int, recipient_id: Optional[int] = None) -> Notification:
        return self.notifications.mark_read(notification_id, recipient_id)

    def mark_all_read(self, recipient_id: int) -> int:
        return self.notifications.mark_all_read(recipient_id)

    def unread_count(self, recipient_id: int) -> int:
        return self.notifications.unread_count(recipient_id)
