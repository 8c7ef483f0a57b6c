"""
Deadline Sweeper

Fails students who let a deadline pass without an approved submission.

For every student on the roster and every document type whose deadline is
strictly in the past:

1. skip the pair if the slot is Approved;
2. skip the student entirely if they already hold any grade;
3. otherwise insert ``Grade(F, MissedDeadline)``, once per student, no matter
   how many of their document types are overdue.

Each student is handled in its own transaction under the student's grade
lock, so a sweep that dies halfway leaves finished students failed and the
rest untouched, and re-running it changes nothing for students already
handled. A failure on one student is logged and counted; it never stops the
sweep.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth.models import ActorContext, SWEEP_ROLES
from ..database import session_scope
from ..locks import KeyedLocks
from ..models import ApprovalStatus, DocumentType, Grade, NotificationType, Student, SubmissionSlot
from ..timeutil import Clock, utcnow
from .deadlines import DeadlineRegistry
from .grading import GradingEngine
from .notifications import NotificationDispatcher, NotificationMessage

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome of one sweep.

    Attributes:
        affected_count: students newly failed by this run.
        overdue_pairs: (student, document type) pairs whose deadline has elapsed.
        qualifying_pairs: overdue pairs without an approved submission, for
            students who had no grade when this run reached them.
        skipped_count: students with overdue pairs that were left alone.
        error_count: students whose processing raised.
    """
    affected_count: int = 0
    overdue_pairs: int = 0
    qualifying_pairs: int = 0
    skipped_count: int = 0
    error_count: int = 0
    failed_student_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "affectedCount": self.affected_count,
            "overduePairs": self.overdue_pairs,
            "qualifyingPairs": self.qualifying_pairs,
            "skippedCount": self.skipped_count,
            "errorCount": self.error_count,
            "failedStudentIds": list(self.failed_student_ids),
        }


@dataclass
class OverdueStudent:
    student_id: int
    name: Optional[str]
    document_types: List[DocumentType]


def _approved_types(db: Session, student_id: int) -> set:
    return set(db.scalars(
        select(SubmissionSlot.document_type).where(
            SubmissionSlot.student_id == student_id,
            SubmissionSlot.status == ApprovalStatus.approved,
        )
    ))


class DeadlineSweeper:

    def __init__(
        self,
        session_factory,
        registry: DeadlineRegistry,
        grading: GradingEngine,
        dispatcher: NotificationDispatcher,
        grade_locks: KeyedLocks,
        clock: Clock = utcnow,
    ):
        self.session_factory = session_factory
        self.registry = registry
        self.grading = grading
        self.dispatcher = dispatcher
        self.grade_locks = grade_locks
        self.clock = clock

    def run(self, actor: ActorContext) -> SweepResult:
        actor.require(SWEEP_ROLES, "run the deadline sweep")
        now = self.clock()
        result = SweepResult()

        with session_scope(self.session_factory) as db:
            overdue = self.registry.overdue_types(db, now)
            student_ids = list(db.scalars(select(Student.id).order_by(Student.id))) if overdue else []

        if not overdue:
            logger.debug("Deadline sweep: no elapsed deadlines")
            return result

        for student_id in student_ids:
            result.overdue_pairs += len(overdue)
            try:
                qualifying, failed = self._sweep_student(student_id, overdue, now)
            except Exception:
                logger.exception(f"Deadline sweep failed for student {student_id}")
                result.error_count += 1
                continue
            result.qualifying_pairs += qualifying
            if failed:
                result.affected_count += 1
                result.failed_student_ids.append(student_id)
            else:
                result.skipped_count += 1

        logger.info(
            f"Deadline sweep by {actor.role.value} {actor.actor_id}: "
            f"{result.affected_count} failed, {result.skipped_count} skipped, {result.error_count} errors"
        )
        return result

    def _sweep_student(self, student_id: int, overdue: List[DocumentType], now):
        """Returns (qualifying pair count, whether this run failed the student)."""
        with self.grade_locks.hold(student_id):
            try:
                with session_scope(self.session_factory) as db:
                    if db.get(Grade, student_id) is not None:
                        return 0, False
                    approved = _approved_types(db, student_id)
                    qualifying = [doc for doc in overdue if doc not in approved]
                    if not qualifying:
                        return 0, False
                    if self.grading.record_missed_deadline(db, student_id, now) is None:
                        return len(qualifying), False
                    trigger = qualifying[0]
                    stored = self.dispatcher.store(db, [NotificationMessage(
                        recipient_id=student_id,
                        type=NotificationType.deadline_missed,
                        title=f"Missed deadline: {trigger.value}",
                        message=(
                            f"The deadline for your {trigger.value} has passed without an approved "
                            f"submission. A grade of F has been recorded."
                        ),
                    )])
            except IntegrityError:
                # Another writer created the grade between our check and insert
                logger.info(f"Grade for student {student_id} appeared during sweep; skipping")
                return 0, False
        self.dispatcher.deliver(stored)
        logger.info(f"Student {student_id} failed for missed deadline ({trigger.value})")
        return len(qualifying), True

    def list_overdue(self, actor: ActorContext) -> List[OverdueStudent]:
        """Students a sweep would fail right now, and why. Writes nothing."""
        actor.require(SWEEP_ROLES, "list overdue students")
        now = self.clock()
        with session_scope(self.session_factory) as db:
            overdue = self.registry.overdue_types(db, now)
            if not overdue:
                return []
            graded = set(db.scalars(select(Grade.student_id)))
            pending = []
            for student in db.scalars(select(Student).order_by(Student.id)):
                if student.id in graded:
                    continue
                approved = _approved_types(db, student.id)
                missing = [doc for doc in overdue if doc not in approved]
                if missing:
                    pending.append(OverdueStudent(student.id, student.name, missing))
            return pending


class SweepScheduler:
    """Runs the sweep on a fixed interval in a daemon thread."""

    def __init__(self, sweeper: DeadlineSweeper, interval_seconds: float, actor: Optional[ActorContext] = None):
        self.sweeper = sweeper
        self.interval_seconds = interval_seconds
        self.actor = actor or ActorContext.system()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_result: Optional[SweepResult] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="deadline-sweep", daemon=True)
        self._thread.start()
        logger.info(f"Deadline sweep scheduled every {self.interval_seconds}s")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> Optional[SweepResult]:
        try:
            self.last_result = self.sweeper.run(self.actor)
        except Exception:
            logger.exception("Scheduled deadline sweep failed")
            return None
        return self.last_result

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()
