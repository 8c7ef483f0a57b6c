"""Transaction plumbing shared by the workflow services."""

import logging
from typing import Any, Callable, Hashable, List, Optional, Tuple, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..config import WORKFLOW_MAX_RETRIES
from ..database import session_scope
from ..exceptions import ConcurrencyConflict, NotFound, ValidationError
from ..locks import KeyedLocks
from ..models import DocumentType, Notification, Student
from ..timeutil import Clock, utcnow
from .notifications import NotificationDispatcher, NotificationMessage

logger = logging.getLogger(__name__)

T = TypeVar("T")
Work = Callable[[Session, List[NotificationMessage]], T]


def coerce_document_type(value: Any) -> DocumentType:
    """Accept a DocumentType, its value ("Design Document") or its name ("design_document")."""
    if isinstance(value, DocumentType):
        return value
    if isinstance(value, str):
        for doc in DocumentType:
            if value in (doc.value, doc.name):
                return doc
    raise ValidationError(f"Unknown document type {value!r}", field="document_type")


def require_student(db: Session, student_id: int) -> Student:
    student = db.get(Student, student_id)
    if student is None:
        raise NotFound("Student", student_id)
    return student


class WorkflowService:
    """Runs units of work in their own transaction, serialized per key.

    ``work`` receives the session and an outbox. Messages appended to the
    outbox are stored in the same transaction and handed to the delivery
    channel once it has committed and the key's lock is released. Optimistic
    version mismatches and lost unique-insert races are retried against fresh
    state; the retried work re-checks its preconditions.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        dispatcher: NotificationDispatcher,
        clock: Clock = utcnow,
        max_retries: int = WORKFLOW_MAX_RETRIES,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.clock = clock
        self.max_retries = max(1, max_retries)

    def _transact(self, work: Work, key: Optional[Hashable] = None, locks: Optional[KeyedLocks] = None) -> T:
        if locks is None or key is None:
            result, stored = self._attempt(work, key)
        else:
            with locks.hold(key):
                result, stored = self._attempt(work, key)
        self.dispatcher.deliver(stored)
        return result

    def _attempt(self, work: Work, key: Optional[Hashable]) -> Tuple[T, List[Notification]]:
        for attempt in range(1, self.max_retries + 1):
            outbox: List[NotificationMessage] = []
            try:
                with session_scope(self.session_factory) as db:
                    result = work(db, outbox)
                    stored = self.dispatcher.store(db, outbox)
            except (StaleDataError, IntegrityError) as e:
                logger.warning(f"Write conflict on {key} (attempt {attempt}/{self.max_retries}): {e}")
                continue
            return result, stored
        raise ConcurrencyConflict(key, self.max_retries)

    def _read(self, query: Callable[[Session], T]) -> T:
        with session_scope(self.session_factory) as db:
            return query(db)
