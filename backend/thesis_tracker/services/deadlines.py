"""Deadline Registry: one due date per document type."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth.models import ActorContext, DEADLINE_ROLES
from ..exceptions import ValidationError
from ..locks import KeyedLocks
from ..models import Deadline, DocumentType
from ..timeutil import ensure_utc
from .base import WorkflowService, coerce_document_type

logger = logging.getLogger(__name__)


class DeadlineRegistry(WorkflowService):
    """Read-mostly store of deadlines; writes come from the FYP committee."""

    def __init__(self, session_factory, dispatcher, **kwargs):
        super().__init__(session_factory, dispatcher, **kwargs)
        self._locks = KeyedLocks()

    def set_deadline(self, document_type, due_date: datetime, actor: ActorContext) -> Deadline:
        """Set or replace the deadline for ``document_type``. Naive dates are taken as UTC."""
        actor.require(DEADLINE_ROLES, "set deadlines")
        document_type = coerce_document_type(document_type)
        if not isinstance(due_date, datetime):
            raise ValidationError("due_date must be a datetime", field="due_date")
        due_date = ensure_utc(due_date)

        def work(db: Session, outbox):
            deadline = db.get(Deadline, document_type)
            if deadline is None:
                deadline = Deadline(document_type=document_type)
                db.add(deadline)
            deadline.due_date = due_date
            deadline.set_by = actor.actor_id
            deadline.updated_at = self.clock()
            db.flush()
            logger.info(f"Deadline for {document_type.value} set to {due_date.isoformat()} by {actor.actor_id}")
            return deadline

        return self._transact(work, key=document_type, locks=self._locks)

    def get_deadline(self, document_type) -> Optional[Deadline]:
        document_type = coerce_document_type(document_type)
        return self._read(lambda db: db.get(Deadline, document_type))

    def list_deadlines(self) -> Dict[DocumentType, Optional[datetime]]:
        """Every document type in milestone order, with its due date or None."""

        def query(db: Session):
            found = {d.document_type: ensure_utc(d.due_date) for d in db.scalars(select(Deadline))}
            return {doc: found.get(doc) for doc in DocumentType.ordered()}

        return self._read(query)

    def overdue_types(self, db: Session, now: datetime) -> List[DocumentType]:
        """Document types whose deadline is strictly before ``now``, in milestone order."""
        elapsed = {
            d.document_type
            for d in db.scalars(select(Deadline).where(Deadline.due_date < ensure_utc(now)))
        }
        return [doc for doc in DocumentType.ordered() if doc in elapsed]
