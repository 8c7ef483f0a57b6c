"""Deadline model."""

from sqlalchemy import Column, DateTime, Enum as SQLEnum, Integer

from ..database import Base
from ..timeutil import utcnow, ensure_utc
from .enums import DocumentType


class Deadline(Base):
    """Due date for one document type. One row per type; a new date updates it in place."""
    __tablename__ = "deadlines"

    document_type = Column(SQLEnum(DocumentType), primary_key=True)
    due_date = Column(DateTime(timezone=True), nullable=False)
    set_by = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Deadline(document_type={self.document_type.value}, due_date={self.due_date})>"

    def has_passed(self, now) -> bool:
        return ensure_utc(self.due_date) < ensure_utc(now)
