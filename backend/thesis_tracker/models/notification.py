"""Notification model."""

from sqlalchemy import Column, String, Text, DateTime, Enum as SQLEnum, Integer, Boolean, Index

from ..database import Base
from ..timeutil import utcnow
from .enums import NotificationType


class Notification(Base):
    """Notification record. Only ``read`` changes after creation."""
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient_read", "recipient_id", "read"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    type = Column(SQLEnum(NotificationType), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    read = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<Notification(id={self.id}, recipient_id={self.recipient_id}, type={self.type.value})>"
