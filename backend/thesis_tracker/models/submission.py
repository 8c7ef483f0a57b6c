"""Submission, slot and feedback models."""

from sqlalchemy import (
    Column, String, Text, DateTime, ForeignKey, Enum as SQLEnum, Integer, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..timeutil import utcnow
from .enums import ApprovalStatus, DocumentType


class SubmissionSlot(Base):
    """Current state of one (student, document type) pair.

    A missing row means nothing was submitted yet. ``version`` is bumped on
    every update and checked in the UPDATE's WHERE clause, so two writers that
    read the same state cannot both commit.
    """
    __tablename__ = "submission_slots"
    __table_args__ = (
        UniqueConstraint("student_id", "document_type", name="uq_slot_student_document"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    document_type = Column(SQLEnum(DocumentType), nullable=False)
    status = Column(SQLEnum(ApprovalStatus), nullable=False)
    current_submission_id = Column(Integer, ForeignKey("submissions.id"), nullable=True)
    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    student = relationship("Student", back_populates="slots")
    current_submission = relationship("Submission", foreign_keys=[current_submission_id])

    def __repr__(self):
        return (
            f"<SubmissionSlot(student_id={self.student_id}, "
            f"document_type={self.document_type.value}, status={self.status.value})>"
        )


class Submission(Base):
    """One upload attempt. Rows are never deleted; only the slot's current one is actionable."""
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    document_type = Column(SQLEnum(DocumentType), nullable=False)
    file_id = Column(String(255), nullable=False)
    filename = Column(String(500))
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    approval_status = Column(SQLEnum(ApprovalStatus), nullable=False, default=ApprovalStatus.pending_approval)
    reviewed_by = Column(Integer, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    feedback = relationship("Feedback", back_populates="submission", order_by="Feedback.id")

    def __repr__(self):
        return f"<Submission(id={self.id}, student_id={self.student_id}, file_id='{self.file_id}')>"

    @property
    def is_pending(self):
        return self.approval_status == ApprovalStatus.pending_approval

    @property
    def is_approved(self):
        return self.approval_status == ApprovalStatus.approved


class Feedback(Base):
    """Reviewer comment attached to a submission."""
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(Integer, ForeignKey("submissions.id"), nullable=False, index=True)
    author_id = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    submission = relationship("Submission", back_populates="feedback")

    def __repr__(self):
        return f"<Feedback(id={self.id}, submission_id={self.submission_id})>"
