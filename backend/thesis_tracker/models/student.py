"""Student roster model."""

from sqlalchemy import Column, String, DateTime, Integer
from sqlalchemy.orm import relationship

from ..database import Base
from ..timeutil import utcnow


class Student(Base):
    """Roster entry. The id is the external identity key, not generated here."""
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(255))
    supervisor_id = Column(Integer, index=True, nullable=True)
    enrolled_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    slots = relationship("SubmissionSlot", back_populates="student", cascade="all, delete-orphan")
    grade = relationship("Grade", back_populates="student", uselist=False)

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}')>"

    @property
    def has_supervisor(self) -> bool:
        return self.supervisor_id is not None
