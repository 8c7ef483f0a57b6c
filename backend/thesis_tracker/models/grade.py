"""Grade, grade audit log and release flag models."""

from sqlalchemy import Column, DateTime, ForeignKey, Enum as SQLEnum, Integer, Float, Boolean
from sqlalchemy.orm import relationship

from ..database import Base
from ..timeutil import utcnow
from .enums import GradeReason, LetterGrade

RUBRIC_COUNT = 6


class _RubricColumns:
    rubric_1 = Column(Integer, nullable=False)
    rubric_2 = Column(Integer, nullable=False)
    rubric_3 = Column(Integer, nullable=False)
    rubric_4 = Column(Integer, nullable=False)
    rubric_5 = Column(Integer, nullable=False)
    rubric_6 = Column(Integer, nullable=False)
    average = Column(Float, nullable=False)
    letter = Column(SQLEnum(LetterGrade), nullable=False)
    reason = Column(SQLEnum(GradeReason), nullable=False)
    graded_by = Column(Integer, nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def rubrics(self):
        return tuple(getattr(self, f"rubric_{i}") for i in range(1, RUBRIC_COUNT + 1))

    @rubrics.setter
    def rubrics(self, values):
        for i, value in enumerate(values, start=1):
            setattr(self, f"rubric_{i}", value)

    @property
    def is_failing(self) -> bool:
        return self.letter == LetterGrade.F


class Grade(_RubricColumns, Base):
    """The student's current grade. Exactly zero or one row per student."""
    __tablename__ = "grades"

    student_id = Column(Integer, ForeignKey("students.id"), primary_key=True, autoincrement=False)
    record_id = Column(Integer, ForeignKey("grade_records.id"), nullable=True)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    student = relationship("Student", back_populates="grade")

    def __repr__(self):
        return f"<Grade(student_id={self.student_id}, letter={self.letter.value}, reason={self.reason.value})>"


class GradeRecord(_RubricColumns, Base):
    """Append-only history of every grade write."""
    __tablename__ = "grade_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    superseded_record_id = Column(Integer, ForeignKey("grade_records.id"), nullable=True)

    def __repr__(self):
        return f"<GradeRecord(id={self.id}, student_id={self.student_id}, letter={self.letter.value})>"


class GradeRelease(Base):
    """Single-row switch controlling whether students can see their grades."""
    __tablename__ = "grade_release"

    id = Column(Integer, primary_key=True, default=1)
    released = Column(Boolean, nullable=False, default=False)
    updated_by = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
