"""
Student Roster and Reports

The roster is what the sweep walks. The reports left-join it to grades so
ungraded students show up as pending rather than disappearing.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..auth.models import ActorContext, REPORT_ROLES
from ..models import ApprovalStatus, Grade, GradeReason, LetterGrade, Student, Submission, SubmissionSlot, UserRole
from .base import WorkflowService

logger = logging.getLogger(__name__)


@dataclass
class StudentReport:
    """One row of the committee's student report."""
    student_id: int
    name: Optional[str]
    supervisor_id: Optional[int]
    rubrics: Optional[Tuple[int, ...]] = None
    average: Optional[float] = None
    letter: Optional[LetterGrade] = None
    reason: Optional[GradeReason] = None

    @property
    def is_graded(self) -> bool:
        return self.letter is not None

    @property
    def total_score(self) -> Optional[int]:
        return sum(self.rubrics) if self.rubrics else None


@dataclass
class WorkflowStats:
    total_students: int
    graded_students: int
    pending_grades: int
    total_submissions: int
    approved_documents: int


class StudentRoster(WorkflowService):

    def enroll_student(
        self,
        student_id: int,
        actor: ActorContext,
        name: Optional[str] = None,
        supervisor_id: Optional[int] = None,
    ) -> Student:
        """Add a student, or update name/supervisor of an enrolled one."""
        actor.require({UserRole.admin}, "enroll students")

        def work(db: Session, outbox):
            student = db.get(Student, student_id)
            if student is None:
                student = Student(id=student_id, enrolled_at=self.clock())
                db.add(student)
                logger.info(f"Enrolled student {student_id}")
            student.name = name
            student.supervisor_id = supervisor_id
            db.flush()
            return student

        return self._transact(work, key=student_id)

    def list_students(self, db: Session, supervisor_id: Optional[int] = None) -> List[Student]:
        stmt = select(Student).order_by(Student.id)
        if supervisor_id is not None:
            stmt = stmt.where(Student.supervisor_id == supervisor_id)
        return list(db.scalars(stmt))

    def my_students(self, actor: ActorContext) -> List[Student]:
        """Students assigned to the calling supervisor."""
        actor.require({UserRole.supervisor}, "list supervised students")
        return self._read(lambda db: self.list_students(db, supervisor_id=actor.actor_id))

    # =====================================================
    # REPORTS
    # =====================================================

    def student_reports(self, actor: ActorContext) -> List[StudentReport]:
        """Every enrolled student with their grade, ungraded students included."""
        actor.require(REPORT_ROLES, "view student reports")

        def query(db: Session) -> List[StudentReport]:
            grades = {g.student_id: g for g in db.scalars(select(Grade))}
            reports = []
            for student in self.list_students(db):
                report = StudentReport(student.id, student.name, student.supervisor_id)
                grade = grades.get(student.id)
                if grade is not None:
                    report.rubrics = grade.rubrics
                    report.average = grade.average
                    report.letter = grade.letter
                    report.reason = grade.reason
                reports.append(report)
            return reports

        return self._read(query)

    def stats(self, actor: ActorContext) -> WorkflowStats:
        actor.require(REPORT_ROLES, "view workflow statistics")

        def query(db: Session) -> WorkflowStats:
            total = len(self.list_students(db))
            graded = db.scalar(select(func.count(Grade.student_id))) or 0
            return WorkflowStats(
                total_students=total,
                graded_students=graded,
                pending_grades=total - graded,
                total_submissions=db.scalar(select(func.count(Submission.id))) or 0,
                approved_documents=db.scalar(
                    select(func.count(SubmissionSlot.id)).where(SubmissionSlot.status == ApprovalStatus.approved)
                ) or 0,
            )

        return self._read(query)
