"""
Rubric Grading Engine

Six rubric scores in [1, 5] are averaged and mapped to a letter:

    average >= 4.5 -> A
    average >= 3.5 -> B
    average >= 2.5 -> C
    average >= 1.5 -> D
    otherwise      -> F

A human grade always replaces whatever grade the student had. The automatic
missed-deadline grade is only ever inserted where no grade exists (see
``record_missed_deadline``). Every write is appended to ``grade_records``.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth.models import ActorContext, GRADER_ROLES
from ..exceptions import NotFound, RubricOutOfRange, Unauthorized, ValidationError
from ..locks import KeyedLocks
from ..models import (
    Grade, GradeReason, GradeRecord, GradeRelease, LetterGrade, NotificationType, RUBRIC_COUNT, UserRole,
)
from .base import WorkflowService, require_student
from .notifications import NotificationMessage

logger = logging.getLogger(__name__)

RUBRIC_MIN = 1
RUBRIC_MAX = 5
LETTER_THRESHOLDS: Tuple[Tuple[float, LetterGrade], ...] = (
    (4.5, LetterGrade.A),
    (3.5, LetterGrade.B),
    (2.5, LetterGrade.C),
    (1.5, LetterGrade.D),
)
# Rubric values recorded for an automatic fail; they average to F by construction.
MISSED_DEADLINE_RUBRICS = (RUBRIC_MIN,) * RUBRIC_COUNT


def validate_rubrics(rubrics: Sequence[int]) -> Tuple[int, ...]:
    """Return the scores as a tuple or raise before anything is written."""
    rubrics = tuple(rubrics)
    if len(rubrics) != RUBRIC_COUNT:
        raise ValidationError(f"Exactly {RUBRIC_COUNT} rubric scores are required, got {len(rubrics)}",
                              field="rubrics")
    for index, value in enumerate(rubrics, start=1):
        if isinstance(value, bool) or not isinstance(value, int):
            raise RubricOutOfRange(index, value)
        if not RUBRIC_MIN <= value <= RUBRIC_MAX:
            raise RubricOutOfRange(index, value)
    return rubrics


def rubric_average(rubrics: Sequence[int]) -> float:
    return sum(rubrics) / float(RUBRIC_COUNT)


def letter_for_average(average: float) -> LetterGrade:
    for threshold, letter in LETTER_THRESHOLDS:
        if average >= threshold:
            return letter
    return LetterGrade.F


def compute_letter(rubrics: Sequence[int]) -> Tuple[float, LetterGrade]:
    """Validate, average and map in one step."""
    rubrics = validate_rubrics(rubrics)
    average = rubric_average(rubrics)
    return average, letter_for_average(average)


class GradingEngine(WorkflowService):
    """Owns Grade, GradeRecord and GradeRelease.

    Writes for one student are serialized by ``grade_locks``, which the
    deadline sweeper shares, and by the grade row's optimistic version.
    """

    def __init__(self, session_factory, dispatcher, grade_locks: KeyedLocks, **kwargs):
        super().__init__(session_factory, dispatcher, **kwargs)
        self.grade_locks = grade_locks

    def grade_student(self, student_id: int, rubrics: Sequence[int], actor: ActorContext) -> Grade:
        """Assign a rubric grade, replacing any existing grade for the student."""
        actor.require(GRADER_ROLES, "grade students")
        rubrics = validate_rubrics(rubrics)
        average = rubric_average(rubrics)
        letter = letter_for_average(average)

        def work(db: Session, outbox):
            require_student(db, student_id)
            grade = self._write(db, student_id, rubrics, average, letter, GradeReason.rubric,
                                actor.actor_id, self.clock())
            outbox.append(NotificationMessage(
                recipient_id=student_id,
                type=NotificationType.grade_assigned,
                title="Grade assigned",
                message=f"You have been graded {letter.value} (average {average:.2f}).",
            ))
            logger.info(f"Student {student_id} graded {letter.value} ({average:.3f}) by {actor.actor_id}")
            return grade

        return self._transact(work, key=student_id, locks=self.grade_locks)

    def record_missed_deadline(self, db: Session, student_id: int, now: datetime) -> Optional[Grade]:
        """Insert an F for ``student_id`` only if no grade exists.

        Runs inside the caller's transaction and under the caller's hold of
        the student's grade lock. Returns None when a grade is already
        present. A concurrent insert from another process surfaces as
        IntegrityError at flush time.
        """
        if db.get(Grade, student_id) is not None:
            return None
        average = rubric_average(MISSED_DEADLINE_RUBRICS)
        return self._write(db, student_id, MISSED_DEADLINE_RUBRICS, average, LetterGrade.F,
                           GradeReason.missed_deadline, None, now, insert_only=True)

    def _write(
        self,
        db: Session,
        student_id: int,
        rubrics: Tuple[int, ...],
        average: float,
        letter: LetterGrade,
        reason: GradeReason,
        graded_by: Optional[int],
        now: datetime,
        insert_only: bool = False,
    ) -> Grade:
        grade = None if insert_only else db.get(Grade, student_id)
        record = GradeRecord(
            student_id=student_id,
            average=average,
            letter=letter,
            reason=reason,
            graded_by=graded_by,
            graded_at=now,
            superseded_record_id=grade.record_id if grade is not None else None,
        )
        record.rubrics = rubrics
        db.add(record)
        db.flush()

        if grade is None:
            grade = Grade(student_id=student_id)
            db.add(grade)
        grade.rubrics = rubrics
        grade.average = average
        grade.letter = letter
        grade.reason = reason
        grade.graded_by = graded_by
        grade.graded_at = now
        grade.record_id = record.id
        db.flush()
        return grade

    # =====================================================
    # READS AND RELEASE
    # =====================================================

    def get_grade(self, student_id: int, actor: ActorContext) -> Grade:
        """Staff may read any grade; a student only their own, once grades are released."""
        actor.require_self_or_staff(student_id, "view grades")

        def query(db: Session) -> Grade:
            if actor.role == UserRole.student and not self._released(db):
                raise Unauthorized("Grades have not been released yet")
            grade = db.get(Grade, student_id)
            if grade is None:
                raise NotFound("Grade", student_id)
            return grade

        return self._read(query)

    def grade_history(self, student_id: int, actor: ActorContext) -> List[GradeRecord]:
        if not actor.is_staff:
            raise Unauthorized("Only staff can read grade history")
        return self._read(lambda db: list(db.scalars(
            select(GradeRecord)
            .where(GradeRecord.student_id == student_id)
            .order_by(GradeRecord.id.desc())
        )))

    def list_grades(self, actor: ActorContext) -> List[Grade]:
        if not actor.is_staff:
            raise Unauthorized("Only staff can list grades")
        return self._read(lambda db: list(db.scalars(select(Grade).order_by(Grade.student_id))))

    def set_grade_release(self, released: bool, actor: ActorContext) -> bool:
        actor.require(GRADER_ROLES, "release grades")

        def work(db: Session, outbox):
            flag = db.get(GradeRelease, 1)
            if flag is None:
                flag = GradeRelease(id=1)
                db.add(flag)
            flag.released = bool(released)
            flag.updated_by = actor.actor_id
            flag.updated_at = self.clock()
            logger.info(f"Grades {'released' if released else 'hidden'} by {actor.actor_id}")
            return flag.released

        return self._transact(work, key="grade_release")

    def grade_release_status(self) -> bool:
        return self._read(self._released)

    @staticmethod
    def _released(db: Session) -> bool:
        flag = db.get(GradeRelease, 1)
        return bool(flag and flag.released)
