"""Tests for the roster and the committee reports."""

import pytest

from thesis_tracker.exceptions import Unauthorized
from thesis_tracker.models import DocumentType, GradeReason, LetterGrade
from conftest import OTHER_STUDENT_ID, STUDENT_ID, SUPERVISOR_ID


class TestEnrollment:

    def test_enroll_is_an_upsert(self, workflow, roster, admin, supervisor):
        workflow.enroll_student(STUDENT_ID, admin, name="Ayesha K.", supervisor_id=None)

        assert [s.id for s in workflow.my_students(supervisor)] == [OTHER_STUDENT_ID]

    def test_only_admins_enroll(self, workflow, supervisor):
        with pytest.raises(Unauthorized):
            workflow.enroll_student(4001, supervisor)


class TestStudentReports:

    def test_ungraded_students_are_listed(self, workflow, roster, evaluator):
        workflow.grade_student(STUDENT_ID, (5, 5, 4, 4, 5, 5), evaluator)

        reports = workflow.student_reports(evaluator)

        assert [r.student_id for r in reports] == [STUDENT_ID, OTHER_STUDENT_ID]
        graded, pending = reports
        assert graded.is_graded
        assert graded.total_score == 28
        assert graded.letter == LetterGrade.A
        assert graded.supervisor_id == SUPERVISOR_ID
        assert not pending.is_graded
        assert pending.total_score is None
        assert pending.letter is None

    def test_missed_deadline_grade_is_reported(self, workflow, roster, fyp_committee, clock):
        workflow.set_deadline(DocumentType.proposal, clock(), fyp_committee)
        clock.advance(days=1)
        workflow.run_deadline_sweep()

        reports = workflow.student_reports(fyp_committee)
        assert [r.reason for r in reports] == [GradeReason.missed_deadline] * 2
        assert [r.total_score for r in reports] == [6, 6]

    def test_supervisors_and_students_are_refused(self, workflow, roster, supervisor, student):
        with pytest.raises(Unauthorized):
            workflow.student_reports(supervisor)
        with pytest.raises(Unauthorized):
            workflow.workflow_stats(student)


class TestStats:

    def test_empty_roster(self, workflow, admin):
        stats = workflow.workflow_stats(admin)
        assert (stats.total_students, stats.graded_students, stats.pending_grades) == (0, 0, 0)

    def test_counts(self, workflow, roster, student, other_student, supervisor, evaluator, admin):
        workflow.submit(STUDENT_ID, DocumentType.proposal, "f1", student)
        workflow.submit(OTHER_STUDENT_ID, DocumentType.proposal, "f2", other_student)
        workflow.request_revision(OTHER_STUDENT_ID, DocumentType.proposal, supervisor)
        workflow.submit(OTHER_STUDENT_ID, DocumentType.proposal, "f3", other_student)
        workflow.approve(STUDENT_ID, DocumentType.proposal, supervisor)
        workflow.grade_student(STUDENT_ID, (3,) * 6, evaluator)

        stats = workflow.workflow_stats(admin)

        assert stats.total_students == 2
        assert stats.graded_students == 1
        assert stats.pending_grades == 1
        assert stats.total_submissions == 3
        assert stats.approved_documents == 1
