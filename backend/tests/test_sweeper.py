"""Tests for the deadline sweeper and its scheduler."""

import time
from unittest.mock import patch

import pytest

from thesis_tracker.exceptions import Unauthorized
from thesis_tracker.models import DocumentType, GradeReason, LetterGrade, NotificationType
from thesis_tracker.services import SweepScheduler
from conftest import OTHER_STUDENT_ID, STUDENT_ID

PROPOSAL = DocumentType.proposal


@pytest.fixture
def proposal_overdue(workflow, roster, fyp_committee, clock):
    """Proposal deadline one day in the past."""
    workflow.set_deadline(PROPOSAL, clock(), fyp_committee)
    clock.advance(days=1)


class TestSweep:

    def test_nothing_overdue(self, workflow, roster, fyp_committee, clock):
        workflow.set_deadline(PROPOSAL, clock.now.replace(year=2027), fyp_committee)
        result = workflow.run_deadline_sweep()

        assert result.affected_count == 0
        assert result.overdue_pairs == 0

    def test_deadline_is_strictly_past(self, workflow, roster, fyp_committee, clock):
        workflow.set_deadline(PROPOSAL, clock(), fyp_committee)
        assert workflow.run_deadline_sweep().affected_count == 0

    def test_fails_students_without_approval(self, workflow, proposal_overdue, evaluator, channel):
        result = workflow.run_deadline_sweep()

        assert result.affected_count == 2
        assert result.failed_student_ids == [STUDENT_ID, OTHER_STUDENT_ID]
        grade = workflow.get_grade(STUDENT_ID, evaluator)
        assert grade.letter == LetterGrade.F
        assert grade.reason == GradeReason.missed_deadline
        assert grade.graded_by is None
        assert channel.types_for(STUDENT_ID) == [NotificationType.deadline_missed]

    def test_approved_slot_is_spared(self, workflow, roster, student, supervisor, fyp_committee, clock, evaluator):
        workflow.submit(STUDENT_ID, PROPOSAL, "f1", student)
        workflow.approve(STUDENT_ID, PROPOSAL, supervisor)
        workflow.set_deadline(PROPOSAL, clock(), fyp_committee)
        clock.advance(minutes=1)

        result = workflow.run_deadline_sweep()

        assert result.failed_student_ids == [OTHER_STUDENT_ID]
        assert result.skipped_count == 1
        assert result.overdue_pairs == 2
        assert result.qualifying_pairs == 1

    def test_pending_submission_still_fails(self, workflow, roster, student, fyp_committee, clock):
        workflow.submit(STUDENT_ID, PROPOSAL, "f1", student)
        workflow.set_deadline(PROPOSAL, clock(), fyp_committee)
        clock.advance(minutes=1)

        assert STUDENT_ID in workflow.run_deadline_sweep().failed_student_ids

    def test_idempotent(self, workflow, proposal_overdue, channel):
        assert workflow.run_deadline_sweep().affected_count == 2
        second = workflow.run_deadline_sweep()

        assert second.affected_count == 0
        assert second.skipped_count == 2
        assert len(channel.delivered) == 2

    def test_never_overwrites_existing_grade(self, workflow, proposal_overdue, evaluator):
        workflow.grade_student(STUDENT_ID, (4,) * 6, evaluator)

        result = workflow.run_deadline_sweep()

        assert result.failed_student_ids == [OTHER_STUDENT_ID]
        grade = workflow.get_grade(STUDENT_ID, evaluator)
        assert grade.letter == LetterGrade.B
        assert grade.reason == GradeReason.rubric

    def test_one_grade_for_several_overdue_documents(self, workflow, roster, fyp_committee, clock, evaluator, channel):
        workflow.set_deadline(PROPOSAL, clock(), fyp_committee)
        workflow.set_deadline(DocumentType.design_document, clock(), fyp_committee)
        clock.advance(days=2)

        result = workflow.run_deadline_sweep()

        assert result.affected_count == 2
        assert result.qualifying_pairs == 4
        assert len(workflow.grade_history(STUDENT_ID, evaluator)) == 1
        missed = [n for n in channel.delivered if n.recipient_id == STUDENT_ID]
        assert len(missed) == 1
        assert "Proposal" in missed[0].title

    def test_grader_can_replace_missed_deadline_grade(self, workflow, proposal_overdue, evaluator):
        workflow.run_deadline_sweep()
        workflow.grade_student(STUDENT_ID, (3,) * 6, evaluator)

        assert workflow.get_grade(STUDENT_ID, evaluator).letter == LetterGrade.C
        assert workflow.run_deadline_sweep().affected_count == 0
        assert workflow.get_grade(STUDENT_ID, evaluator).letter == LetterGrade.C

    def test_errors_are_isolated(self, workflow, proposal_overdue, evaluator):
        original = workflow.grading.record_missed_deadline

        def flaky(db, student_id, now):
            if student_id == STUDENT_ID:
                raise RuntimeError("disk full")
            return original(db, student_id, now)

        with patch.object(workflow.grading, "record_missed_deadline", side_effect=flaky):
            result = workflow.run_deadline_sweep()

        assert result.error_count == 1
        assert result.failed_student_ids == [OTHER_STUDENT_ID]

        retry = workflow.run_deadline_sweep()
        assert retry.failed_student_ids == [STUDENT_ID]

    def test_notification_failure_does_not_undo_grade(self, workflow, proposal_overdue, evaluator, channel):
        channel.fail = True
        result = workflow.run_deadline_sweep()

        assert result.affected_count == 2
        assert workflow.get_grade(STUDENT_ID, evaluator).is_failing
        # Records are stored even when the channel is down
        assert workflow.unread_count(STUDENT_ID) == 1

    def test_role_check(self, workflow, student, supervisor, fyp_committee):
        with pytest.raises(Unauthorized):
            workflow.run_deadline_sweep(student)
        with pytest.raises(Unauthorized):
            workflow.run_deadline_sweep(supervisor)
        workflow.run_deadline_sweep(fyp_committee)

    def test_result_dict(self, workflow, proposal_overdue):
        payload = workflow.run_deadline_sweep().to_dict()
        assert payload["affectedCount"] == 2
        assert payload["failedStudentIds"] == [STUDENT_ID, OTHER_STUDENT_ID]


class TestListOverdue:

    def test_preview_matches_sweep(self, workflow, proposal_overdue, evaluator):
        pending = workflow.list_overdue(evaluator)

        assert [p.student_id for p in pending] == [STUDENT_ID, OTHER_STUDENT_ID]
        assert pending[0].document_types == [PROPOSAL]
        assert pending[0].name == "Ayesha Khan"

    def test_preview_writes_nothing(self, workflow, proposal_overdue, evaluator):
        workflow.list_overdue(evaluator)
        workflow.list_overdue(evaluator)
        assert workflow.run_deadline_sweep().affected_count == 2

    def test_empty_after_sweep(self, workflow, proposal_overdue, evaluator):
        workflow.run_deadline_sweep()
        assert workflow.list_overdue(evaluator) == []

    def test_students_cannot_preview(self, workflow, student):
        with pytest.raises(Unauthorized):
            workflow.list_overdue(student)


class TestSweepScheduler:

    def test_run_once(self, workflow, proposal_overdue):
        scheduler = SweepScheduler(workflow.sweeper, interval_seconds=60)
        result = scheduler.run_once()

        assert result.affected_count == 2
        assert scheduler.last_result is result

    def test_run_once_swallows_errors(self, workflow):
        scheduler = SweepScheduler(workflow.sweeper, interval_seconds=60)
        with patch.object(workflow.sweeper, "run", side_effect=RuntimeError("boom")):
            assert scheduler.run_once() is None

    def test_background_loop(self, workflow, proposal_overdue, admin):
        scheduler = SweepScheduler(workflow.sweeper, interval_seconds=0.01)
        scheduler.start()
        try:
            deadline = time.monotonic() + 5
            while scheduler.last_result is None and time.monotonic() < deadline:
                time.sleep(0.01)
            assert scheduler.running
        finally:
            scheduler.stop()

        assert not scheduler.running
        assert scheduler.last_result is not None
        assert len(workflow.list_grades(admin)) == 2
