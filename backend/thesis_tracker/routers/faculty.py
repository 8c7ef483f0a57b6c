"""Endpoints for supervisors, committees and admins."""
from typing import List

from fastapi import APIRouter, Depends, status

from ..auth import ActorContext, STAFF_ROLES, get_current_actor, require_roles
from ..models import DocumentType, UserRole
from ..schemas import (
    DeadlineRequest, DeadlineResponse, EnrollRequest, FeedbackRequest, FeedbackResponse,
    GradeRecordResponse, GradeRequest, GradeResponse, OverdueStudentResponse, ReleaseStatusResponse,
    SlotRequest, StatsResponse, StudentReportResponse, StudentResponse, StudentStatusResponse,
    SubmissionHistoryResponse, SubmissionResponse, SweepResponse,
)
from ..services import WorkflowEngine
from ..timeutil import ensure_utc
from .deps import get_engine

router = APIRouter(prefix="/faculty", tags=["Faculty"])

# Finer role checks happen in the engine; this only keeps students out.
current_staff = require_roles(*STAFF_ROLES)
current_supervisor = require_roles(UserRole.supervisor)


# =====================================================
# SUBMISSION REVIEW
# =====================================================

@router.post("/approvesubmission", response_model=SubmissionResponse)
def approve_submission(
    payload: SlotRequest,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.approve(payload.student_id, payload.doc_type, actor)


@router.post("/requestrevision", response_model=SubmissionResponse)
def request_revision(
    payload: SlotRequest,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.request_revision(payload.student_id, payload.doc_type, actor)


@router.post("/evalrequestrevision", response_model=SubmissionResponse)
def reopen_for_revision(
    payload: SlotRequest,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    """Reopen an approved document after a failing grade."""
    return engine.reopen_for_revision(payload.student_id, payload.doc_type, actor)


@router.post("/addfeedback", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
def add_feedback(
    payload: FeedbackRequest,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.add_feedback(payload.submission_id, actor, payload.content)


@router.get("/approvedsubmissions", response_model=List[SubmissionResponse])
def approved_submissions(
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.list_approved_submissions(actor)


@router.get("/submissions/{student_id}", response_model=List[SubmissionHistoryResponse])
def student_submissions(
    student_id: int,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.list_submissions(student_id, actor)


@router.get("/status/{student_id}", response_model=StudentStatusResponse)
def student_status(
    student_id: int,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return StudentStatusResponse.model_validate(engine.student_status(student_id, actor))


@router.get("/documenttypes", response_model=List[str])
def document_types(actor: ActorContext = Depends(get_current_actor)):
    return [doc.value for doc in DocumentType.ordered()]


# =====================================================
# GRADING
# =====================================================

@router.post("/gradestudent", response_model=GradeResponse)
def grade_student(
    payload: GradeRequest,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.grade_student(payload.student_id, payload.rubrics, actor)


@router.get("/allstudentgrades", response_model=List[GradeResponse])
def all_student_grades(
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.list_grades(actor)


@router.get("/grades/{student_id}", response_model=GradeResponse)
def student_grade(
    student_id: int,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.get_grade(student_id, actor)


@router.get("/grades/{student_id}/history", response_model=List[GradeRecordResponse])
def student_grade_history(
    student_id: int,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.grade_history(student_id, actor)


@router.post("/releasegrades", response_model=ReleaseStatusResponse)
def release_grades(
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return ReleaseStatusResponse(released=engine.set_grade_release(True, actor))


@router.post("/hidegrades", response_model=ReleaseStatusResponse)
def hide_grades(
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return ReleaseStatusResponse(released=engine.set_grade_release(False, actor))


@router.get("/gradereleasestatus", response_model=ReleaseStatusResponse)
def grade_release_status(
    actor: ActorContext = Depends(get_current_actor),
    engine: WorkflowEngine = Depends(get_engine),
):
    return ReleaseStatusResponse(released=engine.grade_release_status())


# =====================================================
# DEADLINES AND SWEEP
# =====================================================

@router.get("/deadlines", response_model=List[DeadlineResponse])
def deadlines(
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return [
        DeadlineResponse(doc_type=doc, deadline_date=ensure_utc(due))
        for doc, due in engine.list_deadlines().items()
    ]


@router.post("/changedeadline", response_model=DeadlineResponse)
def change_deadline(
    payload: DeadlineRequest,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    deadline = engine.set_deadline(payload.doc_type, payload.deadline_date, actor)
    return DeadlineResponse(doc_type=deadline.document_type, deadline_date=ensure_utc(deadline.due_date))


@router.post("/checkdeadlines", response_model=SweepResponse)
def check_deadlines(
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    """Run the deadline sweep now."""
    return SweepResponse(**engine.run_deadline_sweep(actor).to_dict())


@router.get("/pendingdeadlines", response_model=List[OverdueStudentResponse])
def pending_deadlines(
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    """Students the next sweep would fail."""
    return [OverdueStudentResponse.model_validate(row) for row in engine.list_overdue(actor)]


# =====================================================
# ROSTER
# =====================================================

@router.post("/students", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
def enroll_student(
    payload: EnrollRequest,
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.enroll_student(payload.student_id, actor, name=payload.name,
                                 supervisor_id=payload.supervisor_id)


@router.get("/mystudents", response_model=List[StudentResponse])
def my_students(
    actor: ActorContext = Depends(current_supervisor),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.my_students(actor)


# =====================================================
# REPORTS
# =====================================================

@router.get("/admin/studentreports", response_model=List[StudentReportResponse])
def student_reports(
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    """Every student with their grade; ungraded students have ``is_graded`` false."""
    return [StudentReportResponse.model_validate(row) for row in engine.student_reports(actor)]


@router.get("/admin/stats", response_model=StatsResponse)
def workflow_stats(
    actor: ActorContext = Depends(current_staff),
    engine: WorkflowEngine = Depends(get_engine),
):
    return StatsResponse.model_validate(engine.workflow_stats(actor))
