"""Student-facing endpoints: upload documents, follow their status and grade."""
from typing import List

from fastapi import APIRouter, Depends, status

from ..auth import ActorContext, require_roles
from ..models import UserRole
from ..schemas import (
    DeadlineResponse, GradeResponse, StudentStatusResponse, SubmissionHistoryResponse,
    SubmissionResponse, UploadRequest,
)
from ..services import WorkflowEngine
from ..timeutil import ensure_utc
from .deps import get_engine

router = APIRouter(prefix="/student", tags=["Student"])

current_student = require_roles(UserRole.student)


@router.post("/upload", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
def upload_document(
    payload: UploadRequest,
    actor: ActorContext = Depends(current_student),
    engine: WorkflowEngine = Depends(get_engine),
):
    """Submit a document for the caller's own slot."""
    return engine.submit(actor.actor_id, payload.doc_type, payload.file_id, actor, filename=payload.filename)


@router.get("/status", response_model=StudentStatusResponse)
def my_status(
    actor: ActorContext = Depends(current_student),
    engine: WorkflowEngine = Depends(get_engine),
):
    return StudentStatusResponse.model_validate(engine.student_status(actor.actor_id, actor))


@router.get("/mysubmissions", response_model=List[SubmissionHistoryResponse])
def my_submissions(
    actor: ActorContext = Depends(current_student),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.list_submissions(actor.actor_id, actor)


@router.get("/mygrade", response_model=GradeResponse)
def my_grade(
    actor: ActorContext = Depends(current_student),
    engine: WorkflowEngine = Depends(get_engine),
):
    """The caller's grade, once the committee has released grades."""
    return engine.get_grade(actor.actor_id, actor)


@router.get("/deadlines", response_model=List[DeadlineResponse])
def deadlines(
    actor: ActorContext = Depends(current_student),
    engine: WorkflowEngine = Depends(get_engine),
):
    return [
        DeadlineResponse(doc_type=doc, deadline_date=ensure_utc(due))
        for doc, due in engine.list_deadlines().items()
    ]
