"""Pydantic request/response schemas for the HTTP API."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import ApprovalStatus, DocumentType, GradeReason, LetterGrade, NotificationType


# Requests

class UploadRequest(BaseModel):
    doc_type: str
    file_id: str = Field(..., min_length=1)
    filename: Optional[str] = None


class SlotRequest(BaseModel):
    student_id: int
    doc_type: str


class FeedbackRequest(BaseModel):
    submission_id: int
    content: str


class GradeRequest(BaseModel):
    # Range is enforced by the grading engine so the error carries its own code
    student_id: int
    rubric1: int
    rubric2: int
    rubric3: int
    rubric4: int
    rubric5: int
    rubric6: int

    @property
    def rubrics(self) -> List[int]:
        return [self.rubric1, self.rubric2, self.rubric3, self.rubric4, self.rubric5, self.rubric6]


class DeadlineRequest(BaseModel):
    doc_type: str
    deadline_date: datetime


class EnrollRequest(BaseModel):
    student_id: int
    name: Optional[str] = None
    supervisor_id: Optional[int] = None


# Responses

class StudentResponse(BaseModel):
    id: int
    name: Optional[str]
    supervisor_id: Optional[int]
    enrolled_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class FeedbackResponse(BaseModel):
    id: int
    submission_id: int
    author_id: int
    content: str
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class SubmissionResponse(BaseModel):
    id: int
    student_id: int
    document_type: DocumentType
    file_id: str
    filename: Optional[str]
    submitted_at: datetime
    approval_status: ApprovalStatus
    reviewed_by: Optional[int]
    reviewed_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class SubmissionHistoryResponse(SubmissionResponse):
    feedback: List[FeedbackResponse] = []


class SlotStatusResponse(BaseModel):
    document_type: DocumentType
    status: str
    deadline: Optional[datetime]
    can_submit: bool
    current_submission_id: Optional[int]

    model_config = ConfigDict(from_attributes=True)


class StudentStatusResponse(BaseModel):
    student_id: int
    supervisor_id: Optional[int]
    slots: List[SlotStatusResponse]

    model_config = ConfigDict(from_attributes=True)


class GradeResponse(BaseModel):
    student_id: int
    rubric_1: int
    rubric_2: int
    rubric_3: int
    rubric_4: int
    rubric_5: int
    rubric_6: int
    average: float
    letter: LetterGrade
    reason: GradeReason
    graded_by: Optional[int]
    graded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GradeRecordResponse(GradeResponse):
    id: int
    superseded_record_id: Optional[int]


class DeadlineResponse(BaseModel):
    doc_type: DocumentType
    deadline_date: Optional[datetime]


class SweepResponse(BaseModel):
    affectedCount: int
    overduePairs: int
    qualifyingPairs: int
    skippedCount: int
    errorCount: int
    failedStudentIds: List[int]


class OverdueStudentResponse(BaseModel):
    student_id: int
    name: Optional[str]
    document_types: List[DocumentType]

    model_config = ConfigDict(from_attributes=True)


class ReleaseStatusResponse(BaseModel):
    released: bool


class NotificationResponse(BaseModel):
    id: int
    recipient_id: int
    type: NotificationType
    title: str
    message: str
    created_at: datetime
    read: bool

    model_config = ConfigDict(from_attributes=True)


class CountResponse(BaseModel):
    count: int


class StudentReportResponse(BaseModel):
    student_id: int
    name: Optional[str]
    supervisor_id: Optional[int]
    rubrics: Optional[List[int]]
    total_score: Optional[int]
    average: Optional[float]
    letter: Optional[LetterGrade]
    reason: Optional[GradeReason]
    is_graded: bool

    model_config = ConfigDict(from_attributes=True)


class StatsResponse(BaseModel):
    total_students: int
    graded_students: int
    pending_grades: int
    total_submissions: int
    approved_documents: int

    model_config = ConfigDict(from_attributes=True)
