"""Submission schemas."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from erms.models import QuizKind, SubmissionStatus


class QuizSubmitRequest(BaseModel):
    answers: dict[str, Any] = {}
    time_taken: Optional[int] = Field(None, ge=0)


class GradedAnswer(BaseModel):
    question_id: str
    question: str
    question_type: str
    student_answer: str = ""
    correct_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    points: float
    earned_points: float


class QuizSubmitResult(BaseModel):
    submission_id: str
    status: SubmissionStatus
    auto_graded: bool
    score: Optional[float] = None
    max_score: float
    percentage: Optional[float] = None
    answers: list[GradedAnswer] = []


class AssignmentSubmitRequest(BaseModel):
    response: Optional[str] = None
    file_url: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def strip(self):
        self.response = (self.response or "").strip() or None
        self.file_url = (self.file_url or "").strip() or None
        return self


class SubmissionResponse(BaseModel):
    id: str
    material_id: str
    student_id: str
    status: SubmissionStatus
    score: Optional[float] = None
    max_score: Optional[float] = None
    is_graded: bool
    auto_graded: bool
    feedback: Optional[str] = None
    assignment_response: Optional[str] = None
    assignment_file_url: Optional[str] = None
    submitted_at: datetime
    graded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SubmissionDetail(SubmissionResponse):
    material_title: str
    material_type: QuizKind
    class_name: str
    percentage: Optional[float] = None
    answers: list[GradedAnswer] = []


class TeacherSubmissionView(SubmissionResponse):
    student_name: str
    student_number: str
    answers: list[GradedAnswer] = []


class GradeRequest(BaseModel):
    score: float = Field(..., ge=0)
    max_score: float = Field(..., gt=0)
    feedback: Optional[str] = None


class ScoreUpdate(BaseModel):
    score: float = Field(..., ge=0)
    max_score: Optional[float] = Field(None, gt=0)
    feedback: Optional[str] = None


class ProgressSave(BaseModel):
    answers: dict[str, Any] = {}
    start_time: Optional[datetime] = None


class ProgressResponse(BaseModel):
    already_submitted: bool
    answers: dict[str, Any] = {}
    start_time: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FileUploadResponse(BaseModel):
    file_url: str
    path: str
    file_name: str
    size: int


class RecentSubmission(BaseModel):
    id: str
    student_name: str
    material_title: str
    class_name: str
    status: SubmissionStatus
    score: Optional[float] = None
    max_score: Optional[float] = None
    submitted_at: datetime


class TeacherDashboard(BaseModel):
    classesCount: int
    studentsCount: int
    quizzesCount: int
    examsCount: int
    assignmentsCount: int
    pendingSubmissions: int
    recentSubmissions: list[RecentSubmission]
