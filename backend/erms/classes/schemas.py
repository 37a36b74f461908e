"""Class, enrollment and material schemas."""
from datetime import datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from erms.config import ARCHIVE_RETENTION_DAYS
from erms.models import EnrollmentStatus, QuizKind, QuestionType, SubmissionStatus


class ClassCreate(BaseModel):
    class_name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=255)
    class_start_time: time
    class_end_time: time
    teacher_name: Optional[str] = Field(None, max_length=255)

    @field_validator("class_name", "subject")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ClassUpdate(BaseModel):
    class_name: Optional[str] = Field(None, min_length=1, max_length=255)
    subject: Optional[str] = Field(None, min_length=1, max_length=255)
    class_start_time: Optional[time] = None
    class_end_time: Optional[time] = None
    teacher_name: Optional[str] = Field(None, min_length=1, max_length=255)


class ClassResponse(BaseModel):
    id: str
    class_name: str
    subject: str
    class_start_time: time
    class_end_time: time
    teacher_name: str
    class_code: str
    archived_at: Optional[datetime] = None
    auto_delete_at: Optional[datetime] = None
    created_at: datetime
    student_count: int = 0
    pending_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class ArchiveRequest(BaseModel):
    retention_days: int = Field(ARCHIVE_RETENTION_DAYS, ge=1, le=365)


class EnrollmentResponse(BaseModel):
    id: str
    class_id: str
    student_id: str
    student_number: str
    student_name: str
    course: str
    email: str
    status: EnrollmentStatus
    joined_at: datetime


class JoinClassRequest(BaseModel):
    class_code: str = Field(..., min_length=1, max_length=12)


class StudentClassSummary(BaseModel):
    id: str
    class_name: str
    subject: str
    class_start_time: time
    class_end_time: time
    teacher_name: str

    model_config = ConfigDict(from_attributes=True)


class StudentClassResponse(BaseModel):
    enrollment_id: str
    status: EnrollmentStatus
    joined_at: datetime
    group_class: StudentClassSummary


class MaterialCreate(BaseModel):
    quiz_id: str
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    time_limit: Optional[int] = Field(None, ge=1, le=600)
    due_date: Optional[datetime] = None


class MaterialResponse(BaseModel):
    id: str
    class_id: str
    quiz_id: str
    material_type: QuizKind
    title: str
    description: Optional[str] = None
    time_limit: Optional[int] = None
    due_date: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StudentMaterialResponse(MaterialResponse):
    class_name: str
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None
    submission_id: Optional[str] = None
    submission_status: Optional[SubmissionStatus] = None
    score: Optional[float] = None
    max_score: Optional[float] = None


class QuestionForStudent(BaseModel):
    """A question as shown while taking a quiz; no answer key."""
    id: str
    question_type: QuestionType
    question: str
    options: list = []
    points: int
    image_url: Optional[str] = None
    order_number: int

    model_config = ConfigDict(from_attributes=True)


class QuizForStudent(BaseModel):
    material_id: str
    quiz_id: str
    title: str
    description: Optional[str] = None
    material_type: QuizKind
    time_limit: Optional[int] = None
    due_date: Optional[datetime] = None
    already_submitted: bool
    questions: list[QuestionForStudent]
