"""Admin request/response schemas."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from erms.models import QuizKind, QuestionType, SubmissionStatus


class _AccountCreate(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class StudentCreate(_AccountCreate):
    student_number: str = Field(..., min_length=1, max_length=50)
    student_name: str = Field(..., min_length=1, max_length=255)
    course: str = Field(..., min_length=1, max_length=255)


class TeacherCreate(_AccountCreate):
    employee_id: str = Field(..., min_length=1, max_length=50)
    teacher_name: str = Field(..., min_length=1, max_length=255)


class StudentAccount(BaseModel):
    id: str
    user_id: int
    student_number: str
    student_name: str
    course: str
    email: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TeacherAccount(BaseModel):
    id: str
    user_id: int
    employee_id: str
    teacher_name: str
    email: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserStatusUpdate(BaseModel):
    is_active: bool


class DashboardStats(BaseModel):
    totalStudents: int
    totalTeachers: int
    totalUsers: int
    totalClasses: int
    totalQuizzes: int


class RecordSummary(BaseModel):
    id: str
    title: str
    kind: QuizKind
    quiz_type: Optional[str] = None
    teacher_name: str
    question_count: int
    submission_count: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime


class RecordQuestion(BaseModel):
    id: str
    question_type: QuestionType
    question: str
    options: list = []
    correct_answer: Optional[str] = None
    points: int
    order_number: int

    model_config = ConfigDict(from_attributes=True)


class RecordSubmission(BaseModel):
    id: str
    class_name: str
    student_name: str
    student_number: str
    score: Optional[float] = None
    max_score: Optional[float] = None
    status: SubmissionStatus
    submitted_at: datetime


class RecordDetail(RecordSummary):
    description: Optional[str] = None
    questions: list[RecordQuestion]
    submissions: list[RecordSubmission]


class Notification(BaseModel):
    id: str
    kind: str
    title: str
    message: str
    created_at: datetime


class NotificationList(BaseModel):
    notifications: list[Notification]
    unreadCount: int
