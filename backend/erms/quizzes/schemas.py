"""Quiz, exam and assignment schemas."""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from erms.models import QuizKind, QuestionType, Term


class QuestionIn(BaseModel):
    question_type: QuestionType
    question: str = Field(..., min_length=1)
    options: list[str] = []
    correct_answer: Optional[str] = None
    points: int = Field(1, ge=1, le=100)
    image_url: Optional[str] = Field(None, max_length=500)

    @field_validator("question")
    @classmethod
    def strip_question(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Question text is required")
        return v

    @field_validator("options")
    @classmethod
    def strip_options(cls, v: list[str]) -> list[str]:
        return [o.strip() for o in v if o and o.strip()]


class _Scheduled(BaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class QuizCreate(_Scheduled):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    quiz_type: str = Field("multiple-choice", max_length=50)
    show_answer_key: bool = False
    questions: list[QuestionIn] = Field(..., min_length=1)


class ExamCreate(_Scheduled):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    subject: Optional[str] = Field(None, max_length=255)
    period: Optional[str] = Field(None, max_length=50)
    school_name: Optional[str] = Field(None, max_length=255)
    introduction: Optional[str] = None
    show_answer_key: bool = False
    questions: list[QuestionIn] = Field(..., min_length=1)


class AssignmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    due_date: Optional[datetime] = None
    attachment_url: Optional[str] = Field(None, max_length=500)
    attachment_name: Optional[str] = Field(None, max_length=255)


class QuizUpdate(_Scheduled):
    """Fields a teacher may change after creation; only the ones sent are applied."""
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    quiz_type: Optional[str] = Field(None, max_length=50)
    show_answer_key: Optional[bool] = None
    subject: Optional[str] = Field(None, max_length=255)
    period: Optional[str] = Field(None, max_length=50)
    school_name: Optional[str] = Field(None, max_length=255)
    introduction: Optional[str] = None
    due_date: Optional[datetime] = None
    attachment_url: Optional[str] = Field(None, max_length=500)
    attachment_name: Optional[str] = Field(None, max_length=255)


class QuestionsReplace(BaseModel):
    questions: list[QuestionIn] = Field(..., min_length=1)


class QuestionOut(BaseModel):
    id: str
    question_type: QuestionType
    question: str
    options: list = []
    correct_answer: Optional[str] = None
    points: int
    image_url: Optional[str] = None
    order_number: int

    model_config = ConfigDict(from_attributes=True)


class QuizSummary(BaseModel):
    id: str
    kind: QuizKind
    title: str
    description: Optional[str] = None
    quiz_type: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    show_answer_key: bool
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None
    question_count: int
    total_points: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuizDetail(QuizSummary):
    subject: Optional[str] = None
    period: Optional[str] = None
    school_name: Optional[str] = None
    introduction: Optional[str] = None
    questions: list[QuestionOut]


class DuplicateCheckRequest(BaseModel):
    questions: list[str]


class DuplicatePair(BaseModel):
    first: int
    duplicate: int
    question: str


class DuplicateCheckResponse(BaseModel):
    has_duplicates: bool
    duplicates: list[DuplicatePair]


class GenerateQuizRequest(BaseModel):
    prompt: str = ""
    source_text: str = ""
    quiz_type: Literal["multiple-choice", "true-false", "identification", "essay"] = "multiple-choice"
    num_questions: int = Field(10, ge=1, le=50)

    @model_validator(mode="after")
    def require_content(self):
        if not self.prompt.strip() and not self.source_text.strip():
            raise ValueError("Please provide a prompt or source text")
        return self


class GenerateExamRequest(BaseModel):
    prompt: str = ""
    source_text: str = ""
    exam_period: Term = Term.prelim
    question_counts: dict[QuestionType, int] = Field(..., min_length=1)

    @field_validator("question_counts")
    @classmethod
    def check_counts(cls, v: dict[QuestionType, int]) -> dict[QuestionType, int]:
        if any(count < 1 or count > 50 for count in v.values()):
            raise ValueError("Each question type needs between 1 and 50 questions")
        if sum(v.values()) > 100:
            raise ValueError("An exam can have at most 100 questions")
        return v

    @model_validator(mode="after")
    def require_content(self):
        if not self.prompt.strip() and not self.source_text.strip():
            raise ValueError("Please provide a prompt or source text")
        return self


class GeneratedQuestion(BaseModel):
    question_type: QuestionType
    question: str
    options: list[str] = []
    correct_answer: str = ""
    points: int = 1


class GenerateQuizResponse(BaseModel):
    model: str
    questions: list[GeneratedQuestion]


class GenerateExamResponse(BaseModel):
    model: str
    exam_period: Term
    questions: list[GeneratedQuestion]


class UploadResponse(BaseModel):
    url: str
    path: str
    file_name: str
    size: int
