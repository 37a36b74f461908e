"""Grade schemas."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from erms.models import QuizKind, Term


class GradeSettingsUpdate(BaseModel):
    affective_percentage: float = Field(..., ge=0, le=100)
    summative_percentage: float = Field(..., ge=0, le=100)
    formative_percentage: float = Field(..., ge=0, le=100)


class GradeSettingsResponse(BaseModel):
    class_id: str
    affective_percentage: float = 10
    summative_percentage: float = 50
    formative_percentage: float = 40

    model_config = ConfigDict(from_attributes=True)


class ManualScoreUpsert(BaseModel):
    student_id: str
    term: Term
    affective_score: Optional[float] = Field(None, ge=0, le=100)
    summative_score: Optional[float] = Field(None, ge=0, le=100)
    formative_score: Optional[float] = Field(None, ge=0, le=100)
    details: Optional[dict[str, Any]] = None


class ManualScoreResponse(BaseModel):
    id: str
    class_id: str
    student_id: str
    term: Term
    affective_score: Optional[float] = None
    summative_score: Optional[float] = None
    formative_score: Optional[float] = None
    details: Optional[dict[str, Any]] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ExamScoreUpsert(BaseModel):
    student_id: str
    prelim_score: Optional[float] = Field(None, ge=0)
    midterm_score: Optional[float] = Field(None, ge=0)
    finals_score: Optional[float] = Field(None, ge=0)
    max_prelim_score: float = Field(100, gt=0)
    max_midterm_score: float = Field(100, gt=0)
    max_finals_score: float = Field(100, gt=0)
    portfolio_score: Optional[float] = Field(None, ge=0, le=100)


class ExamScoreResponse(BaseModel):
    id: str
    class_id: str
    student_id: str
    prelim_score: Optional[float] = None
    midterm_score: Optional[float] = None
    finals_score: Optional[float] = None
    max_prelim_score: float = 100
    max_midterm_score: float = 100
    max_finals_score: float = 100
    portfolio_score: Optional[float] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BulkManualScores(BaseModel):
    scores: list[ManualScoreUpsert] = Field(..., min_length=1)


class BulkExamScores(BaseModel):
    scores: list[ExamScoreUpsert] = Field(..., min_length=1)


class BulkError(BaseModel):
    student_id: str
    detail: str


class BulkResult(BaseModel):
    saved: int
    errors: list[BulkError] = []


class TermScores(BaseModel):
    affective_score: Optional[float] = None
    summative_score: Optional[float] = None
    formative_score: Optional[float] = None
    term_grade: Optional[float] = None


class ExamScores(BaseModel):
    prelim_score: Optional[float] = None
    midterm_score: Optional[float] = None
    finals_score: Optional[float] = None
    max_prelim_score: float = 100
    max_midterm_score: float = 100
    max_finals_score: float = 100
    portfolio_score: Optional[float] = None


class StudentGradeRow(BaseModel):
    student_id: str
    student_number: str
    student_name: str
    terms: dict[Term, TermScores]
    final_grade: Optional[float] = None
    exam_scores: ExamScores
    submission_average: Optional[float] = None


class ClassGradesResponse(BaseModel):
    class_id: str
    class_name: str
    settings: GradeSettingsResponse
    students: list[StudentGradeRow]


class GradedWork(BaseModel):
    submission_id: str
    material_title: str
    material_type: QuizKind
    score: Optional[float] = None
    max_score: Optional[float] = None
    percentage: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None


class StudentClassGrade(BaseModel):
    class_id: str
    class_name: str
    subject: str
    teacher_name: str
    average: Optional[float] = None
    graded_count: int = 0
    exam_scores: ExamScores
    terms: dict[Term, TermScores]
    final_grade: Optional[float] = None


class StudentClassGradeDetail(StudentClassGrade):
    settings: GradeSettingsResponse
    submissions: list[GradedWork] = []
