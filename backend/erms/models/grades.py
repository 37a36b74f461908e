"""Per-class grade weights, manual term scores and exam scores."""

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Float, JSON, Enum as SQLEnum, UniqueConstraint,
)
import uuid

from ..database import Base, utcnow
from .enums import Term


class GradeComputationSettings(Base):
    __tablename__ = "grade_computation_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id = Column(String(36), ForeignKey("group_classes.id", ondelete="CASCADE"), unique=True, nullable=False)
    affective_percentage = Column(Float, default=10, nullable=False)
    summative_percentage = Column(Float, default=50, nullable=False)
    formative_percentage = Column(Float, default=40, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return (
            f"<GradeComputationSettings(class_id={self.class_id}, "
            f"{self.affective_percentage}/{self.summative_percentage}/{self.formative_percentage})>"
        )


class GradeManualScore(Base):
    """Affective, summative and formative scores a teacher enters for one term."""
    __tablename__ = "grade_manual_scores"
    __table_args__ = (UniqueConstraint("class_id", "student_id", "term", name="uq_manual_score_term"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id = Column(String(36), ForeignKey("group_classes.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    term = Column(SQLEnum(Term), nullable=False)
    affective_score = Column(Float, nullable=True)
    summative_score = Column(Float, nullable=True)
    formative_score = Column(Float, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class StudentExamScore(Base):
    __tablename__ = "student_exam_scores"
    __table_args__ = (UniqueConstraint("class_id", "student_id", name="uq_exam_score_student"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id = Column(String(36), ForeignKey("group_classes.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    prelim_score = Column(Float, nullable=True)
    midterm_score = Column(Float, nullable=True)
    finals_score = Column(Float, nullable=True)
    max_prelim_score = Column(Float, default=100, nullable=False)
    max_midterm_score = Column(Float, default=100, nullable=False)
    max_finals_score = Column(Float, default=100, nullable=False)
    portfolio_score = Column(Float, nullable=True)
    graded_by = Column(String(36), ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
