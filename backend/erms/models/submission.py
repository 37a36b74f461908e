"""Student submissions, quiz attempts and in-progress quiz drafts."""

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Integer, Text, Boolean, JSON, Float,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
import uuid

from ..database import Base, utcnow
from .enums import SubmissionStatus


class StudentSubmission(Base):
    """One student's answer to one class material."""
    __tablename__ = "student_submissions"
    __table_args__ = (UniqueConstraint("material_id", "student_id", name="uq_submission_material_student"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    material_id = Column(String(36), ForeignKey("class_materials.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_answers = Column(JSON, nullable=True)
    assignment_response = Column(Text, nullable=True)
    assignment_file_url = Column(String(500), nullable=True)
    score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=True)
    is_graded = Column(Boolean, default=False, nullable=False)
    auto_graded = Column(Boolean, default=False, nullable=False)
    status = Column(SQLEnum(SubmissionStatus), default=SubmissionStatus.submitted, nullable=False)
    feedback = Column(Text, nullable=True)
    submitted_at = Column(DateTime, default=utcnow)
    graded_at = Column(DateTime, nullable=True)
    graded_by = Column(String(36), ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)

    material = relationship("ClassMaterial", back_populates="submissions")
    student = relationship("Student", back_populates="submissions")
    attempts = relationship("QuizAttempt", back_populates="submission", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<StudentSubmission(id={self.id}, status='{self.status.value}', score={self.score})>"

    @property
    def percentage(self):
        if self.score is None or not self.max_score:
            return None
        return self.score / self.max_score * 100


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    submission_id = Column(String(36), ForeignKey("student_submissions.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    answers = Column(JSON, nullable=True)
    score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=True)
    time_taken = Column(Integer, nullable=True)  # seconds
    is_completed = Column(Boolean, default=True, nullable=False)
    completed_at = Column(DateTime, default=utcnow)

    submission = relationship("StudentSubmission", back_populates="attempts")


class QuizProgress(Base):
    """Autosaved answers for a quiz the student has started but not submitted."""
    __tablename__ = "quiz_progress"
    __table_args__ = (UniqueConstraint("student_id", "material_id", name="uq_progress_student_material"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    material_id = Column(String(36), ForeignKey("class_materials.id", ondelete="CASCADE"), nullable=False)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    answers = Column(JSON, default=dict)
    start_time = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
