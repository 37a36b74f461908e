"""Quiz, exam and assignment definitions."""

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Integer, Text, Boolean, JSON, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
import uuid

from ..database import Base, utcnow
from .enums import QuizKind, QuestionType


class Quiz(Base):
    """Quizzes, exams and assignments share one table, told apart by kind."""
    __tablename__ = "quizzes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    teacher_id = Column(String(36), ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column("type", SQLEnum(QuizKind), nullable=False, default=QuizKind.quiz, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quiz_type = Column(String(50), nullable=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    show_answer_key = Column(Boolean, default=False, nullable=False)
    attachment_url = Column(String(500), nullable=True)
    attachment_name = Column(String(255), nullable=True)
    # Exam sheet header
    subject = Column(String(255), nullable=True)
    period = Column(String(50), nullable=True)
    school_name = Column(String(255), nullable=True)
    introduction = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    teacher = relationship("Teacher", back_populates="quizzes")
    questions = relationship(
        "QuizQuestion", back_populates="quiz", cascade="all, delete-orphan",
        order_by="QuizQuestion.order_number",
    )
    materials = relationship("ClassMaterial", back_populates="quiz", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Quiz(id={self.id}, title='{self.title}', kind='{self.kind.value}')>"

    @property
    def question_count(self):
        return len(self.questions)

    @property
    def total_points(self):
        return sum(q.points or 0 for q in self.questions)

    @property
    def has_essay(self):
        return any(q.question_type == QuestionType.essay for q in self.questions)


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    question_type = Column(SQLEnum(QuestionType), nullable=False)
    question = Column(Text, nullable=False)
    options = Column(JSON, default=list)
    correct_answer = Column(Text, default="")
    points = Column(Integer, default=1, nullable=False)
    image_url = Column(String(500), nullable=True)
    order_number = Column(Integer, nullable=False, default=1)

    quiz = relationship("Quiz", back_populates="questions")

    def __repr__(self):
        return f"<QuizQuestion(id={self.id}, type='{self.question_type.value}', order={self.order_number})>"
