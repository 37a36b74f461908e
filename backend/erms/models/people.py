"""Student and teacher profiles attached to user accounts."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
import uuid

from ..database import Base, utcnow


class Student(Base):
    """Student profile."""
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    student_number = Column(String(50), unique=True, nullable=False, index=True)
    student_name = Column(String(255), nullable=False)
    course = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="student")
    enrollments = relationship("ClassEnrollment", back_populates="student", cascade="all, delete-orphan")
    submissions = relationship("StudentSubmission", back_populates="student", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Student(id={self.id}, student_number='{self.student_number}', name='{self.student_name}')>"

    @property
    def is_active(self):
        return bool(self.user and self.user.is_active)


class Teacher(Base):
    """Teacher profile."""
    __tablename__ = "teachers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    employee_id = Column(String(50), unique=True, nullable=False, index=True)
    teacher_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="teacher")
    classes = relationship("GroupClass", back_populates="teacher", cascade="all, delete-orphan")
    quizzes = relationship("Quiz", back_populates="teacher", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Teacher(id={self.id}, employee_id='{self.employee_id}', name='{self.teacher_name}')>"

    @property
    def is_active(self):
        return bool(self.user and self.user.is_active)
