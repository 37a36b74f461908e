"""Classes, enrollments and the materials posted to them."""

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Integer, Text, Time,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
import uuid

from ..database import Base, utcnow
from .enums import EnrollmentStatus, QuizKind


class GroupClass(Base):
    """A class section owned by one teacher, joined by students through its code."""
    __tablename__ = "group_classes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    teacher_id = Column(String(36), ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    class_name = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    class_start_time = Column(Time, nullable=False)
    class_end_time = Column(Time, nullable=False)
    teacher_name = Column(String(255), nullable=False)
    class_code = Column(String(12), unique=True, nullable=False, index=True)
    archived_at = Column(DateTime, nullable=True)
    auto_delete_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    teacher = relationship("Teacher", back_populates="classes")
    enrollments = relationship("ClassEnrollment", back_populates="group_class", cascade="all, delete-orphan")
    materials = relationship(
        "ClassMaterial", back_populates="group_class", cascade="all, delete-orphan",
        order_by="ClassMaterial.created_at",
    )

    def __repr__(self):
        return f"<GroupClass(id={self.id}, class_name='{self.class_name}', code='{self.class_code}')>"

    @property
    def is_archived(self):
        return self.archived_at is not None

    @property
    def student_count(self):
        return sum(1 for e in self.enrollments if e.status == EnrollmentStatus.approved)

    @property
    def pending_count(self):
        return sum(1 for e in self.enrollments if e.status == EnrollmentStatus.pending)


class ClassEnrollment(Base):
    """A student's membership request for a class."""
    __tablename__ = "class_students"
    __table_args__ = (UniqueConstraint("class_id", "student_id", name="uq_class_student"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id = Column(String(36), ForeignKey("group_classes.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SQLEnum(EnrollmentStatus), default=EnrollmentStatus.pending, nullable=False)
    joined_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    group_class = relationship("GroupClass", back_populates="enrollments")
    student = relationship("Student", back_populates="enrollments")

    def __repr__(self):
        return f"<ClassEnrollment(class_id={self.class_id}, student_id={self.student_id}, status='{self.status.value}')>"

    @property
    def is_approved(self):
        return self.status == EnrollmentStatus.approved


class ClassMaterial(Base):
    """A quiz, exam or assignment posted to a class."""
    __tablename__ = "class_materials"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id = Column(String(36), ForeignKey("group_classes.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    material_type = Column(SQLEnum(QuizKind), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    time_limit = Column(Integer, nullable=True)  # minutes
    due_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    group_class = relationship("GroupClass", back_populates="materials")
    quiz = relationship("Quiz", back_populates="materials")
    submissions = relationship("StudentSubmission", back_populates="material", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ClassMaterial(id={self.id}, title='{self.title}', type='{self.material_type.value}')>"
