"""Admin-teacher conversations and student-teacher class messages."""

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Integer, Text, Boolean, UniqueConstraint,
)
from sqlalchemy.orm import relationship
import uuid

from ..database import Base, utcnow


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (UniqueConstraint("admin_id", "teacher_id", name="uq_conversation_pair"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    admin = relationship("User", foreign_keys=[admin_id])
    teacher = relationship("User", foreign_keys=[teacher_id])
    messages = relationship(
        "Message", back_populates="conversation", cascade="all, delete-orphan",
        order_by="Message.created_at",
    )

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.admin_id, self.teacher_id)

    def other_party(self, user_id: int):
        return self.teacher if user_id == self.admin_id else self.admin


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User")


class StudentTeacherMessage(Base):
    """A message between a student and the teacher of a class they belong to."""
    __tablename__ = "student_teacher_messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id = Column(String(36), ForeignKey("group_classes.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id = Column(String(36), ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    group_class = relationship("GroupClass")
    student = relationship("Student")
    teacher = relationship("Teacher")
    sender = relationship("User")
