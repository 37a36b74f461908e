"""Messaging schemas."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

MAX_MESSAGE_LENGTH = 5000


class MessageCreate(BaseModel):
    content: str = Field(..., max_length=MAX_MESSAGE_LENGTH)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message cannot be empty")
        return value


class ConversationStart(BaseModel):
    teacher_user_id: Optional[int] = None
    admin_user_id: Optional[int] = None


class MessageResponse(BaseModel):
    id: str
    sender_id: int
    sender_name: str
    content: str
    is_read: bool
    is_mine: bool
    created_at: datetime


class ConversationSummary(BaseModel):
    id: str
    other_user_id: int
    other_name: str
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    updated_at: datetime


class ConversationDetail(ConversationSummary):
    messages: list[MessageResponse] = []


class Contact(BaseModel):
    user_id: int
    name: str
    email: str


class UnreadCount(BaseModel):
    unread_count: int


class ClassThread(BaseModel):
    """A student's view of one class they can message the teacher in."""
    class_id: str
    class_name: str
    subject: str
    teacher_name: str
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0


class StudentThread(BaseModel):
    """A teacher's view of one student conversation inside a class."""
    class_id: str
    class_name: str
    student_id: str
    student_name: str
    student_number: str
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0


class MarkReadResult(BaseModel):
    marked: int
