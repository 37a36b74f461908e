"""Messaging endpoints.

Admins and teachers talk in one-to-one conversations under ``/messages``.
Students talk to the teacher of each class they are approved in; teachers
see those threads under ``/teacher/student-messages``. There is no push
channel, clients poll the unread-count endpoints.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from erms.auth.service import get_current_admin, get_current_student, get_current_teacher, require_roles
from erms.database import get_db
from erms.models import Student, Teacher, User, UserRole
from .schemas import (
    ClassThread, Contact, ConversationDetail, ConversationStart, ConversationSummary,
    MarkReadResult, MessageCreate, MessageResponse, StudentThread, UnreadCount,
)
from .service import ClassMessageService, ConversationService

router = APIRouter(prefix="/messages", tags=["Messages"])
student_router = APIRouter(prefix="/student/messages", tags=["Student messages"])
teacher_router = APIRouter(prefix="/teacher/student-messages", tags=["Teacher student messages"])

get_staff_user = require_roles(UserRole.admin, UserRole.teacher)


def get_conversation_service(db: Session = Depends(get_db)) -> ConversationService:
    return ConversationService(db)


def get_class_message_service(db: Session = Depends(get_db)) -> ClassMessageService:
    return ClassMessageService(db)


@router.get("/conversations", response_model=list[ConversationSummary])
async def list_conversations(
    user: User = Depends(get_staff_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.list_conversations(user)


@router.post("/conversations", response_model=ConversationSummary)
async def start_conversation(
    data: ConversationStart,
    user: User = Depends(get_staff_user),
    service: ConversationService = Depends(get_conversation_service),
):
    conversation = service.start_conversation(user, data)
    return service.conversation_summary(conversation, user)


@router.get("/conversations/{conversation_id}", response_model=ConversationDetail)
async def get_conversation(
    conversation_id: str,
    user: User = Depends(get_staff_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.get_conversation(user, conversation_id)


@router.post(
    "/conversations/{conversation_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: str,
    data: MessageCreate,
    user: User = Depends(get_staff_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.send_message(user, conversation_id, data.content)


@router.get("/unread-count", response_model=UnreadCount)
async def conversation_unread_count(
    user: User = Depends(get_staff_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return UnreadCount(unread_count=service.unread_count(user))


@router.get("/teachers", response_model=list[Contact])
async def list_teacher_contacts(
    admin: User = Depends(get_current_admin),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.contacts(UserRole.teacher)


@router.get("/admins", response_model=list[Contact])
async def list_admin_contacts(
    teacher: Teacher = Depends(get_current_teacher),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.contacts(UserRole.admin)


# Student side

@student_router.get("/classes", response_model=list[ClassThread])
async def student_threads(
    student: Student = Depends(get_current_student),
    service: ClassMessageService = Depends(get_class_message_service),
):
    return service.student_classes(student)


@student_router.get("/unread-count", response_model=UnreadCount)
async def student_unread_count(
    student: Student = Depends(get_current_student),
    service: ClassMessageService = Depends(get_class_message_service),
):
    return UnreadCount(unread_count=service.student_unread_count(student))


@student_router.get("/{class_id}", response_model=list[MessageResponse])
async def student_messages(
    class_id: str,
    student: Student = Depends(get_current_student),
    service: ClassMessageService = Depends(get_class_message_service),
):
    return service.student_messages(student, class_id)


@student_router.post("/{class_id}", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def student_send(
    class_id: str,
    data: MessageCreate,
    student: Student = Depends(get_current_student),
    service: ClassMessageService = Depends(get_class_message_service),
):
    return service.student_send(student, class_id, data.content)


@student_router.post("/{class_id}/read", response_model=MarkReadResult)
async def student_mark_read(
    class_id: str,
    student: Student = Depends(get_current_student),
    service: ClassMessageService = Depends(get_class_message_service),
):
    return MarkReadResult(marked=service.student_mark_read(student, class_id))


# Teacher side

@teacher_router.get("/classes", response_model=list[StudentThread])
async def teacher_threads(
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassMessageService = Depends(get_class_message_service),
):
    return service.teacher_threads(teacher)


@teacher_router.get("/unread-count", response_model=UnreadCount)
async def teacher_unread_count(
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassMessageService = Depends(get_class_message_service),
):
    return UnreadCount(unread_count=service.teacher_unread_count(teacher))


@teacher_router.get("/{class_id}/{student_id}", response_model=list[MessageResponse])
async def teacher_messages(
    class_id: str,
    student_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassMessageService = Depends(get_class_message_service),
):
    return service.teacher_messages(teacher, class_id, student_id)


@teacher_router.post(
    "/{class_id}/{student_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def teacher_send(
    class_id: str,
    student_id: str,
    data: MessageCreate,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassMessageService = Depends(get_class_message_service),
):
    return service.teacher_send(teacher, class_id, student_id, data.content)


@teacher_router.post("/{class_id}/{student_id}/read", response_model=MarkReadResult)
async def teacher_mark_read(
    class_id: str,
    student_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassMessageService = Depends(get_class_message_service),
):
    return MarkReadResult(marked=service.teacher_mark_read(teacher, class_id, student_id))
