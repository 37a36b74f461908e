"""Admin-teacher conversations and student-teacher class messages."""
import logging
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from erms.classes.service import ClassService
from erms.database import utcnow
from erms.models import (
    ClassEnrollment, Conversation, EnrollmentStatus, GroupClass, Message, Student,
    StudentTeacherMessage, Teacher, User, UserRole,
)
from .schemas import (
    ClassThread, ConversationDetail, ConversationStart, ConversationSummary, Contact,
    MessageResponse, StudentThread,
)

logger = logging.getLogger(__name__)


def sender_name(user: User) -> str:
    if user.role == UserRole.admin:
        return "Admin"
    return user.display_name


def message_view(message, viewer_id: int) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        sender_id=message.sender_id,
        sender_name=sender_name(message.sender),
        content=message.content,
        is_read=message.is_read,
        is_mine=message.sender_id == viewer_id,
        created_at=message.created_at,
    )


def _latest_first(items: list) -> list:
    return sorted(items, key=lambda item: item.last_message_at or datetime.min, reverse=True)


class ConversationService:
    """Direct messages between an admin and a teacher."""

    def __init__(self, db: Session):
        self.db = db

    def _unread_for(self, conversation_id: str, user_id: int) -> int:
        return self.db.query(func.count(Message.id)).filter(
            Message.conversation_id == conversation_id,
            Message.sender_id != user_id,
            Message.is_read.is_(False),
        ).scalar() or 0

    def _summary(self, conversation: Conversation, user: User) -> dict:
        other = conversation.other_party(user.id)
        last = conversation.messages[-1] if conversation.messages else None
        return dict(
            id=conversation.id,
            other_user_id=other.id,
            other_name=sender_name(other),
            last_message=last.content if last else None,
            last_message_at=last.created_at if last else None,
            unread_count=self._unread_for(conversation.id, user.id),
            updated_at=conversation.updated_at,
        )

    def list_conversations(self, user: User) -> list[ConversationSummary]:
        conversations = self.db.query(Conversation).filter(
            or_(Conversation.admin_id == user.id, Conversation.teacher_id == user.id)
        ).order_by(Conversation.updated_at.desc()).all()
        return [ConversationSummary(**self._summary(c, user)) for c in conversations]

    def start_conversation(self, user: User, data: ConversationStart) -> Conversation:
        """Return the admin-teacher conversation, creating it on first contact."""
        if user.role == UserRole.admin:
            other_id, other_role, label = data.teacher_user_id, UserRole.teacher, "Teacher"
        else:
            other_id, other_role, label = data.admin_user_id, UserRole.admin, "Admin"
        if other_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{label.lower()}_user_id is required",
            )

        other = self.db.get(User, other_id)
        if not other or other.role != other_role:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")

        admin_id, teacher_id = (user.id, other.id) if user.role == UserRole.admin else (other.id, user.id)
        conversation = self.db.query(Conversation).filter(
            Conversation.admin_id == admin_id, Conversation.teacher_id == teacher_id
        ).first()
        if conversation:
            return conversation

        conversation = Conversation(admin_id=admin_id, teacher_id=teacher_id)
        self.db.add(conversation)
        self.db.commit()
        self.db.refresh(conversation)
        logger.info(f"Conversation {conversation.id} opened between admin {admin_id} and teacher {teacher_id}")
        return conversation

    def conversation_summary(self, conversation: Conversation, user: User) -> ConversationSummary:
        return ConversationSummary(**self._summary(conversation, user))

    def _get_participant_conversation(self, user: User, conversation_id: str) -> Conversation:
        conversation = self.db.get(Conversation, conversation_id)
        if not conversation:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
        if not conversation.has_participant(user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not a participant in this conversation",
            )
        return conversation

    def get_conversation(self, user: User, conversation_id: str) -> ConversationDetail:
        """Return the messages oldest first and mark the other party's as read."""
        conversation = self._get_participant_conversation(user, conversation_id)
        self.db.query(Message).filter(
            Message.conversation_id == conversation.id,
            Message.sender_id != user.id,
            Message.is_read.is_(False),
        ).update({Message.is_read: True}, synchronize_session=False)
        self.db.commit()
        self.db.refresh(conversation)
        return ConversationDetail(
            **self._summary(conversation, user),
            messages=[message_view(m, user.id) for m in conversation.messages],
        )

    def send_message(self, user: User, conversation_id: str, content: str) -> MessageResponse:
        conversation = self._get_participant_conversation(user, conversation_id)
        message = Message(conversation_id=conversation.id, sender_id=user.id, content=content)
        self.db.add(message)
        conversation.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(message)
        return message_view(message, user.id)

    def unread_count(self, user: User) -> int:
        return self.db.query(func.count(Message.id)).join(
            Conversation, Conversation.id == Message.conversation_id
        ).filter(
            or_(Conversation.admin_id == user.id, Conversation.teacher_id == user.id),
            Message.sender_id != user.id,
            Message.is_read.is_(False),
        ).scalar() or 0

    def contacts(self, role: UserRole) -> list[Contact]:
        users = self.db.query(User).filter(
            User.role == role, User.is_active.is_(True)
        ).order_by(User.email).all()
        return [Contact(user_id=u.id, name=u.display_name, email=u.email) for u in users]


class ClassMessageService:
    """Messages between a student and the teacher of a class they belong to."""

    def __init__(self, db: Session):
        self.db = db
        self.classes = ClassService(db)

    def _thread(self, class_id: str, student_id: str):
        return self.db.query(StudentTeacherMessage).filter(
            StudentTeacherMessage.class_id == class_id,
            StudentTeacherMessage.student_id == student_id,
        )

    def _thread_stats(self, class_id: str, student_id: str, reader_id: int) -> dict:
        last = self._thread(class_id, student_id).order_by(StudentTeacherMessage.created_at.desc()).first()
        unread = self._thread(class_id, student_id).filter(
            StudentTeacherMessage.sender_id != reader_id,
            StudentTeacherMessage.is_read.is_(False),
        ).count()
        return dict(
            last_message=last.content if last else None,
            last_message_at=last.created_at if last else None,
            unread_count=unread,
        )

    def _messages(self, class_id: str, student_id: str, viewer_id: int) -> list[MessageResponse]:
        messages = self._thread(class_id, student_id).order_by(StudentTeacherMessage.created_at).all()
        return [message_view(m, viewer_id) for m in messages]

    def _mark_read(self, class_id: str, student_id: str, reader_id: int) -> int:
        marked = self._thread(class_id, student_id).filter(
            StudentTeacherMessage.sender_id != reader_id,
            StudentTeacherMessage.is_read.is_(False),
        ).update({StudentTeacherMessage.is_read: True}, synchronize_session=False)
        self.db.commit()
        return marked

    def _post(self, group_class: GroupClass, student: Student, sender: User, content: str) -> MessageResponse:
        message = StudentTeacherMessage(
            class_id=group_class.id,
            student_id=student.id,
            teacher_id=group_class.teacher_id,
            sender_id=sender.id,
            content=content,
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message_view(message, sender.id)

    # Student side

    def student_classes(self, student: Student) -> list[ClassThread]:
        threads = [
            ClassThread(
                class_id=c.id,
                class_name=c.class_name,
                subject=c.subject,
                teacher_name=c.teacher_name,
                **self._thread_stats(c.id, student.id, student.user_id),
            )
            for c in self.classes.approved_classes(student)
        ]
        return _latest_first(threads)

    def student_messages(self, student: Student, class_id: str) -> list[MessageResponse]:
        self.classes.require_approved(student, class_id)
        return self._messages(class_id, student.id, student.user_id)

    def student_send(self, student: Student, class_id: str, content: str) -> MessageResponse:
        group_class = self.classes.require_approved(student, class_id)
        return self._post(group_class, student, student.user, content)

    def student_mark_read(self, student: Student, class_id: str) -> int:
        self.classes.require_approved(student, class_id)
        return self._mark_read(class_id, student.id, student.user_id)

    def student_unread_count(self, student: Student) -> int:
        return self.db.query(func.count(StudentTeacherMessage.id)).filter(
            StudentTeacherMessage.student_id == student.id,
            StudentTeacherMessage.sender_id != student.user_id,
            StudentTeacherMessage.is_read.is_(False),
        ).scalar() or 0

    # Teacher side

    def _owned_student(self, teacher: Teacher, class_id: str, student_id: str) -> tuple[GroupClass, Student]:
        group_class = self.classes.get_owned_class(teacher, class_id)
        student = self.db.get(Student, student_id)
        if not student or not self.classes.is_approved_member(student_id, class_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student is not enrolled in this class")
        return group_class, student

    def teacher_threads(self, teacher: Teacher) -> list[StudentThread]:
        rows = (
            self.db.query(GroupClass, Student)
            .join(ClassEnrollment, ClassEnrollment.class_id == GroupClass.id)
            .join(Student, Student.id == ClassEnrollment.student_id)
            .filter(
                GroupClass.teacher_id == teacher.id,
                GroupClass.archived_at.is_(None),
                ClassEnrollment.status == EnrollmentStatus.approved,
            )
            .order_by(GroupClass.class_name, Student.student_name)
            .all()
        )
        threads = [
            StudentThread(
                class_id=group_class.id,
                class_name=group_class.class_name,
                student_id=student.id,
                student_name=student.student_name,
                student_number=student.student_number,
                **self._thread_stats(group_class.id, student.id, teacher.user_id),
            )
            for group_class, student in rows
        ]
        return _latest_first(threads)

    def teacher_messages(self, teacher: Teacher, class_id: str, student_id: str) -> list[MessageResponse]:
        self._owned_student(teacher, class_id, student_id)
        return self._messages(class_id, student_id, teacher.user_id)

    def teacher_send(self, teacher: Teacher, class_id: str, student_id: str, content: str) -> MessageResponse:
        group_class, student = self._owned_student(teacher, class_id, student_id)
        return self._post(group_class, student, teacher.user, content)

    def teacher_mark_read(self, teacher: Teacher, class_id: str, student_id: str) -> int:
        self._owned_student(teacher, class_id, student_id)
        return self._mark_read(class_id, student_id, teacher.user_id)

    def teacher_unread_count(self, teacher: Teacher) -> int:
        return self.db.query(func.count(StudentTeacherMessage.id)).filter(
            StudentTeacherMessage.teacher_id == teacher.id,
            StudentTeacherMessage.sender_id != teacher.user_id,
            StudentTeacherMessage.is_read.is_(False),
        ).scalar() or 0
