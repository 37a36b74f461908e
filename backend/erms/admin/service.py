"""Administration: accounts, dashboard counters, records and notifications."""
import logging

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from erms.auth.service import validate_new_password
from erms.models import (
    User, UserRole, Student, Teacher, GroupClass, Quiz, ClassMaterial, StudentSubmission, AuditLog,
)
from .schemas import (
    StudentCreate, TeacherCreate, DashboardStats, RecordSummary, RecordDetail,
    RecordQuestion, RecordSubmission, Notification, NotificationList,
)

logger = logging.getLogger(__name__)

NOTIFICATION_LIMIT = 15


class AdminService:
    def __init__(self, db: Session):
        self.db = db

    def _ensure_email_free(self, email: str) -> None:
        if self.db.query(User).filter(User.email == email).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    def _new_user(self, email: str, password: str, role: UserRole) -> User:
        user = User(email=email, role=role, is_active=True)
        user.set_password(password)
        self.db.add(user)
        return user

    def _commit_account(self, label: str):
        # The user row and its profile land together or not at all
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Could not create {label}: {e.orig}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Could not create {label}: a record with the same details already exists",
            )

    def create_student(self, data: StudentCreate) -> Student:
        validate_new_password(data.password)
        student_number = data.student_number.strip()
        if self.db.query(Student).filter(Student.student_number == student_number).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Student ID already exists")
        self._ensure_email_free(data.email)

        user = self._new_user(data.email, data.password, UserRole.student)
        student = Student(
            user=user,
            student_number=student_number,
            student_name=data.student_name.strip(),
            course=data.course.strip(),
            email=data.email,
        )
        self.db.add(student)
        self._commit_account("student")
        self.db.refresh(student)
        logger.info(f"Created student {student.student_number}")
        return student

    def create_teacher(self, data: TeacherCreate) -> Teacher:
        validate_new_password(data.password)
        employee_id = data.employee_id.strip()
        if self.db.query(Teacher).filter(Teacher.employee_id == employee_id).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Employee ID already exists")
        self._ensure_email_free(data.email)

        user = self._new_user(data.email, data.password, UserRole.teacher)
        teacher = Teacher(
            user=user,
            employee_id=employee_id,
            teacher_name=data.teacher_name.strip(),
            email=data.email,
        )
        self.db.add(teacher)
        self._commit_account("teacher")
        self.db.refresh(teacher)
        logger.info(f"Created teacher {teacher.employee_id}")
        return teacher

    def list_students(self) -> list[Student]:
        return (
            self.db.query(Student)
            .options(selectinload(Student.user))
            .order_by(Student.created_at.desc())
            .all()
        )

    def list_teachers(self) -> list[Teacher]:
        return (
            self.db.query(Teacher)
            .options(selectinload(Teacher.user))
            .order_by(Teacher.created_at.desc())
            .all()
        )

    def _get_other_user(self, admin: User, user_id: int, action: str) -> User:
        if user_id == admin.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"You cannot {action} your own account",
            )
        user = self.db.get(User, user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user

    def set_user_status(self, admin: User, user_id: int, is_active: bool) -> User:
        user = self._get_other_user(admin, user_id, "change the status of")
        user.is_active = is_active
        if not is_active:
            for token in user.refresh_tokens:
                token.revoked = True
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete_user(self, admin: User, user_id: int) -> dict:
        """Delete an account with its profile and everything hanging off it."""
        user = self._get_other_user(admin, user_id, "delete")
        summary = {"id": user.id, "email": user.email, "role": user.role.value, "name": user.display_name}
        self.db.delete(user)
        self.db.commit()
        logger.info(f"Deleted user {user_id}")
        return summary

    def dashboard_stats(self) -> DashboardStats:
        return DashboardStats(
            totalStudents=self.db.query(func.count(Student.id)).scalar() or 0,
            totalTeachers=self.db.query(func.count(Teacher.id)).scalar() or 0,
            totalUsers=self.db.query(func.count(User.id)).scalar() or 0,
            totalClasses=self.db.query(func.count(GroupClass.id)).scalar() or 0,
            totalQuizzes=self.db.query(func.count(Quiz.id)).scalar() or 0,
        )

    def _submission_counts(self) -> dict[str, int]:
        rows = (
            self.db.query(ClassMaterial.quiz_id, func.count(StudentSubmission.id))
            .join(StudentSubmission, StudentSubmission.material_id == ClassMaterial.id)
            .group_by(ClassMaterial.quiz_id)
            .all()
        )
        return {quiz_id: count for quiz_id, count in rows}

    @staticmethod
    def _summary(quiz: Quiz, submission_count: int) -> dict:
        return dict(
            id=quiz.id,
            title=quiz.title,
            kind=quiz.kind,
            quiz_type=quiz.quiz_type,
            teacher_name=quiz.teacher.teacher_name if quiz.teacher else "Unknown",
            question_count=quiz.question_count,
            submission_count=submission_count,
            start_date=quiz.start_date,
            end_date=quiz.end_date,
            created_at=quiz.created_at,
        )

    def list_records(self) -> list[RecordSummary]:
        counts = self._submission_counts()
        quizzes = (
            self.db.query(Quiz)
            .options(selectinload(Quiz.questions), selectinload(Quiz.teacher))
            .order_by(Quiz.created_at.desc())
            .all()
        )
        return [RecordSummary(**self._summary(q, counts.get(q.id, 0))) for q in quizzes]

    def get_record(self, quiz_id: str) -> RecordDetail:
        quiz = self.db.get(Quiz, quiz_id)
        if not quiz:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")

        submissions = (
            self.db.query(StudentSubmission)
            .join(ClassMaterial, StudentSubmission.material_id == ClassMaterial.id)
            .filter(ClassMaterial.quiz_id == quiz.id)
            .order_by(StudentSubmission.submitted_at.desc())
            .all()
        )
        return RecordDetail(
            **self._summary(quiz, len(submissions)),
            description=quiz.description,
            questions=[RecordQuestion.model_validate(q) for q in quiz.questions],
            submissions=[
                RecordSubmission(
                    id=s.id,
                    class_name=s.material.group_class.class_name,
                    student_name=s.student.student_name,
                    student_number=s.student.student_number,
                    score=s.score,
                    max_score=s.max_score,
                    status=s.status,
                    submitted_at=s.submitted_at,
                )
                for s in submissions
            ],
        )

    def notifications(self) -> NotificationList:
        """Recent audit activity merged with newly created quizzes."""
        items = []
        for log in self.db.query(AuditLog).order_by(AuditLog.created_at.desc()).limit(10):
            who = log.user_name or "System"
            items.append(Notification(
                id=log.id,
                kind="audit",
                title=log.action,
                message=f"{who}: {log.details}" if log.details else who,
                created_at=log.created_at,
            ))
        for quiz in self.db.query(Quiz).order_by(Quiz.created_at.desc()).limit(10):
            teacher_name = quiz.teacher.teacher_name if quiz.teacher else "A teacher"
            items.append(Notification(
                id=quiz.id,
                kind=quiz.kind.value,
                title=f"New {quiz.kind.value} created",
                message=f"{teacher_name} created \"{quiz.title}\"",
                created_at=quiz.created_at,
            ))
        items.sort(key=lambda n: n.created_at, reverse=True)
        items = items[:NOTIFICATION_LIMIT]
        return NotificationList(notifications=items, unreadCount=len(items))
