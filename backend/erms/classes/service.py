"""Class management and class-code enrollment."""
import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from erms.database import utcnow
from erms.models import GroupClass, ClassEnrollment, EnrollmentStatus, Student, Teacher
from .schemas import ClassCreate, ClassUpdate, EnrollmentResponse

logger = logging.getLogger(__name__)

CLASS_CODE_LENGTH = 6
CLASS_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 10


def generate_class_code(length: int = CLASS_CODE_LENGTH) -> str:
    return ''.join(secrets.choice(CLASS_CODE_ALPHABET) for _ in range(length))


def enrollment_view(enrollment: ClassEnrollment) -> EnrollmentResponse:
    student = enrollment.student
    return EnrollmentResponse(
        id=enrollment.id,
        class_id=enrollment.class_id,
        student_id=student.id,
        student_number=student.student_number,
        student_name=student.student_name,
        course=student.course,
        email=student.email,
        status=enrollment.status,
        joined_at=enrollment.joined_at,
    )


class ClassService:
    def __init__(self, db: Session):
        self.db = db

    # Teacher side

    def get_owned_class(self, teacher: Teacher, class_id: str) -> GroupClass:
        group_class = self.db.get(GroupClass, class_id)
        if not group_class:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
        if group_class.teacher_id != teacher.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to manage this class",
            )
        return group_class

    def _unique_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_class_code()
            if not self.db.query(GroupClass.id).filter(GroupClass.class_code == code).first():
                return code
        raise RuntimeError("Could not generate a unique class code")

    def _check_schedule(
        self,
        teacher: Teacher,
        subject: str,
        start,
        end,
        exclude_id: Optional[str] = None,
    ) -> None:
        if end <= start:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Class end time must be after start time",
            )
        others = self.db.query(GroupClass).filter(GroupClass.teacher_id == teacher.id)
        if exclude_id:
            others = others.filter(GroupClass.id != exclude_id)
        for other in others:
            if other.subject.strip().lower() == subject.strip().lower():
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="You already have a class with this subject",
                )
            if other.class_start_time == start and other.class_end_time == end:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="You already have a class at this time slot",
                )

    def create_class(self, teacher: Teacher, data: ClassCreate) -> GroupClass:
        self._check_schedule(teacher, data.subject, data.class_start_time, data.class_end_time)
        group_class = GroupClass(
            teacher_id=teacher.id,
            class_name=data.class_name,
            subject=data.subject,
            class_start_time=data.class_start_time,
            class_end_time=data.class_end_time,
            teacher_name=(data.teacher_name or "").strip() or teacher.teacher_name,
            class_code=self._unique_code(),
        )
        self.db.add(group_class)
        self.db.commit()
        self.db.refresh(group_class)
        logger.info(f"Teacher {teacher.id} created class {group_class.class_code}")
        return group_class

    def list_classes(self, teacher: Teacher, archived: Optional[bool] = None) -> list[GroupClass]:
        query = (
            self.db.query(GroupClass)
            .options(selectinload(GroupClass.enrollments))
            .filter(GroupClass.teacher_id == teacher.id)
        )
        if archived is True:
            query = query.filter(GroupClass.archived_at.isnot(None))
        elif archived is False:
            query = query.filter(GroupClass.archived_at.is_(None))
        return query.order_by(GroupClass.created_at.desc()).all()

    def update_class(self, teacher: Teacher, class_id: str, data: ClassUpdate) -> GroupClass:
        group_class = self.get_owned_class(teacher, class_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if {"subject", "class_start_time", "class_end_time"} & changes.keys():
            self._check_schedule(
                teacher,
                changes.get("subject", group_class.subject),
                changes.get("class_start_time", group_class.class_start_time),
                changes.get("class_end_time", group_class.class_end_time),
                exclude_id=group_class.id,
            )
        for field, value in changes.items():
            setattr(group_class, field, value.strip() if isinstance(value, str) else value)
        self.db.commit()
        self.db.refresh(group_class)
        return group_class

    def delete_class(self, teacher: Teacher, class_id: str) -> None:
        group_class = self.get_owned_class(teacher, class_id)
        self.db.delete(group_class)
        self.db.commit()

    def archive_class(self, teacher: Teacher, class_id: str, retention_days: int) -> GroupClass:
        group_class = self.get_owned_class(teacher, class_id)
        now = utcnow()
        group_class.archived_at = now
        group_class.auto_delete_at = now + timedelta(days=retention_days)
        self.db.commit()
        self.db.refresh(group_class)
        return group_class

    def restore_class(self, teacher: Teacher, class_id: str) -> GroupClass:
        group_class = self.get_owned_class(teacher, class_id)
        if not group_class.is_archived:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Class is not archived")
        group_class.archived_at = None
        group_class.auto_delete_at = None
        self.db.commit()
        self.db.refresh(group_class)
        return group_class

    def list_students(self, teacher: Teacher, class_id: str) -> list[ClassEnrollment]:
        group_class = self.get_owned_class(teacher, class_id)
        return (
            self.db.query(ClassEnrollment)
            .options(selectinload(ClassEnrollment.student))
            .filter(ClassEnrollment.class_id == group_class.id)
            .order_by(ClassEnrollment.joined_at)
            .all()
        )

    def _get_enrollment(self, teacher: Teacher, class_id: str, enrollment_id: str) -> ClassEnrollment:
        group_class = self.get_owned_class(teacher, class_id)
        enrollment = self.db.get(ClassEnrollment, enrollment_id)
        if not enrollment or enrollment.class_id != group_class.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found")
        return enrollment

    def set_enrollment_status(
        self, teacher: Teacher, class_id: str, enrollment_id: str, new_status: EnrollmentStatus
    ) -> ClassEnrollment:
        enrollment = self._get_enrollment(teacher, class_id, enrollment_id)
        enrollment.status = new_status
        self.db.commit()
        self.db.refresh(enrollment)
        return enrollment

    def remove_student(self, teacher: Teacher, class_id: str, enrollment_id: str) -> None:
        enrollment = self._get_enrollment(teacher, class_id, enrollment_id)
        self.db.delete(enrollment)
        self.db.commit()

    # Student side

    def join_class(self, student: Student, class_code: str) -> ClassEnrollment:
        """Ask to join a class. A denied student may ask again."""
        code = class_code.strip().upper()
        group_class = self.db.query(GroupClass).filter(GroupClass.class_code == code).first()
        if not group_class or group_class.is_archived:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid class code")

        enrollment = self.db.query(ClassEnrollment).filter(
            ClassEnrollment.class_id == group_class.id,
            ClassEnrollment.student_id == student.id,
        ).first()
        if enrollment is not None:
            if enrollment.status == EnrollmentStatus.pending:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Your join request is already pending",
                )
            if enrollment.status == EnrollmentStatus.approved:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="You are already enrolled in this class",
                )
            enrollment.status = EnrollmentStatus.pending
            enrollment.joined_at = utcnow()
        else:
            enrollment = ClassEnrollment(
                class_id=group_class.id,
                student_id=student.id,
                status=EnrollmentStatus.pending,
            )
            self.db.add(enrollment)
        self.db.commit()
        self.db.refresh(enrollment)
        return enrollment

    def list_student_classes(self, student: Student) -> list[ClassEnrollment]:
        return (
            self.db.query(ClassEnrollment)
            .join(GroupClass, ClassEnrollment.class_id == GroupClass.id)
            .filter(ClassEnrollment.student_id == student.id, GroupClass.archived_at.is_(None))
            .order_by(ClassEnrollment.joined_at.desc())
            .all()
        )

    def leave_class(self, student: Student, class_id: str) -> None:
        enrollment = self.db.query(ClassEnrollment).filter(
            ClassEnrollment.class_id == class_id,
            ClassEnrollment.student_id == student.id,
        ).first()
        if not enrollment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="You are not enrolled in this class")
        self.db.delete(enrollment)
        self.db.commit()

    def require_approved(self, student: Student, class_id: str) -> GroupClass:
        """Return the class if the student is an approved member of it."""
        enrollment = self.db.query(ClassEnrollment).filter(
            ClassEnrollment.class_id == class_id,
            ClassEnrollment.student_id == student.id,
        ).first()
        if not enrollment:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not enrolled in this class")
        if enrollment.status == EnrollmentStatus.pending:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Your join request is still pending approval from the teacher",
            )
        if enrollment.status == EnrollmentStatus.denied:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Your join request was denied")
        if enrollment.group_class.is_archived:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This class has been archived")
        return enrollment.group_class

    def approved_classes(self, student: Student) -> list[GroupClass]:
        return (
            self.db.query(GroupClass)
            .join(ClassEnrollment, ClassEnrollment.class_id == GroupClass.id)
            .filter(
                ClassEnrollment.student_id == student.id,
                ClassEnrollment.status == EnrollmentStatus.approved,
                GroupClass.archived_at.is_(None),
            )
            .order_by(GroupClass.class_name)
            .all()
        )

    def is_approved_member(self, student_id: str, class_id: str) -> bool:
        return self.db.query(ClassEnrollment.id).filter(
            ClassEnrollment.class_id == class_id,
            ClassEnrollment.student_id == student_id,
            ClassEnrollment.status == EnrollmentStatus.approved,
        ).first() is not None


def purge_archived_classes(db: Session, now: Optional[datetime] = None) -> int:
    """Delete archived classes whose retention period has run out."""
    now = now or utcnow()
    expired = db.query(GroupClass).filter(
        GroupClass.archived_at.isnot(None),
        GroupClass.auto_delete_at.isnot(None),
        GroupClass.auto_delete_at <= now,
    ).all()
    for group_class in expired:
        logger.info(f"Purging archived class {group_class.class_code} ({group_class.class_name})")
        db.delete(group_class)
    db.commit()
    return len(expired)
