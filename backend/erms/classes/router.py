"""Class, enrollment and class material endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from erms.audit.service import AuditService
from erms.config import ARCHIVE_RETENTION_DAYS
from erms.auth.service import get_current_teacher, get_current_student
from erms.database import get_db
from erms.models import AuditActionType, EnrollmentStatus, Student, Teacher
from .materials import MaterialService
from .schemas import (
    ClassCreate, ClassUpdate, ClassResponse, ArchiveRequest, EnrollmentResponse,
    JoinClassRequest, StudentClassResponse, StudentClassSummary, MaterialCreate,
    MaterialResponse, StudentMaterialResponse, QuizForStudent,
)
from .service import ClassService, enrollment_view

teacher_router = APIRouter(prefix="/teacher/classes", tags=["Teacher classes"])
student_router = APIRouter(prefix="/student", tags=["Student classes"])


def get_class_service(db: Session = Depends(get_db)) -> ClassService:
    return ClassService(db)


def get_material_service(db: Session = Depends(get_db)) -> MaterialService:
    return MaterialService(db)


@teacher_router.post("", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
async def create_class(
    request: Request,
    data: ClassCreate,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    group_class = service.create_class(teacher, data)
    AuditService(service.db).record(
        "Created class", AuditActionType.create, user=teacher.user,
        resource_type="class", resource_id=group_class.id,
        details=f"{group_class.class_name} ({group_class.class_code})", request=request,
    )
    return group_class


@teacher_router.get("", response_model=list[ClassResponse])
async def list_classes(
    archived: Optional[bool] = None,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    return service.list_classes(teacher, archived)


@teacher_router.get("/{class_id}", response_model=ClassResponse)
async def get_class(
    class_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    return service.get_owned_class(teacher, class_id)


@teacher_router.put("/{class_id}", response_model=ClassResponse)
async def update_class(
    class_id: str,
    data: ClassUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    return service.update_class(teacher, class_id, data)


@teacher_router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(
    request: Request,
    class_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    service.delete_class(teacher, class_id)
    AuditService(service.db).record(
        "Deleted class", AuditActionType.delete, user=teacher.user,
        resource_type="class", resource_id=class_id, request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@teacher_router.post("/{class_id}/archive", response_model=ClassResponse)
async def archive_class(
    class_id: str,
    data: Optional[ArchiveRequest] = None,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    """Hide a class from students; it is purged after the retention period."""
    retention_days = data.retention_days if data else ARCHIVE_RETENTION_DAYS
    return service.archive_class(teacher, class_id, retention_days)


@teacher_router.post("/{class_id}/restore", response_model=ClassResponse)
async def restore_class(
    class_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    return service.restore_class(teacher, class_id)


@teacher_router.get("/{class_id}/students", response_model=list[EnrollmentResponse])
async def list_class_students(
    class_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    return [enrollment_view(e) for e in service.list_students(teacher, class_id)]


@teacher_router.post("/{class_id}/students/{enrollment_id}/approve", response_model=EnrollmentResponse)
async def approve_student(
    class_id: str,
    enrollment_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    enrollment = service.set_enrollment_status(teacher, class_id, enrollment_id, EnrollmentStatus.approved)
    return enrollment_view(enrollment)


@teacher_router.post("/{class_id}/students/{enrollment_id}/deny", response_model=EnrollmentResponse)
async def deny_student(
    class_id: str,
    enrollment_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    enrollment = service.set_enrollment_status(teacher, class_id, enrollment_id, EnrollmentStatus.denied)
    return enrollment_view(enrollment)


@teacher_router.delete("/{class_id}/students/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_student(
    class_id: str,
    enrollment_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: ClassService = Depends(get_class_service),
):
    service.remove_student(teacher, class_id, enrollment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@teacher_router.post(
    "/{class_id}/materials", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED
)
async def add_material(
    class_id: str,
    data: MaterialCreate,
    teacher: Teacher = Depends(get_current_teacher),
    service: MaterialService = Depends(get_material_service),
):
    """Post one of the teacher's quizzes, exams or assignments to a class."""
    return service.add_material(teacher, class_id, data)


@teacher_router.get("/{class_id}/materials", response_model=list[MaterialResponse])
async def list_materials(
    class_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: MaterialService = Depends(get_material_service),
):
    return service.list_materials(teacher, class_id)


@teacher_router.delete("/{class_id}/materials/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_material(
    class_id: str,
    material_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: MaterialService = Depends(get_material_service),
):
    service.delete_material(teacher, class_id, material_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Student side

@student_router.post("/classes/join", response_model=StudentClassResponse, status_code=status.HTTP_201_CREATED)
async def join_class(
    data: JoinClassRequest,
    student: Student = Depends(get_current_student),
    service: ClassService = Depends(get_class_service),
):
    """Request to join a class by its code. The teacher must approve the request."""
    enrollment = service.join_class(student, data.class_code)
    return StudentClassResponse(
        enrollment_id=enrollment.id,
        status=enrollment.status,
        joined_at=enrollment.joined_at,
        group_class=StudentClassSummary.model_validate(enrollment.group_class),
    )


@student_router.get("/classes", response_model=list[StudentClassResponse])
async def list_my_classes(
    student: Student = Depends(get_current_student),
    service: ClassService = Depends(get_class_service),
):
    return [
        StudentClassResponse(
            enrollment_id=e.id,
            status=e.status,
            joined_at=e.joined_at,
            group_class=StudentClassSummary.model_validate(e.group_class),
        )
        for e in service.list_student_classes(student)
    ]


@student_router.delete("/classes/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_class(
    class_id: str,
    student: Student = Depends(get_current_student),
    service: ClassService = Depends(get_class_service),
):
    service.leave_class(student, class_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@student_router.get("/classes/{class_id}/materials", response_model=list[StudentMaterialResponse])
async def list_class_materials(
    class_id: str,
    student: Student = Depends(get_current_student),
    service: MaterialService = Depends(get_material_service),
):
    return service.class_materials_for_student(student, class_id)


@student_router.get("/materials", response_model=list[StudentMaterialResponse])
async def list_all_materials(
    student: Student = Depends(get_current_student),
    service: MaterialService = Depends(get_material_service),
):
    """Materials across every class the student is approved in."""
    return service.all_materials_for_student(student)


@student_router.get("/materials/{material_id}/quiz", response_model=QuizForStudent)
async def take_quiz(
    material_id: str,
    student: Student = Depends(get_current_student),
    service: MaterialService = Depends(get_material_service),
):
    return service.quiz_for_student(student, material_id)
