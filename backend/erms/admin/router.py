"""Admin endpoints."""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from erms.audit.service import AuditService
from erms.auth.service import get_current_admin
from erms.database import get_db
from erms.models import AuditActionType, User
from .schemas import (
    StudentCreate, TeacherCreate, StudentAccount, TeacherAccount, UserStatusUpdate,
    DashboardStats, RecordSummary, RecordDetail, NotificationList,
)
from .service import AdminService

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    return AdminService(db)


@router.post("/students", response_model=StudentAccount, status_code=status.HTTP_201_CREATED)
async def create_student(
    request: Request,
    data: StudentCreate,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    student = service.create_student(data)
    AuditService(service.db).record(
        "Created student account", AuditActionType.create, user=admin,
        resource_type="student", resource_id=student.id,
        details=f"{student.student_name} ({student.student_number})", request=request,
    )
    return student


@router.get("/students", response_model=list[StudentAccount])
async def list_students(
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.list_students()


@router.post("/teachers", response_model=TeacherAccount, status_code=status.HTTP_201_CREATED)
async def create_teacher(
    request: Request,
    data: TeacherCreate,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    teacher = service.create_teacher(data)
    AuditService(service.db).record(
        "Created teacher account", AuditActionType.create, user=admin,
        resource_type="teacher", resource_id=teacher.id,
        details=f"{teacher.teacher_name} ({teacher.employee_id})", request=request,
    )
    return teacher


@router.get("/teachers", response_model=list[TeacherAccount])
async def list_teachers(
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.list_teachers()


@router.patch("/users/{user_id}/status")
async def update_user_status(
    request: Request,
    user_id: int,
    data: UserStatusUpdate,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Enable or disable an account."""
    user = service.set_user_status(admin, user_id, data.is_active)
    state = "enabled" if user.is_active else "disabled"
    AuditService(service.db).record(
        f"User account {state}", AuditActionType.update, user=admin,
        resource_type="user", resource_id=user.id, details=user.email, request=request,
    )
    return {"id": user.id, "is_active": user.is_active}


@router.delete("/users/{user_id}")
async def delete_user(
    request: Request,
    user_id: int,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    deleted = service.delete_user(admin, user_id)
    AuditService(service.db).record(
        "Deleted user account", AuditActionType.delete, user=admin,
        resource_type=deleted["role"], resource_id=deleted["id"],
        details=f"{deleted['name']} <{deleted['email']}>", request=request,
    )
    return {"message": "User deleted successfully", "id": deleted["id"]}


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.dashboard_stats()


@router.get("/records", response_model=list[RecordSummary])
async def list_records(
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Every quiz, exam and assignment in the system."""
    return service.list_records()


@router.get("/records/{quiz_id}", response_model=RecordDetail)
async def get_record(
    quiz_id: str,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.get_record(quiz_id)


@router.get("/notifications", response_model=NotificationList)
async def notifications(
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.notifications()
