"""Audit log endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from erms.auth.service import get_current_active_user, get_current_admin
from erms.database import get_db
from erms.models import AuditActionType, AuditStatus, User
from .schemas import AuditLogCreate, AuditLogResponse
from .service import AuditService, MAX_AUDIT_ROWS

router = APIRouter(tags=["Audit"])


def get_audit_service(db: Session = Depends(get_db)) -> AuditService:
    return AuditService(db)


@router.get("/admin/audit-logs", response_model=list[AuditLogResponse])
async def list_audit_logs(
    action_type: Optional[AuditActionType] = None,
    log_status: Optional[AuditStatus] = Query(None, alias="status"),
    limit: int = Query(MAX_AUDIT_ROWS, ge=1, le=MAX_AUDIT_ROWS),
    admin: User = Depends(get_current_admin),
    service: AuditService = Depends(get_audit_service),
):
    """Newest audit entries first."""
    return service.list_logs(action_type=action_type, status=log_status, limit=limit)


@router.post("/audit-logs", response_model=AuditLogResponse, status_code=status.HTTP_201_CREATED)
async def create_audit_log(
    request: Request,
    data: AuditLogCreate,
    current_user: User = Depends(get_current_active_user),
    service: AuditService = Depends(get_audit_service),
):
    """Record a client-side event under the caller's identity."""
    entry = service.record(
        data.action,
        data.action_type,
        user=current_user,
        status=data.status,
        resource_type=data.resource_type,
        resource_id=data.resource_id,
        details=data.details,
        metadata=data.metadata,
        request=request,
    )
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Audit log could not be stored",
        )
    return entry
