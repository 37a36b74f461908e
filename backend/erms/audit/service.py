"""Audit trail recording and queries."""
import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from erms.models import AuditLog, AuditActionType, AuditStatus, User

logger = logging.getLogger(__name__)

MAX_AUDIT_ROWS = 500


def client_info(request: Optional[Request]) -> tuple[Optional[str], Optional[str]]:
    """Return (ip_address, user_agent) for a request, preferring proxy headers."""
    if request is None:
        return None, None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.headers.get("x-real-ip") or (request.client.host if request.client else None)
    user_agent = request.headers.get("user-agent")
    return ip_address, (user_agent[:255] if user_agent else None)


class AuditService:
    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        action: str,
        action_type: AuditActionType,
        user: Optional[User] = None,
        status: AuditStatus = AuditStatus.success,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[str] = None,
        metadata: Optional[dict] = None,
        request: Optional[Request] = None,
        user_name: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """Write an audit entry in its own commit.

        Auditing must never break the operation being audited, so database
        errors are logged and rolled back and ``None`` is returned.
        """
        ip_address, user_agent = client_info(request)
        entry = AuditLog(
            user_id=user.id if user else None,
            user_name=user_name or (user.display_name if user else None),
            user_role=user.role.value if user else None,
            action=action,
            action_type=action_type,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            ip_address=ip_address,
            user_agent=user_agent,
            status=status,
            details=details,
            extra=metadata,
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write audit log '{action}': {e}")
            self.db.rollback()
            return None
        return entry

    def list_logs(
        self,
        action_type: Optional[AuditActionType] = None,
        status: Optional[AuditStatus] = None,
        limit: int = MAX_AUDIT_ROWS,
    ) -> list[AuditLog]:
        query = self.db.query(AuditLog)
        if action_type is not None:
            query = query.filter(AuditLog.action_type == action_type)
        if status is not None:
            query = query.filter(AuditLog.status == status)
        limit = max(1, min(limit, MAX_AUDIT_ROWS))
        return query.order_by(AuditLog.created_at.desc()).limit(limit).all()

    def recent(self, limit: int = 10) -> list[AuditLog]:
        return self.db.query(AuditLog).order_by(AuditLog.created_at.desc()).limit(limit).all()
