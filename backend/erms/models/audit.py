"""Audit trail of user and system actions."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text, JSON, Enum as SQLEnum
import uuid

from ..database import Base, utcnow
from .enums import AuditActionType, AuditStatus


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    user_name = Column(String(255), nullable=True)
    user_role = Column(String(20), nullable=True)
    action = Column(String(255), nullable=False)
    action_type = Column(SQLEnum(AuditActionType), nullable=False, index=True)
    resource_type = Column(String(100), nullable=True)
    resource_id = Column(String(100), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(255), nullable=True)
    status = Column(SQLEnum(AuditStatus), default=AuditStatus.success, nullable=False)
    details = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog(action='{self.action}', type='{self.action_type.value}', status='{self.status.value}')>"
