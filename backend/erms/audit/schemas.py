"""Audit log schemas."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from erms.models import AuditActionType, AuditStatus


class AuditLogCreate(BaseModel):
    action: str = Field(..., min_length=1, max_length=255)
    action_type: AuditActionType
    resource_type: Optional[str] = Field(None, max_length=100)
    resource_id: Optional[str] = Field(None, max_length=100)
    status: AuditStatus = AuditStatus.success
    details: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class AuditLogResponse(BaseModel):
    id: str
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    user_role: Optional[str] = None
    action: str
    action_type: AuditActionType
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    status: AuditStatus
    details: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="extra")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
