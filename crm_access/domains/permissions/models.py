# crm_access/domains/permissions/models.py
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from crm_access.shared.permissions.models import PermissionOverride, Role


class PermissionsResponse(BaseModel):
    permissions: Optional[List[PermissionOverride]]
    source: Literal["server", "server-not-found"]


class AuditEntryCreate(BaseModel):
    action: str = "update_permissions"
    summary: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class SavePermissionsRequest(BaseModel):
    permissions: List[PermissionOverride]
    organization_id: Optional[str] = None
    audit_entry: Optional[AuditEntryCreate] = None


class SavePermissionsResponse(BaseModel):
    success: bool
    count: int
    source: Literal["server"] = "server"


class AuditLogResponse(BaseModel):
    id: int
    organization_id: str
    actor_id: str
    actor_email: Optional[str]
    action: str
    summary: Optional[str]
    details: Optional[Dict[str, Any]]
    created_at: Optional[str]


class AuditLogsResponse(BaseModel):
    logs: List[AuditLogResponse] = Field(default_factory=list)
    source: Literal["server", "server-empty"]


class DefaultPermissionsResponse(BaseModel):
    role: Role
    permissions: List[PermissionOverride]
