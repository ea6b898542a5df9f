# crm_access/domains/permissions/routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm_access.core.database import get_db
from crm_access.domains.auth.dependencies import get_current_user
from crm_access.domains.auth.models import SessionUser
from crm_access.domains.permissions.models import (
    AuditLogsResponse,
    DefaultPermissionsResponse,
    PermissionsResponse,
    SavePermissionsRequest,
    SavePermissionsResponse,
)
from crm_access.domains.permissions.service import (
    PermissionSettingsService,
    default_matrix,
)
from crm_access.shared.exceptions import InvalidDataError, NotAuthorizedError
from crm_access.shared.permissions.dependencies import require_module_permission
from crm_access.shared.permissions.models import Action, Module, Role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/permissions", tags=["Permissions"])


def resolve_organization_id(user: SessionUser, requested: Optional[str]) -> str:
    """Prefer the caller's own organization, then the requested one."""
    organization_id = user.organization_id or requested
    if not organization_id:
        raise InvalidDataError("Missing organization_id")
    return organization_id


@router.get(
    "",
    response_model=PermissionsResponse,
    operation_id="getPermissions",
)
async def get_permissions(
    organization_id: Optional[str] = Query(None),
    role: Optional[Role] = Query(None),
    user: SessionUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PermissionsResponse:
    """
    Load an organization's stored permission overrides.

    Any authenticated user may load them, since every session resolves its
    own permissions from this matrix. ``permissions`` is null when the
    organization has never saved one.
    """
    org_id = resolve_organization_id(user, organization_id)
    logger.info(f"GET permissions for org={org_id} by user={user.email or user.id}")

    service = PermissionSettingsService(db)
    overrides = await service.get_overrides(org_id, role)
    if overrides is None:
        return PermissionsResponse(permissions=None, source="server-not-found")
    return PermissionsResponse(permissions=overrides, source="server")


@router.put(
    "",
    response_model=SavePermissionsResponse,
    operation_id="savePermissions",
)
async def save_permissions(
    request: SavePermissionsRequest,
    user: SessionUser = Depends(
        require_module_permission(Module.SECURITY, Action.CHANGE)
    ),
    db: AsyncSession = Depends(get_db),
) -> SavePermissionsResponse:
    """
    Replace an organization's permission matrix.

    Requires change access to the security module. The caller's own
    organization always wins over the requested one; a mismatch is rejected
    for everyone except super admins.
    """
    if (
        user.role != Role.SUPER_ADMIN
        and user.organization_id
        and request.organization_id
        and request.organization_id != user.organization_id
    ):
        logger.warning(
            f"Cross-org permissions update blocked: "
            f"requested={request.organization_id}, own={user.organization_id}"
        )
        raise NotAuthorizedError(
            "Cannot update permissions for a different organization"
        )
    org_id = resolve_organization_id(user, request.organization_id)

    service = PermissionSettingsService(db)
    count = await service.save_overrides(
        org_id, request.permissions, user, request.audit_entry
    )
    return SavePermissionsResponse(success=True, count=count)


@router.get(
    "/audit-logs",
    response_model=AuditLogsResponse,
    operation_id="getPermissionAuditLogs",
)
async def get_audit_logs(
    organization_id: Optional[str] = Query(None),
    user: SessionUser = Depends(
        require_module_permission(Module.SECURITY, Action.VIEW)
    ),
    db: AsyncSession = Depends(get_db),
) -> AuditLogsResponse:
    """
    Get the permission change history of an organization, newest first.

    Requires view access to the security module.
    """
    org_id = resolve_organization_id(user, organization_id)
    service = PermissionSettingsService(db)
    logs = await service.get_audit_logs(org_id)
    return AuditLogsResponse(logs=logs, source="server" if logs else "server-empty")


@router.get(
    "/defaults",
    response_model=DefaultPermissionsResponse,
    operation_id="getDefaultPermissions",
)
async def get_default_permissions(
    role: Role = Query(...),
    user: SessionUser = Depends(
        require_module_permission(Module.SECURITY, Action.VIEW)
    ),
) -> DefaultPermissionsResponse:
    """
    Preview the canonical defaults of any role.

    Requires view access to the security module.
    """
    return DefaultPermissionsResponse(role=role, permissions=default_matrix(role))
