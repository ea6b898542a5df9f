"""
Shared permission system for role-based access control.

Permissions are resolved per (module, role) from canonical defaults,
admin-saved overrides persisted per organization, and overrides served by the
permissions API, in increasing order of precedence.

Usage:
    from crm_access.shared.permissions import Action, Module, PermissionResolver

    resolver = PermissionResolver(store=store, remote=remote)
    await resolver.initialize(user.role)

    content = permission_gate(resolver, user, Module.CONTACTS, page)
    button = permission_action(resolver, user, Module.CONTACTS, Action.ADD, button)

    from crm_access.shared.permissions.dependencies import require_module_permission

    @router.put("/resource")
    async def update_resource(
        user: SessionUser = Depends(
            require_module_permission(Module.SETTINGS, Action.CHANGE)
        )
    ):
        pass
"""

from .defaults import default_permission
from .gate import AccessDenied, permission_action, permission_gate
from .models import (
    ALL_MODULES,
    ALL_ROLES,
    DENIED,
    Action,
    Module,
    Permission,
    PermissionKey,
    PermissionOverride,
    Role,
)
from .services import PermissionResolver, build_session_resolver

__all__ = [
    "ALL_MODULES",
    "ALL_ROLES",
    "DENIED",
    "AccessDenied",
    "Action",
    "Module",
    "Permission",
    "PermissionKey",
    "PermissionOverride",
    "PermissionResolver",
    "Role",
    "build_session_resolver",
    "default_permission",
    "permission_action",
    "permission_gate",
]
