"""
Canonical default permissions per (module, role).

This table is the single source of truth used both to seed the runtime cache
and to preview any role's baseline in the security settings screens when no
admin overrides exist.
"""

from typing import Callable

from .models import DENIED, FULL_ACCESS, Module, Permission, Role

# Editable without add/delete (users may adjust their own preferences)
SETTINGS_EDIT_ONLY = Permission(visible=True, change=True)

DIRECTOR_DENIED = frozenset({Module.TENANTS, Module.SECURITY, Module.IMPORT_EXPORT})
MANAGER_DENIED = DIRECTOR_DENIED | {Module.USERS}
MARKETING_DENIED = MANAGER_DENIED | {Module.SETTINGS}

MARKETING_HIDDEN = frozenset({Module.BIDS, Module.QUOTES})
MARKETING_EDITABLE = frozenset(
    {Module.MARKETING, Module.CONTACTS, Module.EMAIL, Module.OPPORTUNITIES}
)

PERSONAL_MODULES = frozenset({Module.CONTACTS, Module.TASKS, Module.NOTES})
STANDARD_USER_VISIBLE = PERSONAL_MODULES | {
    Module.DASHBOARD,
    Module.APPOINTMENTS,
    Module.SETTINGS,
}
STANDARD_USER_DENIED = frozenset(
    {
        Module.TENANTS,
        Module.SECURITY,
        Module.IMPORT_EXPORT,
        Module.USERS,
        Module.BIDS,
        Module.QUOTES,
        Module.OPPORTUNITIES,
        Module.EMAIL,
        Module.MARKETING,
        Module.INVENTORY,
        Module.ADMIN,
        Module.TEAM_DASHBOARD,
    }
)


def _super_admin(module: Module) -> Permission:
    return FULL_ACCESS


def _admin(module: Module) -> Permission:
    if module == Module.TENANTS:
        return DENIED
    return Permission(
        visible=True, add=True, change=True, delete=module != Module.USERS
    )


def _team_member(module: Module) -> Permission:
    # Shared fallthrough for director and manager
    return Permission(
        visible=True, add=True, change=True, delete=module == Module.MARKETING
    )


def _director(module: Module) -> Permission:
    if module in DIRECTOR_DENIED:
        return DENIED
    if module == Module.USERS:
        return Permission(visible=True)
    if module == Module.SETTINGS:
        return SETTINGS_EDIT_ONLY
    return _team_member(module)


def _manager(module: Module) -> Permission:
    if module in MANAGER_DENIED:
        return DENIED
    if module == Module.SETTINGS:
        return SETTINGS_EDIT_ONLY
    return _team_member(module)


def _marketing(module: Module) -> Permission:
    if module in MARKETING_DENIED:
        return DENIED
    editable = module in MARKETING_EDITABLE
    return Permission(
        visible=module not in MARKETING_HIDDEN,
        add=editable,
        change=editable,
        delete=module == Module.MARKETING,
    )


def _standard_user(module: Module) -> Permission:
    if module in STANDARD_USER_DENIED:
        return DENIED
    if module == Module.SETTINGS:
        return SETTINGS_EDIT_ONLY
    personal = module in PERSONAL_MODULES
    return Permission(
        visible=module in STANDARD_USER_VISIBLE,
        add=personal,
        change=personal,
        delete=False,
    )


ROLE_DEFAULTS: dict[Role, Callable[[Module], Permission]] = {
    Role.SUPER_ADMIN: _super_admin,
    Role.ADMIN: _admin,
    Role.DIRECTOR: _director,
    Role.MANAGER: _manager,
    Role.MARKETING: _marketing,
    Role.STANDARD_USER: _standard_user,
}


def default_permission(module: Module, role: Role) -> Permission:
    """
    Get the canonical default permission for a module and role.

    Callable for any role, not only the current session's, so that admin
    screens can preview other roles' baselines.

    Args:
        module: The module being accessed
        role: The role to resolve

    Returns:
        The default Permission for the pair
    """
    return ROLE_DEFAULTS[Role(role)](Module(module))
