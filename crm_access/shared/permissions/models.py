from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator


class Module(str, Enum):
    """
    Functional areas of the CRM subject to independent permissioning.

    The set is closed: override records naming any other module are rejected.
    """

    DASHBOARD = "dashboard"
    AI_SUGGESTIONS = "ai-suggestions"
    CONTACTS = "contacts"
    TASKS = "tasks"
    APPOINTMENTS = "appointments"
    OPPORTUNITIES = "opportunities"
    BIDS = "bids"
    QUOTES = "quotes"
    NOTES = "notes"
    EMAIL = "email"
    MARKETING = "marketing"
    INVENTORY = "inventory"
    USERS = "users"
    SETTINGS = "settings"
    TENANTS = "tenants"
    SECURITY = "security"
    IMPORT_EXPORT = "import-export"
    DOCUMENTS = "documents"
    TEAM_DASHBOARD = "team-dashboard"
    REPORTS = "reports"
    PROJECT_WIZARDS = "project-wizards"
    ADMIN = "admin"
    KITCHEN_PLANNER = "kitchen-planner"


class Role(str, Enum):
    """User roles, ordered loosely from most to least privileged."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    DIRECTOR = "director"
    MANAGER = "manager"
    MARKETING = "marketing"
    STANDARD_USER = "standard_user"


class Action(str, Enum):
    VIEW = "view"
    ADD = "add"
    CHANGE = "change"
    DELETE = "delete"


ALL_MODULES: tuple[Module, ...] = tuple(Module)
ALL_ROLES: tuple[Role, ...] = tuple(Role)

# Permission field checked for each action
ACTION_FIELDS: dict[Action, str] = {
    Action.VIEW: "visible",
    Action.ADD: "add",
    Action.CHANGE: "change",
    Action.DELETE: "delete",
}


class Permission(BaseModel):
    """Four independent capabilities for one (module, role) pair."""

    model_config = ConfigDict(frozen=True)

    visible: bool = False
    add: bool = False
    change: bool = False
    delete: bool = False

    def allows(self, action: Action) -> bool:
        return getattr(self, ACTION_FIELDS[action])

    def any(self) -> bool:
        return self.visible or self.add or self.change or self.delete


DENIED = Permission()
FULL_ACCESS = Permission(visible=True, add=True, change=True, delete=True)


class PermissionKey(NamedTuple):
    module: Module
    role: Role


class PermissionOverride(BaseModel):
    """
    A stored override for one (module, role) pair.

    Used for both the persisted and the remote layers. Missing capability
    flags count as False and any other value is taken by truthiness.
    """

    module: Module
    role: Role
    visible: bool = False
    add: bool = False
    change: bool = False
    delete: bool = False

    @field_validator("visible", "add", "change", "delete", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return bool(v)

    @property
    def key(self) -> PermissionKey:
        return PermissionKey(self.module, self.role)

    def to_permission(self) -> Permission:
        return Permission(
            visible=self.visible, add=self.add, change=self.change, delete=self.delete
        )
