"""
Render-time guards over resolved permissions.

The gate is stateless: it reads the resolver at call time and never
subscribes to change notifications. Callers needing live updates re-render
from ``PermissionResolver.on_permissions_changed``.
"""

from typing import Any, Literal, Optional, TypeVar, Union

from pydantic import BaseModel

from .models import Action, Module, Role
from .services import ModuleLike, PermissionResolver

T = TypeVar("T")

AUTHENTICATION_REQUIRED_MESSAGE = "Authentication required. Please log in to continue."


class AccessDenied(BaseModel):
    """Standard denial view returned when no fallback is supplied."""

    reason: Literal["unauthenticated", "forbidden"]
    message: str
    module: Optional[str] = None
    action: Optional[Action] = None


def denial_message(action: Union[Action, str], module: ModuleLike) -> str:
    action_name = action.value if isinstance(action, Action) else action
    module_name = module.value if isinstance(module, Module) else module
    return (
        f"You don't have permission to {action_name} {module_name}. "
        "Please contact your administrator."
    )


def user_role(user: Any) -> Optional[Role]:
    """Return the user's role, or None for missing users and unknown roles."""
    if user is None:
        return None
    role = user.get("role") if isinstance(user, dict) else getattr(user, "role", None)
    if not role:
        return None
    try:
        return Role(role)
    except ValueError:
        return None


def permission_gate(
    resolver: PermissionResolver,
    user: Any,
    module: ModuleLike,
    children: T,
    action: Union[Action, str] = Action.VIEW,
    fallback: Any = None,
) -> Union[T, Any, AccessDenied]:
    """
    Return protected content only if the user may perform the action.

    Args:
        resolver: Resolver holding the session's permissions
        user: User record with a ``role`` attribute or key
        module: Module being accessed
        children: Content to return when allowed
        action: One of view, add, change, delete
        fallback: Returned instead of the standard denial view when denied

    Returns:
        ``children`` when allowed, otherwise ``fallback`` or an AccessDenied view
    """
    action = Action(action)
    role = user_role(user)

    if role is None:
        if fallback is not None:
            return fallback
        return AccessDenied(
            reason="unauthenticated", message=AUTHENTICATION_REQUIRED_MESSAGE
        )

    if not resolver.is_allowed(module, role, action):
        if fallback is not None:
            return fallback
        module_name = module.value if isinstance(module, Module) else str(module)
        return AccessDenied(
            reason="forbidden",
            message=denial_message(action, module_name),
            module=module_name,
            action=action,
        )

    return children


def permission_action(
    resolver: PermissionResolver,
    user: Any,
    module: ModuleLike,
    action: Union[Action, str],
    children: T,
) -> Optional[T]:
    """
    Return inline action content, or nothing at all when not permitted.

    Unlike ``permission_gate`` no denial view is produced, so buttons for
    unavailable actions simply do not appear.

    Raises:
        ValueError: If ``action`` is ``view``; only add, change and delete
            are inline actions
    """
    action = Action(action)
    if action == Action.VIEW:
        raise ValueError("permission_action only guards add, change or delete")

    role = user_role(user)
    if role is None:
        return None
    if not resolver.is_allowed(module, role, action):
        return None
    return children
