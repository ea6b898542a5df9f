from typing import Callable, Union

from fastapi import Depends, Request

from crm_access.domains.auth.dependencies import get_current_user
from crm_access.domains.auth.models import SessionUser
from crm_access.shared.exceptions import (
    AuthenticationRequiredError,
    PermissionDeniedError,
)

from .gate import AccessDenied, permission_gate
from .models import Action, Module
from .services import PermissionResolver


def get_permission_resolver(request: Request) -> PermissionResolver:
    """Resolver shared by the application, created at startup."""
    return request.app.state.permission_resolver


def require_module_permission(
    module: Module, action: Union[Action, str] = Action.VIEW
) -> Callable[..., SessionUser]:
    """
    Dependency factory for module-level authorization.

    Creates a dependency that runs the permission gate for the current user
    and turns a denial into an HTTP error carrying the standard message.

    Args:
        module: The module the endpoint belongs to
        action: The action the endpoint performs

    Returns:
        Dependency function that validates permission and returns the user
    """
    action = Action(action)

    def check_permission(
        user: SessionUser = Depends(get_current_user),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> SessionUser:
        """
        Validate the user may perform the action on the module.

        Raises:
            HTTPException: 401 if the user has no role, 403 if denied
        """
        result = permission_gate(resolver, user, module, user, action)
        if isinstance(result, AccessDenied):
            if result.reason == "unauthenticated":
                raise AuthenticationRequiredError(result.message)
            raise PermissionDeniedError(result.message)
        return user

    return check_permission
