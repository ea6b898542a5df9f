# crm_access/domains/auth/dependencies.py
import jwt
from fastapi import Header

from crm_access.core.settings import settings
from crm_access.shared.exceptions import AuthNotConfiguredError, InvalidTokenError
from crm_access.shared.permissions.models import Role

from .models import SessionUser
from .types import JwtPayload


def decode_access_token(token: str) -> JwtPayload:
    """
    Verifies an HS256 access token signed with JWT_SECRET.
    """
    if not settings.JWT_SECRET:
        raise AuthNotConfiguredError()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=["HS256"],
            options={"verify_aud": False},
        )
    except jwt.PyJWTError:
        raise InvalidTokenError()
    return JwtPayload(**dict(payload))


def session_user_from_payload(payload: JwtPayload) -> SessionUser:
    """
    Build the session user from token claims.

    A missing role claim means a standard user; an unrecognised role leaves
    the user without a role so every permission check denies.
    """
    metadata = payload.user_metadata or {}

    raw_role = metadata.get("role") or Role.STANDARD_USER.value
    try:
        role = Role(raw_role)
    except ValueError:
        role = None

    organization_id = metadata.get("organization_id")
    return SessionUser(
        id=payload.sub or "",
        email=payload.email,
        role=role,
        organization_id=str(organization_id) if organization_id else None,
    )


def get_current_user(authorization: str = Header(None)) -> SessionUser:
    """
    Extracts and validates the bearer token from the Authorization header.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidTokenError()

    token = authorization.split(" ")[1]
    payload = decode_access_token(token)
    if not payload.sub:
        raise InvalidTokenError()
    return session_user_from_payload(payload)
