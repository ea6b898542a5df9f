"""Auth domain type definitions for type safety."""

from typing import Optional

from pydantic import BaseModel, Field


class JwtPayload(BaseModel):
    """Access token payload structure."""

    # Standard JWT claims
    sub: Optional[str] = Field(None, description="Subject (user ID)")
    iss: Optional[str] = Field(None, description="Token issuer")
    aud: Optional[str | list[str]] = Field(None, description="Token audience")
    exp: Optional[int] = Field(None, description="Expiration timestamp")
    iat: Optional[int] = Field(None, description="Issued at timestamp")

    email: Optional[str] = Field(None, description="User email address")
    user_metadata: Optional[dict[str, str | int | bool | list[str] | None]] = Field(
        None, description="User metadata, carries role and organization_id"
    )

    model_config = {"extra": "allow"}
