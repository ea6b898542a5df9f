# crm_access/domains/auth/models.py
from typing import Optional

from pydantic import BaseModel

from crm_access.shared.permissions.models import Role


class SessionUser(BaseModel):
    """The authenticated caller as seen by permission checks."""

    id: str
    email: Optional[str] = None
    role: Optional[Role] = None
    organization_id: Optional[str] = None
