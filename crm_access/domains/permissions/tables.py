# crm_access/domains/permissions/tables.py
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from crm_access.core.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PermissionOverrideRecord(Base):
    """One admin-configured override in an organization's permission matrix."""

    __tablename__ = "permission_overrides"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "module", "role", name="uq_permission_override_key"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    module: Mapped[str] = mapped_column(String(64))
    role: Mapped[str] = mapped_column(String(32))
    visible: Mapped[bool] = mapped_column(Boolean, default=False)
    add: Mapped[bool] = mapped_column(Boolean, default=False)
    change: Mapped[bool] = mapped_column(Boolean, default=False)
    delete: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )


class PermissionAuditLogRecord(Base):
    """Audit trail entry written when an organization's matrix is saved."""

    __tablename__ = "permission_audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    actor_id: Mapped[str] = mapped_column(String(64))
    actor_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    action: Mapped[str] = mapped_column(String(64))
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
