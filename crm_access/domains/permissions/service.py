# crm_access/domains/permissions/service.py
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_access.core.settings import settings
from crm_access.domains.auth.models import SessionUser
from crm_access.domains.permissions.models import AuditEntryCreate, AuditLogResponse
from crm_access.domains.permissions.tables import (
    PermissionAuditLogRecord,
    PermissionOverrideRecord,
)
from crm_access.shared.permissions.defaults import default_permission
from crm_access.shared.permissions.models import (
    ALL_MODULES,
    PermissionOverride,
    Role,
)

logger = logging.getLogger(__name__)


def default_matrix(role: Role) -> List[PermissionOverride]:
    """Canonical defaults for one role, shaped like stored overrides."""
    return [
        PermissionOverride(
            module=module, role=role, **default_permission(module, role).model_dump()
        )
        for module in ALL_MODULES
    ]


class PermissionSettingsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_overrides(
        self, organization_id: str, role: Optional[Role] = None
    ) -> Optional[List[PermissionOverride]]:
        """
        Load an organization's stored permission matrix.

        Args:
            organization_id: Organization to load
            role: Only return overrides for this role when given

        Returns:
            The stored overrides, or None if the organization has never saved
            a matrix
        """
        result = await self.db.execute(
            select(PermissionOverrideRecord)
            .where(PermissionOverrideRecord.organization_id == organization_id)
            .order_by(PermissionOverrideRecord.id)
        )
        records = result.scalars().all()
        if not records:
            logger.info(f"No stored permissions for organization {organization_id}")
            return None

        overrides = [
            PermissionOverride(
                module=record.module,
                role=record.role,
                visible=record.visible,
                add=record.add,
                change=record.change,
                delete=record.delete,
            )
            for record in records
        ]
        if role is not None:
            overrides = [override for override in overrides if override.role == role]
        return overrides

    async def save_overrides(
        self,
        organization_id: str,
        overrides: List[PermissionOverride],
        actor: SessionUser,
        audit_entry: Optional[AuditEntryCreate] = None,
    ) -> int:
        """
        Replace an organization's permission matrix.

        Duplicate (module, role) entries collapse to the last one given.

        Returns:
            Number of overrides stored
        """
        unique = {override.key: override for override in overrides}

        await self.db.execute(
            delete(PermissionOverrideRecord).where(
                PermissionOverrideRecord.organization_id == organization_id
            )
        )
        self.db.add_all(
            [
                PermissionOverrideRecord(
                    organization_id=organization_id,
                    module=override.module.value,
                    role=override.role.value,
                    visible=override.visible,
                    add=override.add,
                    change=override.change,
                    delete=override.delete,
                )
                for override in unique.values()
            ]
        )

        if audit_entry is not None:
            await self._record_audit_entry(organization_id, actor, audit_entry)

        await self.db.commit()
        logger.info(
            f"Saved {len(unique)} permissions for organization {organization_id} "
            f"by user {actor.email or actor.id}"
        )
        return len(unique)

    async def _record_audit_entry(
        self, organization_id: str, actor: SessionUser, entry: AuditEntryCreate
    ) -> None:
        self.db.add(
            PermissionAuditLogRecord(
                organization_id=organization_id,
                actor_id=actor.id,
                actor_email=actor.email,
                action=entry.action,
                summary=entry.summary,
                details=entry.details,
            )
        )
        await self.db.flush()

        # Keep only the newest entries per organization
        newest = (
            select(PermissionAuditLogRecord.id)
            .where(PermissionAuditLogRecord.organization_id == organization_id)
            .order_by(PermissionAuditLogRecord.id.desc())
            .limit(settings.AUDIT_LOG_LIMIT)
        )
        await self.db.execute(
            delete(PermissionAuditLogRecord).where(
                PermissionAuditLogRecord.organization_id == organization_id,
                PermissionAuditLogRecord.id.not_in(newest),
            )
        )

    async def get_audit_logs(self, organization_id: str) -> List[AuditLogResponse]:
        """Return an organization's audit entries, newest first."""
        result = await self.db.execute(
            select(PermissionAuditLogRecord)
            .where(PermissionAuditLogRecord.organization_id == organization_id)
            .order_by(PermissionAuditLogRecord.id.desc())
            .limit(settings.AUDIT_LOG_LIMIT)
        )
        return [
            AuditLogResponse(
                id=record.id,
                organization_id=record.organization_id,
                actor_id=record.actor_id,
                actor_email=record.actor_email,
                action=record.action,
                summary=record.summary,
                details=record.details,
                created_at=record.created_at.isoformat() if record.created_at else None,
            )
            for record in result.scalars().all()
        ]
