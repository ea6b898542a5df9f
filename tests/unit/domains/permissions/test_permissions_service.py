"""
Tests for PermissionSettingsService in crm_access/domains/permissions/service.py

Runs against an in-memory SQLite database.
"""

from typing import Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from crm_access.core.settings import settings
from crm_access.domains.auth.models import SessionUser
from crm_access.domains.permissions.models import AuditEntryCreate
from crm_access.domains.permissions.service import (
    PermissionSettingsService,
    default_matrix,
)
from crm_access.shared.permissions.defaults import default_permission
from crm_access.shared.permissions.models import (
    ALL_MODULES,
    Module,
    PermissionOverride,
    Role,
)

ORG_ID = "org-1"


def override(module: Module, role: Role, **flags: bool) -> PermissionOverride:
    return PermissionOverride(module=module, role=role, **flags)


class TestGetOverrides:
    @pytest.mark.asyncio
    async def test_none_when_nothing_stored(self, db_session: AsyncSession):
        service = PermissionSettingsService(db_session)
        assert await service.get_overrides(ORG_ID) is None

    @pytest.mark.asyncio
    async def test_returns_saved_overrides(
        self, db_session: AsyncSession, make_user: Callable[..., SessionUser]
    ):
        service = PermissionSettingsService(db_session)
        saved = [
            override(Module.BIDS, Role.MARKETING, visible=True),
            override(Module.USERS, Role.DIRECTOR, visible=True, change=True),
        ]

        count = await service.save_overrides(ORG_ID, saved, make_user(Role.ADMIN))

        assert count == 2
        assert await service.get_overrides(ORG_ID) == saved

    @pytest.mark.asyncio
    async def test_filters_by_role(
        self, db_session: AsyncSession, make_user: Callable[..., SessionUser]
    ):
        service = PermissionSettingsService(db_session)
        await service.save_overrides(
            ORG_ID,
            [
                override(Module.BIDS, Role.MARKETING, visible=True),
                override(Module.USERS, Role.DIRECTOR, visible=True),
            ],
            make_user(Role.ADMIN),
        )

        result = await service.get_overrides(ORG_ID, Role.DIRECTOR)

        assert [item.key for item in result] == [(Module.USERS, Role.DIRECTOR)]

    @pytest.mark.asyncio
    async def test_role_filter_without_matches_is_empty_not_none(
        self, db_session: AsyncSession, make_user: Callable[..., SessionUser]
    ):
        service = PermissionSettingsService(db_session)
        await service.save_overrides(
            ORG_ID, [override(Module.BIDS, Role.MARKETING)], make_user(Role.ADMIN)
        )

        assert await service.get_overrides(ORG_ID, Role.MANAGER) == []

    @pytest.mark.asyncio
    async def test_organizations_are_isolated(
        self, db_session: AsyncSession, make_user: Callable[..., SessionUser]
    ):
        service = PermissionSettingsService(db_session)
        await service.save_overrides(
            ORG_ID, [override(Module.BIDS, Role.MARKETING)], make_user(Role.ADMIN)
        )

        assert await service.get_overrides("org-2") is None


class TestSaveOverrides:
    @pytest.mark.asyncio
    async def test_duplicate_keys_collapse_to_last(
        self, db_session: AsyncSession, make_user: Callable[..., SessionUser]
    ):
        service = PermissionSettingsService(db_session)

        count = await service.save_overrides(
            ORG_ID,
            [
                override(Module.TASKS, Role.MANAGER, visible=False),
                override(Module.TASKS, Role.MANAGER, visible=True, add=True),
            ],
            make_user(Role.ADMIN),
        )

        assert count == 1
        stored = await service.get_overrides(ORG_ID)
        assert stored == [override(Module.TASKS, Role.MANAGER, visible=True, add=True)]

    @pytest.mark.asyncio
    async def test_save_replaces_previous_matrix(
        self, db_session: AsyncSession, make_user: Callable[..., SessionUser]
    ):
        service = PermissionSettingsService(db_session)
        admin = make_user(Role.ADMIN)
        await service.save_overrides(
            ORG_ID,
            [
                override(Module.TASKS, Role.MANAGER),
                override(Module.NOTES, Role.MANAGER),
            ],
            admin,
        )

        await service.save_overrides(
            ORG_ID, [override(Module.TASKS, Role.MANAGER, visible=True)], admin
        )

        assert await service.get_overrides(ORG_ID) == [
            override(Module.TASKS, Role.MANAGER, visible=True)
        ]

    @pytest.mark.asyncio
    async def test_save_without_audit_entry_writes_no_log(
        self, db_session: AsyncSession, make_user: Callable[..., SessionUser]
    ):
        service = PermissionSettingsService(db_session)
        await service.save_overrides(
            ORG_ID, [override(Module.TASKS, Role.MANAGER)], make_user(Role.ADMIN)
        )

        assert await service.get_audit_logs(ORG_ID) == []


class TestAuditLogs:
    @pytest.mark.asyncio
    async def test_entries_newest_first(
        self, db_session: AsyncSession, make_user: Callable[..., SessionUser]
    ):
        service = PermissionSettingsService(db_session)
        admin = make_user(Role.ADMIN)
        for summary in ("first", "second"):
            await service.save_overrides(
                ORG_ID,
                [override(Module.TASKS, Role.MANAGER)],
                admin,
                AuditEntryCreate(summary=summary, details={"changed": 1}),
            )

        logs = await service.get_audit_logs(ORG_ID)

        assert [log.summary for log in logs] == ["second", "first"]
        assert logs[0].action == "update_permissions"
        assert logs[0].actor_id == admin.id
        assert logs[0].actor_email == "test@example.com"
        assert logs[0].details == {"changed": 1}
        assert logs[0].created_at is not None

    @pytest.mark.asyncio
    async def test_history_is_pruned_to_limit(
        self,
        db_session: AsyncSession,
        make_user: Callable[..., SessionUser],
        monkeypatch: pytest.MonkeyPatch,
    ):
        monkeypatch.setattr(settings, "AUDIT_LOG_LIMIT", 3)
        service = PermissionSettingsService(db_session)
        admin = make_user(Role.ADMIN)
        for index in range(5):
            await service.save_overrides(
                ORG_ID,
                [override(Module.TASKS, Role.MANAGER)],
                admin,
                AuditEntryCreate(summary=f"change {index}"),
            )

        logs = await service.get_audit_logs(ORG_ID)

        assert [log.summary for log in logs] == ["change 4", "change 3", "change 2"]

    @pytest.mark.asyncio
    async def test_pruning_is_per_organization(
        self,
        db_session: AsyncSession,
        make_user: Callable[..., SessionUser],
        monkeypatch: pytest.MonkeyPatch,
    ):
        monkeypatch.setattr(settings, "AUDIT_LOG_LIMIT", 1)
        service = PermissionSettingsService(db_session)
        admin = make_user(Role.ADMIN)
        await service.save_overrides(
            "org-2",
            [override(Module.TASKS, Role.MANAGER)],
            admin,
            AuditEntryCreate(summary="other org"),
        )
        await service.save_overrides(
            ORG_ID,
            [override(Module.TASKS, Role.MANAGER)],
            admin,
            AuditEntryCreate(summary="this org"),
        )

        assert [log.summary for log in await service.get_audit_logs("org-2")] == [
            "other org"
        ]


class TestDefaultMatrix:
    @pytest.mark.parametrize("role", list(Role))
    def test_one_entry_per_module(self, role: Role):
        matrix = default_matrix(role)

        assert [item.module for item in matrix] == list(ALL_MODULES)
        assert all(item.role == role for item in matrix)

    def test_matches_canonical_defaults(self):
        for item in default_matrix(Role.MARKETING):
            assert item.to_permission() == default_permission(item.module, item.role)
