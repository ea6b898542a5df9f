import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from crm_access.core.settings import settings

from .defaults import default_permission
from .exceptions import (
    OverrideFetchError,
    OverrideResourceNotFoundError,
    OverrideStoreError,
)
from .models import (
    ALL_MODULES,
    ALL_ROLES,
    DENIED,
    Action,
    Module,
    Permission,
    PermissionKey,
    PermissionOverride,
    Role,
)
from .remote import HttpOverrideService, RemoteOverrideService
from .stores import JsonFileOverrideStore, PersistedOverrideStore

logger = logging.getLogger(__name__)

ModuleLike = Union[Module, str]
RoleLike = Union[Role, str]
Subscriber = Callable[[], None]


def resolve_key(module: ModuleLike, role: RoleLike) -> Optional[PermissionKey]:
    """Build a cache key, or None when module or role is not a known member."""
    try:
        return PermissionKey(Module(module), Role(role))
    except ValueError:
        return None


def parse_overrides(raw: Any, source: str) -> List[PermissionOverride]:
    """
    Validate stored override records one by one.

    Malformed records are skipped individually; a payload that is not a list
    yields no overrides at all.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(
            f"Ignoring {source} permission overrides: expected a list, "
            f"got {type(raw).__name__}"
        )
        return []

    overrides: List[PermissionOverride] = []
    for index, item in enumerate(raw):
        try:
            overrides.append(PermissionOverride.model_validate(item))
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed {source} permission override at index "
                f"{index}: {e.error_count()} validation error(s)"
            )
    return overrides


class PermissionResolver:
    """
    Resolves (module, role) permissions from three layers.

    Layers, lowest precedence first: canonical defaults, the persisted
    override store, the remote override service. Queries are synchronous and
    see whatever the cache holds at call time; a missing entry is always a
    denial.
    """

    def __init__(
        self,
        store: Optional[PersistedOverrideStore] = None,
        remote: Optional[RemoteOverrideService] = None,
        organization_id: Optional[str] = None,
        fetch_timeout: Optional[float] = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.organization_id = organization_id or settings.DEFAULT_ORGANIZATION_ID
        self.fetch_timeout = (
            settings.PERMISSIONS_FETCH_TIMEOUT
            if fetch_timeout is None
            else fetch_timeout
        )
        self._cache: Dict[PermissionKey, Permission] = {}
        self._subscribers: List[Subscriber] = []
        self._generation = 0

    # Lifecycle

    async def initialize(self, role: RoleLike) -> None:
        """
        Rebuild the cache for a new session or role.

        Defaults are seeded for every role so admin tooling can look up other
        roles. The remote layer is awaited for at most ``fetch_timeout``
        seconds; if it fails the cache keeps defaults plus persisted overrides.

        Args:
            role: Role of the session user, used to query remote overrides
        """
        role = Role(role)
        self._generation += 1
        generation = self._generation

        self._cache.clear()
        self._apply_defaults()
        if self._apply_persisted():
            self._notify_changed()

        if self.remote is None:
            return
        await self._apply_remote(self.remote, role, generation)

    def refresh(self) -> None:
        """Re-apply defaults and persisted overrides, then notify subscribers."""
        self._apply_defaults()
        self._apply_persisted()
        self._notify_changed()

    def clear(self) -> None:
        """Empty the cache and invalidate any in-flight remote fetch."""
        self._generation += 1
        self._cache.clear()

    def _apply_defaults(self) -> None:
        for module in ALL_MODULES:
            for role in ALL_ROLES:
                self._cache[PermissionKey(module, role)] = default_permission(
                    module, role
                )

    def _apply_persisted(self) -> int:
        if self.store is None:
            return 0

        try:
            raw = self.store.load(self.organization_id)
        except OverrideStoreError as e:
            logger.warning(f"Failed to load persisted permission overrides: {e}")
            return 0

        if raw is None:
            logger.debug("No persisted permission overrides found, using defaults")
            return 0

        overrides = parse_overrides(raw, "persisted")
        for override in overrides:
            self._cache[override.key] = override.to_permission()

        if overrides:
            logger.info(
                f"Applied {len(overrides)} persisted permission overrides "
                f"for organization {self.organization_id}"
            )
        return len(overrides)

    async def _apply_remote(
        self, remote: RemoteOverrideService, role: Role, generation: int
    ) -> None:
        try:
            raw = await asyncio.wait_for(
                remote.fetch_overrides(self.organization_id, role),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Remote permission fetch timed out after {self.fetch_timeout}s, "
                "using defaults and persisted overrides"
            )
            return
        except OverrideResourceNotFoundError:
            logger.info(
                "Remote permission overrides resource not found, "
                "using defaults and persisted overrides"
            )
            return
        except OverrideFetchError as e:
            logger.warning(
                f"Remote permission fetch failed ({e}), "
                "using defaults and persisted overrides"
            )
            return
        except Exception as e:
            logger.warning(
                f"Remote permission fetch raised {type(e).__name__} ({e}), "
                "using defaults and persisted overrides"
            )
            return

        if generation != self._generation:
            logger.debug("Discarding remote permissions from a superseded session")
            return

        overrides = parse_overrides(raw, "remote")
        if not overrides:
            logger.info(
                "No remote permission overrides found, "
                "using defaults and persisted overrides"
            )
            return

        for override in overrides:
            self._cache[override.key] = override.to_permission()
        logger.info(f"Applied {len(overrides)} remote permission overrides")

        self._sync_to_store(overrides)
        self._notify_changed()

    def _sync_to_store(self, overrides: List[PermissionOverride]) -> None:
        """Merge remote overrides into the persisted store for offline use."""
        if self.store is None:
            return

        try:
            existing = parse_overrides(self.store.load(self.organization_id), "persisted")
        except OverrideStoreError as e:
            logger.warning(f"Replacing unreadable persisted overrides: {e}")
            existing = []

        merged = {override.key: override for override in existing}
        merged.update({override.key: override for override in overrides})

        try:
            self.store.save(
                self.organization_id,
                [override.model_dump(mode="json") for override in merged.values()],
            )
        except OverrideStoreError as e:
            logger.warning(f"Failed to sync remote permission overrides: {e}")

    # Queries

    def get_permissions(self, module: ModuleLike, role: RoleLike) -> Permission:
        key = resolve_key(module, role)
        if key is None:
            return DENIED
        return self._cache.get(key, DENIED)

    def is_allowed(
        self, module: ModuleLike, role: RoleLike, action: Union[Action, str]
    ) -> bool:
        try:
            action = Action(action)
        except ValueError:
            return False
        return self.get_permissions(module, role).allows(action)

    def can_view(self, module: ModuleLike, role: RoleLike) -> bool:
        return self.get_permissions(module, role).visible

    def can_add(self, module: ModuleLike, role: RoleLike) -> bool:
        return self.get_permissions(module, role).add

    def can_change(self, module: ModuleLike, role: RoleLike) -> bool:
        return self.get_permissions(module, role).change

    def can_delete(self, module: ModuleLike, role: RoleLike) -> bool:
        return self.get_permissions(module, role).delete

    def has_any_permission(self, module: ModuleLike, role: RoleLike) -> bool:
        return self.get_permissions(module, role).any()

    def snapshot(self) -> Dict[PermissionKey, Permission]:
        return dict(self._cache)

    def dump(self, role: RoleLike) -> Dict[Module, Optional[Permission]]:
        """Log and return every module's cached permission for a role."""
        role = Role(role)
        entries: Dict[Module, Optional[Permission]] = {}
        logger.debug(f"Permissions for {role.value}:")
        for module in ALL_MODULES:
            permission = self._cache.get(PermissionKey(module, role))
            entries[module] = permission
            if permission is None:
                logger.debug(f"  {module.value}: NOT FOUND IN CACHE")
            else:
                logger.debug(f"  {module.value}: {permission!r}")
        logger.debug(f"Total cache size: {len(self._cache)}")
        return entries

    # Change notification

    def on_permissions_changed(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback invoked whenever overrides are applied.

        Returns:
            A function removing this registration
        """
        self._subscribers.append(callback)
        subscribed = True

        def unsubscribe() -> None:
            nonlocal subscribed
            if subscribed and callback in self._subscribers:
                self._subscribers.remove(callback)
            subscribed = False

        return unsubscribe

    def _notify_changed(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback()
            except Exception:
                logger.exception("Permission change subscriber failed")


def build_session_resolver(
    organization_id: str, access_token: Optional[str] = None
) -> PermissionResolver:
    """
    Create a resolver wired to the configured stores for one session.

    The remote layer is only enabled when PERMISSIONS_API_URL is set.
    """
    remote: Optional[RemoteOverrideService] = None
    if settings.PERMISSIONS_API_URL:
        remote = HttpOverrideService(settings.PERMISSIONS_API_URL, access_token)

    return PermissionResolver(
        store=JsonFileOverrideStore(settings.PERMISSIONS_STORAGE_DIR),
        remote=remote,
        organization_id=organization_id,
    )
