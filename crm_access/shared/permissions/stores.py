import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .exceptions import OverrideStoreError

logger = logging.getLogger(__name__)


class PersistedOverrideStore(Protocol):
    """Synchronous, organization-scoped storage for admin-saved overrides."""

    def load(self, organization_id: str) -> Optional[Any]:
        """Return the raw stored payload, or None when nothing is stored."""
        ...

    def save(self, organization_id: str, records: List[Dict[str, Any]]) -> None: ...


class InMemoryOverrideStore:
    """Dict-backed store for embedding callers and tests."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})

    def load(self, organization_id: str) -> Optional[Any]:
        return self._data.get(organization_id)

    def save(self, organization_id: str, records: List[Dict[str, Any]]) -> None:
        self._data[organization_id] = list(records)


class JsonFileOverrideStore:
    """
    File-backed store keeping one JSON array per organization.

    Files are named ``permissions_<organization_id>.json`` inside the
    configured directory.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, organization_id: str) -> Path:
        """
        Raises:
            OverrideStoreError: If the id could address a file outside the
                store directory
        """
        if not organization_id or any(
            sep in organization_id for sep in ("/", "\\", "\x00")
        ):
            raise OverrideStoreError(f"Invalid organization id: {organization_id!r}")
        return self.directory / f"permissions_{organization_id}.json"

    def load(self, organization_id: str) -> Optional[Any]:
        path = self.path_for(organization_id)
        if not path.exists():
            return None

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise OverrideStoreError(f"Failed to read {path}: {e}") from e

        if not content.strip():
            return None

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise OverrideStoreError(f"Invalid JSON in {path}: {e}") from e

    def save(self, organization_id: str, records: List[Dict[str, Any]]) -> None:
        path = self.path_for(organization_id)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(records, indent=2), encoding="utf-8")
        except OSError as e:
            raise OverrideStoreError(f"Failed to write {path}: {e}") from e
        logger.debug(f"Saved {len(records)} permission overrides to {path}")
