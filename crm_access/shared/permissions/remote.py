from typing import Any, List, Optional, Protocol

import httpx

from .exceptions import OverrideFetchError, OverrideResourceNotFoundError
from .models import Role


class RemoteOverrideService(Protocol):
    """Backend source of permission overrides, queried per role."""

    async def fetch_overrides(self, organization_id: str, role: Role) -> List[Any]: ...


class HttpOverrideService:
    """
    Fetches permission overrides from the permissions API.

    Expects ``GET {base_url}/permissions`` to answer with
    ``{"permissions": [...] | null}``.
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.client = client

    async def fetch_overrides(self, organization_id: str, role: Role) -> List[Any]:
        """
        Fetch raw override records for an organization and role.

        Args:
            organization_id: Organization whose overrides to load
            role: Role to filter on

        Returns:
            Raw records, empty when the server has none stored

        Raises:
            OverrideResourceNotFoundError: If the permissions resource is absent
            OverrideFetchError: For connection failures, error statuses and
                undecodable bodies
        """
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        params = {"organization_id": organization_id, "role": Role(role).value}
        url = f"{self.base_url}/permissions"

        try:
            if self.client is not None:
                response = await self.client.get(url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise OverrideFetchError(f"Permissions request failed: {e}") from e

        if response.status_code == 404:
            raise OverrideResourceNotFoundError("Permissions resource not found")
        if response.status_code >= 400:
            raise OverrideFetchError(
                f"Permissions server returned {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise OverrideFetchError("Permissions response is not valid JSON") from e

        if not isinstance(payload, dict):
            raise OverrideFetchError("Permissions response has unexpected shape")

        permissions = payload.get("permissions")
        if permissions is None:
            return []
        if not isinstance(permissions, list):
            raise OverrideFetchError("Permissions response has unexpected shape")
        return permissions
