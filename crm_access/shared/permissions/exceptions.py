"""
Exceptions raised by permission override sources.

None of these reach query callers: the resolver catches them and falls back
to the layers it already applied.
"""


class PermissionsError(Exception):
    """Base exception for permission override errors."""

    pass


class OverrideStoreError(PermissionsError):
    """Raised when the persisted override store cannot be read or parsed."""

    pass


class OverrideFetchError(PermissionsError):
    """Raised when remote overrides could not be fetched."""

    pass


class OverrideResourceNotFoundError(OverrideFetchError):
    """Raised when the remote override resource does not exist."""

    pass
