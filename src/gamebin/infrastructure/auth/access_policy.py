"""Access policy consulted by the collection store before mutations.

Authentication itself is handled outside GameBin; the store only asks
whether the caller is authenticated and holds a named permission
(``read``, ``write`` or ``delete``).
"""

from collections.abc import Iterable

from gamebin.core.config import Settings

KNOWN_PERMISSIONS = frozenset({"read", "write", "delete"})


class StaticAccessPolicy:
    """Grants a fixed permission set to a single, always authenticated caller."""

    def __init__(self, permissions: Iterable[str] = KNOWN_PERMISSIONS, authenticated: bool = True):
        self.permissions = frozenset(permission.lower() for permission in permissions)
        unknown = self.permissions - KNOWN_PERMISSIONS
        if unknown:
            raise ValueError(f"Unknown permissions: {', '.join(sorted(unknown))}")
        self.authenticated = authenticated

    @classmethod
    def from_settings(cls, settings: Settings) -> "StaticAccessPolicy":
        return cls(settings.permissions)

    def is_authenticated(self) -> bool:
        return self.authenticated

    def has_permission(self, permission: str) -> bool:
        return self.authenticated and permission.lower() in self.permissions
