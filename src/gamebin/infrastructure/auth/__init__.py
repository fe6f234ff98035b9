"""Access control for collection mutations."""

from gamebin.domain.services.collection_store import AccessPolicy
from gamebin.infrastructure.auth.access_policy import KNOWN_PERMISSIONS, StaticAccessPolicy

__all__ = ["AccessPolicy", "KNOWN_PERMISSIONS", "StaticAccessPolicy"]
