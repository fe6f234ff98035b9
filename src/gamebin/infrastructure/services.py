"""Wiring of the collection store and its collaborators from settings.

Shared by the API lifespan and the CLI so both talk to the remote store
through the same cache, rate limiter and access policy.
"""

from dataclasses import dataclass

from gamebin.core.config import Settings
from gamebin.core.logging import get_logger
from gamebin.domain.services import CollectionCatalog, CollectionStore
from gamebin.infrastructure.auth import StaticAccessPolicy
from gamebin.infrastructure.cache import JsonFileCacheStorage, RateLimiter, RequestCache
from gamebin.infrastructure.remote import JsonBinClient
from gamebin.infrastructure.security import FieldEncryptor

logger = get_logger(__name__)


@dataclass
class Services:
    """Collaborators built for one process."""

    store: CollectionStore
    cache: RequestCache
    client: JsonBinClient


def build_services(settings: Settings) -> Services:
    """Build the collection store stack described by the settings.

    Raises:
        UnknownCollection: If a bin id override names an unregistered collection.
    """
    client = JsonBinClient.from_settings(settings)
    storage = JsonFileCacheStorage(settings.cache_file) if settings.cache_persist_enabled else None
    cache = RequestCache(
        transport=client,
        ttl_seconds=settings.cache_ttl_seconds,
        storage=storage,
        rate_limiter=RateLimiter(max_calls=settings.rate_limit_per_hour),
    )
    store = CollectionStore(
        catalog=CollectionCatalog.with_bin_overrides(settings.bin_ids),
        remote=cache,
        api_endpoint=settings.api_endpoint,
        encryption=FieldEncryptor.from_settings(settings),
        access=StaticAccessPolicy.from_settings(settings),
        strict_bulk=settings.strict_bulk,
    )
    logger.info(
        "Collection store ready",
        collections=len(store.catalog),
        cache_entries=cache.size(),
        encryption=store.encryption is not None,
    )
    return Services(store=store, cache=cache, client=client)
