"""FastAPI dependencies for the collection endpoints."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from gamebin.core.logging import get_logger
from gamebin.domain.services import CollectionStore

logger = get_logger(__name__)


def get_collection_store(request: Request) -> CollectionStore:
    """Return the collection store created during application startup.

    Raises:
        HTTPException: 503 if the application has not finished starting.
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        logger.error("Collection store requested before startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Collection store is not available",
        )
    return store


# Type alias for use in route handlers
Store = Annotated[CollectionStore, Depends(get_collection_store)]
