"""Collections API routes.

Provides endpoints for reading, querying and modifying game-data
collections. Read endpoints refresh the collection through the request
cache first, so repeated reads within the cache TTL cost no remote calls.
"""

from typing import Any

from fastapi import APIRouter, Body, HTTPException, Query, status
from fastapi.responses import Response

from gamebin.core.logging import get_logger
from gamebin.infrastructure.api.dependencies import Store
from gamebin.infrastructure.api.schemas import (
    BulkRequest,
    CollectionItemsResponse,
    CollectionListResponse,
    CollectionSummary,
    FilterRequest,
    ImportRequest,
)

logger = get_logger(__name__)

router = APIRouter()

EXPORT_MEDIA_TYPES = {"json": "application/json", "csv": "text/csv"}


def _items_response(name: str, items: list[dict[str, Any]]) -> CollectionItemsResponse:
    return CollectionItemsResponse(name=name, count=len(items), items=items)


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=CollectionListResponse,
)
async def list_collections(store: Store) -> CollectionListResponse:
    """List registered collections with in-memory counts and cache statistics."""
    stats = store.get_stats()
    loaded = stats["collections"]
    collections = [
        CollectionSummary(
            name=definition.name,
            title=definition.title,
            description=definition.description,
            bin_id=definition.bin_id,
            search_fields=list(definition.search_fields),
            loaded_count=loaded[definition.name]["count"] if definition.name in loaded else None,
        )
        for definition in store.catalog
    ]
    return CollectionListResponse(collections=collections, stats=stats)


@router.get(
    "/{name}",
    status_code=status.HTTP_200_OK,
    response_model=CollectionItemsResponse,
    responses={404: {"description": "Unknown collection"}},
)
async def get_collection(name: str, store: Store) -> CollectionItemsResponse:
    """Load a collection.

    Falls back to the last known copy when the remote store is unreachable
    or the hourly call ceiling has been reached.
    """
    items = await store.load(name)
    return _items_response(name, items)


@router.get(
    "/{name}/search",
    status_code=status.HTTP_200_OK,
    response_model=CollectionItemsResponse,
)
async def search_collection(
    name: str,
    store: Store,
    q: str = Query(default="", description="Search term; blank returns everything"),
    fields: str | None = Query(
        default=None, description="Comma-separated fields to search (collection defaults otherwise)"
    ),
    case_sensitive: bool = Query(default=False),
) -> CollectionItemsResponse:
    """Substring search over a collection's search fields."""
    await store.load(name)
    field_list = [field.strip() for field in fields.split(",") if field.strip()] if fields else None
    items = store.search(name, q, fields=field_list, case_sensitive=case_sensitive)
    return _items_response(name, items)


@router.post(
    "/{name}/filter",
    status_code=status.HTTP_200_OK,
    response_model=CollectionItemsResponse,
)
async def filter_collection(
    name: str, request: FilterRequest, store: Store
) -> CollectionItemsResponse:
    """Filter a collection by per-field criteria."""
    await store.load(name)
    return _items_response(name, store.filter(name, request.criteria))


@router.get(
    "/{name}/sorted",
    status_code=status.HTTP_200_OK,
    response_model=CollectionItemsResponse,
    responses={400: {"description": "Invalid sort direction"}},
)
async def sort_collection(
    name: str,
    store: Store,
    field: str = Query(..., description="Field to sort by (dotted for nested values)"),
    direction: str = Query(default="asc", description="Sort order: asc or desc"),
) -> CollectionItemsResponse:
    """Return the collection sorted by a field."""
    await store.load(name)
    try:
        items = store.sort(name, field, direction)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return _items_response(name, items)


@router.get(
    "/{name}/items/{item_id}",
    status_code=status.HTTP_200_OK,
    responses={404: {"description": "Unknown collection or item"}},
)
async def get_item(name: str, item_id: str, store: Store) -> dict[str, Any]:
    """Get a single record by id."""
    await store.load(name)
    return store.get_item(name, item_id)


@router.post(
    "/{name}/items",
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Item id already exists"}},
)
async def add_item(
    name: str, store: Store, item: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    """Add a record; an id is generated when the body has none."""
    return await store.add_item(name, item)


@router.patch(
    "/{name}/items/{item_id}",
    status_code=status.HTTP_200_OK,
    responses={404: {"description": "Unknown collection or item"}},
)
async def update_item(
    name: str, item_id: str, store: Store, updates: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    """Merge fields into a record. The id cannot be changed."""
    return await store.update_item(name, item_id, updates)


@router.delete(
    "/{name}/items/{item_id}",
    status_code=status.HTTP_200_OK,
    responses={404: {"description": "Unknown collection or item"}},
)
async def delete_item(name: str, item_id: str, store: Store) -> dict[str, Any]:
    """Delete a record and return it."""
    return await store.delete_item(name, item_id)


@router.post(
    "/{name}/bulk",
    status_code=status.HTTP_200_OK,
    response_model=CollectionItemsResponse,
)
async def bulk_apply(name: str, request: BulkRequest, store: Store) -> CollectionItemsResponse:
    """Apply several operations and persist them with a single save."""
    operations = [operation.to_operation() for operation in request.operations]
    items = await store.bulk_apply(name, operations, strict=request.strict)
    return _items_response(name, items)


@router.get(
    "/{name}/export",
    status_code=status.HTTP_200_OK,
    responses={400: {"description": "Unsupported export format"}},
)
async def export_collection(
    name: str,
    store: Store,
    format: str = Query(default="json", description="Export format: json or csv"),
) -> Response:
    """Export a collection as a JSON or CSV download."""
    await store.load(name)
    content = store.export_as(name, format)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{name}.{format}"'},
    )


@router.post(
    "/{name}/import",
    status_code=status.HTTP_200_OK,
    response_model=CollectionItemsResponse,
    responses={400: {"description": "Invalid import data"}},
)
async def import_collection(
    name: str, request: ImportRequest, store: Store
) -> CollectionItemsResponse:
    """Replace a collection with imported records, or merge new ids into it."""
    items = await store.import_into(
        name, request.data, merge=request.merge, validate=request.check_types
    )
    return _items_response(name, items)
