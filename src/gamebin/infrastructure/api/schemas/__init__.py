"""Pydantic schemas for API requests and responses."""

from gamebin.infrastructure.api.schemas.collection_schemas import (
    BulkOperation,
    BulkRequest,
    CollectionItemsResponse,
    CollectionListResponse,
    CollectionSummary,
    FilterRequest,
    FormResponse,
    FormValidationResponse,
    FormValuesRequest,
    ImportRequest,
)

__all__ = [
    "BulkOperation",
    "BulkRequest",
    "CollectionItemsResponse",
    "CollectionListResponse",
    "CollectionSummary",
    "FilterRequest",
    "FormResponse",
    "FormValidationResponse",
    "FormValuesRequest",
    "ImportRequest",
]
