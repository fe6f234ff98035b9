"""Pydantic schemas for collection endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class CollectionSummary(BaseModel):
    """One registered collection in the listing."""

    name: str
    title: str
    description: str = ""
    bin_id: str
    search_fields: list[str] = Field(default_factory=list)
    loaded_count: int | None = Field(
        default=None,
        description="Records currently held in memory, null when never loaded",
    )


class CollectionListResponse(BaseModel):
    """Response for the collection listing."""

    collections: list[CollectionSummary]
    stats: dict[str, Any]


class CollectionItemsResponse(BaseModel):
    """Records of one collection."""

    name: str
    count: int
    items: list[dict[str, Any]]


class FilterRequest(BaseModel):
    """Request body for filtering a collection.

    Each key is a (dotted) field path mapped to one criterion:
    ``{"exact": v}``, ``{"in": [...]}``, ``{"range": {"min": a, "max": b}}``
    or ``{"contains": text}``.
    """

    criteria: dict[str, dict[str, Any]] = Field(default_factory=dict)


class BulkOperation(BaseModel):
    """One operation of a bulk request."""

    type: str = Field(..., description="Operation type: add, update or delete")
    item: dict[str, Any] | None = Field(default=None, description="Record to add")
    id: Any = Field(default=None, description="Target id for update and delete")
    updates: dict[str, Any] | None = Field(default=None, description="Fields to merge on update")

    def to_operation(self) -> dict[str, Any]:
        # Explicit nulls inside item and updates are values, not omissions
        operation: dict[str, Any] = {"type": self.type}
        if self.id is not None:
            operation["id"] = self.id
        if self.item is not None:
            operation["item"] = dict(self.item)
        if self.updates is not None:
            operation["updates"] = dict(self.updates)
        return operation


class BulkRequest(BaseModel):
    """Request body for bulk operations."""

    operations: list[BulkOperation] = Field(..., min_length=1)
    strict: bool | None = Field(
        default=None,
        description="Fail on update/delete of a missing id (server default when omitted)",
    )


class ImportRequest(BaseModel):
    """Request body for importing records."""

    data: Any = Field(
        ...,
        description="Array of records, an object holding the array under the collection name, or JSON text",
    )
    merge: bool = Field(default=False, description="Keep existing records and add new ids only")
    check_types: bool = Field(
        default=True,
        alias="validate",
        description="Log type mismatches against the collection schema",
    )

    model_config = {"populate_by_name": True}


class FormValuesRequest(BaseModel):
    """Submitted form values keyed by dotted field path."""

    values: dict[str, Any] = Field(default_factory=dict)


class FormResponse(BaseModel):
    """Schema and field descriptors for rendering a form."""

    name: str
    item_id: str | None = None
    schema_: dict[str, Any] = Field(..., alias="schema")
    fields: list[dict[str, Any]]

    model_config = {"populate_by_name": True}


class FormValidationResponse(BaseModel):
    """Record built from valid form values."""

    valid: bool = True
    record: dict[str, Any]
