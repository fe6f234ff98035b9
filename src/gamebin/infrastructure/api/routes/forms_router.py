"""Form API routes.

Serves render-ready form descriptions for a collection's schema and turns
submitted form values back into validated records.
"""

from fastapi import APIRouter, Query, status

from gamebin.core.logging import get_logger
from gamebin.domain.entities import schema_to_dict
from gamebin.domain.services import FormSynthesizer
from gamebin.infrastructure.api.dependencies import Store
from gamebin.infrastructure.api.schemas import (
    FormResponse,
    FormValidationResponse,
    FormValuesRequest,
)

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/{name}/form",
    status_code=status.HTTP_200_OK,
    response_model=FormResponse,
    responses={404: {"description": "Unknown collection or item"}},
)
async def describe_form(
    name: str,
    store: Store,
    item_id: str | None = Query(default=None, description="Record to prefill the form with"),
) -> FormResponse:
    """Describe the add form, or the edit form of an existing record."""
    schema = store.catalog.schema(name)
    data = None
    if item_id is not None:
        await store.load(name)
        data = store.get_item(name, item_id)

    fields = FormSynthesizer(schema).describe(data)
    return FormResponse(
        name=name,
        item_id=item_id,
        schema=schema_to_dict(schema),
        fields=[field.to_dict() for field in fields],
    )


@router.post(
    "/{name}/form/validate",
    status_code=status.HTTP_200_OK,
    response_model=FormValidationResponse,
    responses={422: {"description": "Form values failed validation"}},
)
async def validate_form(
    name: str, request: FormValuesRequest, store: Store
) -> FormValidationResponse:
    """Build a record from form values and validate it without saving."""
    record = FormSynthesizer(store.catalog.schema(name)).submit(request.values)
    return FormValidationResponse(record=record)
