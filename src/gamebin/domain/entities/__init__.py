"""Domain entities for GameBin.

Entities are plain dataclasses describing collections and their schemas.
They have no dependencies on infrastructure or external frameworks.
"""

from gamebin.domain.entities.collection import FIELD_TYPE_SAMPLES, CollectionDefinition
from gamebin.domain.entities.field_config import (
    ArrayField,
    CheckboxField,
    EmailField,
    FieldConfig,
    FieldKind,
    NumberField,
    ObjectField,
    Schema,
    SelectField,
    TextareaField,
    TextField,
    UrlField,
    schema_to_dict,
)

__all__ = [
    "ArrayField",
    "CheckboxField",
    "CollectionDefinition",
    "EmailField",
    "FIELD_TYPE_SAMPLES",
    "FieldConfig",
    "FieldKind",
    "NumberField",
    "ObjectField",
    "Schema",
    "SelectField",
    "TextareaField",
    "TextField",
    "UrlField",
    "schema_to_dict",
]
