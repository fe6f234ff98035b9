"""Field configuration variants that make up a collection schema.

A schema maps each field name to one FieldConfig variant. The variant's
class-level ``kind`` tag tells form rendering and validation which widget
and which checks apply; variant-specific settings (bounds, options, item
type, nested properties) live only on the variant that uses them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


class FieldKind(str, Enum):
    """Supported form field kinds."""

    TEXT = "text"
    EMAIL = "email"
    URL = "url"
    TEXTAREA = "textarea"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    SELECT = "select"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class FieldConfig:
    """Base field configuration shared by every variant.

    Attributes:
        label: Human-readable label derived from the field name.
        required: Whether an empty value is a validation error.
    """

    kind: ClassVar[FieldKind] = FieldKind.TEXT

    label: str
    required: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict tagged with the field kind."""
        return {"kind": self.kind.value, "label": self.label, "required": self.required}


@dataclass(frozen=True)
class TextField(FieldConfig):
    kind: ClassVar[FieldKind] = FieldKind.TEXT


@dataclass(frozen=True)
class EmailField(FieldConfig):
    kind: ClassVar[FieldKind] = FieldKind.EMAIL


@dataclass(frozen=True)
class UrlField(FieldConfig):
    kind: ClassVar[FieldKind] = FieldKind.URL


@dataclass(frozen=True)
class TextareaField(FieldConfig):
    kind: ClassVar[FieldKind] = FieldKind.TEXTAREA


@dataclass(frozen=True)
class CheckboxField(FieldConfig):
    kind: ClassVar[FieldKind] = FieldKind.CHECKBOX


@dataclass(frozen=True)
class NumberField(FieldConfig):
    """Numeric field with optional inclusive bounds."""

    kind: ClassVar[FieldKind] = FieldKind.NUMBER

    min: float | None = None
    max: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.min is not None:
            data["min"] = self.min
        if self.max is not None:
            data["max"] = self.max
        return data


@dataclass(frozen=True)
class SelectField(FieldConfig):
    """Single choice from a fixed option list."""

    kind: ClassVar[FieldKind] = FieldKind.SELECT

    options: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["options"] = list(self.options)
        return data


@dataclass(frozen=True)
class ArrayField(FieldConfig):
    """Ordered list of scalar items.

    ``item_type`` is the primitive type name of the sample's first item.
    Items are edited as text; number and boolean items are converted back
    when a form is submitted.
    """

    kind: ClassVar[FieldKind] = FieldKind.ARRAY

    item_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["itemType"] = self.item_type
        return data


@dataclass(frozen=True)
class ObjectField(FieldConfig):
    """Nested record described by its own schema."""

    kind: ClassVar[FieldKind] = FieldKind.OBJECT

    properties: dict[str, FieldConfig] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["properties"] = schema_to_dict(self.properties)
        return data


Schema = dict[str, FieldConfig]


def schema_to_dict(schema: Schema) -> dict[str, dict[str, Any]]:
    """Serialize a schema to plain dicts for JSON responses."""
    return {name: config.to_dict() for name, config in schema.items()}
