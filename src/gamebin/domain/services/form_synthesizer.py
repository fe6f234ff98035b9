"""Form synthesis from collection schemas.

Turns a schema plus current values into render-ready field descriptors, and
turns submitted form values (keyed by dotted field path) back into a record.
Rendering the descriptors is left to the caller.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from gamebin.core.logging import get_logger
from gamebin.domain.entities.field_config import (
    ArrayField,
    FieldConfig,
    FieldKind,
    NumberField,
    ObjectField,
    Schema,
    SelectField,
)
from gamebin.domain.exceptions import ValidationFailed
from gamebin.domain.services.record_validator import RecordValidator, parse_number

logger = get_logger(__name__)

# Submitted checkbox values that mean "unchecked"
UNCHECKED_VALUES = frozenset({"", "false", "off", "0", "no"})

# Item text accepted for boolean array items
BOOLEAN_ITEMS = {"true": True, "false": False}


@dataclass
class FieldDescriptor:
    """Everything needed to render one form field.

    Attributes:
        path: Dotted path of the field (``stats.speed`` for nested fields).
        name: Last path segment.
        kind: Field kind deciding the widget.
        label: Display label.
        required: Whether the field must be filled in.
        value: Current value (scalar fields only).
        options: Choices for select fields.
        min: Lower bound for number fields.
        max: Upper bound for number fields.
        item_type: Item type of array fields; number and boolean items are
            converted back from text on extraction.
        items: Current items of an array field, as text.
        children: Nested descriptors of an object field.
    """

    path: str
    name: str
    kind: FieldKind
    label: str
    required: bool = False
    value: Any = None
    options: list[str] = field(default_factory=list)
    min: float | None = None
    max: float | None = None
    item_type: str | None = None
    items: list[str] = field(default_factory=list)
    children: list["FieldDescriptor"] = field(default_factory=list)

    def append_item(self, value: str = "") -> None:
        """Add an item to an array field."""
        self.items.append(value)

    def remove_item(self, index: int) -> str:
        """Remove and return the item at ``index`` of an array field."""
        return self.items.pop(index)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.path,
            "name": self.name,
            "kind": self.kind.value,
            "label": self.label,
            "required": self.required,
        }
        if self.kind == FieldKind.ARRAY:
            data["items"] = list(self.items)
            data["itemType"] = self.item_type
        elif self.kind == FieldKind.OBJECT:
            data["children"] = [child.to_dict() for child in self.children]
        else:
            data["value"] = self.value
        if self.kind == FieldKind.SELECT:
            data["options"] = list(self.options)
        if self.kind == FieldKind.NUMBER:
            data["min"] = self.min
            data["max"] = self.max
        return data


def _item_text(item: Any) -> str:
    if item is None:
        return ""
    if isinstance(item, bool):
        return "true" if item else "false"
    return str(item)


def describe_field(path: str, name: str, config: FieldConfig, value: Any) -> FieldDescriptor:
    """Build the descriptor for one schema entry and its current value."""
    descriptor = FieldDescriptor(
        path=path,
        name=name,
        kind=config.kind,
        label=config.label,
        required=config.required,
    )

    if isinstance(config, ArrayField):
        items = value if isinstance(value, (list, tuple)) else []
        descriptor.items = [_item_text(item) for item in items]
        descriptor.item_type = config.item_type
    elif isinstance(config, ObjectField):
        nested = value if isinstance(value, Mapping) else {}
        descriptor.children = describe_form(config.properties, nested, prefix=f"{path}.")
    else:
        descriptor.value = value
        if isinstance(config, SelectField):
            descriptor.options = list(config.options)
        elif isinstance(config, NumberField):
            descriptor.min = config.min
            descriptor.max = config.max

    return descriptor


def describe_form(
    schema: Schema, data: Mapping[str, Any] | None = None, prefix: str = ""
) -> list[FieldDescriptor]:
    """Describe the form for a schema, filled with the given record's values.

    Args:
        schema: The form schema.
        data: Current record values; missing fields are left empty.
        prefix: Path prefix for nested object fields.

    Returns:
        One descriptor per schema field, in schema order.
    """
    data = data or {}
    return [
        describe_field(f"{prefix}{name}", name, config, data.get(name))
        for name, config in schema.items()
    ]


def form_values(descriptors: Sequence[FieldDescriptor]) -> dict[str, Any]:
    """Flatten descriptors into the path-to-value mapping a form submits.

    Array fields submit their item list and an object without fields
    submits ``{}``. Unchecked checkboxes are omitted, as a browser form
    would. Empty scalar fields submit None so the key survives extraction.
    """
    values: dict[str, Any] = {}
    for descriptor in descriptors:
        if descriptor.kind == FieldKind.OBJECT:
            if descriptor.children:
                values.update(form_values(descriptor.children))
            else:
                values[descriptor.path] = {}
        elif descriptor.kind == FieldKind.ARRAY:
            values[descriptor.path] = list(descriptor.items)
        elif descriptor.kind == FieldKind.CHECKBOX:
            if descriptor.value:
                values[descriptor.path] = "on"
        else:
            values[descriptor.path] = descriptor.value
    return values


def set_nested_value(target: dict[str, Any], path: str, value: Any) -> None:
    """Assign ``value`` at a dotted path, creating intermediate dicts."""
    keys = path.split(".")
    current = target
    for key in keys[:-1]:
        child = current.get(key)
        if not isinstance(child, dict):
            child = {}
            current[key] = child
        current = child
    current[keys[-1]] = value


def _config_at(schema: Schema, path: str) -> FieldConfig | None:
    """Find the field configuration addressed by a dotted path."""
    current: Schema = schema
    config: FieldConfig | None = None
    for key in path.split("."):
        config = current.get(key)
        if config is None:
            return None
        current = config.properties if isinstance(config, ObjectField) else {}
    return config


def _checkbox_paths(schema: Schema, prefix: str = "") -> list[str]:
    paths = []
    for name, config in schema.items():
        if isinstance(config, ObjectField):
            paths.extend(_checkbox_paths(config.properties, f"{prefix}{name}."))
        elif config.kind == FieldKind.CHECKBOX:
            paths.append(f"{prefix}{name}")
    return paths


def _coerce_checkbox(raw: Any) -> bool:
    if raw is None or raw is False:
        return False
    if isinstance(raw, str):
        return raw.strip().lower() not in UNCHECKED_VALUES
    return bool(raw)


def _collect_items(raw: Any) -> list[str]:
    if raw is None:
        return []
    items = raw if isinstance(raw, (list, tuple)) else [raw]
    collected = []
    for item in items:
        text = _item_text(item).strip()
        if text:
            collected.append(text)
    return collected


def _convert_items(items: list[str], item_type: str | None) -> tuple[list[Any], str | None]:
    """Convert item text back to the array's item type.

    Items that do not convert keep their text and the error message for the
    field is returned alongside.
    """
    if item_type == "number":
        numbers = [parse_number(item) for item in items]
        if any(number is None for number in numbers):
            return items, "Please enter a valid number"
        return numbers, None
    if item_type == "boolean":
        lowered = [item.lower() for item in items]
        if any(item not in BOOLEAN_ITEMS for item in lowered):
            return items, "Please enter true or false"
        return [BOOLEAN_ITEMS[item] for item in lowered], None
    return items, None


def extract_record(
    schema: Schema, values: Mapping[str, Any]
) -> tuple[dict[str, Any], dict[str, list[str]]]:
    """Build a record from submitted form values.

    Args:
        schema: The form schema the values were produced from.
        values: Raw submitted values keyed by dotted field path.

    Returns:
        Tuple of (record, errors). Errors hold per-field messages for values
        that could not be converted, such as unparseable numbers.
    """
    record: dict[str, Any] = {}
    errors: dict[str, list[str]] = {}

    for path, raw in values.items():
        config = _config_at(schema, path)
        value = raw

        if config is None:
            pass
        elif isinstance(config, ArrayField):
            value, error = _convert_items(_collect_items(raw), config.item_type)
            if error:
                errors.setdefault(path, []).append(error)
        elif config.kind == FieldKind.OBJECT:
            value = dict(raw) if isinstance(raw, Mapping) else {}
        elif config.kind == FieldKind.CHECKBOX:
            value = _coerce_checkbox(raw)
        elif config.kind == FieldKind.NUMBER:
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                value = None
            else:
                number = parse_number(raw)
                if number is None:
                    errors.setdefault(path, []).append("Please enter a valid number")
                else:
                    value = number

        set_nested_value(record, path, value)

    # Unchecked checkboxes are absent from a submission
    for path in _checkbox_paths(schema):
        if path not in values:
            set_nested_value(record, path, False)

    return record, errors


class FormSynthesizer:
    """Form operations bound to one schema for the length of a form session."""

    def __init__(self, schema: Schema):
        self.schema = schema

    def describe(self, data: Mapping[str, Any] | None = None) -> list[FieldDescriptor]:
        return describe_form(self.schema, data)

    def extract(self, values: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, list[str]]]:
        return extract_record(self.schema, values)

    def validate(self, record: Mapping[str, Any]) -> dict[str, list[str]]:
        return RecordValidator.validate(self.schema, record)

    def submit(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Extract and validate submitted values.

        Conversion errors and validation errors are merged so every problem
        is reported together.

        Raises:
            ValidationFailed: If any field has errors.
        """
        record, errors = self.extract(values)
        for path, messages in self.validate(record).items():
            known = errors.setdefault(path, [])
            known.extend(message for message in messages if message not in known)
        if errors:
            logger.info("Form submission rejected", fields=sorted(errors))
            raise ValidationFailed(errors)
        return record
