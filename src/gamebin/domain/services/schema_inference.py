"""Schema inference from sample records.

Builds a form schema from the shape of an example record: value types pick
the field kind and a handful of field-name heuristics refine it (email and
URL inputs, long-text areas, fixed option lists, soft numeric bounds).
Inference never fails; shapes it does not recognise become text fields.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any

from gamebin.domain.entities.field_config import (
    ArrayField,
    CheckboxField,
    EmailField,
    FieldConfig,
    NumberField,
    ObjectField,
    Schema,
    SelectField,
    TextareaField,
    TextField,
    UrlField,
)

# Field names that are always required
REQUIRED_FIELD_NAMES = frozenset({"id", "name"})

# Numeric fields whose name contains one of these get a 0..1000 soft bound
BOUNDED_NUMBER_KEYWORDS = ("health", "damage")
BOUNDED_NUMBER_MIN = 0
BOUNDED_NUMBER_MAX = 1000

SELECT_FIELD_NAMES = frozenset({"type", "rarity", "category"})

SELECT_OPTIONS: dict[str, tuple[str, ...]] = {
    "type": (
        "Predator",
        "Herbivore",
        "Omnivore",
        "Small Game",
        "Bird of Prey",
        "Reptile",
        "Aquatic",
    ),
    "rarity": ("Common", "Uncommon", "Rare", "Epic", "Legendary"),
    "category": ("Weapon", "Armor", "Food", "Tool", "Material", "Consumable"),
    "difficulty": ("Easy", "Medium", "Hard", "Expert", "Master"),
}

_CAPITAL = re.compile(r"([A-Z])")


def format_label(name: str) -> str:
    """Turn a field name into a display label.

    Inserts a space before each capital letter, capitalizes the first
    character and replaces underscores with spaces::

        >>> format_label("hunger_restore")
        'Hunger restore'
        >>> format_label("dropRate")
        'Drop Rate'
    """
    spaced = _CAPITAL.sub(r" \1", name)
    if spaced:
        spaced = spaced[0].upper() + spaced[1:]
    return spaced.replace("_", " ")


def get_select_options(field_name: str) -> tuple[str, ...]:
    """Predefined options for a select field; unknown names get none."""
    return SELECT_OPTIONS.get(field_name.lower(), ())


def primitive_type_name(value: Any) -> str | None:
    """Name of a value's JSON primitive type, or None for a missing value."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def infer_field(name: str, value: Any) -> FieldConfig:
    """Infer the field configuration for one key of a sample record."""
    label = format_label(name)
    required = name in REQUIRED_FIELD_NAMES
    lowered = name.lower()

    if value is None:
        return TextField(label=label, required=required)

    if isinstance(value, (list, tuple)):
        item_type = primitive_type_name(value[0]) if value else None
        return ArrayField(label=label, required=required, item_type=item_type)

    if isinstance(value, Mapping):
        return ObjectField(label=label, required=required, properties=infer_schema(value))

    if isinstance(value, bool):
        return CheckboxField(label=label, required=required)

    if isinstance(value, (int, float)):
        if any(keyword in lowered for keyword in BOUNDED_NUMBER_KEYWORDS):
            return NumberField(
                label=label,
                required=required,
                min=BOUNDED_NUMBER_MIN,
                max=BOUNDED_NUMBER_MAX,
            )
        return NumberField(label=label, required=required)

    if isinstance(value, str):
        if "email" in lowered:
            return EmailField(label=label, required=required)
        if "url" in lowered or "img" in lowered:
            return UrlField(label=label, required=required)
        if "desc" in lowered or "behavior" in lowered:
            return TextareaField(label=label, required=required)
        if lowered in SELECT_FIELD_NAMES:
            return SelectField(label=label, required=required, options=get_select_options(name))

    return TextField(label=label, required=required)


def infer_schema(
    sample: Mapping[str, Any] | Sequence[Mapping[str, Any]],
    merge_samples: bool = False,
) -> Schema:
    """Infer a schema from a sample record or a list of records.

    A list uses its first record as the template. Records with keys the
    first one lacks are not merged unless ``merge_samples`` is set, in which
    case every key seen in any record is included and the first non-null
    value decides its kind.

    Args:
        sample: One record, or a list of records.
        merge_samples: Union the keys of every record in a list.

    Returns:
        Schema mapping field name to its configuration.
    """
    if isinstance(sample, Mapping):
        return {key: infer_field(key, value) for key, value in sample.items()}

    if not isinstance(sample, Sequence) or isinstance(sample, (str, bytes)):
        return {}

    records = [record for record in sample if isinstance(record, Mapping)]
    if not records:
        return {}

    if not merge_samples:
        return infer_schema(records[0])

    merged: dict[str, Any] = {}
    for record in records:
        for key, value in record.items():
            if merged.get(key) is None:
                merged[key] = value
    return infer_schema(merged)
