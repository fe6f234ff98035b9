"""Record validation against collection form schemas.

Two checks live here: form validation (required values, email and URL
shape, numeric parsing and bounds), which collects every message per field
so all of them can be shown at once, and a looser type check used when
importing data, whose findings are warnings rather than failures.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from gamebin.domain.entities.field_config import (
    FieldConfig,
    FieldKind,
    NumberField,
    ObjectField,
    Schema,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Python types accepted for each field kind by the import type check
KIND_PYTHON_TYPES: dict[FieldKind, tuple[type, ...]] = {
    FieldKind.TEXT: (str,),
    FieldKind.EMAIL: (str,),
    FieldKind.URL: (str,),
    FieldKind.TEXTAREA: (str,),
    FieldKind.SELECT: (str,),
    FieldKind.NUMBER: (int, float),
    FieldKind.CHECKBOX: (bool,),
    FieldKind.ARRAY: (list, tuple),
    FieldKind.OBJECT: (Mapping,),
}


@dataclass
class RecordValidationError:
    """A single record validation error."""

    field: str
    message: str
    code: str


def is_empty(value: Any) -> bool:
    """True for values a required field may not hold."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, Mapping)):
        return len(value) == 0
    return False


def parse_number(value: Any) -> int | float | None:
    """Parse a finite number from a number or numeric text.

    Integral text parses to int so whole numbers survive a form round trip
    unchanged. Returns None for anything else, including booleans, NaN and
    infinities.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def format_bound(bound: float) -> str:
    """Render a bound without a trailing '.0' for whole numbers."""
    if isinstance(bound, float) and bound.is_integer():
        return str(int(bound))
    return str(bound)


class RecordValidator:
    """Validator for record data against form schemas."""

    @classmethod
    def validate_email(cls, value: Any, field_path: str) -> RecordValidationError | None:
        if isinstance(value, str) and EMAIL_PATTERN.match(value):
            return None
        return RecordValidationError(
            field=field_path,
            message="Please enter a valid email address",
            code="invalid_email_format",
        )

    @classmethod
    def validate_url(cls, value: Any, field_path: str) -> RecordValidationError | None:
        """Accept absolute URLs only: a scheme and a host are both required."""
        if isinstance(value, str):
            try:
                parts = urlsplit(value.strip())
            except ValueError:
                parts = None
            if parts is not None and parts.scheme and parts.netloc:
                return None
        return RecordValidationError(
            field=field_path,
            message="Please enter a valid URL",
            code="invalid_url_format",
        )

    @classmethod
    def validate_number(
        cls, value: Any, config: NumberField, field_path: str
    ) -> list[RecordValidationError]:
        """Validate a number and, when set, its inclusive bounds.

        Below-min and above-max are reported with distinct codes and carry
        the threshold in the message.
        """
        number = parse_number(value)
        if number is None:
            return [
                RecordValidationError(
                    field=field_path,
                    message="Please enter a valid number",
                    code="invalid_number",
                )
            ]

        errors = []
        if config.min is not None and number < config.min:
            errors.append(
                RecordValidationError(
                    field=field_path,
                    message=f"Value must be at least {format_bound(config.min)}",
                    code="below_min",
                )
            )
        if config.max is not None and number > config.max:
            errors.append(
                RecordValidationError(
                    field=field_path,
                    message=f"Value must be at most {format_bound(config.max)}",
                    code="above_max",
                )
            )
        return errors

    @classmethod
    def validate_field(
        cls, value: Any, config: FieldConfig, field_path: str
    ) -> list[RecordValidationError]:
        """Validate one value against its field configuration.

        Args:
            value: The value to validate.
            config: The field configuration from the schema.
            field_path: Dotted path of the field, used as the error key.

        Returns:
            List of validation errors (empty if valid).
        """
        if is_empty(value):
            if config.required:
                return [
                    RecordValidationError(
                        field=field_path,
                        message=f"{config.label} is required",
                        code="required",
                    )
                ]
            return []

        if config.kind == FieldKind.EMAIL:
            error = cls.validate_email(value, field_path)
            return [error] if error else []

        if config.kind == FieldKind.URL:
            error = cls.validate_url(value, field_path)
            return [error] if error else []

        if isinstance(config, NumberField):
            return cls.validate_number(value, config, field_path)

        if isinstance(config, ObjectField) and isinstance(value, Mapping):
            return cls.validate_errors(config.properties, value, prefix=f"{field_path}.")

        return []

    @classmethod
    def validate_errors(
        cls, schema: Schema, record: Mapping[str, Any], prefix: str = ""
    ) -> list[RecordValidationError]:
        """Validate every schema field of a record, in schema order."""
        errors: list[RecordValidationError] = []
        for name, config in schema.items():
            errors.extend(cls.validate_field(record.get(name), config, f"{prefix}{name}"))
        return errors

    @classmethod
    def validate(cls, schema: Schema, record: Mapping[str, Any]) -> dict[str, list[str]]:
        """Validate a record and group messages by field.

        Returns:
            Field path to its messages; empty when the record is valid.
        """
        grouped: dict[str, list[str]] = {}
        for error in cls.validate_errors(schema, record):
            grouped.setdefault(error.field, []).append(error.message)
        return grouped

    @classmethod
    def type_mismatches(cls, schema: Schema, record: Mapping[str, Any]) -> list[RecordValidationError]:
        """Compare present values with the Python types their field kind expects.

        Missing and null values are not reported. Used for import warnings.
        """
        mismatches = []
        for name, config in schema.items():
            value = record.get(name)
            if value is None:
                continue
            expected = KIND_PYTHON_TYPES[config.kind]
            bool_as_number = isinstance(value, bool) and config.kind == FieldKind.NUMBER
            if bool_as_number or not isinstance(value, expected):
                mismatches.append(
                    RecordValidationError(
                        field=name,
                        message=(
                            f"Type mismatch for {name}: expected {config.kind.value}, "
                            f"got {type(value).__name__}"
                        ),
                        code="type_mismatch",
                    )
                )
        return mismatches


def validate_record(schema: Schema, record: Mapping[str, Any]) -> dict[str, list[str]]:
    """Validate a record against a schema; see RecordValidator.validate."""
    return RecordValidator.validate(schema, record)
