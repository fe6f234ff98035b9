"""Collection entity describing one remotely stored game-data collection.

Each collection lives in its own remote bin. The definition carries the
bin id, a basic type per field (used to type-check imports and to derive
the declared form schema) and the fields searched by default.
"""

from dataclasses import dataclass, replace
from typing import Any

# Basic field types and the sample value used to derive a form schema
FIELD_TYPE_SAMPLES: dict[str, Any] = {
    "string": "",
    "number": 0,
    "boolean": False,
    "array": [""],
    "object": {},
}


@dataclass(frozen=True)
class CollectionDefinition:
    """Collection definition.

    Attributes:
        name: Collection name, also the key records are wrapped under remotely.
        bin_id: Opaque identifier of the remote document holding the collection.
        field_types: Basic type per field (string, number, boolean, array, object).
        search_fields: Fields searched when a search names none.
        display_name: Human-readable collection name.
        description: Short description for listings.
    """

    name: str
    bin_id: str
    field_types: dict[str, str]
    search_fields: tuple[str, ...] = ()
    display_name: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        """Validate definition data after initialization."""
        if not self.name:
            raise ValueError("Collection name is required")
        if not self.bin_id:
            raise ValueError(f"Collection '{self.name}' requires a bin id")
        unknown = set(self.field_types.values()) - set(FIELD_TYPE_SAMPLES)
        if unknown:
            raise ValueError(
                f"Collection '{self.name}' uses unknown field types: {', '.join(sorted(unknown))}"
            )

    @property
    def title(self) -> str:
        return self.display_name or self.name.replace("_", " ").title()

    def sample_record(self) -> dict[str, Any]:
        """A record with one placeholder value per declared field."""
        return {
            name: _copy_sample(FIELD_TYPE_SAMPLES[field_type])
            for name, field_type in self.field_types.items()
        }

    def with_bin_id(self, bin_id: str) -> "CollectionDefinition":
        return replace(self, bin_id=bin_id)


def _copy_sample(value: Any) -> Any:
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value
