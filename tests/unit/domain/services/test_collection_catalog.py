"""Unit tests for CollectionCatalog."""

import pytest

from gamebin.domain.entities import ArrayField, NumberField, SelectField, TextareaField
from gamebin.domain.exceptions import UnknownCollection
from gamebin.domain.services import DEFAULT_COLLECTIONS, CollectionCatalog


class TestCollectionCatalog:
    def test_default_collections(self):
        catalog = CollectionCatalog()

        assert catalog.names() == [
            "animals",
            "weapons",
            "armor",
            "food",
            "mods",
            "seasonal_challenges",
        ]
        assert len(catalog) == 6
        assert "food" in catalog
        assert "vehicles" not in catalog

    def test_unknown_name(self):
        with pytest.raises(UnknownCollection) as exc_info:
            CollectionCatalog().get("vehicles")

        assert exc_info.value.name == "vehicles"

    def test_duplicate_definitions_rejected(self):
        with pytest.raises(ValueError):
            CollectionCatalog([DEFAULT_COLLECTIONS[0], DEFAULT_COLLECTIONS[0]])

    def test_bin_overrides(self):
        catalog = CollectionCatalog.with_bin_overrides({"food": "custom-bin"})

        assert catalog.get("food").bin_id == "custom-bin"
        assert catalog.get("animals").bin_id == DEFAULT_COLLECTIONS[0].bin_id

    def test_override_for_unknown_collection(self):
        with pytest.raises(UnknownCollection):
            CollectionCatalog.with_bin_overrides({"vehicles": "x"})

    def test_declared_schema(self):
        schema = CollectionCatalog().schema("animals")

        assert list(schema) == [
            "id",
            "name",
            "type",
            "rarity",
            "health",
            "damage",
            "location",
            "drops",
            "behavior",
        ]
        assert schema["health"] == NumberField(label="Health", min=0, max=1000)
        assert isinstance(schema["rarity"], SelectField)
        assert isinstance(schema["location"], ArrayField)
        assert isinstance(schema["behavior"], TextareaField)
        assert schema["id"].required and schema["name"].required

    def test_schema_is_cached(self):
        catalog = CollectionCatalog()

        assert catalog.schema("food") is catalog.schema("food")
