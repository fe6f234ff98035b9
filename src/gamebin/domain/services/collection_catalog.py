"""Registry of the collections GameBin knows how to load and save.

Provides the built-in game-data collections and name lookup. A collection
name that is not registered here cannot be loaded, searched or modified.
"""

from collections.abc import Iterable, Iterator, Mapping

from gamebin.domain.entities.collection import CollectionDefinition
from gamebin.domain.entities.field_config import Schema
from gamebin.domain.exceptions import UnknownCollection
from gamebin.domain.services.schema_inference import infer_schema

DEFAULT_COLLECTIONS: tuple[CollectionDefinition, ...] = (
    CollectionDefinition(
        name="animals",
        bin_id="6896c65443b1c97be919f7e0",
        display_name="Animals",
        description="Game animals with stats and drops",
        field_types={
            "id": "string",
            "name": "string",
            "type": "string",
            "rarity": "string",
            "health": "number",
            "damage": "number",
            "location": "array",
            "drops": "array",
            "behavior": "string",
        },
        search_fields=("name", "type", "rarity", "location", "behavior"),
    ),
    CollectionDefinition(
        name="weapons",
        bin_id="6896c65543b1c97be919f7e1",
        display_name="Weapons",
        description="Weapon stats and abilities",
        field_types={
            "id": "number",
            "name": "string",
            "type": "string",
            "damage_type": "string",
            "keyword_type": "string",
            "desc_en": "string",
            "desc_th": "string",
            "img": "string",
        },
        search_fields=("name", "type", "damage_type", "keyword_type"),
    ),
    CollectionDefinition(
        name="armor",
        bin_id="6896c65643b1c97be919f7e2",
        display_name="Armor",
        description="Armor pieces and defense stats",
        field_types={
            "id": "string",
            "name": "string",
            "type": "string",
            "defense": "number",
            "durability": "number",
            "effects": "array",
        },
        search_fields=("name", "type", "effects"),
    ),
    CollectionDefinition(
        name="food",
        bin_id="6896c65743b1c97be919f7e3",
        display_name="Food",
        description="Food items and nutritional values",
        field_types={
            "id": "string",
            "name": "string",
            "type": "string",
            "rarity": "string",
            "hunger_restore": "number",
            "health_restore": "number",
            "effects": "array",
            "spoilage_time": "string",
            "ingredients": "array",
        },
        search_fields=("name", "type", "rarity", "effects"),
    ),
    CollectionDefinition(
        name="mods",
        bin_id="6896c65843b1c97be919f7e4",
        display_name="Modifications",
        description="Equipment modifications and upgrades",
        field_types={
            "id": "string",
            "name": "string",
            "description": "string",
            "category": "string",
            "compatibility": "array",
        },
        search_fields=("name", "description", "category"),
    ),
    CollectionDefinition(
        name="seasonal_challenges",
        bin_id="6896c65943b1c97be919f7e5",
        display_name="Seasonal Challenges",
        description="Time-limited challenges and rewards",
        field_types={
            "id": "string",
            "name": "string",
            "description": "string",
            "season": "string",
            "difficulty": "string",
            "rewards": "array",
            "requirements": "array",
        },
        search_fields=("name", "description", "season", "difficulty"),
    ),
)


class CollectionCatalog:
    """Name-indexed set of collection definitions.

    Declared schemas are inferred once per collection from the definition's
    field types and reused afterwards.
    """

    def __init__(self, definitions: Iterable[CollectionDefinition] = DEFAULT_COLLECTIONS):
        self._definitions: dict[str, CollectionDefinition] = {}
        for definition in definitions:
            if definition.name in self._definitions:
                raise ValueError(f"Duplicate collection definition '{definition.name}'")
            self._definitions[definition.name] = definition
        self._schemas: dict[str, Schema] = {}

    @classmethod
    def with_bin_overrides(
        cls,
        bin_ids: Mapping[str, str],
        definitions: Iterable[CollectionDefinition] = DEFAULT_COLLECTIONS,
    ) -> "CollectionCatalog":
        """Build a catalog whose bin ids are replaced where an override exists.

        Raises:
            UnknownCollection: If an override names an unregistered collection.
        """
        definitions = list(definitions)
        known = {definition.name for definition in definitions}
        for name in bin_ids:
            if name not in known:
                raise UnknownCollection(name)
        return cls(
            definition.with_bin_id(bin_ids[definition.name])
            if definition.name in bin_ids
            else definition
            for definition in definitions
        )

    def get(self, name: str) -> CollectionDefinition:
        """Look up a definition by collection name.

        Raises:
            UnknownCollection: If no collection has that name.
        """
        definition = self._definitions.get(name)
        if definition is None:
            raise UnknownCollection(name)
        return definition

    def schema(self, name: str) -> Schema:
        """Declared form schema for a collection."""
        if name not in self._schemas:
            self._schemas[name] = infer_schema(self.get(name).sample_record())
        return self._schemas[name]

    def names(self) -> list[str]:
        return list(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[CollectionDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)
