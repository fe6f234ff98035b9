"""Collection store for remotely persisted game-data collections.

Keeps the in-memory copy of every loaded collection and offers query and
mutation operations over it. Every mutation follows the same two-phase
commit: compute the projected list, install it, await the remote save and
restore the previous copy if the save fails. Mutations on one collection are
serialized so concurrent requests never clobber each other's writes.
"""

import asyncio
import json
import locale
import math
import secrets
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Protocol

from gamebin.core.logging import get_logger
from gamebin.domain.exceptions import (
    DuplicateId,
    InvalidImport,
    InvalidOperation,
    NotFound,
    PermissionDenied,
    RemoteError,
    UnsupportedFormat,
)
from gamebin.domain.services.collection_catalog import CollectionCatalog
from gamebin.domain.services.record_validator import RecordValidator

logger = get_logger(__name__)

Record = dict[str, Any]

ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
ID_SUFFIX_LENGTH = 9

SORT_DIRECTIONS = ("asc", "desc")
EXPORT_FORMATS = ("json", "csv")
CRITERIA_KEYS = ("exact", "in", "range", "contains")


class RemoteFetch(Protocol):
    """Cached access to the remote document store."""

    async def request(self, url: str, options: Mapping[str, Any] | None = None) -> Any: ...

    def invalidate(self, *fragments: str) -> int: ...

    def stats(self) -> dict[str, Any]: ...


class RecordEncryptor(Protocol):
    def encrypt_sensitive_fields(self, record: Mapping[str, Any]) -> Record: ...

    def decrypt_sensitive_fields(self, record: Mapping[str, Any]) -> Record: ...


class AccessPolicy(Protocol):
    def is_authenticated(self) -> bool: ...

    def has_permission(self, permission: str) -> bool: ...


def generate_id(collection: str) -> str:
    """Generate a record id: ``<collection>_<epoch millis>_<9 base36 chars>``."""
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_SUFFIX_LENGTH))
    return f"{collection}_{int(time.time() * 1000)}_{suffix}"


def get_nested_value(record: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path, returning None when any segment is missing."""
    current: Any = record
    for key in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def same_id(left: Any, right: Any) -> bool:
    """Compare record ids by their text form so ``7`` matches ``"7"``."""
    if left is None or right is None:
        return False
    return str(left) == str(right)


def has_id(record: Mapping[str, Any]) -> bool:
    return record.get("id") not in (None, "")


def unwrap_envelope(name: str, payload: Any) -> list[Record]:
    """Extract a collection's records from a remote response body.

    Accepts ``{"record": ...}``, ``{name: [...]}`` (including a ``record``
    object that holds the name key) and a bare array. Any other shape is
    logged and treated as an empty collection.
    """
    data = payload
    if isinstance(data, Mapping) and "record" in data:
        data = data["record"]
    if isinstance(data, Mapping) and name in data:
        data = data[name]

    if not isinstance(data, list):
        logger.warning(
            "Unexpected collection payload, using empty list",
            collection=name,
            payload_type=type(data).__name__,
        )
        return []

    records = [dict(item) for item in data if isinstance(item, Mapping)]
    if len(records) != len(data):
        logger.warning(
            "Dropped non-object entries from collection payload",
            collection=name,
            dropped=len(data) - len(records),
        )
    return records


def _strict_equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _to_number(value: Any) -> float | None:
    if value is None or isinstance(value, (list, dict)):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def check_criteria(criteria: Any, field: str | None = None) -> None:
    """Reject a criteria value that names none of the known match kinds."""
    if not isinstance(criteria, Mapping) or not any(key in criteria for key in CRITERIA_KEYS):
        target = f" for {field!r}" if field else ""
        raise InvalidOperation(
            f"Filter criteria{target} must use one of: {', '.join(CRITERIA_KEYS)}"
        )


def matches_criteria(value: Any, criteria: Mapping[str, Any]) -> bool:
    """Check one value against a filter criteria mapping.

    The first present key among ``exact``, ``in``, ``range`` and
    ``contains`` decides.

    Raises:
        InvalidOperation: If the mapping has none of those keys.
    """
    check_criteria(criteria)

    if "exact" in criteria:
        return _strict_equal(value, criteria["exact"])

    if "in" in criteria:
        options = criteria["in"]
        if not isinstance(options, (list, tuple)):
            return False
        return any(_strict_equal(value, option) for option in options)

    if "range" in criteria:
        bounds = criteria["range"] or {}
        number = _to_number(value)
        if number is None:
            return False
        low = _to_number(bounds.get("min"))
        high = _to_number(bounds.get("max"))
        if low is not None and number < low:
            return False
        if high is not None and number > high:
            return False
        return True

    needle = _text(criteria["contains"]).lower()
    if value is None:
        return False
    if isinstance(value, (list, tuple)):
        return any(needle in _text(item).lower() for item in value)
    return needle in _text(value).lower()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _collation_key(text: str) -> tuple[str, str]:
    return (locale.strxfrm(text.casefold()), text)


def sort_records(records: Sequence[Record], field: str, direction: str = "asc") -> list[Record]:
    """Return a new list sorted by a (possibly dotted) field.

    Numbers sort numerically and strings by locale collation. Mixed or other
    types fall back to comparing their text form.

    Raises:
        ValueError: If ``direction`` is not ``asc`` or ``desc``.
    """
    if direction not in SORT_DIRECTIONS:
        raise ValueError(f"Sort direction must be 'asc' or 'desc', got {direction!r}")

    values = [get_nested_value(record, field) for record in records]
    if values and all(_is_number(value) for value in values):
        keys: list[Any] = values
    elif values and all(isinstance(value, str) for value in values):
        keys = [_collation_key(value) for value in values]
    else:
        keys = [_collation_key(_text(value)) for value in values]

    order = sorted(range(len(records)), key=keys.__getitem__, reverse=direction == "desc")
    return [records[index] for index in order]


def _csv_cell(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        text = "; ".join(_csv_cell_text(item) for item in value)
    else:
        text = _csv_cell_text(value)
    return '"' + text.replace('"', '""') + '"'


def _csv_cell_text(value: Any) -> str:
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False)
    return _text(value)


def records_to_csv(records: Sequence[Mapping[str, Any]]) -> str:
    """Render records as CSV using the first record's keys as columns."""
    if not records:
        return ""
    headers = list(records[0].keys())
    lines = [",".join(headers)]
    for record in records:
        lines.append(",".join(_csv_cell(record.get(header)) for header in headers))
    return "\n".join(lines)


class CollectionStore:
    """In-memory collections backed by the remote document store.

    Args:
        catalog: Registered collection definitions.
        remote: Cached remote access used for loads and saves.
        api_endpoint: Base URL of the remote document store.
        encryption: Optional encryptor applied to sensitive fields on the wire.
        access: Optional access policy consulted before mutations.
        strict_bulk: Default strictness of bulk_apply.
        id_factory: Callable producing a new id for a collection name.
    """

    def __init__(
        self,
        catalog: CollectionCatalog,
        remote: RemoteFetch,
        api_endpoint: str,
        encryption: RecordEncryptor | None = None,
        access: AccessPolicy | None = None,
        strict_bulk: bool = False,
        id_factory: Callable[[str], str] | None = None,
    ):
        self.catalog = catalog
        self.remote = remote
        self.api_endpoint = api_endpoint.rstrip("/")
        self.encryption = encryption
        self.access = access
        self.strict_bulk = strict_bulk
        self.id_factory = id_factory or generate_id
        self._collections: dict[str, list[Record]] = {}
        self._updated_at: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, name: str) -> asyncio.Lock:
        return self._locks.setdefault(name, asyncio.Lock())

    def _require(self, permission: str) -> None:
        if self.access is None:
            return
        if not self.access.is_authenticated() or not self.access.has_permission(permission):
            logger.warning("Permission denied", permission=permission)
            raise PermissionDenied(permission)

    def _bin_url(self, name: str, latest: bool = False) -> str:
        url = f"{self.api_endpoint}/b/{self.catalog.get(name).bin_id}"
        return f"{url}/latest" if latest else url

    def _install(self, name: str, records: list[Record]) -> None:
        self._collections[name] = records
        self._updated_at[name] = time.time()

    def _warn_type_mismatches(self, name: str, records: Iterable[Mapping[str, Any]]) -> None:
        schema = self.catalog.schema(name)
        for record in records:
            for mismatch in RecordValidator.type_mismatches(schema, record):
                logger.warning(
                    "Type mismatch",
                    collection=name,
                    field=mismatch.field,
                    item_id=record.get("id"),
                    detail=mismatch.message,
                )

    # Remote I/O

    async def _fetch(self, name: str) -> list[Record]:
        payload = await self.remote.request(self._bin_url(name, latest=True), {"method": "GET"})
        records = unwrap_envelope(name, payload)
        if self.encryption is not None:
            records = [self.encryption.decrypt_sensitive_fields(record) for record in records]
        self._install(name, records)
        logger.info("Collection loaded", collection=name, count=len(records))
        return records

    async def _put(self, name: str, records: list[Record]) -> None:
        definition = self.catalog.get(name)
        body_records = records
        if self.encryption is not None:
            body_records = [self.encryption.encrypt_sensitive_fields(record) for record in records]

        await self.remote.request(
            self._bin_url(name), {"method": "PUT", "body": {name: body_records}}
        )
        self._install(name, records)
        self.remote.invalidate(name, f"/b/{definition.bin_id}")
        logger.info("Collection saved", collection=name, count=len(records))

    async def _current(self, name: str) -> list[Record]:
        """Records a mutation starts from, fetched first if never loaded.

        Remote errors propagate here: mutating an unknown remote state would
        overwrite the stored collection.
        """
        if name not in self._collections:
            await self._fetch(name)
        return list(self._collections[name])

    async def _commit(self, name: str, projected: list[Record]) -> None:
        snapshot = self._collections.get(name)
        snapshot_time = self._updated_at.get(name)
        self._install(name, projected)
        try:
            await self._put(name, projected)
        except Exception as e:
            if snapshot is None:
                self._collections.pop(name, None)
                self._updated_at.pop(name, None)
            else:
                self._collections[name] = snapshot
                self._updated_at[name] = snapshot_time
            logger.error("Save failed, restored previous copy", collection=name, error=str(e))
            raise

    async def load(self, name: str) -> list[Record]:
        """Fetch a collection, falling back to the last known copy on failure.

        Raises:
            UnknownCollection: If the name is not registered.
        """
        self.catalog.get(name)
        try:
            records = await self._fetch(name)
        except RemoteError as e:
            logger.warning("Failed to load collection, using last known copy", collection=name, error=str(e))
            return list(self._collections.get(name, []))
        return list(records)

    async def save(self, name: str, records: Iterable[Mapping[str, Any]]) -> None:
        """Persist a full collection and make it the in-memory copy.

        Raises:
            PermissionDenied: If writing is not permitted.
            RemoteError: If the remote save fails.
        """
        self.catalog.get(name)
        self._require("write")
        async with self._lock(name):
            await self._put(name, [dict(record) for record in records])

    # Queries

    def get_collection(self, name: str) -> list[Record]:
        self.catalog.get(name)
        return list(self._collections.get(name, []))

    def get_item(self, name: str, item_id: Any) -> Record:
        for record in self.get_collection(name):
            if same_id(record.get("id"), item_id):
                return record
        raise NotFound(name, item_id)

    def search(
        self,
        name: str,
        term: str | None,
        fields: Sequence[str] | None = None,
        case_sensitive: bool = False,
    ) -> list[Record]:
        """Records where any search field contains the term.

        A blank term returns the whole collection. Array fields match when
        any element contains the term.
        """
        records = self.get_collection(name)
        if term is None or not term.strip():
            return records

        search_fields = list(fields) if fields else list(self.catalog.get(name).search_fields)
        needle = term if case_sensitive else term.lower()

        def contains(value: Any) -> bool:
            text = _text(value)
            return needle in (text if case_sensitive else text.lower())

        def matches(record: Record) -> bool:
            for field in search_fields:
                value = get_nested_value(record, field)
                if value is None:
                    continue
                if isinstance(value, (list, tuple)):
                    if any(contains(item) for item in value):
                        return True
                elif contains(value):
                    return True
            return False

        return [record for record in records if matches(record)]

    def filter(self, name: str, criteria: Mapping[str, Mapping[str, Any]]) -> list[Record]:
        """Records matching every field's criteria (see matches_criteria)."""
        for field, field_criteria in criteria.items():
            check_criteria(field_criteria, field)
        return [
            record
            for record in self.get_collection(name)
            if all(
                matches_criteria(get_nested_value(record, field), field_criteria)
                for field, field_criteria in criteria.items()
            )
        ]

    def sort(self, name: str, field: str, direction: str = "asc") -> list[Record]:
        return sort_records(self.get_collection(name), field, direction)

    # Mutations

    def _prepare_new(self, name: str, item: Mapping[str, Any], existing: Sequence[Record]) -> Record:
        record = dict(item)
        if not has_id(record):
            record["id"] = self.id_factory(name)
        elif any(same_id(other.get("id"), record["id"]) for other in existing):
            raise DuplicateId(name, record["id"])
        return record

    @staticmethod
    def _index_of(records: Sequence[Record], item_id: Any) -> int:
        for index, record in enumerate(records):
            if same_id(record.get("id"), item_id):
                return index
        return -1

    async def add_item(self, name: str, item: Mapping[str, Any]) -> Record:
        """Append a record, generating an id when it has none.

        Raises:
            DuplicateId: If a record with the same id already exists.
        """
        self.catalog.get(name)
        self._require("write")
        async with self._lock(name):
            records = await self._current(name)
            record = self._prepare_new(name, item, records)
            self._warn_type_mismatches(name, [record])
            await self._commit(name, [*records, record])
        logger.info("Item added", collection=name, item_id=record["id"])
        return record

    async def update_item(self, name: str, item_id: Any, updates: Mapping[str, Any]) -> Record:
        """Merge updates into a record; the record keeps its original id.

        Raises:
            NotFound: If no record has the id.
        """
        self.catalog.get(name)
        self._require("write")
        async with self._lock(name):
            records = await self._current(name)
            index = self._index_of(records, item_id)
            if index == -1:
                raise NotFound(name, item_id)
            original = records[index]
            updated = {**original, **updates, "id": original["id"]}
            self._warn_type_mismatches(name, [updated])
            records[index] = updated
            await self._commit(name, records)
        logger.info("Item updated", collection=name, item_id=original["id"])
        return updated

    async def delete_item(self, name: str, item_id: Any) -> Record:
        """Remove a record and return it.

        Raises:
            NotFound: If no record has the id.
            PermissionDenied: Without both delete and write permission.
        """
        self.catalog.get(name)
        self._require("delete")
        self._require("write")
        async with self._lock(name):
            records = await self._current(name)
            index = self._index_of(records, item_id)
            if index == -1:
                raise NotFound(name, item_id)
            removed = records.pop(index)
            await self._commit(name, records)
        logger.info("Item deleted", collection=name, item_id=removed.get("id"))
        return removed

    async def bulk_apply(
        self,
        name: str,
        operations: Sequence[Mapping[str, Any]],
        strict: bool | None = None,
    ) -> list[Record]:
        """Apply add/update/delete operations in order and persist once.

        Args:
            name: Collection name.
            operations: Mappings with a ``type`` of ``add`` (with ``item``),
                ``update`` (with ``id`` and ``updates``) or ``delete`` (with ``id``).
            strict: Raise NotFound for update/delete of a missing id instead of
                skipping it. Defaults to the store's ``strict_bulk`` setting.

        Returns:
            The persisted collection.

        Raises:
            InvalidOperation: On an unknown operation type or malformed operation.
            DuplicateId: If an added record's id already exists.
            NotFound: In strict mode, for a missing update/delete target.
        """
        self.catalog.get(name)
        strict = self.strict_bulk if strict is None else strict
        self._require("write")
        if any(isinstance(op, Mapping) and op.get("type") == "delete" for op in operations):
            self._require("delete")

        async with self._lock(name):
            working = await self._current(name)
            skipped = 0

            for position, operation in enumerate(operations):
                if not isinstance(operation, Mapping):
                    raise InvalidOperation(f"Operation {position} is not an object")
                op_type = operation.get("type")

                if op_type == "add":
                    item = operation.get("item")
                    if not isinstance(item, Mapping):
                        raise InvalidOperation(f"Operation {position}: 'add' requires an item object")
                    record = self._prepare_new(name, item, working)
                    self._warn_type_mismatches(name, [record])
                    working.append(record)
                    continue

                if op_type not in ("update", "delete"):
                    raise InvalidOperation(f"Operation {position}: unknown type {op_type!r}")

                item_id = operation.get("id")
                index = self._index_of(working, item_id)
                if index == -1:
                    if strict:
                        raise NotFound(name, item_id)
                    skipped += 1
                    logger.info(
                        "Bulk operation skipped, item not found",
                        collection=name,
                        operation=op_type,
                        item_id=item_id,
                    )
                    continue

                if op_type == "update":
                    updates = operation.get("updates") or {}
                    if not isinstance(updates, Mapping):
                        raise InvalidOperation(f"Operation {position}: 'updates' must be an object")
                    original = working[index]
                    working[index] = {**original, **updates, "id": original["id"]}
                    self._warn_type_mismatches(name, [working[index]])
                else:
                    working.pop(index)

            await self._commit(name, working)

        logger.info(
            "Bulk operations applied",
            collection=name,
            operations=len(operations),
            skipped=skipped,
            count=len(working),
        )
        return list(working)

    # Import / export

    def export_as(self, name: str, fmt: str = "json") -> str:
        """Serialize a collection as ``json`` or ``csv`` text.

        Raises:
            UnsupportedFormat: For any other format token.
        """
        records = self.get_collection(name)
        if fmt == "json":
            return json.dumps({name: records}, indent=2, ensure_ascii=False)
        if fmt == "csv":
            return records_to_csv(records)
        raise UnsupportedFormat(fmt)

    async def import_into(
        self,
        name: str,
        payload: str | bytes | Mapping[str, Any] | Sequence[Any],
        merge: bool = False,
        validate: bool = True,
    ) -> list[Record]:
        """Replace or extend a collection with imported records.

        Args:
            name: Collection name.
            payload: JSON text or already parsed data, either an array of
                records or an object holding the array under the name key.
            merge: Keep existing records and add only those with new ids.
                Within the payload the first record with a given id wins.
            validate: Log type mismatches against the collection schema.

        Returns:
            The persisted collection.

        Raises:
            InvalidImport: On malformed JSON or a payload that is not an
                array of objects.
        """
        self.catalog.get(name)
        self._require("write")

        data: Any = payload
        if isinstance(data, (bytes, bytearray)):
            try:
                data = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise InvalidImport("Import data is not valid UTF-8") from e
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise InvalidImport("Invalid JSON data") from e
        if isinstance(data, Mapping) and name in data:
            data = data[name]
        if not isinstance(data, list):
            raise InvalidImport("Import data must be an array")
        if not all(isinstance(item, Mapping) for item in data):
            raise InvalidImport("Import data must contain only objects")

        incoming = []
        seen: set[str] = set()
        duplicates = []
        for item in data:
            record = dict(item)
            if not has_id(record):
                record["id"] = self.id_factory(name)
            record_id = str(record["id"])
            if record_id in seen:
                duplicates.append(record_id)
                continue
            seen.add(record_id)
            incoming.append(record)

        if duplicates:
            logger.warning(
                "Dropped imported records with repeated ids",
                collection=name,
                ids=duplicates,
            )

        if validate:
            self._warn_type_mismatches(name, incoming)

        async with self._lock(name):
            if merge:
                existing = await self._current(name)
                known = {str(record.get("id")) for record in existing}
                final = existing + [record for record in incoming if str(record["id"]) not in known]
            else:
                final = incoming
            await self._commit(name, final)

        logger.info("Collection imported", collection=name, merge=merge, count=len(final))
        return list(final)

    def get_stats(self) -> dict[str, Any]:
        """Record counts per loaded collection plus cache statistics."""
        return {
            "collections": {
                name: {"count": len(records), "last_updated": self._updated_at.get(name)}
                for name, records in self._collections.items()
            },
            "cache": self.remote.stats(),
        }
