"""Unit tests for CollectionStore loading, saving and mutations."""

import re

import pytest

from gamebin.domain.exceptions import (
    DuplicateId,
    InvalidImport,
    InvalidOperation,
    NotFound,
    PermissionDenied,
    RateLimitExceeded,
    RemoteRequestFailed,
    UnknownCollection,
)
from gamebin.domain.services import CollectionStore, generate_id, unwrap_envelope
from gamebin.infrastructure.auth import StaticAccessPolicy
from gamebin.infrastructure.security import FieldEncryptor


def make_store(catalog, remote, **kwargs) -> CollectionStore:
    return CollectionStore(catalog=catalog, remote=remote, api_endpoint="https://jsonbin.test/v3", **kwargs)


class TestUnwrapEnvelope:
    def test_record_holding_collection(self):
        assert unwrap_envelope("animals", {"record": {"animals": [{"id": "1"}]}}) == [{"id": "1"}]

    def test_record_array(self):
        assert unwrap_envelope("animals", {"record": [{"id": "1"}]}) == [{"id": "1"}]

    def test_collection_key(self):
        assert unwrap_envelope("animals", {"animals": [{"id": "1"}]}) == [{"id": "1"}]

    def test_bare_array(self):
        assert unwrap_envelope("animals", [{"id": "1"}]) == [{"id": "1"}]

    @pytest.mark.parametrize("payload", [{"record": "oops"}, {"weapons": []}, None, 42])
    def test_unexpected_shapes_give_empty_list(self, payload):
        assert unwrap_envelope("animals", payload) == []


class TestGenerateId:
    def test_format(self):
        assert re.fullmatch(r"animals_\d{13}_[0-9a-z]{9}", generate_id("animals"))

    def test_unique(self):
        assert generate_id("food") != generate_id("food")


class TestLoad:
    @pytest.mark.asyncio
    async def test_load_fetches_latest_bin(self, store, remote, animals):
        remote.seed("animals", animals)

        records = await store.load("animals")

        assert records == animals
        assert remote.requests[0] == (f"{remote.bin_url('animals')}/latest", {"method": "GET"})
        assert store.get_collection("animals") == animals

    @pytest.mark.asyncio
    async def test_load_unknown_collection(self, store):
        with pytest.raises(UnknownCollection):
            await store.load("vehicles")

    @pytest.mark.asyncio
    async def test_load_falls_back_to_last_known_copy(self, store, remote, animals):
        remote.seed("animals", animals)
        await store.load("animals")
        remote.fail_get = RateLimitExceeded(200, 60)

        records = await store.load("animals")

        assert records == animals

    @pytest.mark.asyncio
    async def test_load_failure_without_copy_is_empty(self, store, remote):
        remote.fail_get = RemoteRequestFailed("HTTP 500: boom", status_code=500)

        assert await store.load("animals") == []


class TestSave:
    @pytest.mark.asyncio
    async def test_save_puts_wrapped_records_and_invalidates(self, store, remote, animals):
        await store.save("animals", animals)

        url, options = remote.puts()[0]
        assert url == remote.bin_url("animals")
        assert options == {"method": "PUT", "body": {"animals": animals}}
        assert remote.invalidated == [("animals", f"/b/{url.rsplit('/', 1)[-1]}")]
        assert store.get_collection("animals") == animals

    @pytest.mark.asyncio
    async def test_save_failure_propagates(self, store, remote, animals):
        remote.fail_put = RemoteRequestFailed("HTTP 401: Unauthorized", status_code=401)

        with pytest.raises(RemoteRequestFailed):
            await store.save("animals", animals)

        assert store.get_collection("animals") == []

    @pytest.mark.asyncio
    async def test_save_requires_write(self, catalog, remote, animals):
        store = make_store(catalog, remote, access=StaticAccessPolicy(["read"]))

        with pytest.raises(PermissionDenied):
            await store.save("animals", animals)

        assert remote.requests == []


class TestAddItem:
    @pytest.mark.asyncio
    async def test_add_then_get_collection(self, store, remote):
        await store.add_item("animals", {"id": "animal_fox", "name": "Fox"})

        records = store.get_collection("animals")
        assert [r for r in records if r["id"] == "animal_fox"] == [{"id": "animal_fox", "name": "Fox"}]
        assert remote.stored("animals") == records

    @pytest.mark.asyncio
    async def test_duplicate_id_leaves_collection_unchanged(self, store, remote, animals):
        remote.seed("animals", animals)
        await store.load("animals")

        with pytest.raises(DuplicateId):
            await store.add_item("animals", {"id": "animal_wolf", "name": "Another wolf"})

        assert store.get_collection("animals") == animals
        assert remote.puts() == []

    @pytest.mark.asyncio
    async def test_duplicate_check_compares_id_text(self, store, remote):
        remote.seed("weapons", [{"id": 7, "name": "Axe"}])

        with pytest.raises(DuplicateId):
            await store.add_item("weapons", {"id": "7", "name": "Sword"})

    @pytest.mark.asyncio
    async def test_missing_id_is_generated(self, store):
        record = await store.add_item("animals", {"name": "Fox"})

        assert record["id"] == "animals_1"
        assert store.get_item("animals", "animals_1")["name"] == "Fox"

    @pytest.mark.asyncio
    async def test_input_is_not_mutated(self, store):
        item = {"name": "Fox"}

        await store.add_item("animals", item)

        assert item == {"name": "Fox"}

    @pytest.mark.asyncio
    async def test_add_fetches_unloaded_collection_first(self, store, remote, animals):
        remote.seed("animals", animals)

        await store.add_item("animals", {"id": "animal_fox", "name": "Fox"})

        assert len(remote.stored("animals")) == len(animals) + 1

    @pytest.mark.asyncio
    async def test_failed_save_restores_previous_copy(self, store, remote, animals):
        remote.seed("animals", animals)
        await store.load("animals")
        remote.fail_put = RemoteRequestFailed("HTTP 503: Unavailable", status_code=503)

        with pytest.raises(RemoteRequestFailed):
            await store.add_item("animals", {"id": "animal_fox", "name": "Fox"})

        assert store.get_collection("animals") == animals

    @pytest.mark.asyncio
    async def test_add_requires_write(self, catalog, remote):
        store = make_store(catalog, remote, access=StaticAccessPolicy(["read"]))

        with pytest.raises(PermissionDenied) as exc_info:
            await store.add_item("animals", {"name": "Fox"})

        assert exc_info.value.permission == "write"
        assert remote.requests == []

    @pytest.mark.asyncio
    async def test_unauthenticated_caller_is_denied(self, catalog, remote):
        store = make_store(catalog, remote, access=StaticAccessPolicy(authenticated=False))

        with pytest.raises(PermissionDenied):
            await store.add_item("animals", {"name": "Fox"})


class TestUpdateItem:
    @pytest.mark.asyncio
    async def test_update_merges_and_keeps_id(self, store, remote, animals):
        remote.seed("animals", animals)

        updated = await store.update_item("animals", "animal_wolf", {"id": "hijack", "health": 120})

        assert updated["id"] == "animal_wolf"
        assert updated["health"] == 120
        assert updated["name"] == "Wolf"
        assert store.get_item("animals", "animal_wolf")["health"] == 120
        assert remote.stored("animals")[0]["health"] == 120

    @pytest.mark.asyncio
    async def test_update_missing_id(self, store, remote, animals):
        remote.seed("animals", animals)

        with pytest.raises(NotFound):
            await store.update_item("animals", "animal_dragon", {"health": 1})

        assert remote.puts() == []


class TestDeleteItem:
    @pytest.mark.asyncio
    async def test_delete_removes_exactly_one(self, store, remote, animals):
        remote.seed("animals", animals)

        removed = await store.delete_item("animals", "animal_bear")

        assert removed["name"] == "Bear"
        assert [r["id"] for r in store.get_collection("animals")] == ["animal_wolf", "animal_rabbit"]

        with pytest.raises(NotFound):
            await store.delete_item("animals", "animal_bear")

    @pytest.mark.asyncio
    async def test_delete_requires_delete_permission(self, catalog, remote, animals):
        remote.seed("animals", animals)
        store = make_store(catalog, remote, access=StaticAccessPolicy(["read", "write"]))

        with pytest.raises(PermissionDenied) as exc_info:
            await store.delete_item("animals", "animal_bear")

        assert exc_info.value.permission == "delete"


class TestBulkApply:
    @pytest.mark.asyncio
    async def test_lenient_skips_missing_ids(self, store, remote, animals):
        remote.seed("animals", animals)

        result = await store.bulk_apply(
            "animals",
            [
                {"type": "add", "item": {"name": "Fox"}},
                {"type": "update", "id": "animal_dragon", "updates": {"health": 1}},
                {"type": "update", "id": "animal_wolf", "updates": {"health": 110}},
                {"type": "delete", "id": "animal_bear"},
                {"type": "delete", "id": "animal_ghost"},
            ],
        )

        assert [r["id"] for r in result] == ["animal_wolf", "animal_rabbit", "animals_1"]
        assert result[0]["health"] == 110
        assert len(remote.puts()) == 1

    @pytest.mark.asyncio
    async def test_strict_raises_and_persists_nothing(self, store, remote, animals):
        remote.seed("animals", animals)
        await store.load("animals")

        with pytest.raises(NotFound):
            await store.bulk_apply(
                "animals",
                [
                    {"type": "delete", "id": "animal_wolf"},
                    {"type": "delete", "id": "animal_ghost"},
                ],
                strict=True,
            )

        assert remote.puts() == []
        assert store.get_collection("animals") == animals

    @pytest.mark.asyncio
    async def test_store_default_strictness(self, catalog, remote, animals):
        remote.seed("animals", animals)
        store = make_store(catalog, remote, strict_bulk=True)

        with pytest.raises(NotFound):
            await store.bulk_apply("animals", [{"type": "update", "id": "nope", "updates": {}}])

    @pytest.mark.asyncio
    async def test_unknown_operation_type(self, store, remote, animals):
        remote.seed("animals", animals)

        with pytest.raises(InvalidOperation):
            await store.bulk_apply("animals", [{"type": "upsert", "id": "animal_wolf"}])

        assert remote.puts() == []

    @pytest.mark.asyncio
    async def test_add_with_existing_id(self, store, remote, animals):
        remote.seed("animals", animals)

        with pytest.raises(DuplicateId):
            await store.bulk_apply("animals", [{"type": "add", "item": {"id": "animal_wolf"}}])

    @pytest.mark.asyncio
    async def test_operations_see_earlier_operations(self, store, remote):
        result = await store.bulk_apply(
            "animals",
            [
                {"type": "add", "item": {"id": "a", "name": "A"}},
                {"type": "update", "id": "a", "updates": {"name": "B"}},
            ],
            strict=True,
        )

        assert result == [{"id": "a", "name": "B"}]


class TestImport:
    @pytest.mark.asyncio
    async def test_import_replaces_collection(self, store, remote, animals):
        remote.seed("animals", animals)
        await store.load("animals")

        result = await store.import_into("animals", '{"animals": [{"id": "x", "name": "X"}, {"name": "Y"}]}')

        assert result == [{"id": "x", "name": "X"}, {"id": "animals_1", "name": "Y"}]
        assert remote.stored("animals") == result

    @pytest.mark.asyncio
    async def test_import_merge_skips_known_ids(self, store, remote, animals):
        remote.seed("animals", animals)

        result = await store.import_into(
            "animals",
            [{"id": "animal_wolf", "name": "Changed"}, {"id": "animal_fox", "name": "Fox"}],
            merge=True,
        )

        assert [r["id"] for r in result] == ["animal_wolf", "animal_bear", "animal_rabbit", "animal_fox"]
        assert result[0]["name"] == "Wolf"

    @pytest.mark.asyncio
    async def test_import_keeps_first_of_repeated_ids(self, store, remote):
        result = await store.import_into(
            "animals",
            [{"id": "x", "name": "A"}, {"id": "x", "name": "B"}, {"id": 7}, {"id": "7"}],
        )

        assert result == [{"id": "x", "name": "A"}, {"id": 7}]
        assert remote.stored("animals") == result

    @pytest.mark.asyncio
    async def test_import_merge_drops_repeated_new_ids(self, store, remote, animals):
        remote.seed("animals", animals)

        result = await store.import_into(
            "animals",
            [{"id": "animal_fox", "name": "Fox"}, {"id": "animal_fox", "name": "Other fox"}],
            merge=True,
        )

        fox = [record for record in result if record["id"] == "animal_fox"]
        assert fox == [{"id": "animal_fox", "name": "Fox"}]
        assert len({str(record["id"]) for record in result}) == len(result)

    @pytest.mark.asyncio
    async def test_import_accepts_bytes(self, store):
        result = await store.import_into("food", b'[{"id": "f1", "name": "Berries"}]')

        assert result == [{"id": "f1", "name": "Berries"}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        ["{not json", '{"animals": {"id": "x"}}', '"text"', "[1, 2]", b"\xff\xfe"],
    )
    async def test_invalid_import(self, store, remote, payload):
        with pytest.raises(InvalidImport):
            await store.import_into("animals", payload)

        assert remote.puts() == []

    @pytest.mark.asyncio
    async def test_type_mismatches_do_not_block(self, store):
        result = await store.import_into("animals", [{"id": "x", "health": "lots"}], validate=True)

        assert result == [{"id": "x", "health": "lots"}]


class TestEncryption:
    @pytest.mark.asyncio
    async def test_sensitive_fields_are_encrypted_on_the_wire(self, catalog, remote):
        encryptor = FieldEncryptor("test-secret", sensitive_fields=["description"])
        store = make_store(catalog, remote, encryption=encryptor)

        await store.add_item("mods", {"id": "m1", "name": "Scope", "description": "Zoom x4"})

        stored = remote.stored("mods")[0]
        assert stored["description"] != "Zoom x4"
        assert stored["name"] == "Scope"
        assert store.get_item("mods", "m1")["description"] == "Zoom x4"

        fresh = make_store(catalog, remote, encryption=encryptor)
        assert (await fresh.load("mods"))[0]["description"] == "Zoom x4"


class TestStats:
    @pytest.mark.asyncio
    async def test_stats_count_loaded_collections(self, store, remote, animals):
        remote.seed("animals", animals)
        await store.load("animals")

        stats = store.get_stats()

        assert stats["collections"]["animals"]["count"] == 3
        assert "weapons" not in stats["collections"]
        assert stats["cache"]["remote_calls"] == 1
