"""Unit tests for JsonBinClient."""

import json

import httpx
import pytest
import respx

from gamebin.core.config import get_settings
from gamebin.domain.exceptions import RemoteRequestFailed
from gamebin.infrastructure.remote import JsonBinClient

API = "https://jsonbin.test/v3"


@pytest.fixture
def client():
    return JsonBinClient(API, {"X-Master-Key": "secret", "Content-Type": "application/json"})


class TestJsonBinClient:
    @pytest.mark.asyncio
    @respx.mock
    async def test_read_bin_sends_master_key(self, client):
        route = respx.get(f"{API}/b/abc/latest").respond(200, json={"record": {"animals": []}})

        data = await client.read_bin("abc")

        assert data == {"record": {"animals": []}}
        assert route.calls.last.request.headers["X-Master-Key"] == "secret"

    @pytest.mark.asyncio
    @respx.mock
    async def test_update_bin_puts_json_body(self, client):
        route = respx.put(f"{API}/b/abc").respond(200, json={"record": {"animals": [{"id": "1"}]}})

        await client.update_bin("abc", {"animals": [{"id": "1"}]})

        assert json.loads(route.calls.last.request.content) == {"animals": [{"id": "1"}]}

    @pytest.mark.asyncio
    @respx.mock
    async def test_call_uses_options(self, client):
        route = respx.put(f"{API}/b/abc").respond(200, json={})

        await client(f"{API}/b/abc", {"method": "put", "body": [], "headers": {"X-Bin-Meta": "false"}})

        request = route.calls.last.request
        assert request.headers["X-Bin-Meta"] == "false"
        assert request.headers["X-Master-Key"] == "secret"

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_uses_message(self, client):
        respx.get(f"{API}/b/abc/latest").respond(401, json={"message": "Invalid X-Master-Key"})

        with pytest.raises(RemoteRequestFailed) as exc_info:
            await client.read_bin("abc")

        assert exc_info.value.status_code == 401
        assert str(exc_info.value) == "HTTP 401: Invalid X-Master-Key"

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_without_json(self, client):
        respx.get(f"{API}/b/abc/latest").respond(503, text="down")

        with pytest.raises(RemoteRequestFailed) as exc_info:
            await client.read_bin("abc")

        assert str(exc_info.value) == "HTTP 503: down"

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error(self, client):
        respx.get(f"{API}/b/abc/latest").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(RemoteRequestFailed) as exc_info:
            await client.read_bin("abc")

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_json_body(self, client):
        respx.get(f"{API}/b/abc/latest").respond(200, text="<html>")

        with pytest.raises(RemoteRequestFailed):
            await client.read_bin("abc")

    @pytest.mark.asyncio
    @respx.mock
    async def test_empty_body(self, client):
        respx.put(f"{API}/b/abc").respond(204)

        assert await client.update_bin("abc", {}) is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_bin_returns_id(self, client):
        route = respx.post(f"{API}/b").respond(200, json={"metadata": {"id": "new-bin"}})

        bin_id = await client.create_bin("game_animals", {"animals": []})

        assert bin_id == "new-bin"
        assert route.calls.last.request.headers["X-Bin-Name"] == "game_animals"

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_bin_without_id(self, client):
        respx.post(f"{API}/b").respond(200, json={"metadata": {}})

        with pytest.raises(RemoteRequestFailed):
            await client.create_bin("game_animals", {"animals": []})

    @pytest.mark.asyncio
    @respx.mock
    async def test_shared_client(self):
        respx.get(f"{API}/b/abc/latest").respond(200, json=[1])

        async with httpx.AsyncClient() as http:
            client = JsonBinClient(API, {}, client=http)
            assert await client.read_bin("abc") == [1]


def test_from_settings():
    client = JsonBinClient.from_settings(get_settings())

    assert client.api_endpoint == "https://jsonbin.test/v3"
    assert client.headers["X-Master-Key"] == "test-master-key"
    assert client.headers["X-Requested-With"] == "XMLHttpRequest"
