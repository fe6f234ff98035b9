"""HTTP client for the JSONBin v3 document store.

Used as the transport behind the request cache. Every request carries the
headers from ``Settings.secure_headers()`` and an explicit timeout; non-2xx
responses and transport errors surface as RemoteRequestFailed.
"""

from collections.abc import Mapping
from typing import Any

import httpx

from gamebin.core.config import Settings
from gamebin.core.logging import get_logger
from gamebin.domain.exceptions import RemoteRequestFailed

logger = get_logger(__name__)


class JsonBinClient:
    """Thin async wrapper over the JSONBin REST API."""

    def __init__(
        self,
        api_endpoint: str,
        headers: Mapping[str, str],
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            api_endpoint: Base URL, e.g. ``https://api.jsonbin.io/v3``.
            headers: Headers sent with every request.
            timeout: Request timeout in seconds.
            client: Optional shared client; a short-lived one is used per
                request otherwise.
        """
        self.api_endpoint = api_endpoint.rstrip("/")
        self.headers = dict(headers)
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "JsonBinClient":
        return cls(
            api_endpoint=settings.api_endpoint,
            headers=settings.secure_headers(),
            timeout=settings.request_timeout_seconds,
        )

    async def send(self, url: str, options: Mapping[str, Any] | None = None) -> Any:
        """Perform one request and return the decoded JSON body.

        Args:
            url: Absolute URL.
            options: ``method`` (default GET), optional JSON ``body`` and
                extra ``headers``.

        Raises:
            RemoteRequestFailed: On a transport error, a non-2xx status or a
                body that is not JSON.
        """
        options = options or {}
        method = str(options.get("method", "GET")).upper()
        headers = {**self.headers, **options.get("headers", {})}
        body = options.get("body")

        try:
            if self._client is not None:
                response = await self._client.request(
                    method, url, json=body, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Remote request failed", method=method, url=url, error=str(e))
            raise RemoteRequestFailed(f"Request to {url} failed: {e}") from e

        if not response.is_success:
            try:
                error_data = response.json()
                error_msg = error_data.get("message", response.reason_phrase)
            except ValueError:
                error_msg = response.text or response.reason_phrase
            logger.error(
                "Remote request returned error status",
                method=method,
                url=url,
                status_code=response.status_code,
                error=error_msg,
            )
            raise RemoteRequestFailed(
                f"HTTP {response.status_code}: {error_msg}", status_code=response.status_code
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteRequestFailed(
                f"Invalid JSON response from {url}", status_code=response.status_code
            ) from e

    async def __call__(self, url: str, options: Mapping[str, Any] | None = None) -> Any:
        return await self.send(url, options)

    async def read_bin(self, bin_id: str) -> Any:
        return await self.send(f"{self.api_endpoint}/b/{bin_id}/latest")

    async def update_bin(self, bin_id: str, data: Any) -> Any:
        return await self.send(f"{self.api_endpoint}/b/{bin_id}", {"method": "PUT", "body": data})

    async def create_bin(self, name: str, data: Any) -> str:
        """Create a new bin holding ``data`` and return its id.

        Raises:
            RemoteRequestFailed: If the request fails or the response has no id.
        """
        response = await self.send(
            f"{self.api_endpoint}/b",
            {"method": "POST", "body": data, "headers": {"X-Bin-Name": name}},
        )
        metadata = response.get("metadata") if isinstance(response, dict) else None
        bin_id = metadata.get("id") if isinstance(metadata, dict) else None
        if not bin_id:
            raise RemoteRequestFailed(f"Create bin '{name}' returned no bin id")
        logger.info("Bin created", name=name, bin_id=bin_id)
        return bin_id
