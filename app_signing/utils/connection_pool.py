"""
Pooled HTTP session for build service calls.

Every endpoint of the build service is a JSON POST below one base URL, so a
single ``httpx.AsyncClient`` is opened on the first call of an invocation,
shared by all later calls and closed when the invocation ends.
"""

import asyncio
from typing import Any

import httpx
import structlog

log = structlog.get_logger(__name__)

KEEPALIVE_EXPIRY = 30.0


class ServiceSession:
    """Lazily opened client shared by all calls to one build service.

    Example:
        >>> session = ServiceSession("https://builds.example.com/api/v2", {"Authorization": "Bearer ..."})
        >>> response = await session.post_json("/credentials/fetch", {"credentialMetadata": {...}})
        >>> await session.close()
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        max_connections: int = 4,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.headers = dict(headers or {})
        self.timeout = timeout
        self.max_connections = max_connections
        # Tests pass httpx.MockTransport; HTTP/2 only applies to real connections
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def _open(self) -> httpx.AsyncClient:
        async with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    headers=self.headers,
                    timeout=self.timeout,
                    limits=httpx.Limits(
                        max_connections=self.max_connections,
                        keepalive_expiry=KEEPALIVE_EXPIRY,
                    ),
                    http2=self._transport is None,
                    transport=self._transport,
                )
                log.debug("service_session_opened", base_url=self.base_url)
            return self._client

    async def post_json(self, path: str, body: dict[str, Any]) -> httpx.Response:
        """POST ``body`` as JSON to ``path`` (relative to the base URL)."""
        client = self._client or await self._open()
        return await client.post(path, json=body)

    async def close(self) -> None:
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
                log.debug("service_session_closed", base_url=self.base_url)
