import asyncio
import time

import httpx


class RateLimitedClient:
    """Async HTTP client for a single JSON-RPC endpoint with interval-based pacing.

    Every request waits for its slot, so the aggregate request rate stays below
    ``rate_per_second`` regardless of how many tasks share the client.
    """

    def __init__(
        self,
        url: str,
        rate_per_second: float = 50.0,
        timeout: float = 60.0,
        auth: tuple[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._min_interval = 1.0 / rate_per_second
        self._last_request_time = 0.0
        self._lock = asyncio.Lock()
        self._client = httpx.AsyncClient(
            timeout=timeout,
            auth=httpx.BasicAuth(*auth) if auth else None,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    @property
    def url(self) -> str:
        return self._url

    async def _wait_for_slot(self) -> None:
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()

    async def post(self, json: dict | list) -> httpx.Response:
        await self._wait_for_slot()
        return await self._client.post(self._url, json=json)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RateLimitedClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
