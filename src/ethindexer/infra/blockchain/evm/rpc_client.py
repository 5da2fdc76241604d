"""Ethereum JSON-RPC client: blocks with full transactions, receipts, chain head."""

import itertools
import logging

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ethindexer.exceptions import ExternalServiceError, RPCError
from ethindexer.infra.http.rate_limited_client import RateLimitedClient

logger = logging.getLogger(__name__)

# Provider codes for "limit exceeded" / "internal error": overload, worth another try
TRANSIENT_RPC_CODES = frozenset({-32005, -32603})


def hex_to_int(value: str | int | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16) if value.startswith(("0x", "0X")) else int(value)


class EthRPCClient:
    """Minimal Ethereum JSON-RPC client for block indexing."""

    def __init__(
        self,
        http_client: RateLimitedClient,
        max_attempts: int = 5,
        wait: wait_base | None = None,
    ) -> None:
        self._http = http_client
        self._max_attempts = max_attempts
        self._wait = wait if wait is not None else wait_exponential(multiplier=1, min=1, max=10)
        self._ids = itertools.count(1)

    async def _call(self, method: str, params: list) -> dict | list | str | None:
        """Execute a JSON-RPC call with retries on transient failures.

        Raises tenacity.RetryError once every attempt failed transiently,
        RPCError straight away for a permanent error.
        """
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(ExternalServiceError),
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            before_sleep=before_sleep_log(logger, logging.DEBUG),
        ):
            with attempt:
                return await self._call_once(method, params)
        return None

    async def _call_once(self, method: str, params: list) -> dict | list | str | None:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            resp = await self._http.post(json=payload)
        except httpx.TransportError as exc:
            raise ExternalServiceError(f"RPC transport failure ({method}): {exc!r}") from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            raise ExternalServiceError(f"RPC HTTP {resp.status_code} ({method})")
        if resp.status_code >= 400:
            raise RPCError(method, resp.status_code, resp.text[:200])

        try:
            data = resp.json()
        except ValueError as exc:
            # some providers answer text/plain when overloaded
            raise ExternalServiceError(f"RPC returned non-JSON body ({method})") from exc
        if not isinstance(data, dict):
            raise ExternalServiceError(f"RPC returned a non-object body ({method}): {str(data)[:200]}")

        error = data.get("error")
        if error:
            code = error.get("code")
            msg = error.get("message", str(error))
            if code in TRANSIENT_RPC_CODES:
                raise ExternalServiceError(f"RPC overloaded ({method}): [{code}] {msg}")
            raise RPCError(method, code, msg)

        return data.get("result")

    async def get_block_by_number(self, height: int) -> dict | None:
        """Fetch a block with full transaction objects. None if the node has no such block."""
        result = await self._call("eth_getBlockByNumber", [hex(height), True])
        return result  # type: ignore[return-value]

    async def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        result = await self._call("eth_getTransactionReceipt", [tx_hash])
        return result  # type: ignore[return-value]

    async def block_number(self) -> int:
        result = await self._call("eth_blockNumber", [])
        return hex_to_int(result)  # type: ignore[arg-type, return-value]
