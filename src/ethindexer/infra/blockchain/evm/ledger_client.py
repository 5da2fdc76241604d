"""EVM ledger adapter: turns raw JSON-RPC payloads into domain blocks."""

import logging

from tenacity import RetryError

from ethindexer.domain.models.ledger import Block, LedgerTransaction
from ethindexer.exceptions import BlockNotFoundError, ConversionError, RPCError, TransportError
from ethindexer.infra.blockchain.base import LedgerSource
from ethindexer.infra.blockchain.evm.rpc_client import EthRPCClient, hex_to_int

logger = logging.getLogger(__name__)


def _retry_cause(exc: RetryError) -> str:
    last = exc.last_attempt.exception()
    return repr(last) if last is not None else "unknown"


def parse_transaction(raw: dict) -> LedgerTransaction:
    try:
        to_addr = raw.get("to")
        return LedgerTransaction(
            hash=raw["hash"].lower(),
            from_address=raw["from"].lower(),
            to_address=to_addr.lower() if to_addr else None,
            value=hex_to_int(raw["value"]),
            gas=hex_to_int(raw["gas"]),
            gas_price=hex_to_int(raw.get("gasPrice")),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ConversionError(f"Malformed transaction {raw.get('hash')!r}: {exc!r}") from exc


def parse_block(raw: dict, height: int) -> Block:
    try:
        number = hex_to_int(raw.get("number"))
        timestamp = hex_to_int(raw["timestamp"])
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ConversionError(f"Malformed block header at height {height}: {exc!r}") from exc

    if number is not None and number != height:
        raise ConversionError(f"Node returned block {number} for height {height}")

    txs = raw.get("transactions") or []
    return Block(
        height=height,
        timestamp=timestamp,  # type: ignore[arg-type]
        transactions=tuple(parse_transaction(tx) for tx in txs),
    )


class EthLedgerClient(LedgerSource):
    def __init__(self, rpc: EthRPCClient) -> None:
        self._rpc = rpc

    async def fetch_block(self, height: int) -> Block:
        try:
            raw = await self._rpc.get_block_by_number(height)
        except RetryError as exc:
            raise TransportError(f"Block {height}: retries exhausted ({_retry_cause(exc)})") from exc
        except RPCError as exc:
            raise TransportError(f"Block {height}: {exc}") from exc

        if raw is None:
            raise BlockNotFoundError(height)
        return parse_block(raw, height)

    async def fetch_receipt_status(self, tx_hash: str) -> bool:
        try:
            receipt = await self._rpc.get_transaction_receipt(tx_hash)
        except (RetryError, RPCError) as exc:
            logger.debug("Receipt lookup failed for %s: %r", tx_hash, exc)
            return False

        if not receipt:
            return False
        try:
            return hex_to_int(receipt.get("status")) == 1
        except (TypeError, ValueError):
            logger.debug("Unreadable receipt status for %s: %r", tx_hash, receipt.get("status"))
            return False

    async def get_head(self) -> int:
        try:
            return await self._rpc.block_number()
        except RetryError as exc:
            raise TransportError(f"eth_blockNumber: retries exhausted ({_retry_cause(exc)})") from exc
        except RPCError as exc:
            raise TransportError(str(exc)) from exc
