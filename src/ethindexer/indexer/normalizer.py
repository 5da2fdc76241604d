"""Ledger transaction -> ethtxs row.

Everything here is pure except the receipt lookup in ``normalize_block``.
Amounts go through their base-10 text form into Decimal, never through float.
"""

import asyncio
from collections.abc import Iterable
from decimal import Decimal

from ethindexer.domain.models.ledger import Block, LedgerTransaction, NormalizedRow
from ethindexer.exceptions import ConversionError
from ethindexer.infra.blockchain.base import LedgerSource

U256_MAX = 2**256 - 1
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def u256_to_decimal(value: int) -> Decimal:
    """Exact Decimal for an unsigned 256-bit integer."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConversionError(f"Expected an integer quantity, got {type(value).__name__}: {value!r}")
    if value < 0 or value > U256_MAX:
        raise ConversionError(f"Quantity out of u256 range: {value}")
    return Decimal(str(value))


def render_address(address: str | None) -> str:
    if not address:
        return ""
    return address.lower()


def render_hash(tx_hash: str) -> str:
    return tx_hash.lower()


def to_int32_time(timestamp: int) -> int:
    if not INT32_MIN <= timestamp <= INT32_MAX:
        raise ConversionError(f"Block timestamp {timestamp} does not fit int32")
    return timestamp


def normalize_transaction(tx: LedgerTransaction, timestamp: int, height: int, status: bool) -> NormalizedRow:
    gas_price = u256_to_decimal(tx.gas_price) if tx.gas_price is not None else Decimal(0)
    return NormalizedRow(
        time=to_int32_time(timestamp),
        tx_from=render_address(tx.from_address),
        tx_to=render_address(tx.to_address),
        value=u256_to_decimal(tx.value),
        gas=u256_to_decimal(tx.gas),
        gas_price=gas_price,
        block=u256_to_decimal(height),
        tx_hash=render_hash(tx.hash),
        status=status,
    )


class AddressFilter:
    """Keeps transactions whose sender or recipient is in a configured set.

    An empty filter keeps everything.
    """

    def __init__(self, addresses: Iterable[str] = ()) -> None:
        self._addresses = frozenset(a.lower() for a in addresses)

    def __bool__(self) -> bool:
        return bool(self._addresses)

    def __call__(self, tx: LedgerTransaction) -> bool:
        if not self._addresses:
            return True
        if tx.from_address.lower() in self._addresses:
            return True
        return tx.to_address is not None and tx.to_address.lower() in self._addresses


async def resolve_statuses(
    ledger: LedgerSource,
    txs: list[LedgerTransaction],
    concurrency: int,
) -> list[bool]:
    """Receipt status per transaction, looked up at most ``concurrency`` at a time, in input order."""
    sem = asyncio.Semaphore(concurrency)

    async def _one(tx: LedgerTransaction) -> bool:
        async with sem:
            return await ledger.fetch_receipt_status(tx.hash)

    return list(await asyncio.gather(*(_one(tx) for tx in txs)))


async def normalize_block(
    block: Block,
    ledger: LedgerSource,
    receipt_concurrency: int = 16,
    fetch_receipts: bool = True,
    keep: AddressFilter | None = None,
) -> list[NormalizedRow]:
    """One row per transaction, in block order."""
    txs = [tx for tx in block.transactions if keep is None or keep(tx)]
    if not txs:
        return []

    if fetch_receipts:
        statuses = await resolve_statuses(ledger, txs, receipt_concurrency)
    else:
        statuses = [False] * len(txs)

    return [
        normalize_transaction(tx, block.timestamp, block.height, status)
        for tx, status in zip(txs, statuses, strict=True)
    ]
