"""In-memory ledger doubles shared by the test suite."""

import asyncio

from ethindexer.domain.models.ledger import Block, LedgerTransaction
from ethindexer.exceptions import BlockNotFoundError
from ethindexer.infra.blockchain.base import LedgerSource

TIMESTAMP = 1_633_000_000


def tx_hash(height: int, index: int) -> str:
    return f"0x{height:032x}{index:032x}"


def make_tx(height: int, index: int = 0, **overrides) -> LedgerTransaction:
    fields = {
        "hash": tx_hash(height, index),
        "from_address": f"0x{0xa0 + index:040x}",
        "to_address": f"0x{0xb0 + index:040x}",
        "value": 10**18 + index,
        "gas": 21_000,
        "gas_price": 30 * 10**9,
    }
    fields.update(overrides)
    return LedgerTransaction(**fields)


def make_block(height: int, tx_count: int = 1, timestamp: int = TIMESTAMP) -> Block:
    return Block(
        height=height,
        timestamp=timestamp + height,
        transactions=tuple(make_tx(height, i) for i in range(tx_count)),
    )


class FakeLedger(LedgerSource):
    """Serves prebuilt blocks and counts concurrent fetches."""

    def __init__(
        self,
        blocks: dict[int, Block] | None = None,
        failures: dict[int, Exception] | None = None,
        statuses: dict[str, bool] | None = None,
        delay: float = 0.0,
        head: int = 0,
    ) -> None:
        self.blocks = blocks or {}
        self.failures = failures or {}
        self.statuses = statuses or {}
        self.delay = delay
        self.head = head
        self.fetch_calls: list[int] = []
        self.receipt_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @classmethod
    def with_range(cls, start: int, end: int, tx_count: int = 1, **kwargs) -> "FakeLedger":
        return cls(blocks={h: make_block(h, tx_count) for h in range(start, end)}, **kwargs)

    async def fetch_block(self, height: int) -> Block:
        self.fetch_calls.append(height)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if height in self.failures:
                raise self.failures[height]
            if height not in self.blocks:
                raise BlockNotFoundError(height)
            return self.blocks[height]
        finally:
            self.in_flight -= 1

    async def fetch_receipt_status(self, tx_hash: str) -> bool:
        self.receipt_calls.append(tx_hash)
        return self.statuses.get(tx_hash, True)

    async def get_head(self) -> int:
        return self.head
