"""Abstract ledger capability consumed by the indexing pipeline."""

from abc import ABC, abstractmethod

from ethindexer.domain.models.ledger import Block


class LedgerSource(ABC):
    """Given a height, return the block; given a tx hash, return whether it succeeded."""

    @abstractmethod
    async def fetch_block(self, height: int) -> Block:
        """Return the block at ``height`` with its full transaction list.

        Raises BlockNotFoundError if the node has no block there and
        TransportError once the retry budget is exhausted.
        """

    @abstractmethod
    async def fetch_receipt_status(self, tx_hash: str) -> bool:
        """True iff the receipt confirms success. Best-effort: any failure reads as False."""

    @abstractmethod
    async def get_head(self) -> int:
        """Current chain head height."""
