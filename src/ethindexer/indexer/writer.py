"""Bulk persistence: one atomic, set-oriented insert per block."""

import asyncio
import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ethindexer.db.columns import RowColumns
from ethindexer.db.repos.eth_tx_repo import EthTxRepo
from ethindexer.domain.models.ledger import NormalizedRow
from ethindexer.exceptions import WriteError

logger = logging.getLogger(__name__)


class BulkWriter:
    """Writes all rows of a block in a single transaction.

    ``max_concurrent_writes`` should match the connection pool size: callers may
    spawn any number of writes, but only that many hold a connection at once.
    With ``skip_existing`` the rows whose txhash is already stored are dropped
    before the insert, which makes re-running an overlapping range safe.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_concurrent_writes: int = 50,
        skip_existing: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self._slots = asyncio.Semaphore(max_concurrent_writes)
        self._skip_existing = skip_existing

    async def write_block(self, rows: Sequence[NormalizedRow]) -> int:
        """Persist ``rows`` atomically. Returns the number of rows inserted."""
        if not rows:
            return 0

        columns = RowColumns.from_rows(rows)
        block = rows[0].block
        try:
            async with self._slots, self._session_factory() as session, session.begin():
                repo = EthTxRepo(session)
                if self._skip_existing:
                    existing = await repo.get_existing_hashes(columns.txhash)
                    if existing:
                        logger.debug("Block %s: skipping %d already stored txs", block, len(existing))
                        columns = columns.without_hashes(existing)
                inserted = await repo.insert_columns(columns)
        except SQLAlchemyError as exc:
            raise WriteError(f"Insert of {len(rows)} rows for block {block} failed: {exc}") from exc

        return inserted
