from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import func, insert, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from ethindexer.db.columns import RowColumns
from ethindexer.db.models.eth_tx import EthTx

# Parallel arrays expanded server-side into one row per element
UNNEST_INSERT = text(
    """
    INSERT INTO ethtxs (time, txfrom, txto, value, gas, gasprice, block, txhash, contract_to, contract_value, status)
    SELECT * FROM unnest(
        CAST(:time AS INTEGER[]),
        CAST(:txfrom AS TEXT[]),
        CAST(:txto AS TEXT[]),
        CAST(:value AS NUMERIC[]),
        CAST(:gas AS NUMERIC[]),
        CAST(:gasprice AS NUMERIC[]),
        CAST(:block AS NUMERIC[]),
        CAST(:txhash AS TEXT[]),
        CAST(:contract_to AS TEXT[]),
        CAST(:contract_value AS TEXT[]),
        CAST(:status AS BOOLEAN[])
    )
    """
)

# Keeps the IN (...) list of the existence check within driver parameter limits
HASH_LOOKUP_CHUNK = 500


class EthTxRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert_columns(self, columns: RowColumns) -> int:
        """One set-oriented statement for the whole batch. Returns rows submitted."""
        count = len(columns)
        if count == 0:
            return 0

        bind = self._session.get_bind()
        if bind.dialect.name == "postgresql":
            await self._session.execute(UNNEST_INSERT, columns.as_params())
        else:
            await self._session.execute(insert(EthTx), columns.as_records())
        return count

    async def get_existing_hashes(self, hashes: Sequence[str]) -> set[str]:
        found: set[str] = set()
        for i in range(0, len(hashes), HASH_LOOKUP_CHUNK):
            chunk = [h.lower() for h in hashes[i:i + HASH_LOOKUP_CHUNK]]
            result = await self._session.execute(select(EthTx.txhash).where(EthTx.txhash.in_(chunk)))
            found.update(h.lower() for h in result.scalars().all())
        return found

    async def count_for_block(self, height: int) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(EthTx).where(EthTx.block == Decimal(height))
        )
        return result.scalar_one()

    async def list_for_block(self, height: int) -> list[EthTx]:
        result = await self._session.execute(
            select(EthTx).where(EthTx.block == Decimal(height)).order_by(EthTx.id)
        )
        return list(result.scalars().all())

    async def count_all(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(EthTx))
        return result.scalar_one()

    async def count_by_hash(self, tx_hash: str) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(EthTx).where(EthTx.txhash == tx_hash.lower())
        )
        return result.scalar_one()
