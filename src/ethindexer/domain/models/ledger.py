"""Domain types for ledger data and the rows derived from it."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class LedgerTransaction(BaseModel):
    """A transaction as returned by the node, quantities already parsed to ints."""

    model_config = ConfigDict(frozen=True)

    hash: str
    from_address: str
    to_address: Optional[str] = None  # None = contract creation
    value: int  # u256, wei
    gas: int  # u256
    gas_price: Optional[int] = None  # absent on some typed txs


class Block(BaseModel):
    model_config = ConfigDict(frozen=True)

    height: int
    timestamp: int  # unix seconds
    transactions: tuple[LedgerTransaction, ...] = ()


class NormalizedRow(BaseModel):
    """One persistence-ready row of the ethtxs table."""

    time: int  # int32 unix seconds
    tx_from: str
    tx_to: str  # "" for contract creation
    value: Decimal
    gas: Decimal
    gas_price: Decimal  # 0 when absent
    block: Decimal
    tx_hash: str
    contract_to: str = ""  # reserved
    contract_value: str = ""  # reserved
    status: bool
