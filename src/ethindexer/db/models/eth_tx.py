from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy import BigInteger, Boolean, Index, Integer, Text
from sqlalchemy.dialects.postgresql import CITEXT
from sqlalchemy.orm import Mapped, mapped_column

from ethindexer.db.session import Base, ExactNumeric

CaseInsensitiveText = Text().with_variant(CITEXT(), "postgresql")


class EthTx(Base):
    """Flat, append-only transaction row. No uniqueness on txhash: re-runs duplicate."""

    __tablename__ = "ethtxs"
    __table_args__ = (
        Index("ix_ethtxs_txhash", "txhash"),
        Index("ix_ethtxs_block", "block"),
    )

    id: Mapped[int] = mapped_column(BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    time: Mapped[int] = mapped_column(Integer)
    txfrom: Mapped[str] = mapped_column(CaseInsensitiveText)
    txto: Mapped[str] = mapped_column(CaseInsensitiveText)
    value: Mapped[Decimal] = mapped_column(ExactNumeric)
    gas: Mapped[Decimal] = mapped_column(ExactNumeric)
    gasprice: Mapped[Decimal] = mapped_column(ExactNumeric)
    block: Mapped[Decimal] = mapped_column(ExactNumeric)
    txhash: Mapped[str] = mapped_column(CaseInsensitiveText)
    contract_to: Mapped[str] = mapped_column(CaseInsensitiveText, default="")
    contract_value: Mapped[str] = mapped_column(CaseInsensitiveText, default="")
    status: Mapped[bool] = mapped_column(Boolean)
