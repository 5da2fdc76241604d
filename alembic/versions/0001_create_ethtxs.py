"""create ethtxs

Revision ID: 0001_ethtxs
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from ethindexer.db.models.eth_tx import CaseInsensitiveText
from ethindexer.db.session import ExactNumeric

revision: str = "0001_ethtxs"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS citext")

    op.create_table(
        "ethtxs",
        sa.Column("id", sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True),
        sa.Column("time", sa.Integer(), nullable=False),
        sa.Column("txfrom", CaseInsensitiveText, nullable=False),
        sa.Column("txto", CaseInsensitiveText, nullable=False),
        sa.Column("value", ExactNumeric(), nullable=False),
        sa.Column("gas", ExactNumeric(), nullable=False),
        sa.Column("gasprice", ExactNumeric(), nullable=False),
        sa.Column("block", ExactNumeric(), nullable=False),
        sa.Column("txhash", CaseInsensitiveText, nullable=False),
        sa.Column("contract_to", CaseInsensitiveText, nullable=False),
        sa.Column("contract_value", CaseInsensitiveText, nullable=False),
        sa.Column("status", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ethtxs")),
    )
    # non-unique; re-runs stay duplicate-free only with skip_existing
    op.create_index("ix_ethtxs_txhash", "ethtxs", ["txhash"])
    op.create_index("ix_ethtxs_block", "ethtxs", ["block"])


def downgrade() -> None:
    op.drop_index("ix_ethtxs_block", table_name="ethtxs")
    op.drop_index("ix_ethtxs_txhash", table_name="ethtxs")
    op.drop_table("ethtxs")
