"""Column-major view of a block's rows, the shape the set-oriented insert consumes."""

from collections.abc import Collection, Sequence
from dataclasses import dataclass, field, fields
from decimal import Decimal

from ethindexer.domain.models.ledger import NormalizedRow


@dataclass
class RowColumns:
    """Parallel arrays, one per ethtxs column. Index i across all arrays is one transaction."""

    time: list[int] = field(default_factory=list)
    txfrom: list[str] = field(default_factory=list)
    txto: list[str] = field(default_factory=list)
    value: list[Decimal] = field(default_factory=list)
    gas: list[Decimal] = field(default_factory=list)
    gasprice: list[Decimal] = field(default_factory=list)
    block: list[Decimal] = field(default_factory=list)
    txhash: list[str] = field(default_factory=list)
    contract_to: list[str] = field(default_factory=list)
    contract_value: list[str] = field(default_factory=list)
    status: list[bool] = field(default_factory=list)

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_rows(cls, rows: Sequence[NormalizedRow]) -> "RowColumns":
        cols = cls()
        for row in rows:
            cols.append(row)
        return cols

    def append(self, row: NormalizedRow) -> None:
        self.time.append(row.time)
        self.txfrom.append(row.tx_from)
        self.txto.append(row.tx_to)
        self.value.append(row.value)
        self.gas.append(row.gas)
        self.gasprice.append(row.gas_price)
        self.block.append(row.block)
        self.txhash.append(row.tx_hash)
        self.contract_to.append(row.contract_to)
        self.contract_value.append(row.contract_value)
        self.status.append(row.status)

    def __len__(self) -> int:
        lengths = {len(getattr(self, name)) for name in self.names()}
        if len(lengths) > 1:
            raise ValueError(f"Column arrays are not aligned: lengths {sorted(lengths)}")
        return lengths.pop()

    def without_hashes(self, hashes: Collection[str]) -> "RowColumns":
        keep = [i for i, h in enumerate(self.txhash) if h not in hashes]
        out = RowColumns()
        for name in self.names():
            src = getattr(self, name)
            setattr(out, name, [src[i] for i in keep])
        return out

    def as_params(self) -> dict[str, list]:
        return {name: getattr(self, name) for name in self.names()}

    def as_records(self) -> list[dict]:
        names = self.names()
        return [dict(zip(names, values)) for values in zip(*(getattr(self, n) for n in names))]
