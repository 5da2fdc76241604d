"""Outcome types for a sweep over a block range."""

from pydantic import BaseModel

from ethindexer.domain.enums.status import BlockState


class UnitFailure(BaseModel):
    """A block height that ended in a failure state, with the error that put it there."""

    height: int
    state: BlockState
    error: str


class SweepReport(BaseModel):
    range_start: int
    range_end: int
    attempted: int
    committed: int
    failed: int
    rows_written: int = 0
    failures: list[UnitFailure] = []

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def summary(self) -> str:
        return (
            f"blocks [{self.range_start}, {self.range_end}): attempted={self.attempted} "
            f"committed={self.committed} failed={self.failed} rows={self.rows_written}"
        )
