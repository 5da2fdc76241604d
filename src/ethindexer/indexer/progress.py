import logging

from ethindexer.domain.enums.status import BlockState
from ethindexer.domain.models.progress import SweepReport, UnitFailure

logger = logging.getLogger(__name__)


class ProgressState:
    """Per-run accumulator of block outcomes.

    Only touched from the event loop thread, so plain counters suffice.
    Every submitted height must reach exactly one terminal state.
    """

    def __init__(self, range_start: int, range_end: int, log_every: int = 1000) -> None:
        self.range_start = range_start
        self.range_end = range_end
        self.committed = 0
        self.rows_written = 0
        self.failures: list[UnitFailure] = []
        self._log_every = log_every
        self._in_flight: dict[int, BlockState] = {}

    @property
    def total(self) -> int:
        return self.range_end - self.range_start

    @property
    def finished(self) -> int:
        return self.committed + len(self.failures)

    @property
    def in_flight(self) -> dict[int, BlockState]:
        return dict(self._in_flight)

    def submit(self, height: int) -> None:
        if height in self._in_flight:
            raise RuntimeError(f"Height {height} submitted twice")
        self._in_flight[height] = BlockState.PENDING

    def advance(self, height: int, state: BlockState) -> None:
        if state.is_terminal:
            raise ValueError(f"{state} is terminal, use record_committed/record_failure")
        self._require(height)
        self._in_flight[height] = state

    def record_committed(self, height: int, rows: int) -> None:
        self._finish(height)
        self.committed += 1
        self.rows_written += rows
        self._maybe_log()

    def record_failure(self, height: int, state: BlockState, error: BaseException) -> None:
        if state not in (BlockState.FETCH_FAILED, BlockState.WRITE_FAILED):
            raise ValueError(f"{state} is not a failure state")
        self._finish(height)
        self.failures.append(UnitFailure(height=height, state=state, error=f"{type(error).__name__}: {error}"))
        logger.debug("Block %d %s: %r", height, state.value, error)
        self._maybe_log()

    def report(self) -> SweepReport:
        return SweepReport(
            range_start=self.range_start,
            range_end=self.range_end,
            attempted=self.finished + len(self._in_flight),
            committed=self.committed,
            failed=len(self.failures),
            rows_written=self.rows_written,
            failures=sorted(self.failures, key=lambda f: f.height),
        )

    def _require(self, height: int) -> None:
        if height not in self._in_flight:
            raise RuntimeError(f"Height {height} is not in flight")

    def _finish(self, height: int) -> None:
        self._require(height)
        del self._in_flight[height]

    def _maybe_log(self) -> None:
        done = self.finished
        if done % self._log_every == 0 or done == self.total:
            logger.info("Progress: %d/%d blocks (%d failed)", done, self.total, len(self.failures))
