"""Fetch orchestrator: sweeps a height range with bounded fetch concurrency.

Each height is one unit of work:

    PENDING -> FETCHING -> FETCHED -> WRITING -> COMMITTED | WRITE_FAILED
    PENDING -> FETCHING -> FETCH_FAILED

Fetches are admitted in ascending height order, at most ``fetch_concurrency``
at a time. A successful fetch releases its slot and hands the block to an
independent write task, so slow writes never hold back admission. Failures are
recorded per height and the sweep carries on.
"""

import asyncio
import logging

from ethindexer.domain.enums.status import BlockState
from ethindexer.domain.models.ledger import Block
from ethindexer.domain.models.progress import SweepReport
from ethindexer.exceptions import ConversionError
from ethindexer.indexer.normalizer import AddressFilter, normalize_block
from ethindexer.indexer.progress import ProgressState
from ethindexer.indexer.writer import BulkWriter
from ethindexer.infra.blockchain.base import LedgerSource

logger = logging.getLogger(__name__)


def _track(tasks: set[asyncio.Task], coro) -> asyncio.Task:
    """Schedule ``coro`` and keep it in ``tasks`` only until it finishes."""
    task = asyncio.create_task(coro)
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    return task


class FetchOrchestrator:
    def __init__(
        self,
        ledger: LedgerSource,
        writer: BulkWriter,
        fetch_concurrency: int = 60,
        receipt_concurrency: int = 16,
        fetch_receipts: bool = True,
        address_filter: AddressFilter | None = None,
        progress_every: int = 1000,
    ) -> None:
        if fetch_concurrency < 1:
            raise ValueError("fetch_concurrency must be >= 1")
        self._ledger = ledger
        self._writer = writer
        self._fetch_concurrency = fetch_concurrency
        self._receipt_concurrency = receipt_concurrency
        self._fetch_receipts = fetch_receipts
        self._filter = address_filter if address_filter else None
        self._progress_every = progress_every

    async def run(self, start: int, end: int) -> SweepReport:
        """Index every height in ``[start, end)``. Never raises for a single block's failure."""
        if start < 0 or end < start:
            raise ValueError(f"Invalid block range [{start}, {end})")

        progress = ProgressState(start, end, log_every=self._progress_every)
        logger.info(
            "Sweeping blocks [%d, %d) (%d blocks, fetch width %d)",
            start, end, end - start, self._fetch_concurrency,
        )

        slots = asyncio.Semaphore(self._fetch_concurrency)
        fetches: set[asyncio.Task] = set()
        writes: set[asyncio.Task] = set()

        for height in range(start, end):
            await slots.acquire()
            progress.submit(height)
            _track(fetches, self._fetch(height, slots, progress, writes))

        # write tasks are spawned by fetch tasks, so drain fetches first
        while fetches:
            await asyncio.gather(*fetches)
        while writes:
            await asyncio.gather(*writes)

        report = progress.report()
        self._log_summary(report)
        return report

    async def _fetch(
        self,
        height: int,
        slots: asyncio.Semaphore,
        progress: ProgressState,
        writes: set[asyncio.Task],
    ) -> None:
        try:
            progress.advance(height, BlockState.FETCHING)
            block = await self._ledger.fetch_block(height)
        except Exception as exc:
            progress.record_failure(height, BlockState.FETCH_FAILED, exc)
            return
        finally:
            slots.release()

        progress.advance(height, BlockState.FETCHED)
        _track(writes, self._write(block, progress))

    async def _write(self, block: Block, progress: ProgressState) -> None:
        progress.advance(block.height, BlockState.WRITING)
        try:
            rows = await normalize_block(
                block,
                self._ledger,
                receipt_concurrency=self._receipt_concurrency,
                fetch_receipts=self._fetch_receipts,
                keep=self._filter,
            )
            inserted = await self._writer.write_block(rows)
        except ConversionError as exc:
            logger.error("Malformed ledger data in block %d: %s", block.height, exc)
            progress.record_failure(block.height, BlockState.WRITE_FAILED, exc)
        except Exception as exc:
            progress.record_failure(block.height, BlockState.WRITE_FAILED, exc)
        else:
            progress.record_committed(block.height, inserted)

    def _log_summary(self, report: SweepReport) -> None:
        logger.info("Sweep finished: %s", report.summary())
        if report.failures:
            logger.warning("%d blocks failed; first: %d (%s)", report.failed, report.failures[0].height, report.failures[0].error)
            for failure in report.failures:
                logger.debug("  block %d %s: %s", failure.height, failure.state.value, failure.error)
