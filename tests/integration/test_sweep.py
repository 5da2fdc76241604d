"""End-to-end sweeps: synthetic ledger -> orchestrator -> BulkWriter -> SQLite."""

import asyncio
import gc

import pytest

from ethindexer.db.repos.eth_tx_repo import EthTxRepo
from ethindexer.domain.enums import BlockState
from ethindexer.exceptions import TransportError, WriteError
from ethindexer.indexer.normalizer import AddressFilter
from ethindexer.indexer.orchestrator import FetchOrchestrator
from ethindexer.indexer.writer import BulkWriter
from ledger_fakes import FakeLedger, make_block


@pytest.fixture()
def writer(session_factory):
    # SQLite allows one writer at a time
    return BulkWriter(session_factory, max_concurrent_writes=1)


async def _block_counts(session_factory, heights) -> dict[int, int]:
    async with session_factory() as session:
        repo = EthTxRepo(session)
        return {h: await repo.count_for_block(h) for h in heights}


class TestFailureIsolation:
    async def test_one_failing_height(self, session_factory, writer):
        ledger = FakeLedger.with_range(100, 103, failures={101: TransportError("retries exhausted")})

        report = await FetchOrchestrator(ledger, writer, fetch_concurrency=2).run(100, 103)

        assert (report.attempted, report.committed, report.failed) == (3, 2, 1)
        assert report.failures[0].height == 101
        assert report.failures[0].state == BlockState.FETCH_FAILED
        assert await _block_counts(session_factory, [100, 101, 102]) == {100: 1, 101: 0, 102: 1}

    async def test_missing_block_is_terminal(self, session_factory, writer):
        ledger = FakeLedger.with_range(10, 12)  # 12 absent

        report = await FetchOrchestrator(ledger, writer).run(10, 13)

        assert report.committed == 2
        assert [f.height for f in report.failures] == [12]
        assert "BlockNotFoundError" in report.failures[0].error
        assert ledger.fetch_calls.count(12) == 1

    async def test_write_failure_isolated(self, session_factory):
        class FlakyWriter(BulkWriter):
            async def write_block(self, rows):
                if rows and rows[0].block == 6:
                    raise WriteError("constraint violation")
                return await super().write_block(rows)

        ledger = FakeLedger.with_range(5, 8)
        report = await FetchOrchestrator(ledger, FlakyWriter(session_factory, max_concurrent_writes=1)).run(5, 8)

        assert report.committed == 2
        assert report.failures[0].height == 6
        assert report.failures[0].state == BlockState.WRITE_FAILED
        assert await _block_counts(session_factory, [5, 6, 7]) == {5: 1, 6: 0, 7: 1}

    async def test_unexpected_error_still_recorded(self, writer):
        ledger = FakeLedger.with_range(0, 3, failures={1: RuntimeError("bug")})

        report = await FetchOrchestrator(ledger, writer).run(0, 3)

        assert report.committed + report.failed == 3
        assert report.failures[0].error == "RuntimeError: bug"


class TestCoverage:
    async def test_every_height_exactly_once(self, session_factory, writer):
        start, end = 1000, 1040
        failing = {h: TransportError("down") for h in range(start, end, 7)}
        ledger = FakeLedger.with_range(start, end, tx_count=2, failures=failing, delay=0.001)

        report = await FetchOrchestrator(ledger, writer, fetch_concurrency=5).run(start, end)

        assert report.committed + report.failed == end - start
        assert report.attempted == end - start
        assert sorted(ledger.fetch_calls) == list(range(start, end))
        assert {f.height for f in report.failures} == set(failing)
        assert report.rows_written == 2 * report.committed

    async def test_submission_is_ascending(self, writer):
        ledger = FakeLedger.with_range(0, 10)
        await FetchOrchestrator(ledger, writer, fetch_concurrency=1).run(0, 10)
        assert ledger.fetch_calls == list(range(10))

    async def test_empty_range(self, writer):
        ledger = FakeLedger()
        report = await FetchOrchestrator(ledger, writer).run(50, 50)
        assert (report.attempted, report.committed, report.failed) == (0, 0, 0)
        assert ledger.fetch_calls == []

    async def test_inverted_range(self, writer):
        with pytest.raises(ValueError):
            await FetchOrchestrator(FakeLedger(), writer).run(10, 5)

    async def test_empty_blocks_commit(self, session_factory, writer):
        ledger = FakeLedger.with_range(0, 3, tx_count=0)
        report = await FetchOrchestrator(ledger, writer).run(0, 3)
        assert report.committed == 3
        assert report.rows_written == 0


class TestConcurrency:
    @pytest.mark.parametrize("width", [1, 3, 8])
    async def test_fetch_width_respected(self, writer, width):
        ledger = FakeLedger.with_range(0, 30, delay=0.005)

        report = await FetchOrchestrator(ledger, writer, fetch_concurrency=width).run(0, 30)

        assert report.committed == 30
        assert ledger.max_in_flight == width

    async def test_fetches_not_blocked_by_writes(self):
        release = asyncio.Event()
        written: list[int] = []

        class GatedWriter:
            async def write_block(self, rows):
                await release.wait()
                written.append(int(rows[0].block))
                return len(rows)

        ledger = FakeLedger.with_range(0, 10)
        sweep = asyncio.create_task(FetchOrchestrator(ledger, GatedWriter(), fetch_concurrency=2).run(0, 10))

        for _ in range(100):
            if len(ledger.fetch_calls) == 10:
                break
            await asyncio.sleep(0.001)

        assert len(ledger.fetch_calls) == 10
        assert written == []

        release.set()
        report = await sweep
        assert report.committed == 10
        assert sorted(written) == list(range(10))

    async def test_finished_tasks_released_during_sweep(self):
        samples: list[int] = []

        class CountingWriter:
            calls = 0

            async def write_block(self, rows):
                self.calls += 1
                if self.calls % 500 == 0:
                    gc.collect()
                    samples.append(
                        sum(1 for obj in gc.get_objects() if isinstance(obj, asyncio.Task) and obj.done())
                    )
                return len(rows)

        ledger = FakeLedger.with_range(0, 3000, tx_count=0)
        report = await FetchOrchestrator(
            ledger, CountingWriter(), fetch_concurrency=4, progress_every=10_000
        ).run(0, 3000)

        assert report.committed == 3000
        assert len(samples) == 6
        assert max(samples) < 100


class TestIdempotence:
    async def test_rerun_duplicates_rows(self, session_factory, writer):
        """Without a uniqueness constraint a re-run appends the same transactions again."""
        ledger = FakeLedger.with_range(100, 103)
        orchestrator = FetchOrchestrator(ledger, writer)

        await orchestrator.run(100, 103)
        await orchestrator.run(100, 103)

        assert await _block_counts(session_factory, [100, 101, 102]) == {100: 2, 101: 2, 102: 2}
        async with session_factory() as session:
            tx = ledger.blocks[100].transactions[0]
            assert await EthTxRepo(session).count_by_hash(tx.hash) == 2

    async def test_skip_existing_makes_rerun_safe(self, session_factory):
        ledger = FakeLedger.with_range(100, 103, tx_count=2)
        orchestrator = FetchOrchestrator(ledger, BulkWriter(session_factory, max_concurrent_writes=1, skip_existing=True))

        await orchestrator.run(100, 102)
        second = await orchestrator.run(100, 103)

        assert second.committed == 3
        assert second.rows_written == 2
        assert await _block_counts(session_factory, [100, 101, 102]) == {100: 2, 101: 2, 102: 2}


class TestNormalizationInSweep:
    async def test_receipt_status_persisted(self, session_factory, writer):
        block = make_block(7, tx_count=2)
        ledger = FakeLedger(blocks={7: block}, statuses={block.transactions[0].hash: False})

        await FetchOrchestrator(ledger, writer).run(7, 8)

        async with session_factory() as session:
            rows = await EthTxRepo(session).list_for_block(7)
        assert [r.status for r in rows] == [False, True]

    async def test_address_filter(self, session_factory, writer):
        block = make_block(7, tx_count=3)
        target = block.transactions[1].from_address
        ledger = FakeLedger(blocks={7: block})

        report = await FetchOrchestrator(ledger, writer, address_filter=AddressFilter([target])).run(7, 8)

        assert report.rows_written == 1
        async with session_factory() as session:
            rows = await EthTxRepo(session).list_for_block(7)
        assert [r.txfrom for r in rows] == [target]

    async def test_conversion_error_fails_block(self, writer):
        block = make_block(3, tx_count=1, timestamp=2**31)
        ledger = FakeLedger(blocks={3: block})

        report = await FetchOrchestrator(ledger, writer).run(3, 4)

        assert report.failed == 1
        assert report.failures[0].state == BlockState.WRITE_FAILED
        assert "ConversionError" in report.failures[0].error
