"""Process entrypoint: migrate, resolve the range, sweep, report.

Exit status: 0 when the sweep ran to the end, even if some blocks failed,
unless ``fail_on_errors`` is set, in which case any failed block gives 1.
Configuration or startup failures (before the sweep begins) give 2.
"""

import argparse
import asyncio
import logging
import sys
from typing import Sequence

from alembic import command
from alembic.config import Config as AlembicConfig
from dependency_injector import providers
from pydantic import ValidationError
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ethindexer.config import Settings
from ethindexer.container import Container
from ethindexer.domain.models.progress import SweepReport
from ethindexer.exceptions import ConfigError, TransportError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BLOCKS_FAILED = 1
EXIT_STARTUP_FAILED = 2


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format="%(asctime)s %(levelname)-5s %(name)s - %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ethindexer", description="Index a historical block range into ethtxs.")
    parser.add_argument("--start-block", type=int, dest="start_block")
    parser.add_argument("--end-block", type=int, dest="end_block", help="exclusive; defaults to the chain head")
    parser.add_argument("--concurrency", type=int, dest="fetch_concurrency", help="max in-flight block fetches")
    parser.add_argument("--receipt-concurrency", type=int, dest="receipt_concurrency")
    parser.add_argument("--no-receipts", action="store_false", dest="fetch_receipts", default=None)
    parser.add_argument("--skip-existing", action="store_true", dest="skip_existing", default=None)
    parser.add_argument("--fail-on-errors", action="store_true", dest="fail_on_errors", default=None)
    parser.add_argument("--log-level", dest="log_level")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace | None = None) -> Settings:
    """Environment/.env settings with command line values on top."""
    overrides = {k: v for k, v in vars(args or argparse.Namespace()).items() if v is not None}
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def apply_migrations(connection: Connection, alembic_ini: str) -> None:
    cfg = AlembicConfig(alembic_ini)
    cfg.attributes["connection"] = connection
    command.upgrade(cfg, "head")


def exit_code(report: SweepReport, fail_on_errors: bool) -> int:
    if fail_on_errors and report.failed:
        return EXIT_BLOCKS_FAILED
    return EXIT_OK


async def run(settings: Settings, container: Container | None = None) -> SweepReport:
    container = container or Container()
    container.settings.override(providers.Object(settings))

    engine = container.engine()
    http_client = container.http_client()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(apply_migrations, settings.alembic_ini)

        start = settings.start_block
        end = settings.end_block
        if end is None:
            end = await container.ledger().get_head()
            logger.info("Chain head resolved to %d", end)
        if end < start:
            raise ConfigError(f"start_block {start} is above the chain head {end}")

        report = await container.orchestrator().run(start, end)
    finally:
        await http_client.close()
        await engine.dispose()

    logger.info(
        "Done: attempted=%d committed=%d failed=%d rows=%d",
        report.attempted, report.committed, report.failed, report.rows_written,
    )
    return report


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args)
    except ConfigError as exc:
        print(f"ethindexer: {exc}", file=sys.stderr)
        return EXIT_STARTUP_FAILED

    setup_logging(settings.log_level)
    try:
        report = asyncio.run(run(settings))
    except (ConfigError, TransportError, SQLAlchemyError, OSError) as exc:
        logger.error("Startup failed: %s", exc)
        return EXIT_STARTUP_FAILED

    return exit_code(report, settings.fail_on_errors)
