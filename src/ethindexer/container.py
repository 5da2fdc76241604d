from dependency_injector import containers, providers

from ethindexer.config import Settings
from ethindexer.db.session import build_engine, build_session_factory
from ethindexer.indexer.normalizer import AddressFilter
from ethindexer.indexer.orchestrator import FetchOrchestrator
from ethindexer.indexer.writer import BulkWriter
from ethindexer.infra.blockchain.evm.ledger_client import EthLedgerClient
from ethindexer.infra.blockchain.evm.rpc_client import EthRPCClient
from ethindexer.infra.http.rate_limited_client import RateLimitedClient


class Container(containers.DeclarativeContainer):
    settings = providers.Singleton(Settings)

    engine = providers.Singleton(
        build_engine,
        database_url=settings.provided.database_url,
        echo=settings.provided.debug,
        pool_size=settings.provided.db_pool_size,
    )

    session_factory = providers.Singleton(
        build_session_factory,
        engine=engine,
    )

    http_client = providers.Singleton(
        RateLimitedClient,
        url=settings.provided.rpc_url,
        rate_per_second=settings.provided.rpc_rate_per_second,
        timeout=settings.provided.rpc_timeout,
        auth=settings.provided.rpc_auth,
    )

    rpc = providers.Singleton(
        EthRPCClient,
        http_client=http_client,
        max_attempts=settings.provided.rpc_max_attempts,
    )

    ledger = providers.Singleton(EthLedgerClient, rpc=rpc)

    writer = providers.Singleton(
        BulkWriter,
        session_factory=session_factory,
        max_concurrent_writes=settings.provided.db_pool_size,
        skip_existing=settings.provided.skip_existing,
    )

    address_filter = providers.Singleton(AddressFilter, addresses=settings.provided.address_filter)

    orchestrator = providers.Factory(
        FetchOrchestrator,
        ledger=ledger,
        writer=writer,
        fetch_concurrency=settings.provided.fetch_concurrency,
        receipt_concurrency=settings.provided.receipt_concurrency,
        fetch_receipts=settings.provided.fetch_receipts,
        address_filter=address_filter,
        progress_every=settings.provided.progress_every,
    )
