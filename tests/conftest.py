import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ethindexer.db.session import Base
import ethindexer.db.models  # noqa: F401  register all models


@pytest.fixture()
def db_url(tmp_path) -> str:
    # file-backed so concurrent write sessions get their own connections
    return f"sqlite+aiosqlite:///{tmp_path / 'ethindexer.db'}"


@pytest.fixture()
async def engine(db_url):
    eng = create_async_engine(db_url)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
async def session(session_factory) -> AsyncSession:
    async with session_factory() as sess:
        yield sess
