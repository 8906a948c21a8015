from datetime import timedelta
from typing import List

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from library_service.main import app
from library_service.core.database import Base, get_session_maker
from library_service.core.transaction import Transactor
from library_service.models.outbox import OutboxMessage
from library_service.repositories.author import AuthorRepository
from library_service.repositories.book import BookRepository
from library_service.repositories.outbox import OutboxStore
from library_service.schemas.outbox import OutboxData
from library_service.services.library import LibraryService


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    # A file database so that concurrent sessions get their own connections.
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'library.db'}",
        poolclass=NullPool,
        echo=False
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def test_session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def transactor(test_session_maker):
    return Transactor(test_session_maker)


@pytest.fixture
def outbox_store(test_session_maker):
    return OutboxStore(test_session_maker)


@pytest.fixture
def library_service(test_session_maker, outbox_store, transactor):
    return LibraryService(
        AuthorRepository(test_session_maker),
        BookRepository(test_session_maker),
        outbox_store,
        transactor
    )


@pytest_asyncio.fixture
async def client(test_session_maker):
    app.dependency_overrides[get_session_maker] = lambda: test_session_maker

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def fetch_outbox(test_session_maker):
    async def fetch() -> List[OutboxMessage]:
        async with test_session_maker() as session:
            result = await session.execute(
                select(OutboxMessage).order_by(OutboxMessage.created_at)
            )
            return list(result.scalars().all())

    return fetch


class PassthroughTransactor:
    def __init__(self) -> None:
        self.calls = 0

    async def with_tx(self, unit):
        self.calls += 1
        return await unit()


class RecordingStore:
    """Hands out queued batches and records mark_processed calls."""

    def __init__(self) -> None:
        self.batches: List[List[OutboxData]] = []
        self.claim_calls: List[tuple] = []
        self.marked: List[List[str]] = []

    async def claim_batch(self, batch_size: int, lease_ttl: timedelta) -> List[OutboxData]:
        self.claim_calls.append((batch_size, lease_ttl))
        if self.batches:
            return self.batches.pop(0)
        return []

    async def mark_processed(self, idempotency_keys) -> None:
        self.marked.append(list(idempotency_keys))


@pytest.fixture
def passthrough_transactor():
    return PassthroughTransactor()


@pytest.fixture
def recording_store():
    return RecordingStore()
