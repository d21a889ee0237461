import typing

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from src.app import app
from src.database import get_ticket_service
from src.domain import Event, User
from src.models import Base
from src.service import TicketService
from src.sql_store import SqlAlchemyUnitOfWork


@pytest.fixture(scope='session')
def postgres_container() -> typing.Generator[PostgresContainer, None, None]:
    with PostgresContainer('postgres:16', driver='asyncpg') as postgres:
        yield postgres


@pytest.fixture
async def session_factory(
    postgres_container: PostgresContainer,
) -> typing.AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    async_db_url = postgres_container.get_connection_url()
    async_engine = create_async_engine(async_db_url, pool_pre_ping=True)

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        autoflush=False,
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    await async_engine.dispose()


@pytest.fixture
def uow_factory(session_factory):
    return lambda: SqlAlchemyUnitOfWork(session_factory)


@pytest.fixture
def ticket_service(uow_factory) -> TicketService:
    return TicketService(uow_factory)


@pytest.fixture
def seed(uow_factory):
    """Persist users and events the way an outer layer would create them."""

    async def _seed(*entities: User | Event) -> None:
        async with uow_factory() as uow:
            for entity in entities:
                if isinstance(entity, User):
                    await uow.store.save_user(entity)
                else:
                    await uow.store.save_event(entity)
            await uow.commit()

    return _seed


@pytest.fixture
def read_store(uow_factory):
    """Run a read-only store call in its own transaction."""

    async def _read(call):
        async with uow_factory() as uow:
            return await call(uow.store)

    return _read


@pytest.fixture
async def async_client(
    ticket_service: TicketService,
) -> typing.AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_ticket_service] = lambda: ticket_service
    _transport = ASGITransport(app=app)

    async with AsyncClient(
        transport=_transport, base_url='http://test', follow_redirects=True
    ) as client:
        yield client

    app.dependency_overrides.clear()
