"""Booking against a file-backed SQLite database.

SQLite ignores row locks, so these cover the conditional debit, the
immediate write lock taken at BEGIN and exact money storage.
"""

import asyncio
import typing
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.database import use_immediate_transactions
from src.domain import Category
from src.exceptions import InsufficientFundsError, SeatAlreadyBookedError
from src.models import Base
from tests.factories import make_event, make_user


@pytest.fixture
async def session_factory(
    tmp_path,
) -> typing.AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    async_engine = create_async_engine(
        f'sqlite+aiosqlite:///{tmp_path / "ledger.sqlite3"}'
    )
    use_immediate_transactions(async_engine)

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        autoflush=False,
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    await async_engine.dispose()


async def test_concurrent_bookings_by_one_user_never_overdraw(
    ticket_service, seed, read_store
):
    await seed(make_user('u1', account='100'), make_event('e1', price='60'))

    results = await asyncio.gather(
        ticket_service.book_ticket('u1', 'e1', 1, Category.BAR),
        ticket_service.book_ticket('u1', 'e1', 2, Category.BAR),
        return_exceptions=True,
    )

    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert any(isinstance(r, InsufficientFundsError) for r in results)
    user = await read_store(lambda s: s.find_user('u1'))
    assert user.account == Decimal('40')
    assert len(user.tickets) == 1


async def test_concurrent_bookings_for_one_seat_sell_it_once(
    ticket_service, seed, read_store
):
    await seed(
        make_user('u1', account='100'),
        make_user('u2', account='100'),
        make_event('e1', price='60'),
    )

    results = await asyncio.gather(
        ticket_service.book_ticket('u1', 'e1', 7, Category.PREMIUM),
        ticket_service.book_ticket('u2', 'e1', 7, Category.PREMIUM),
        return_exceptions=True,
    )

    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert any(isinstance(r, SeatAlreadyBookedError) for r in results)
    balances = sorted(
        [
            (await read_store(lambda s: s.find_user('u1'))).account,
            (await read_store(lambda s: s.find_user('u2'))).account,
        ]
    )
    assert balances == [Decimal('40'), Decimal('100')]


async def test_large_balance_keeps_every_digit(seed, read_store):
    await seed(make_user('u1', account='12345678901234567.89'))

    user = await read_store(lambda s: s.find_user('u1'))

    assert user.account == Decimal('12345678901234567.89')


async def test_debit_keeps_cents_exact(ticket_service, seed, read_store):
    await seed(make_user('u1', account='0.30'), make_event('e1', price='0.10'))

    for place in (1, 2, 3):
        await ticket_service.book_ticket('u1', 'e1', place, Category.ECONOMY)

    user = await read_store(lambda s: s.find_user('u1'))
    assert user.account == Decimal('0')
    with pytest.raises(InsufficientFundsError):
        await ticket_service.book_ticket('u1', 'e1', 4, Category.ECONOMY)
