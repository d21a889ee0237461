from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.service import TicketService
from src.settings import settings
from src.sql_store import SqlAlchemyUnitOfWork


def use_immediate_transactions(async_engine: AsyncEngine) -> None:
    """Make every SQLite transaction take the write lock at BEGIN.

    The sqlite3 driver otherwise defers BEGIN until the first write, so
    reads at the start of a booking would run outside the transaction.
    """

    @event.listens_for(async_engine.sync_engine, 'connect')
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, 'begin')
    def do_begin(conn):
        conn.exec_driver_sql('BEGIN IMMEDIATE')


engine = create_async_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
if engine.dialect.name == 'sqlite':
    use_immediate_transactions(engine)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


def get_ticket_service() -> TicketService:
    return TicketService(lambda: SqlAlchemyUnitOfWork(AsyncSessionLocal))
