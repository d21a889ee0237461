from collections.abc import Callable
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src import models
from src.domain import Category, Event, PageRequest, Ticket, User
from src.exceptions import SeatAlreadyBookedError, TicketNotFoundError
from src.store import AbstractUnitOfWork, LedgerStore


class SqlAlchemyLedgerStore(LedgerStore):
    """LedgerStore over an AsyncSession. Never commits; the unit of work does."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _to_ticket(db_ticket: models.Ticket) -> Ticket:
        return Ticket(
            id=db_ticket.id,
            user_id=db_ticket.user_id,
            event_id=db_ticket.event_id,
            place=db_ticket.place,
            category=db_ticket.category,
        )

    async def _exists(self, *criteria) -> bool:
        return bool(await self.session.scalar(select(exists().where(*criteria))))

    async def _add_links(self, link_model, owner_column, owner_id, ticket_ids):
        # Links are append-only; a saved collection never unlinks a ticket
        linked = set(
            await self.session.scalars(
                select(link_model.ticket_id).where(owner_column == owner_id)
            )
        )
        for ticket_id in ticket_ids:
            if ticket_id not in linked:
                self.session.add(
                    link_model(
                        **{owner_column.key: owner_id, 'ticket_id': ticket_id}
                    )
                )
        await self.session.flush()

    async def user_exists(self, user_id: str) -> bool:
        return await self._exists(models.User.id == user_id)

    async def find_user(
        self, user_id: str, *, for_update: bool = False
    ) -> User | None:
        stmt = (
            select(models.User)
            .where(models.User.id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        db_user = await self.session.scalar(stmt)
        if db_user is None:
            return None

        ticket_ids = await self.session.scalars(
            select(models.UserTicket.ticket_id)
            .where(models.UserTicket.user_id == user_id)
            .order_by(models.UserTicket.ticket_id)
        )

        return User(
            id=db_user.id,
            name=db_user.name,
            email=db_user.email,
            account=db_user.account,
            tickets=tuple(ticket_ids),
        )

    async def save_user(self, user: User) -> User:
        await self.session.merge(
            models.User(
                id=user.id,
                name=user.name,
                email=user.email,
                account=user.account,
            )
        )
        await self._add_links(
            models.UserTicket, models.UserTicket.user_id, user.id, user.tickets
        )
        return user

    async def debit_user(self, user_id: str, amount: Decimal) -> User | None:
        result = await self.session.execute(
            update(models.User)
            .where(models.User.id == user_id, models.User.account >= amount)
            .values(account=models.User.account - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None

        return await self.find_user(user_id)

    async def event_exists(self, event_id: str) -> bool:
        return await self._exists(models.Event.id == event_id)

    async def find_event(self, event_id: str) -> Event | None:
        db_event = await self.session.scalar(
            select(models.Event).where(models.Event.id == event_id)
        )
        if db_event is None:
            return None

        # Links to cancelled tickets resolve to nothing
        db_tickets = await self.session.scalars(
            select(models.Ticket)
            .join(
                models.EventTicket,
                models.EventTicket.ticket_id == models.Ticket.id,
            )
            .where(models.EventTicket.event_id == event_id)
            .order_by(models.Ticket.category, models.Ticket.place)
        )

        return Event(
            id=db_event.id,
            title=db_event.title,
            date=db_event.date,
            ticket_price=db_event.ticket_price,
            tickets=tuple(self._to_ticket(t) for t in db_tickets),
        )

    async def save_event(self, event: Event) -> Event:
        await self.session.merge(
            models.Event(
                id=event.id,
                title=event.title,
                date=event.date,
                ticket_price=event.ticket_price,
            )
        )
        await self._add_links(
            models.EventTicket,
            models.EventTicket.event_id,
            event.id,
            [t.id for t in event.tickets],
        )
        return event

    async def ticket_exists(
        self, event_id: str, place: int, category: Category
    ) -> bool:
        return await self._exists(
            models.Ticket.event_id == event_id,
            models.Ticket.place == place,
            models.Ticket.category == category,
        )

    async def save_ticket(self, ticket: Ticket) -> Ticket:
        db_ticket = models.Ticket(
            id=ticket.id or uuid4().hex,
            user_id=ticket.user_id,
            event_id=ticket.event_id,
            place=ticket.place,
            category=ticket.category,
        )
        self.session.add(db_ticket)

        # User and event were checked in this transaction, so the only
        # integrity violation left is a seat taken by a concurrent booking.
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise SeatAlreadyBookedError(
                ticket.event_id, ticket.place, ticket.category.value
            ) from e

        return self._to_ticket(db_ticket)

    async def delete_ticket(self, ticket_id: str) -> None:
        result = await self.session.execute(
            delete(models.Ticket).where(models.Ticket.id == ticket_id)
        )
        if result.rowcount == 0:
            raise TicketNotFoundError(ticket_id)

    async def page_tickets_by_user(
        self, user_id: str, page: PageRequest
    ) -> list[Ticket]:
        db_tickets = await self.session.scalars(
            select(models.Ticket)
            .where(models.Ticket.user_id == user_id)
            .order_by(
                models.Ticket.event_id,
                models.Ticket.category,
                models.Ticket.place,
            )
            .offset(page.offset)
            .limit(page.page_size)
        )
        return [self._to_ticket(t) for t in db_tickets]

    async def page_tickets_by_event(
        self, event_id: str, page: PageRequest
    ) -> list[Ticket]:
        db_tickets = await self.session.scalars(
            select(models.Ticket)
            .where(models.Ticket.event_id == event_id)
            .order_by(models.Ticket.category, models.Ticket.place)
            .offset(page.offset)
            .limit(page.page_size)
        )
        return [self._to_ticket(t) for t in db_tickets]


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store_factory: Callable[[AsyncSession], LedgerStore] = SqlAlchemyLedgerStore,
    ):
        self._session_factory = session_factory
        self._store_factory = store_factory

    async def __aenter__(self):
        self.session = self._session_factory()
        self.store = self._store_factory(self.session)
        return await super().__aenter__()

    async def __aexit__(self, *args):
        try:
            await super().__aexit__(*args)
        finally:
            await self.session.close()

    async def _commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
