"""Ticket service - booking, cancellation and booked-ticket listings.

Every operation runs inside its own unit of work and is bounded by
`settings.STORE_TIMEOUT_SECONDS`. Nothing is retried here.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import replace

from sqlalchemy.exc import SQLAlchemyError

from src.domain import (
    Category,
    PageRequest,
    Ticket,
    TicketQueryResult,
)
from src.exceptions import (
    BookingError,
    EventNotFoundError,
    InsufficientFundsError,
    InvalidBookingRequestError,
    SeatAlreadyBookedError,
    TransactionFailedError,
    UserNotFoundError,
)
from src.logger import logger
from src.settings import settings
from src.store import AbstractUnitOfWork, LedgerStore

UnitOfWorkFactory = Callable[[], AbstractUnitOfWork]
TicketQuery = Callable[[LedgerStore, PageRequest], Awaitable[list[Ticket]]]


class TicketService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        timeout: float | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._timeout = (
            settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout
        )

    async def book_ticket(
        self,
        user_id: str,
        event_id: str,
        place: int,
        category: Category | str,
    ) -> Ticket:
        """Book a place for a user and debit the event's ticket price.

        The checks, the debit, the new ticket and its links to the user and
        the event are committed together or not at all.

        Raises:
            UserNotFoundError: If the user does not exist.
            EventNotFoundError: If the event does not exist.
            SeatAlreadyBookedError: If the place is taken in that category.
            InsufficientFundsError: If the balance is below the ticket price.
            InvalidBookingRequestError: If place or category is malformed.
            TransactionFailedError: If the store fails or the timeout expires.
        """
        logger.info(
            'Start booking a ticket for user with id {}, event with id {}, '
            'place {}, category {}',
            user_id, event_id, place, category,
        )
        category = self._validate_request(place, category)

        try:
            async with asyncio.timeout(self._timeout):
                async with self._uow_factory() as uow:
                    ticket = await self._process_booking(
                        uow.store, user_id, event_id, place, category
                    )
                    await uow.commit()
        except BookingError as e:
            logger.warning(
                'Can not to book a ticket for user with id {}, event with id {}: {}',
                user_id, event_id, e,
            )
            logger.warning('Transaction rollback')
            raise
        except TimeoutError as e:
            logger.warning(
                'Booking for user with id {} timed out after {}s, transaction rollback',
                user_id, self._timeout,
            )
            raise TransactionFailedError(
                f'Booking did not complete within {self._timeout}s'
            ) from e
        except (SQLAlchemyError, OSError) as e:
            logger.opt(exception=e).warning(
                'Store failure while booking a ticket for user with id {}, '
                'transaction rollback',
                user_id,
            )
            raise TransactionFailedError(f'Booking transaction failed: {e}') from e

        logger.info('Successfully booking of the ticket: {}', ticket)
        return ticket

    @staticmethod
    def _validate_request(place: int, category: Category | str) -> Category:
        if isinstance(place, bool) or not isinstance(place, int) or place < 1:
            raise InvalidBookingRequestError(
                f'Place must be a positive integer, got {place!r}'
            )
        try:
            return Category(category)
        except ValueError as e:
            raise InvalidBookingRequestError(
                f'Unknown ticket category {category!r}'
            ) from e

    async def _process_booking(
        self,
        store: LedgerStore,
        user_id: str,
        event_id: str,
        place: int,
        category: Category,
    ) -> Ticket:
        if not await store.user_exists(user_id):
            raise UserNotFoundError(user_id)
        if not await store.event_exists(event_id):
            raise EventNotFoundError(event_id)
        if await store.ticket_exists(event_id, place, category):
            raise SeatAlreadyBookedError(event_id, place, category.value)

        user = await store.find_user(user_id, for_update=True)
        if user is None:
            raise UserNotFoundError(user_id)
        event = await store.find_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        if not user.has_enough_money_for(event.ticket_price):
            raise InsufficientFundsError(user_id, event_id)

        # Conditional debit; a concurrent booking may have spent the balance
        # since it was read
        user = await store.debit_user(user_id, event.ticket_price)
        if user is None:
            raise InsufficientFundsError(user_id, event_id)
        ticket = await store.save_ticket(
            Ticket(
                user_id=user.id,
                event_id=event.id,
                place=place,
                category=category,
            )
        )
        await store.save_user(replace(user, tickets=user.tickets + (ticket.id,)))
        await store.save_event(replace(event, tickets=event.tickets + (ticket,)))
        return ticket

    async def cancel_ticket(self, ticket_id: str) -> bool:
        """Delete a ticket. Returns False instead of raising on any failure.

        The buyer is not refunded and the ticket id stays linked to the user
        and the event.
        """
        logger.info('Start canceling a ticket with id: {}', ticket_id)
        try:
            async with asyncio.timeout(self._timeout):
                async with self._uow_factory() as uow:
                    await uow.store.delete_ticket(ticket_id)
                    await uow.commit()
        except Exception as e:
            logger.opt(exception=e).warning(
                'Can not to cancel a ticket with id: {}', ticket_id
            )
            return False

        logger.info('Successfully canceling of the ticket with id: {}', ticket_id)
        return True

    async def get_booked_tickets_by_user_id(
        self, user_id: str | None, page_size: int, page_num: int
    ) -> TicketQueryResult:
        async def query(store: LedgerStore, page: PageRequest) -> list[Ticket]:
            return await store.page_tickets_by_user(user_id, page)

        return await self._find_booked_tickets(
            'user', user_id, page_size, page_num, query
        )

    async def get_booked_tickets(
        self, event_id: str | None, page_size: int, page_num: int
    ) -> TicketQueryResult:
        async def query(store: LedgerStore, page: PageRequest) -> list[Ticket]:
            return await store.page_tickets_by_event(event_id, page)

        return await self._find_booked_tickets(
            'event', event_id, page_size, page_num, query
        )

    async def _find_booked_tickets(
        self,
        owner: str,
        owner_id: str | None,
        page_size: int,
        page_num: int,
        query: TicketQuery,
    ) -> TicketQueryResult:
        logger.info(
            'Finding all booked tickets by {} id {} with page size {} and number of page {}',
            owner, owner_id, page_size, page_num,
        )
        if not owner_id:
            logger.warning('Can not to find booked tickets without {} id', owner)
            return TicketQueryResult.failed(f'{owner} id is required')

        try:
            page = PageRequest(page_size=page_size, page_num=page_num)
            async with asyncio.timeout(self._timeout):
                async with self._uow_factory() as uow:
                    tickets = await query(uow.store, page)
        except Exception as e:
            logger.opt(exception=e).warning(
                "Can not to find a list of booked tickets by {} id '{}'",
                owner, owner_id,
            )
            return TicketQueryResult.failed(str(e) or type(e).__name__)

        result = TicketQueryResult.found(tickets)
        if not result:
            logger.info('No booked tickets found by {} id {}', owner, owner_id)
        else:
            logger.info(
                'All booked tickets successfully found by {} id {}', owner, owner_id
            )
        return result
