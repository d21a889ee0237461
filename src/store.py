"""Store interfaces (repository and unit of work).

Stores return domain models from src/domain.py and must be swappable.
"""

from __future__ import annotations

import abc
from decimal import Decimal

from src.domain import Category, Event, PageRequest, Ticket, User


class LedgerStore(abc.ABC):
    """Persistence operations for users, events and tickets."""

    @abc.abstractmethod
    async def user_exists(self, user_id: str) -> bool: ...

    @abc.abstractmethod
    async def find_user(
        self, user_id: str, *, for_update: bool = False
    ) -> User | None:
        """Return a user by id, or None. `for_update` locks the row until
        the surrounding transaction ends."""

    @abc.abstractmethod
    async def save_user(self, user: User) -> User: ...

    @abc.abstractmethod
    async def debit_user(self, user_id: str, amount: Decimal) -> User | None:
        """Subtract `amount` from the balance only if it covers it.

        Returns the updated user, or None when the balance is too low.
        The check and the write are a single statement.
        """

    @abc.abstractmethod
    async def event_exists(self, event_id: str) -> bool: ...

    @abc.abstractmethod
    async def find_event(self, event_id: str) -> Event | None: ...

    @abc.abstractmethod
    async def save_event(self, event: Event) -> Event: ...

    @abc.abstractmethod
    async def ticket_exists(
        self, event_id: str, place: int, category: Category
    ) -> bool: ...

    @abc.abstractmethod
    async def save_ticket(self, ticket: Ticket) -> Ticket:
        """Insert a ticket and return it with its id assigned.

        Raises:
            SeatAlreadyBookedError: If (event_id, place, category) is taken.
        """

    @abc.abstractmethod
    async def delete_ticket(self, ticket_id: str) -> None:
        """Delete a ticket by id.

        Raises:
            TicketNotFoundError: If no ticket was removed.
        """

    @abc.abstractmethod
    async def page_tickets_by_user(
        self, user_id: str, page: PageRequest
    ) -> list[Ticket]: ...

    @abc.abstractmethod
    async def page_tickets_by_event(
        self, event_id: str, page: PageRequest
    ) -> list[Ticket]: ...


class AbstractUnitOfWork(abc.ABC):
    """One transaction. Rolls back on exit unless committed."""

    store: LedgerStore

    async def __aenter__(self) -> AbstractUnitOfWork:
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        await self._commit()

    @abc.abstractmethod
    async def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self):
        raise NotImplementedError
