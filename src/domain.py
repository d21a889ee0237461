"""Domain models for the booking ledger.

Plain dataclasses with no persistence concerns. ORM mappings live in
src/models.py and are converted by the store.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class Category(str, Enum):
    ECONOMY = 'ECONOMY'
    BAR = 'BAR'
    PREMIUM = 'PREMIUM'


@dataclass(frozen=True)
class Ticket:
    user_id: str
    event_id: str
    place: int
    category: Category
    id: str | None = None


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    account: Decimal
    tickets: tuple[str, ...] = ()

    def has_enough_money_for(self, price: Decimal) -> bool:
        return self.account >= price


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    date: datetime
    ticket_price: Decimal
    tickets: tuple[Ticket, ...] = ()


@dataclass(frozen=True)
class PageRequest:
    """A 1-indexed page of a result set, as callers express it."""

    page_size: int
    page_num: int

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError('page_size must be at least 1')
        if self.page_num < 1:
            raise ValueError('page_num must be at least 1')

    @property
    def offset(self) -> int:
        return (self.page_num - 1) * self.page_size


class QueryStatus(str, Enum):
    FOUND = 'FOUND'
    EMPTY = 'EMPTY'
    FAILED = 'FAILED'


@dataclass(frozen=True)
class TicketQueryResult(Sequence):
    """Outcome of a ticket listing.

    Behaves as a read-only sequence of tickets. The sequence is empty for
    both EMPTY and FAILED, `status` tells them apart and `reason` carries
    the cause of a failure.
    """

    status: QueryStatus
    tickets: tuple[Ticket, ...] = ()
    reason: str | None = None

    @classmethod
    def found(cls, tickets: Sequence[Ticket]) -> 'TicketQueryResult':
        if not tickets:
            return cls.empty()
        return cls(status=QueryStatus.FOUND, tickets=tuple(tickets))

    @classmethod
    def empty(cls) -> 'TicketQueryResult':
        return cls(status=QueryStatus.EMPTY)

    @classmethod
    def failed(cls, reason: str) -> 'TicketQueryResult':
        return cls(status=QueryStatus.FAILED, reason=reason)

    @property
    def is_failed(self) -> bool:
        return self.status is QueryStatus.FAILED

    def __getitem__(self, index):
        return self.tickets[index]

    def __len__(self) -> int:
        return len(self.tickets)
