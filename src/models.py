from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    ForeignKey,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from src.domain import Category


class Base(DeclarativeBase, AsyncAttrs):
    pass


class Money(TypeDecorator):
    """Decimal amount with a fixed scale.

    PostgreSQL keeps it as NUMERIC. SQLite has no exact decimal type, so the
    amount is stored there as an integer count of minor units, which keeps
    comparisons and arithmetic in SQL exact.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int = 20, scale: int = 2):
        super().__init__(precision=precision, scale=scale, asdecimal=True)
        self.scale = scale

    def load_dialect_impl(self, dialect):
        if dialect.name == 'sqlite':
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(self.impl)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = Decimal(value).quantize(Decimal(1).scaleb(-self.scale))
        if dialect.name == 'sqlite':
            return int(value.scaleb(self.scale))
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == 'sqlite':
            return Decimal(value).scaleb(-self.scale)
        return Decimal(value)


class User(Base):
    __tablename__ = 'users'

    id: Mapped[str] = mapped_column(primary_key=True)
    name: Mapped[str]
    email: Mapped[str]
    account: Mapped[Decimal] = mapped_column(Money, default=Decimal('0'))


class Event(Base):
    __tablename__ = 'events'

    id: Mapped[str] = mapped_column(primary_key=True)
    title: Mapped[str]
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    ticket_price: Mapped[Decimal] = mapped_column(Money)


class Ticket(Base):
    __tablename__ = 'tickets'
    __table_args__ = (
        UniqueConstraint(
            'event_id', 'place', 'category', name='uq_tickets_event_place_category'
        ),
    )

    id: Mapped[str] = mapped_column(
        primary_key=True, default=lambda: uuid4().hex
    )
    user_id: Mapped[str] = mapped_column(ForeignKey('users.id'), index=True)
    event_id: Mapped[str] = mapped_column(ForeignKey('events.id'), index=True)
    place: Mapped[int]
    category: Mapped[Category] = mapped_column(
        Enum(Category, name='ticket_category')
    )


# Back-references from users and events to their tickets. ticket_id carries
# no foreign key: deleting a ticket leaves its links in place.
class UserTicket(Base):
    __tablename__ = 'user_tickets'

    user_id: Mapped[str] = mapped_column(
        ForeignKey('users.id'), primary_key=True
    )
    ticket_id: Mapped[str] = mapped_column(primary_key=True)


class EventTicket(Base):
    __tablename__ = 'event_tickets'

    event_id: Mapped[str] = mapped_column(
        ForeignKey('events.id'), primary_key=True
    )
    ticket_id: Mapped[str] = mapped_column(primary_key=True)
