from enum import Enum


class ErrorCode(str, Enum):
    NOT_FOUND = 'NOT_FOUND'
    CONFLICT = 'CONFLICT'
    REJECTED = 'REJECTED'
    TRANSACTION_FAILED = 'TRANSACTION_FAILED'


class BookingError(Exception):
    """A booking that did not happen. No partial state was committed."""

    code: ErrorCode

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f'{self.code.value}: {self.message}'


class UserNotFoundError(BookingError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, user_id: str):
        super().__init__(f'The user with id {user_id} does not exist')
        self.user_id = user_id


class EventNotFoundError(BookingError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, event_id: str):
        super().__init__(f'The event with id {event_id} does not exist')
        self.event_id = event_id


class SeatAlreadyBookedError(BookingError):
    code = ErrorCode.CONFLICT

    def __init__(self, event_id: str, place: int, category: str):
        super().__init__(
            f'Place {place} ({category}) for event {event_id} is already booked'
        )
        self.event_id = event_id
        self.place = place
        self.category = category


class InsufficientFundsError(BookingError):
    code = ErrorCode.REJECTED

    def __init__(self, user_id: str, event_id: str):
        super().__init__(
            f'The user with id {user_id} does not have enough money '
            f'for ticket with event id {event_id}'
        )
        self.user_id = user_id
        self.event_id = event_id


class InvalidBookingRequestError(BookingError):
    code = ErrorCode.REJECTED


class TransactionFailedError(BookingError):
    code = ErrorCode.TRANSACTION_FAILED


class TicketNotFoundError(Exception):
    """Raised by a store when a ticket to delete does not exist."""

    def __init__(self, ticket_id: str):
        super().__init__(f'The ticket with id {ticket_id} does not exist')
        self.ticket_id = ticket_id
