from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Annotated

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from src.database import engine, get_ticket_service
from src.domain import TicketQueryResult
from src.exceptions import BookingError, ErrorCode
from src.logger import logger
from src.models import Base
from src.schemas import (
    CancelResponse,
    ErrorResponse,
    ListTickets,
    TicketRequestBook,
    TicketResponse,
)
from src.service import TicketService
from src.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(lifespan=lifespan)


ServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
PageSize = Annotated[int, Query(ge=1)]
PageNum = Annotated[int, Query(ge=1)]

ERROR_STATUS = {
    ErrorCode.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorCode.CONFLICT: HTTPStatus.CONFLICT,
    ErrorCode.REJECTED: HTTPStatus.UNPROCESSABLE_ENTITY,
    ErrorCode.TRANSACTION_FAILED: HTTPStatus.SERVICE_UNAVAILABLE,
}


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    logger.info('{} {} -> {}', request.method, request.url.path, exc.code.value)
    return JSONResponse(
        status_code=ERROR_STATUS[exc.code],
        content=ErrorResponse(detail=exc.message, code=exc.code.value).model_dump(),
    )


@app.post(
    '/tickets/book',
    response_model=TicketResponse,
    status_code=HTTPStatus.CREATED,
    responses={
        HTTPStatus.NOT_FOUND: {'model': ErrorResponse},
        HTTPStatus.CONFLICT: {'model': ErrorResponse},
        HTTPStatus.UNPROCESSABLE_ENTITY: {'model': ErrorResponse},
        HTTPStatus.SERVICE_UNAVAILABLE: {'model': ErrorResponse},
    },
)
async def book_ticket(service: ServiceDep, ticket_in: TicketRequestBook):
    return await service.book_ticket(
        ticket_in.user_id, ticket_in.event_id, ticket_in.place, ticket_in.category
    )


def _list_tickets(result: TicketQueryResult, not_found_message: str) -> dict:
    body = {
        'tickets': list(result),
        'status': result.status,
        'reason': result.reason,
    }
    if not result:
        body['message'] = not_found_message
    return body


@app.get('/tickets/user/{user_id}', response_model=ListTickets)
async def show_tickets_by_user(
    service: ServiceDep,
    user_id: str,
    page_size: PageSize = settings.DEFAULT_PAGE_SIZE,
    page_num: PageNum = 1,
):
    result = await service.get_booked_tickets_by_user_id(
        user_id, page_size, page_num
    )
    return _list_tickets(
        result, f'Can not to find the tickets by user with id: {user_id}'
    )


@app.get('/tickets/event/{event_id}', response_model=ListTickets)
async def show_tickets_by_event(
    service: ServiceDep,
    event_id: str,
    page_size: PageSize = settings.DEFAULT_PAGE_SIZE,
    page_num: PageNum = 1,
):
    result = await service.get_booked_tickets(event_id, page_size, page_num)
    return _list_tickets(
        result, f'Can not to find the tickets by event with id: {event_id}'
    )


@app.delete('/tickets/{ticket_id}', response_model=CancelResponse)
async def cancel_ticket(service: ServiceDep, ticket_id: str):
    if await service.cancel_ticket(ticket_id):
        return {
            'cancelled': True,
            'message': f'The ticket with id: {ticket_id} successfully canceled',
        }

    return {
        'cancelled': False,
        'message': f'The ticket with id: {ticket_id} not canceled',
    }
