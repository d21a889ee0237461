from pydantic import BaseModel, ConfigDict, Field

from src.domain import Category, QueryStatus


class TicketBase(BaseModel):
    user_id: str
    event_id: str
    place: int = Field(ge=1)
    category: Category


class TicketResponse(TicketBase):
    model_config = ConfigDict(from_attributes=True)

    id: str


class TicketRequestBook(TicketBase):
    pass


class ListTickets(BaseModel):
    tickets: list[TicketResponse]
    status: QueryStatus
    reason: str | None = None
    message: str | None = None


class CancelResponse(BaseModel):
    cancelled: bool
    message: str


class ErrorResponse(BaseModel):
    detail: str
    code: str
