import uuid
from datetime import datetime

from pydantic import Field

from schemas import ApiModel, TicketStatus, UserSummary


class TicketCreate(ApiModel):
    subject: str = Field(..., min_length=3, max_length=255)
    category: str = Field(..., min_length=2, max_length=50)
    message: str = Field(..., min_length=1)


class TicketReply(ApiModel):
    message: str = Field(..., min_length=1)


class TicketStatusUpdate(ApiModel):
    status: TicketStatus


class TicketResponseRead(ApiModel):
    id: uuid.UUID
    author_id: uuid.UUID | None
    author_name: str
    message: str
    created_at: datetime


class TicketRead(ApiModel):
    id: uuid.UUID
    ticket_number: str
    user_id: uuid.UUID
    subject: str
    category: str
    message: str
    status: TicketStatus
    responses: list[TicketResponseRead] = []
    created_at: datetime
    updated_at: datetime


class TicketAdminRead(TicketRead):
    user: UserSummary
