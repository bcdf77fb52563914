"""Support ticket endpoints — customers open tickets, agents and admins answer them."""

import logging
import random
import string
import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.support_ticket import SupportTicket, TicketResponse
from models.user import User
from schemas import TicketStatus
from schemas.support import (
    TicketCreate, TicketReply, TicketStatusUpdate, TicketRead, TicketAdminRead,
)
from services.auth import (
    SUPPORT_STAFF, get_current_user, require_roles, ensure_owner_or_privileged, is_privileged,
)
from services.transitions import TICKET_MACHINE

router = APIRouter()
logger = logging.getLogger(__name__)


def _generate_ticket_number() -> str:
    """Human-readable ticket number: TKT-XXXXXX."""
    return "TKT-" + "".join(random.choices(string.ascii_uppercase + string.digits, k=6))


async def _load_ticket(db: AsyncSession, ticket_id: uuid.UUID) -> SupportTicket:
    result = await db.execute(
        select(SupportTicket)
        .where(SupportTicket.id == ticket_id)
        .execution_options(populate_existing=True)
    )
    ticket = result.scalar_one_or_none()
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.post("/tickets", response_model=TicketRead, status_code=201)
async def create_ticket(
    data: TicketCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ticket = SupportTicket(
        ticket_number=_generate_ticket_number(),
        user_id=user.id,
        subject=data.subject,
        category=data.category,
        message=data.message,
        status="open",
        responses=[],
    )
    db.add(ticket)
    await db.commit()
    logger.info("Ticket opened: %s user=%s category=%s", ticket.ticket_number, user.id, ticket.category)
    return ticket


@router.get("/tickets", response_model=list[TicketRead])
async def list_my_tickets(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(SupportTicket)
        .where(SupportTicket.user_id == user.id)
        .order_by(SupportTicket.created_at.desc())
    )
    return result.scalars().all()


@router.get("/tickets/admin/all", response_model=list[TicketAdminRead])
async def list_all_tickets(
    status: TicketStatus | None = None,
    skip: int = 0,
    limit: int = 50,
    staff: User = Depends(require_roles(*SUPPORT_STAFF)),
    db: AsyncSession = Depends(get_db),
):
    """Ticket queue for agents and admins."""
    query = select(SupportTicket)
    if status:
        query = query.where(SupportTicket.status == status.value)
    query = query.offset(skip).limit(limit).order_by(SupportTicket.created_at.desc())
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/tickets/{ticket_id}", response_model=TicketRead)
async def get_ticket(
    ticket_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ticket = await _load_ticket(db, ticket_id)
    ensure_owner_or_privileged(user, ticket.user_id, "view this ticket", SUPPORT_STAFF)
    return ticket


@router.post("/tickets/{ticket_id}/responses", response_model=TicketRead, status_code=201)
async def reply_to_ticket(
    ticket_id: uuid.UUID,
    data: TicketReply,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Add a reply. A staff reply on an open ticket moves it to in_progress."""
    ticket = await _load_ticket(db, ticket_id)
    ensure_owner_or_privileged(user, ticket.user_id, "reply to this ticket", SUPPORT_STAFF)

    if ticket.status == "closed":
        raise HTTPException(status_code=400, detail="Cannot reply to a closed ticket")

    staff_reply = is_privileged(user, SUPPORT_STAFF)
    db.add(TicketResponse(
        ticket_id=ticket.id,
        author_id=user.id,
        author_name=f"Support Agent ({user.name})" if staff_reply else user.name,
        message=data.message,
    ))
    if staff_reply and TICKET_MACHINE.can(ticket.status, "start"):
        ticket.status = TICKET_MACHINE.next_status(ticket.status, "start")

    await db.commit()
    return await _load_ticket(db, ticket.id)


STATUS_ACTIONS = {
    "in_progress": ("start", "reopen"),
    "resolved": ("resolve",),
    "closed": ("close",),
}


@router.put("/tickets/{ticket_id}/status", response_model=TicketRead)
async def update_ticket_status(
    ticket_id: uuid.UUID,
    data: TicketStatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Staff move tickets through their lifecycle; owners may only close their own."""
    ticket = await _load_ticket(db, ticket_id)
    ensure_owner_or_privileged(user, ticket.user_id, "update this ticket", SUPPORT_STAFF)

    target = data.status.value
    if not is_privileged(user, SUPPORT_STAFF) and target != "closed":
        raise HTTPException(status_code=403, detail="Not authorized to change ticket status")

    candidates = STATUS_ACTIONS.get(target)
    if candidates:
        action = next((a for a in candidates if TICKET_MACHINE.can(ticket.status, a)), candidates[0])
    else:
        action = TICKET_MACHINE.action_for(ticket.status, target)

    old_status = ticket.status
    ticket.status = TICKET_MACHINE.next_status(ticket.status, action)
    await db.commit()
    logger.info("Ticket %s: %s -> %s by=%s", ticket.ticket_number, old_status, ticket.status, user.id)
    return await _load_ticket(db, ticket.id)
