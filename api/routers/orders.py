"""Order management API endpoints."""

import logging
import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.meal_plan import Meal
from models.order import Order, OrderEvent, OrderMeal
from models.user import User
from schemas import OrderStatus
from schemas.order import (
    OrderCreate, OrderUpdate, OrderRead, OrderAdminRead, OrderEventRead,
)
from routers.meal_plans import get_meal_plan_or_404
from services.auth import (
    ADMIN_ONLY, get_current_user, require_roles, ensure_owner_or_privileged, is_privileged,
)
from services.transitions import ORDER_MACHINE

router = APIRouter()
logger = logging.getLogger(__name__)


async def load_order(db: AsyncSession, order_id: uuid.UUID) -> Order | None:
    """Fetch an order with fresh meal rows, plan and user."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_order_or_404(db: AsyncSession, order_id: uuid.UUID) -> Order:
    order = await load_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def apply_order_action(order: Order, action: str, actor_type: str, actor_id: uuid.UUID | None) -> OrderEvent:
    """Move the order through the state machine and return the audit event."""
    old_status = order.status
    new_status = ORDER_MACHINE.next_status(old_status, action)
    order.status = new_status

    now = datetime.utcnow()
    if new_status == "delivered":
        order.delivered_at = now
    elif new_status == "cancelled" and not order.cancelled_at:
        order.cancelled_at = now

    return OrderEvent(
        order_id=order.id,
        from_status=old_status,
        to_status=new_status,
        actor_type=actor_type,
        actor_id=actor_id,
    )


def _actor_type(user: User) -> str:
    return "ADMIN" if is_privileged(user) else "USER"


@router.get("/", response_model=list[OrderRead])
async def list_my_orders(
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Orders of the current user, newest first."""
    query = select(Order).where(Order.user_id == user.id)
    if status:
        query = query.where(Order.status == status.value)
    query = query.offset(skip).limit(limit).order_by(Order.created_at.desc())
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/admin/all", response_model=list[OrderAdminRead])
async def list_all_orders(
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    """Every order with its owner (admin)."""
    query = select(Order)
    if status:
        query = query.where(Order.status == status.value)
    query = query.offset(skip).limit(limit).order_by(Order.created_at.desc())
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get an order by ID (owner or admin)."""
    order = await _get_order_or_404(db, order_id)
    ensure_owner_or_privileged(user, order.user_id, "view this order")
    return order


@router.get("/{order_id}/events", response_model=list[OrderEventRead])
async def get_order_events(
    order_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Status history of an order."""
    order = await _get_order_or_404(db, order_id)
    ensure_owner_or_privileged(user, order.user_id, "view this order")
    return order.events


@router.post("/", response_model=OrderRead, status_code=201)
async def create_order(
    data: OrderCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a pending order for a meal plan.

    The order, its meal rows and the first audit event are committed together.
    """
    plan = await get_meal_plan_or_404(db, data.plan_id)

    meal_ids = {m.meal_id for m in data.meals}
    if meal_ids:
        result = await db.execute(select(Meal).where(Meal.id.in_(meal_ids)))
        found = {m.id: m for m in result.scalars().all()}
        for meal_id in meal_ids:
            meal = found.get(meal_id)
            if not meal:
                raise HTTPException(status_code=404, detail=f"Meal {meal_id} not found")
            if meal.meal_plan_id != plan.id:
                raise HTTPException(status_code=400, detail=f"Meal {meal_id} does not belong to this meal plan")

    order = Order(
        id=uuid.uuid4(),
        user_id=user.id,
        meal_plan_id=plan.id,
        status="pending",
        start_date=data.start_date,
        meals=[
            OrderMeal(meal_id=m.meal_id, day=m.day, type=m.type, position=i)
            for i, m in enumerate(data.meals)
        ],
    )
    db.add(order)
    db.add(OrderEvent(
        order_id=order.id,
        from_status=None,
        to_status="pending",
        actor_type="USER",
        actor_id=user.id,
    ))
    await db.commit()
    logger.info("Order created: id=%s user=%s plan=%s meals=%d", order.id, user.id, plan.id, len(data.meals))

    return await load_order(db, order.id)


@router.put("/{order_id}", response_model=OrderRead)
async def update_order(
    order_id: uuid.UUID,
    data: OrderUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update start date and/or status (owner or admin).

    Customers may only request cancellation; other status changes are admin-only.
    Every status change must be allowed by the order state machine.
    """
    order = await _get_order_or_404(db, order_id)
    ensure_owner_or_privileged(user, order.user_id, "update this order")

    if data.status is not None and data.status.value != order.status:
        target = data.status.value
        if target != "cancelled" and not is_privileged(user):
            raise HTTPException(status_code=403, detail="Not authorized to change order status")
        action = ORDER_MACHINE.action_for(order.status, target)
        db.add(apply_order_action(order, action, _actor_type(user), user.id))

    if data.start_date is not None:
        order.start_date = data.start_date

    await db.commit()
    return await load_order(db, order.id)


@router.put("/{order_id}/cancel", response_model=OrderRead)
async def cancel_order(
    order_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel an order unless it has been delivered."""
    order = await _get_order_or_404(db, order_id)
    ensure_owner_or_privileged(user, order.user_id, "cancel this order")

    already_cancelled = order.status == "cancelled"
    event = apply_order_action(order, "cancel", _actor_type(user), user.id)
    if not already_cancelled:
        db.add(event)
        await db.commit()
        logger.info("Order cancelled: id=%s by=%s", order.id, user.id)

    return await load_order(db, order.id)
