"""Subscription endpoints — subscribe, pause, resume, cancel."""

import logging
import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.subscription import Subscription
from models.user import User
from routers.meal_plans import get_meal_plan_or_404
from schemas import (
    SubscriptionStatus, SubscriptionCreate, SubscriptionUpdate,
    SubscriptionResponse, SubscriptionAdminResponse,
)
from services.auth import ADMIN_ONLY, get_current_user, require_roles, ensure_owner_or_privileged
from services.transitions import SUBSCRIPTION_MACHINE

router = APIRouter()
logger = logging.getLogger(__name__)


async def _get_subscription_or_404(db: AsyncSession, subscription_id: uuid.UUID) -> Subscription:
    result = await db.execute(select(Subscription).where(Subscription.id == subscription_id))
    subscription = result.scalar_one_or_none()
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return subscription


def _apply(subscription: Subscription, action: str) -> None:
    subscription.status = SUBSCRIPTION_MACHINE.next_status(subscription.status, action)
    if subscription.status == "cancelled":
        subscription.end_date = datetime.utcnow()


async def _transition(
    subscription_id: uuid.UUID,
    action: str,
    user: User,
    db: AsyncSession,
) -> Subscription:
    subscription = await _get_subscription_or_404(db, subscription_id)
    ensure_owner_or_privileged(user, subscription.user_id, f"{action} this subscription")

    old_status = subscription.status
    _apply(subscription, action)
    await db.commit()
    logger.info(
        "Subscription %s: id=%s %s -> %s by=%s",
        action, subscription.id, old_status, subscription.status, user.id,
    )
    return subscription


@router.get("/", response_model=list[SubscriptionResponse])
async def list_my_subscriptions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Subscription)
        .where(Subscription.user_id == user.id)
        .order_by(Subscription.created_at.desc())
    )
    return result.scalars().all()


@router.get("/admin/all", response_model=list[SubscriptionAdminResponse])
async def list_all_subscriptions(
    status: SubscriptionStatus | None = None,
    skip: int = 0,
    limit: int = 50,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    query = select(Subscription)
    if status:
        query = query.where(Subscription.status == status.value)
    query = query.offset(skip).limit(limit).order_by(Subscription.created_at.desc())
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    subscription = await _get_subscription_or_404(db, subscription_id)
    ensure_owner_or_privileged(user, subscription.user_id, "view this subscription")
    return subscription


@router.post("/", response_model=SubscriptionResponse, status_code=201)
async def create_subscription(
    data: SubscriptionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Subscribe the current user to a meal plan."""
    plan = await get_meal_plan_or_404(db, data.plan_id)

    existing = await db.execute(
        select(Subscription).where(
            and_(
                Subscription.user_id == user.id,
                Subscription.meal_plan_id == plan.id,
                Subscription.status.in_(["active", "paused"]),
            )
        )
    )
    if existing.scalars().first():
        raise HTTPException(status_code=400, detail="Already subscribed to this plan")

    subscription = Subscription(
        user_id=user.id,
        meal_plan_id=plan.id,
        status="active",
        start_date=data.start_date or datetime.utcnow(),
        meal_plan=plan,
    )
    db.add(subscription)
    await db.commit()
    logger.info("Subscription created: id=%s user=%s plan=%s", subscription.id, user.id, plan.id)
    return subscription


@router.put("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: uuid.UUID,
    data: SubscriptionUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update status and/or end date; status changes follow the state machine."""
    subscription = await _get_subscription_or_404(db, subscription_id)
    ensure_owner_or_privileged(user, subscription.user_id, "update this subscription")

    if data.status is not None and data.status.value != subscription.status:
        action = SUBSCRIPTION_MACHINE.action_for(subscription.status, data.status.value)
        _apply(subscription, action)
    if data.end_date is not None:
        subscription.end_date = data.end_date

    await db.commit()
    return subscription


@router.put("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _transition(subscription_id, "cancel", user, db)


@router.put("/{subscription_id}/pause", response_model=SubscriptionResponse)
async def pause_subscription(
    subscription_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _transition(subscription_id, "pause", user, db)


@router.put("/{subscription_id}/resume", response_model=SubscriptionResponse)
async def resume_subscription(
    subscription_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _transition(subscription_id, "resume", user, db)
