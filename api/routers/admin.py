"""Admin dashboard API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.order import Order
from models.payment import Payment
from models.subscription import Subscription
from models.user import User
from schemas import DashboardStats
from services.auth import ADMIN_ONLY, require_roles

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    """Headline counts for the admin dashboard."""
    total_users = (await db.execute(select(func.count(User.id)))).scalar() or 0

    rows = (await db.execute(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    )).all()
    orders_by_status = {status: count for status, count in rows}

    active_subscriptions = (await db.execute(
        select(func.count(Subscription.id)).where(Subscription.status == "active")
    )).scalar() or 0

    completed = (await db.execute(
        select(func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0))
        .where(Payment.status == "completed")
    )).one()

    return DashboardStats(
        total_users=total_users,
        orders_by_status=orders_by_status,
        active_subscriptions=active_subscriptions,
        completed_payments=completed[0] or 0,
        revenue_total=float(completed[1] or 0),
    )
