"""Meal plan catalog endpoints — public reads, admin writes."""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.meal_plan import MealPlan
from models.order import Order
from models.subscription import Subscription
from models.user import User
from schemas import MealPlanCreate, MealPlanUpdate, MealPlanResponse
from services.auth import ADMIN_ONLY, require_roles

router = APIRouter()
logger = logging.getLogger(__name__)


async def get_meal_plan_or_404(db: AsyncSession, plan_id: uuid.UUID) -> MealPlan:
    result = await db.execute(select(MealPlan).where(MealPlan.id == plan_id))
    plan = result.scalar_one_or_none()
    if not plan:
        raise HTTPException(status_code=404, detail="Meal plan not found")
    return plan


@router.get("/", response_model=list[MealPlanResponse])
async def list_meal_plans(db: AsyncSession = Depends(get_db)):
    """All meal plans with their meals."""
    result = await db.execute(select(MealPlan).order_by(MealPlan.created_at))
    return result.scalars().all()


@router.get("/{plan_id}", response_model=MealPlanResponse)
async def get_meal_plan(plan_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await get_meal_plan_or_404(db, plan_id)


@router.post("/", response_model=MealPlanResponse, status_code=201)
async def create_meal_plan(
    data: MealPlanCreate,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    plan = MealPlan(name=data.name, price=data.price, description=data.description, meals=[])
    db.add(plan)
    await db.commit()
    logger.info("Meal plan created: id=%s name=%s", plan.id, plan.name)
    return plan


@router.put("/{plan_id}", response_model=MealPlanResponse)
async def update_meal_plan(
    plan_id: uuid.UUID,
    data: MealPlanUpdate,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    plan = await get_meal_plan_or_404(db, plan_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field != "description":
            continue
        setattr(plan, field, value)
    await db.commit()
    return plan


@router.delete("/{plan_id}")
async def delete_meal_plan(
    plan_id: uuid.UUID,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    """Delete a plan and its meals; plans with orders or subscriptions are kept."""
    plan = await get_meal_plan_or_404(db, plan_id)

    orders = (await db.execute(
        select(func.count(Order.id)).where(Order.meal_plan_id == plan_id)
    )).scalar() or 0
    subscriptions = (await db.execute(
        select(func.count(Subscription.id)).where(Subscription.meal_plan_id == plan_id)
    )).scalar() or 0
    if orders or subscriptions:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete a meal plan with existing orders or subscriptions",
        )

    await db.delete(plan)
    await db.commit()
    logger.info("Meal plan deleted: id=%s", plan_id)
    return {"message": "Meal plan deleted successfully"}
