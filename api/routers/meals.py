"""Meal catalog endpoints — public reads, admin writes."""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.meal_plan import Meal
from models.order import OrderMeal
from models.user import User
from routers.meal_plans import get_meal_plan_or_404
from schemas import MealCreate, MealUpdate, MealResponse
from services.auth import ADMIN_ONLY, require_roles

router = APIRouter()
logger = logging.getLogger(__name__)


async def _get_meal_or_404(db: AsyncSession, meal_id: uuid.UUID) -> Meal:
    result = await db.execute(select(Meal).where(Meal.id == meal_id))
    meal = result.scalar_one_or_none()
    if not meal:
        raise HTTPException(status_code=404, detail="Meal not found")
    return meal


@router.get("/", response_model=list[MealResponse])
async def list_meals(
    plan_id: uuid.UUID | None = None,
    tag: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    """All meals, optionally filtered by plan or tag."""
    query = select(Meal).order_by(Meal.created_at)
    if plan_id:
        query = query.where(Meal.meal_plan_id == plan_id)
    meals = (await db.execute(query)).scalars().all()
    if tag:
        meals = [m for m in meals if tag in (m.tags or [])]
    return meals


@router.get("/{meal_id}", response_model=MealResponse)
async def get_meal(meal_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await _get_meal_or_404(db, meal_id)


@router.post("/", response_model=MealResponse, status_code=201)
async def create_meal(
    data: MealCreate,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    await get_meal_plan_or_404(db, data.meal_plan_id)

    meal = Meal(
        meal_plan_id=data.meal_plan_id,
        name=data.name,
        description=data.description,
        tags=list(data.tags),
    )
    db.add(meal)
    await db.commit()
    logger.info("Meal created: id=%s plan=%s", meal.id, meal.meal_plan_id)
    return meal


@router.put("/{meal_id}", response_model=MealResponse)
async def update_meal(
    meal_id: uuid.UUID,
    data: MealUpdate,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    meal = await _get_meal_or_404(db, meal_id)

    if data.meal_plan_id:
        await get_meal_plan_or_404(db, data.meal_plan_id)
        meal.meal_plan_id = data.meal_plan_id
    if data.name is not None:
        meal.name = data.name
    if "description" in data.model_fields_set:
        meal.description = data.description
    if data.tags is not None:
        meal.tags = list(data.tags)

    await db.commit()
    return meal


@router.delete("/{meal_id}")
async def delete_meal(
    meal_id: uuid.UUID,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    meal = await _get_meal_or_404(db, meal_id)

    in_orders = (await db.execute(
        select(func.count(OrderMeal.id)).where(OrderMeal.meal_id == meal_id)
    )).scalar() or 0
    if in_orders:
        raise HTTPException(status_code=400, detail="Cannot delete a meal that is part of existing orders")

    await db.delete(meal)
    await db.commit()
    logger.info("Meal deleted: id=%s", meal_id)
    return {"message": "Meal deleted successfully"}
