import uuid
from datetime import datetime

from pydantic import Field

from schemas import ApiModel, MealPlanSummary, OrderStatus, UserSummary


class OrderMealCreate(ApiModel):
    meal_id: uuid.UUID
    day: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)


class OrderCreate(ApiModel):
    plan_id: uuid.UUID
    start_date: datetime
    meals: list[OrderMealCreate] = []


class OrderUpdate(ApiModel):
    status: OrderStatus | None = None
    start_date: datetime | None = None


class MealBrief(ApiModel):
    id: uuid.UUID
    name: str


class OrderMealRead(ApiModel):
    id: uuid.UUID
    meal_id: uuid.UUID
    day: str
    type: str
    meal: MealBrief | None = None


class OrderRead(ApiModel):
    id: uuid.UUID
    user_id: uuid.UUID
    meal_plan_id: uuid.UUID
    status: OrderStatus
    start_date: datetime | None
    meal_plan: MealPlanSummary | None = None
    meals: list[OrderMealRead] = []
    created_at: datetime
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None


class OrderAdminRead(OrderRead):
    user: UserSummary


class OrderEventRead(ApiModel):
    id: int
    from_status: OrderStatus | None
    to_status: OrderStatus
    actor_type: str
    actor_id: uuid.UUID | None
    created_at: datetime
