"""Pydantic schemas for API request/response models."""

from __future__ import annotations
import re
import uuid
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


# ── Enums ──────────────────────────────────────────────────

class UserRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    AGENT = "agent"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


# ── Base ───────────────────────────────────────────────────

class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)[a-zA-Z\d@$!%*?&]{8,}$")


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_RE.match(value):
        raise ValueError("Invalid email address")
    return value


# ── Auth Schemas ───────────────────────────────────────────

class SignupRequest(ApiModel):
    email: str
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if not PASSWORD_RE.match(v):
            raise ValueError(
                "Password must contain at least one uppercase letter, "
                "one lowercase letter, and one number"
            )
        return v


class LoginRequest(ApiModel):
    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _normalize_email(v)


class SignupResponse(ApiModel):
    id: uuid.UUID
    email: str
    token: str


# ── User Schemas ───────────────────────────────────────────

class UserResponse(ApiModel):
    id: uuid.UUID
    email: str
    name: str
    role: UserRole
    status: UserStatus


class UserSummary(ApiModel):
    id: uuid.UUID
    name: str
    email: str


class LoginResponse(ApiModel):
    token: str
    user: UserResponse


class UserUpdate(ApiModel):
    name: str | None = Field(None, min_length=2)
    email: str | None = None
    status: UserStatus | None = None
    role: UserRole | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        return _normalize_email(v) if v is not None else v


# ── Meal Catalog Schemas ───────────────────────────────────

class MealCreate(ApiModel):
    name: str = Field(..., min_length=2)
    description: str | None = None
    tags: list[str] = []
    meal_plan_id: uuid.UUID


class MealUpdate(ApiModel):
    name: str | None = Field(None, min_length=2)
    description: str | None = None
    tags: list[str] | None = None
    meal_plan_id: uuid.UUID | None = None


class MealResponse(ApiModel):
    id: uuid.UUID
    meal_plan_id: uuid.UUID
    name: str
    description: str | None
    tags: list[str] = []
    created_at: datetime


class MealPlanCreate(ApiModel):
    name: str = Field(..., min_length=2)
    price: float = Field(..., gt=0)
    description: str | None = None


class MealPlanUpdate(ApiModel):
    name: str | None = Field(None, min_length=2)
    price: float | None = Field(None, gt=0)
    description: str | None = None


class MealPlanSummary(ApiModel):
    id: uuid.UUID
    name: str
    price: float
    description: str | None


class MealPlanResponse(MealPlanSummary):
    meals: list[MealResponse] = []
    created_at: datetime


# ── Subscription Schemas ───────────────────────────────────

class SubscriptionCreate(ApiModel):
    plan_id: uuid.UUID
    start_date: datetime | None = None


class SubscriptionUpdate(ApiModel):
    status: SubscriptionStatus | None = None
    end_date: datetime | None = None


class SubscriptionResponse(ApiModel):
    id: uuid.UUID
    user_id: uuid.UUID
    meal_plan_id: uuid.UUID
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime | None
    meal_plan: MealPlanSummary | None = None
    created_at: datetime


class SubscriptionAdminResponse(SubscriptionResponse):
    user: UserSummary


# ── Payment Schemas ────────────────────────────────────────

class PaymentIntentCreate(ApiModel):
    amount: float = Field(..., gt=0)
    currency: str = Field(..., min_length=3)
    order_id: uuid.UUID | None = None


class PaymentIntentResponse(ApiModel):
    client_secret: str | None
    payment_id: uuid.UUID


class PaymentResponse(ApiModel):
    id: uuid.UUID
    user_id: uuid.UUID
    order_id: uuid.UUID | None
    amount: float
    currency: str
    status: PaymentStatus
    stripe_payment_intent_id: str | None
    created_at: datetime


class PaymentAdminResponse(PaymentResponse):
    user: UserSummary


# ── Analytics Schemas ──────────────────────────────────────

class DashboardStats(ApiModel):
    total_users: int
    orders_by_status: dict[str, int]
    active_subscriptions: int
    completed_payments: int
    revenue_total: float
