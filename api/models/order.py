"""Order, OrderMeal and OrderEvent ORM models — one-time meal purchases."""

import uuid
from datetime import datetime
from sqlalchemy import (
    String, Integer, DateTime, ForeignKey,
    Enum as SqlEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from db.database import Base

ORDER_STATUSES = ("pending", "confirmed", "delivered", "cancelled")


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    meal_plan_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("meal_plans.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        SqlEnum(*ORDER_STATUSES, name="order_status"),
        default="pending",
        nullable=False,
    )
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    user = relationship("User", back_populates="orders", lazy="selectin")
    meal_plan = relationship("MealPlan", lazy="selectin")
    meals = relationship(
        "OrderMeal",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderMeal.position",
    )
    events = relationship(
        "OrderEvent",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderEvent.id",
    )
    payments = relationship("Payment", back_populates="order")


class OrderMeal(Base):
    __tablename__ = "order_meals"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    meal_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("meals.id"), nullable=False)
    day: Mapped[str] = mapped_column(String(20), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # breakfast, lunch, dinner...
    position: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    order = relationship("Order", back_populates="meals")
    meal = relationship("Meal", lazy="selectin")


class OrderEvent(Base):
    """Audit row written for every order status change."""

    __tablename__ = "order_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    from_status: Mapped[str | None] = mapped_column(SqlEnum(*ORDER_STATUSES, name="order_status"))
    to_status: Mapped[str] = mapped_column(SqlEnum(*ORDER_STATUSES, name="order_status"), nullable=False)
    actor_type: Mapped[str] = mapped_column(String(20), nullable=False)  # USER, ADMIN, WEBHOOK
    actor_id: Mapped[uuid.UUID | None] = mapped_column()
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="events")
