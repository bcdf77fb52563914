"""
Payment endpoints — Stripe PaymentIntents and the Stripe webhook.

Flow:
  create-intent → pending Payment row (flushed) → Stripe PaymentIntent
                  (idempotency key = payment id) → intent id stored → commit
  webhook       → signature verified by the Stripe SDK → payment found by
                  intent id → payment / order moved through their state machines
"""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import stripe

from config import Settings, get_app_settings
from db.database import get_db
from models.order import Order
from models.payment import Payment
from models.user import User
from routers.orders import apply_order_action
from schemas import (
    PaymentIntentCreate, PaymentIntentResponse, PaymentResponse, PaymentAdminResponse,
)
from services import stripe_gateway
from services.auth import ADMIN_ONLY, get_current_user, require_roles, ensure_owner_or_privileged
from services.transitions import ORDER_MACHINE, PAYMENT_MACHINE

router = APIRouter()
logger = logging.getLogger(__name__)


# ── Customer endpoints ─────────────────────────────────────

@router.post("/create-intent", response_model=PaymentIntentResponse, status_code=201)
async def create_payment_intent(
    data: PaymentIntentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cfg: Settings = Depends(get_app_settings),
):
    """
    Create a Stripe PaymentIntent and its local pending Payment row.

    Processor failure → nothing is kept locally (502).
    Local commit failure after the intent exists → the intent is cancelled.
    """
    if data.order_id:
        result = await db.execute(select(Order).where(Order.id == data.order_id))
        order = result.scalar_one_or_none()
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        ensure_owner_or_privileged(user, order.user_id, "access this order")

    payment = Payment(
        id=uuid.uuid4(),
        user_id=user.id,
        order_id=data.order_id,
        amount=data.amount,
        currency=data.currency.lower(),
        status="pending",
    )
    db.add(payment)
    await db.flush()

    metadata = {"userId": str(user.id), "paymentId": str(payment.id)}
    if data.order_id:
        metadata["orderId"] = str(data.order_id)

    intent = await stripe_gateway.create_payment_intent(
        amount=data.amount,
        currency=data.currency,
        metadata=metadata,
        idempotency_key=f"payment-{payment.id}",
        api_key=cfg.STRIPE_SECRET_KEY,
    )
    payment.stripe_payment_intent_id = intent.id

    try:
        await db.commit()
    except SQLAlchemyError:
        logger.error("Payment %s not saved; cancelling intent %s", payment.id, intent.id)
        await db.rollback()
        await stripe_gateway.cancel_payment_intent(intent.id, cfg.STRIPE_SECRET_KEY)
        raise

    logger.info("Payment created: id=%s intent=%s user=%s order=%s", payment.id, intent.id, user.id, data.order_id)
    return PaymentIntentResponse(client_secret=intent.client_secret, payment_id=payment.id)


@router.get("/", response_model=list[PaymentResponse])
async def list_my_payments(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Payments of the current user, newest first."""
    result = await db.execute(
        select(Payment).where(Payment.user_id == user.id).order_by(Payment.created_at.desc())
    )
    return result.scalars().all()


@router.get("/admin/all", response_model=list[PaymentAdminResponse])
async def list_all_payments(
    skip: int = 0,
    limit: int = 50,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Payment).offset(skip).limit(limit).order_by(Payment.created_at.desc())
    )
    return result.scalars().all()


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Payment).where(Payment.id == payment_id))
    payment = result.scalar_one_or_none()
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    ensure_owner_or_privileged(user, payment.user_id, "view this payment")
    return payment


# ── Stripe webhook ─────────────────────────────────────────

def _parse_uuid(value) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


async def _find_payment(db: AsyncSession, intent: dict) -> Payment | None:
    """
    Locate the Payment for a PaymentIntent.

    Keyed on the stored intent id. Rows saved without an intent id are
    matched on the (userId, orderId) metadata, pending rows only.
    """
    intent_id = intent.get("id")
    if intent_id:
        result = await db.execute(
            select(Payment).where(Payment.stripe_payment_intent_id == intent_id)
        )
        payment = result.scalar_one_or_none()
        if payment:
            return payment

    metadata = intent.get("metadata") or {}
    user_id = _parse_uuid(metadata.get("userId"))
    order_id = _parse_uuid(metadata.get("orderId"))
    if not user_id or not order_id:
        return None

    result = await db.execute(
        select(Payment)
        .where(
            and_(
                Payment.user_id == user_id,
                Payment.order_id == order_id,
                Payment.status == "pending",
                Payment.stripe_payment_intent_id.is_(None),
            )
        )
        .order_by(Payment.created_at.desc())
    )
    payment = result.scalars().first()
    if payment and intent_id:
        payment.stripe_payment_intent_id = intent_id
    return payment


async def _apply_payment_event(db: AsyncSession, intent: dict, action: str) -> None:
    payment = await _find_payment(db, intent)
    if not payment:
        logger.warning("Webhook: no payment for intent %s", intent.get("id"))
        return

    if not PAYMENT_MACHINE.can(payment.status, action):
        # Replayed or out-of-order event; terminal states are left alone
        logger.info("Webhook: payment %s already %s, ignoring %s", payment.id, payment.status, action)
        return

    payment.status = PAYMENT_MACHINE.next_status(payment.status, action)
    logger.info("Webhook: payment %s -> %s", payment.id, payment.status)

    if payment.status == "completed" and payment.order_id:
        result = await db.execute(select(Order).where(Order.id == payment.order_id))
        order = result.scalar_one_or_none()
        if order and ORDER_MACHINE.can(order.status, "confirm"):
            db.add(apply_order_action(order, "confirm", "WEBHOOK", None))
            logger.info("Webhook: order %s confirmed", order.id)
        elif order:
            logger.warning("Webhook: order %s is %s, not confirming", order.id, order.status)

    await db.commit()


WEBHOOK_ACTIONS = {
    "payment_intent.succeeded": "succeed",
    "payment_intent.payment_failed": "fail",
}


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    cfg: Settings = Depends(get_app_settings),
):
    """Stripe event receiver. Needs the raw body for signature verification."""
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(status_code=400, detail="Missing Stripe signature")

    payload = await request.body()
    try:
        event = stripe_gateway.construct_webhook_event(payload, signature, cfg.STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}")

    event_type = event.get("type")
    action = WEBHOOK_ACTIONS.get(event_type)
    if action:
        intent = (event.get("data") or {}).get("object") or {}
        await _apply_payment_event(db, intent, action)
    else:
        logger.info("Unhandled Stripe event type %s", event_type)

    return {"received": True}
