"""
Stripe gateway — the only module that talks to the payment processor.

The SDK is blocking, so calls run in a worker thread. Signature checks,
retries and idempotency on the processor side are provided by the SDK.
"""

import asyncio
import json
import logging

import stripe

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """The processor rejected or failed a request."""


def _to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


async def create_payment_intent(
    amount: float,
    currency: str,
    metadata: dict[str, str],
    idempotency_key: str,
    api_key: str,
) -> stripe.PaymentIntent:
    """Create a PaymentIntent; `amount` is in major units (e.g. dollars)."""
    try:
        intent = await asyncio.to_thread(
            stripe.PaymentIntent.create,
            amount=_to_minor_units(amount),
            currency=currency.lower(),
            metadata=metadata,
            idempotency_key=idempotency_key,
            api_key=api_key,
        )
    except stripe.StripeError as e:
        logger.warning("Stripe PaymentIntent create failed: %s", e)
        raise PaymentGatewayError(str(e)) from e
    logger.info("Stripe PaymentIntent created: %s", intent.id)
    return intent


async def cancel_payment_intent(intent_id: str, api_key: str) -> None:
    """Compensating action when the local payment row could not be saved."""
    try:
        await asyncio.to_thread(
            stripe.PaymentIntent.cancel,
            intent_id,
            api_key=api_key,
        )
        logger.info("Stripe PaymentIntent cancelled: %s", intent_id)
    except stripe.StripeError as e:
        logger.error("Failed to cancel orphaned PaymentIntent %s: %s", intent_id, e)


def construct_webhook_event(payload: bytes, signature: str, secret: str) -> dict:
    """
    Verify the Stripe-Signature header against the raw body.

    Returns the event as a plain dict.
    Raises ValueError (bad payload) or stripe.SignatureVerificationError.
    """
    stripe.Webhook.construct_event(payload, signature, secret)
    return json.loads(payload)
