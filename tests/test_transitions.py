"""Tests for the status state machines."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import pytest

from services.transitions import (
    InvalidTransition, ORDER_MACHINE, SUBSCRIPTION_MACHINE, PAYMENT_MACHINE, TICKET_MACHINE,
)


def test_order_happy_path():
    status = "pending"
    status = ORDER_MACHINE.next_status(status, "confirm")
    assert status == "confirmed"
    status = ORDER_MACHINE.next_status(status, "deliver")
    assert status == "delivered"


@pytest.mark.parametrize("start", ["pending", "confirmed", "cancelled"])
def test_order_cancel_allowed(start):
    assert ORDER_MACHINE.next_status(start, "cancel") == "cancelled"


def test_order_cancel_delivered_rejected():
    with pytest.raises(InvalidTransition) as exc:
        ORDER_MACHINE.next_status("delivered", "cancel")
    assert exc.value.message == "Cannot cancel a delivered order"
    assert exc.value.machine == "order"


def test_order_cannot_skip_confirmation():
    with pytest.raises(InvalidTransition):
        ORDER_MACHINE.next_status("pending", "deliver")


def test_action_for_finds_action():
    assert ORDER_MACHINE.action_for("confirmed", "delivered") == "deliver"
    assert SUBSCRIPTION_MACHINE.action_for("paused", "active") == "resume"


def test_action_for_unknown_target():
    with pytest.raises(InvalidTransition) as exc:
        ORDER_MACHINE.action_for("pending", "delivered")
    assert exc.value.message == "Cannot change order status from pending to delivered"


def test_subscription_pause_resume():
    assert SUBSCRIPTION_MACHINE.next_status("active", "pause") == "paused"
    assert SUBSCRIPTION_MACHINE.next_status("paused", "resume") == "active"


@pytest.mark.parametrize("start", ["paused", "cancelled"])
def test_subscription_pause_only_from_active(start):
    with pytest.raises(InvalidTransition) as exc:
        SUBSCRIPTION_MACHINE.next_status(start, "pause")
    assert exc.value.message == "Can only pause active subscriptions"


def test_subscription_cancel_is_terminal():
    with pytest.raises(InvalidTransition) as exc:
        SUBSCRIPTION_MACHINE.next_status("cancelled", "cancel")
    assert exc.value.message == "Subscription is already cancelled"


def test_payment_completed_is_terminal():
    assert not PAYMENT_MACHINE.can("completed", "succeed")
    assert not PAYMENT_MACHINE.can("completed", "fail")
    assert PAYMENT_MACHINE.next_status("failed", "succeed") == "completed"


def test_ticket_lifecycle():
    status = "open"
    for action, expected in [("start", "in_progress"), ("resolve", "resolved"),
                             ("reopen", "in_progress"), ("close", "closed")]:
        status = TICKET_MACHINE.next_status(status, action)
        assert status == expected

    with pytest.raises(InvalidTransition) as exc:
        TICKET_MACHINE.next_status("closed", "close")
    assert exc.value.message == "Ticket is already closed"


def test_default_message():
    with pytest.raises(InvalidTransition) as exc:
        PAYMENT_MACHINE.next_status("completed", "fail")
    assert exc.value.message == "Cannot fail a completed payment"
