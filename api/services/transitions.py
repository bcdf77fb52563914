"""
Status state machines for orders, subscriptions, payments and support tickets.

Every status field moves only through its transition table, keyed by
(current status, action). Any pair missing from the table raises
InvalidTransition, which the error translator turns into a 400.

  Order:        pending ─confirm→ confirmed ─deliver→ delivered
                pending|confirmed ─cancel→ cancelled (cancel is idempotent)
  Subscription: active ⇄ paused (pause / resume), active|paused ─cancel→ cancelled
  Payment:      pending ─succeed→ completed, pending ─fail→ failed,
                failed ─succeed→ completed (processor retry)
  Ticket:       open → in_progress → resolved → closed, resolved ─reopen→ in_progress
"""

from dataclasses import dataclass, field


class InvalidTransition(ValueError):
    """Raised when an action is not allowed from the current status."""

    def __init__(self, machine: str, current: str, action: str, message: str):
        super().__init__(message)
        self.machine = machine
        self.current = current
        self.action = action
        self.message = message


@dataclass(frozen=True)
class StateMachine:
    name: str
    transitions: dict[tuple[str, str], str]
    # Fixed error message per action; {current} is filled in
    messages: dict[str, str] = field(default_factory=dict)

    def can(self, current: str, action: str) -> bool:
        return (current, action) in self.transitions

    def next_status(self, current: str, action: str) -> str:
        try:
            return self.transitions[(current, action)]
        except KeyError:
            template = self.messages.get(action, "Cannot {action} a {current} {name}")
            message = template.format(action=action, current=current, name=self.name)
            raise InvalidTransition(self.name, current, action, message) from None

    def action_for(self, current: str, target: str) -> str:
        """Find the action that moves `current` to `target` (for PUT-style updates)."""
        for (state, action), new_status in self.transitions.items():
            if state == current and new_status == target:
                return action
        message = f"Cannot change {self.name} status from {current} to {target}"
        raise InvalidTransition(self.name, current, f"set:{target}", message)


# ── Tables ─────────────────────────────────────────────────

ORDER_MACHINE = StateMachine(
    name="order",
    transitions={
        ("pending", "confirm"): "confirmed",
        ("pending", "cancel"): "cancelled",
        ("confirmed", "deliver"): "delivered",
        ("confirmed", "cancel"): "cancelled",
        ("cancelled", "cancel"): "cancelled",
    },
    messages={
        "cancel": "Cannot cancel a delivered order",
        "confirm": "Only pending orders can be confirmed",
        "deliver": "Only confirmed orders can be delivered",
    },
)

SUBSCRIPTION_MACHINE = StateMachine(
    name="subscription",
    transitions={
        ("active", "pause"): "paused",
        ("paused", "resume"): "active",
        ("active", "cancel"): "cancelled",
        ("paused", "cancel"): "cancelled",
    },
    messages={
        "pause": "Can only pause active subscriptions",
        "resume": "Can only resume paused subscriptions",
        "cancel": "Subscription is already cancelled",
    },
)

PAYMENT_MACHINE = StateMachine(
    name="payment",
    transitions={
        ("pending", "succeed"): "completed",
        ("pending", "fail"): "failed",
        ("failed", "succeed"): "completed",
    },
)

TICKET_MACHINE = StateMachine(
    name="ticket",
    transitions={
        ("open", "start"): "in_progress",
        ("open", "resolve"): "resolved",
        ("open", "close"): "closed",
        ("in_progress", "resolve"): "resolved",
        ("in_progress", "close"): "closed",
        ("resolved", "close"): "closed",
        ("resolved", "reopen"): "in_progress",
    },
    messages={
        "close": "Ticket is already closed",
    },
)
