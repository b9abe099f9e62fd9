"""
Order status state machine.

Every status change goes through ``OrderStateMachine.transition``, which
checks that the edge exists and that its guard holds.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from order_lifecycle.domain.errors import StateTransitionError
from order_lifecycle.domain.order import Order, OrderStatus

S = OrderStatus

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    S.PENDING_REVIEW: frozenset({S.REJECTED_NEEDS_UPLOAD, S.PICTURE_REPLY_PENDING}),
    S.REJECTED_NEEDS_UPLOAD: frozenset({S.PENDING_REVIEW}),
    S.PICTURE_REPLY_PENDING: frozenset({
        S.PICTURE_REPLY_REJECTED,
        S.PICTURE_REPLY_APPROVED,
        S.PENDING_PAYMENT,
        S.REJECTED_NEEDS_UPLOAD,
    }),
    S.PICTURE_REPLY_REJECTED: frozenset({S.PICTURE_REPLY_PENDING}),
    S.PICTURE_REPLY_APPROVED: frozenset({S.PENDING_PAYMENT}),
    S.PENDING_PAYMENT: frozenset({S.APPROVED_PROCESSING}),
    S.APPROVED_PROCESSING: frozenset({S.READY_FOR_PRODUCTION}),
    S.READY_FOR_PRODUCTION: frozenset({S.IN_PRODUCTION}),
    S.IN_PRODUCTION: frozenset({S.SHIPPED}),
    S.SHIPPED: frozenset({S.DELIVERED}),
    S.DELIVERED: frozenset({S.REFUNDED}),
    S.REFUNDED: frozenset(),
}

TERMINAL_STATES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def _has_reply(order: Order) -> str | None:
    if not order.replied_item_ids:
        return "at least one picture reply is required"
    return None


def _all_proofs_approved(order: Order) -> str | None:
    if not order.replied_item_ids:
        return "no picture replies to confirm"
    missing = order.unreplied_item_ids
    if missing:
        return f"picture reply missing for items {', '.join(missing)}"
    waiting = order.awaiting_decision_item_ids
    if waiting:
        return f"awaiting customer confirmation for items {', '.join(waiting)}"
    rejected = order.rejected_item_ids
    if rejected:
        return f"customer rejected items {', '.join(rejected)}"
    return None


def _has_rejection(order: Order) -> str | None:
    if not order.rejected_item_ids:
        return "no picture reply was rejected"
    return None


def _rejections_answered(order: Order) -> str | None:
    rejected = order.rejected_item_ids
    if rejected:
        return f"new picture reply required for items {', '.join(rejected)}"
    return None


def _payment_completed(order: Order) -> str | None:
    if not order.is_paid:
        return "payment has not been confirmed"
    return None


def _full_refund_approved(order: Order) -> str | None:
    if not order.has_approved_full_refund:
        return "an approved full refund is required"
    return None


Guard = Callable[[Order], "str | None"]

GUARDS: dict[tuple[OrderStatus, OrderStatus], Guard] = {
    (S.PENDING_REVIEW, S.PICTURE_REPLY_PENDING): _has_reply,
    (S.PICTURE_REPLY_PENDING, S.PICTURE_REPLY_APPROVED): _all_proofs_approved,
    (S.PICTURE_REPLY_PENDING, S.PENDING_PAYMENT): _all_proofs_approved,
    (S.PICTURE_REPLY_APPROVED, S.PENDING_PAYMENT): _all_proofs_approved,
    (S.PICTURE_REPLY_PENDING, S.PICTURE_REPLY_REJECTED): _has_rejection,
    (S.PICTURE_REPLY_PENDING, S.REJECTED_NEEDS_UPLOAD): _has_rejection,
    (S.PICTURE_REPLY_REJECTED, S.PICTURE_REPLY_PENDING): _rejections_answered,
    (S.PENDING_PAYMENT, S.APPROVED_PROCESSING): _payment_completed,
    (S.DELIVERED, S.REFUNDED): _full_refund_approved,
}


class OrderStateMachine:
    """Checks and applies order status transitions."""

    @staticmethod
    def allowed_targets(status: OrderStatus) -> frozenset[OrderStatus]:
        return TRANSITIONS[OrderStatus(status)]

    @staticmethod
    def unmet_guard(order: Order, target: OrderStatus) -> str | None:
        """Reason the transition cannot happen, or None when it can."""
        target = OrderStatus(target)
        current = order.status
        if current in TERMINAL_STATES:
            return f"{current.value} is a terminal state"
        if target not in TRANSITIONS[current]:
            return "transition is not allowed"
        guard = GUARDS.get((current, target))
        if guard is None:
            return None
        return guard(order)

    @classmethod
    def can_transition(cls, order: Order, target: OrderStatus) -> bool:
        return cls.unmet_guard(order, target) is None

    @classmethod
    def transition(cls, order: Order, target: OrderStatus, at: datetime | None = None) -> OrderStatus:
        """Move ``order`` to ``target``; returns the previous status."""
        target = OrderStatus(target)
        previous = order.status
        reason = cls.unmet_guard(order, target)
        if reason is not None:
            raise StateTransitionError(previous, target, reason)
        order._apply_status(target, at or datetime.now(timezone.utc))
        return previous
