"""
Historical status vocabulary and its mapping onto the current states.

Used only by the ``migrate_legacy_orders`` command.
"""
from __future__ import annotations

from order_lifecycle.domain.order import OrderStatus

LEGACY_STATUS_MAP: dict[str, OrderStatus] = {
    "pending": OrderStatus.PENDING_REVIEW,
    "approved": OrderStatus.APPROVED_PROCESSING,
    "rejected": OrderStatus.REJECTED_NEEDS_UPLOAD,
    "needs-changes": OrderStatus.PICTURE_REPLY_PENDING,
    "picture-reply-approved": OrderStatus.PENDING_PAYMENT,
    # Historical checkout step; both it and "picture-reply-approved" meant
    # "customer approved, waiting for payment".
    "ready-for-checkout": OrderStatus.PENDING_PAYMENT,
}


def map_legacy_status(value: str) -> OrderStatus | None:
    """Current status for a stored value, or None when it is not recognised."""
    value = (value or "").strip().lower()
    try:
        return OrderStatus(value)
    except ValueError:
        return LEGACY_STATUS_MAP.get(value)
