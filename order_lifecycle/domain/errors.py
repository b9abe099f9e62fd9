"""
Error taxonomy for the order lifecycle core.
"""
from __future__ import annotations

from decimal import Decimal


class OrderLifecycleError(Exception):
    """Base error carrying a machine-readable code."""
    code = "ORDER_LIFECYCLE_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code:
            self.code = code
        super().__init__(self.message)


class ValidationError(OrderLifecycleError):
    """Malformed or policy-violating input."""
    code = "VALIDATION_ERROR"


class NotFoundError(OrderLifecycleError):
    """Order, line item or refund request does not exist."""
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class StateTransitionError(OrderLifecycleError):
    """Requested status transition is not allowed or its guard is unmet."""
    code = "INVALID_STATE"

    def __init__(self, current, attempted, guard: str):
        self.current = current
        self.attempted = attempted
        self.guard = guard
        super().__init__(
            f"Cannot move order from {_status_value(current)} to "
            f"{_status_value(attempted)}: {guard}"
        )


class ConsistencyError(OrderLifecycleError):
    """Stored order total diverged from the recomputed one."""
    code = "CONSISTENCY_ERROR"

    def __init__(self, order_id, stored: Decimal, recomputed: Decimal):
        self.order_id = order_id
        self.stored = stored
        self.recomputed = recomputed
        super().__init__(
            f"Order {order_id} stored total {stored} differs from "
            f"recomputed total {recomputed}"
        )


class ConcurrentModificationError(OrderLifecycleError):
    """Version check failed on save; caller must reload and retry."""
    code = "CONCURRENT_MODIFICATION"

    def __init__(self, order_id, expected_version: int | None):
        self.order_id = order_id
        self.expected_version = expected_version
        super().__init__(
            f"Order {order_id} was modified concurrently "
            f"(expected version {expected_version})"
        )


class PaymentError(OrderLifecycleError):
    """Payment collaborator reported a failure."""
    code = "PAYMENT_FAILED"

    def __init__(self, order_id, reason: str):
        self.order_id = order_id
        self.reason = reason
        super().__init__(f"Payment for order {order_id} failed: {reason}")


def _status_value(status) -> str:
    return getattr(status, "value", str(status))
