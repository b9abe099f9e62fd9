"""
Refund requests and the refund amount calculator.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Iterable
from uuid import UUID, uuid4

from order_lifecycle.domain.errors import NotFoundError, ValidationError
from order_lifecycle.domain.materials import ZERO, to_money

if TYPE_CHECKING:
    from order_lifecycle.domain.order import Order


class RefundType(str, Enum):
    FULL = "full"
    PARTIAL = "partial"


class RefundStatus(str, Enum):
    """Refund state of an order."""
    NONE = "none"
    REQUESTED = "requested"
    PARTIAL = "partial"
    FULL = "full"


class RefundRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class RefundReason(str, Enum):
    DAMAGED_DEFECTIVE = "damaged_defective"
    WRONG_ITEM = "wrong_item"
    NOT_AS_DESCRIBED = "not_as_described"
    CHANGED_MIND = "changed_mind"
    DUPLICATE_ORDER = "duplicate_order"
    SHIPPING_DELAY = "shipping_delay"
    QUALITY_ISSUES = "quality_issues"
    OTHER = "other"


class RefundRequest:
    """A customer's request to refund an order, fully or partially."""

    def __init__(
        self,
        order_id: UUID,
        refund_type: RefundType,
        amount: Decimal,
        item_ids: Iterable[str] = (),
        reason: RefundReason = RefundReason.OTHER,
        description: str = "",
        id: UUID | None = None,
        status: RefundRequestStatus = RefundRequestStatus.PENDING,
        requested_at: datetime | None = None,
        resolved_at: datetime | None = None,
        admin_notes: str = "",
        rejection_reason: str = "",
    ):
        if amount < 0:
            raise ValidationError("Refund amount must be non-negative")

        self.id = id or uuid4()
        self.order_id = order_id
        self.refund_type = refund_type
        self.amount = amount
        self.item_ids = tuple(item_ids)
        self.reason = reason
        self.description = description
        self._status = status
        self.requested_at = requested_at or datetime.now(timezone.utc)
        self.resolved_at = resolved_at
        self.admin_notes = admin_notes
        self.rejection_reason = rejection_reason

    @property
    def status(self) -> RefundRequestStatus:
        return self._status

    @property
    def is_unresolved(self) -> bool:
        return self._status == RefundRequestStatus.PENDING

    def approve(self, at: datetime, admin_notes: str = "") -> None:
        self._resolve(RefundRequestStatus.APPROVED, at)
        if admin_notes:
            self.admin_notes = admin_notes

    def reject(self, reason: str, at: datetime, admin_notes: str = "") -> None:
        self._resolve(RefundRequestStatus.REJECTED, at)
        self.rejection_reason = reason
        if admin_notes:
            self.admin_notes = admin_notes

    def cancel(self, at: datetime) -> None:
        self._resolve(RefundRequestStatus.CANCELLED, at)

    def _resolve(self, status: RefundRequestStatus, at: datetime) -> None:
        if not self.is_unresolved:
            raise ValidationError(
                f"Refund request {self.id} is already {self._status.value}",
                code="REFUND_ALREADY_RESOLVED",
            )
        self._status = status
        self.resolved_at = at


@dataclass(frozen=True)
class RefundQuote:
    """Computed refund amount and how it splits."""
    refund_type: RefundType
    amount: Decimal
    item_ids: tuple[str, ...]
    items_amount: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal


def check_refund_eligibility(order: "Order", now: datetime, window_days: int) -> None:
    """Refunds open on delivery and close ``window_days`` later."""
    from order_lifecycle.domain.order import OrderStatus

    if order.status != OrderStatus.DELIVERED:
        raise ValidationError(
            f"Order {order.id} is not refundable in status {order.status.value}",
            code="NOT_REFUNDABLE",
        )
    delivered_at = order.delivered_at
    if delivered_at is not None and now - delivered_at > timedelta(days=window_days):
        raise ValidationError(
            f"Refund window of {window_days} days has expired for order {order.id}",
            code="REFUND_WINDOW_EXPIRED",
        )


def calculate_refund(
    order: "Order",
    refund_type: RefundType,
    selected_item_ids: Iterable[str] | None = None,
) -> RefundQuote:
    """Compute the refund amount for a full or partial request.

    Full refunds return the whole order total. Partial refunds return the
    selected items plus their proportional share of tax; shipping stays with
    the customer's original shipment.
    """
    refund_type = RefundType(refund_type)

    if order.open_refund_request is not None:
        raise ValidationError(
            f"Order {order.id} already has an unresolved refund request",
            code="REFUND_ALREADY_REQUESTED",
        )

    totals = order.totals

    if refund_type == RefundType.FULL:
        if order.refund_status == RefundStatus.PARTIAL:
            raise ValidationError(
                f"Order {order.id} is already partially refunded; "
                "request a partial refund for the remaining items",
                code="PARTIAL_REFUND_EXISTS",
            )
        return RefundQuote(
            refund_type=refund_type,
            amount=totals.total,
            item_ids=tuple(item.id for item in order.items),
            items_amount=totals.subtotal,
            tax_amount=totals.tax,
            shipping_amount=totals.shipping,
        )

    selected = list(dict.fromkeys(selected_item_ids or []))
    if not selected:
        raise ValidationError("Select at least one item for a partial refund")

    items = [order.get_item(item_id) for item_id in selected]
    if {item.id for item in items} == {item.id for item in order.items}:
        raise ValidationError(
            "All items are selected; request a full refund instead",
            code="USE_FULL_REFUND",
        )

    already_refunded = set(order.refunded_item_ids) & set(selected)
    if already_refunded:
        raise ValidationError(
            f"Items already refunded: {', '.join(sorted(already_refunded))}",
            code="ITEMS_ALREADY_REFUNDED",
        )

    selected_subtotal = sum((item.total_price * item.quantity for item in items), ZERO)
    if totals.subtotal > 0:
        tax_share = totals.tax * selected_subtotal / totals.subtotal
    else:
        tax_share = ZERO

    items_amount = to_money(selected_subtotal)
    tax_amount = to_money(tax_share)
    return RefundQuote(
        refund_type=refund_type,
        amount=to_money(selected_subtotal + tax_share),
        item_ids=tuple(item.id for item in items),
        items_amount=items_amount,
        tax_amount=tax_amount,
        shipping_amount=ZERO,
    )


def find_refund_request(requests: Iterable[RefundRequest], refund_id) -> RefundRequest:
    for request in requests:
        if str(request.id) == str(refund_id):
            return request
    raise NotFoundError("RefundRequest", refund_id)
