"""
Domain model for the Order aggregate.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable
from uuid import UUID, uuid4

from order_lifecycle.domain.customization import Customization, normalize_customization
from order_lifecycle.domain.errors import NotFoundError, ValidationError
from order_lifecycle.domain.materials import ZERO, to_money
from order_lifecycle.domain.pricing import OrderTotals, PricingBreakdown, order_totals
from order_lifecycle.domain.refund import (
    RefundRequest,
    RefundRequestStatus,
    RefundStatus,
    RefundType,
    find_refund_request,
)


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PENDING_REVIEW = "pending-review"
    REJECTED_NEEDS_UPLOAD = "rejected-needs-upload"
    PICTURE_REPLY_PENDING = "picture-reply-pending"
    PICTURE_REPLY_REJECTED = "picture-reply-rejected"
    PICTURE_REPLY_APPROVED = "picture-reply-approved"
    PENDING_PAYMENT = "pending-payment"
    APPROVED_PROCESSING = "approved-processing"
    READY_FOR_PRODUCTION = "ready-for-production"
    IN_PRODUCTION = "in-production"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class LineItem:
    """One product within an order, with its own customization and price."""

    def __init__(
        self,
        id: str,
        product_id: str | None,
        quantity: int,
        customization=None,
        pricing: PricingBreakdown | None = None,
    ):
        if not id:
            raise ValidationError("Line item id is required")
        if quantity <= 0:
            raise ValidationError("Quantity must be positive")

        self.id = str(id)
        self.product_id = product_id
        self.quantity = quantity
        self.customization: Customization | None = normalize_customization(customization)
        self.pricing = pricing

    @property
    def total_price(self) -> Decimal:
        """Unit price from the resolved breakdown."""
        if self.pricing is None:
            raise ValueError(f"Line item {self.id} has not been priced")
        return self.pricing.total_price

    @property
    def subtotal(self) -> Decimal:
        return self.total_price * self.quantity


class PictureReply:
    """Admin-submitted proof for one line item."""

    def __init__(
        self,
        line_item_id: str,
        image_ref: str,
        notes: str = "",
        id: UUID | None = None,
        sequence: int = 0,
        uploaded_at: datetime | None = None,
    ):
        if not image_ref:
            raise ValidationError(f"Picture reply for item {line_item_id} needs an image reference")

        self.id = id or uuid4()
        self.line_item_id = str(line_item_id)
        self.image_ref = image_ref
        self.notes = notes
        self.sequence = sequence
        self.uploaded_at = uploaded_at


class CustomerConfirmation:
    """Customer's decision on the current proof of one line item."""

    def __init__(
        self,
        line_item_id: str,
        confirmed: bool,
        notes: str = "",
        id: UUID | None = None,
        sequence: int = 0,
        confirmed_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.line_item_id = str(line_item_id)
        self.confirmed = bool(confirmed)
        self.notes = notes
        self.sequence = sequence
        self.confirmed_at = confirmed_at


# Timestamp attribute stamped when an order enters a status.
STATUS_TIMESTAMPS = {
    OrderStatus.PENDING_REVIEW: "submitted_at",
    OrderStatus.REJECTED_NEEDS_UPLOAD: "reviewed_at",
    OrderStatus.PICTURE_REPLY_PENDING: "reviewed_at",
    OrderStatus.PICTURE_REPLY_APPROVED: "customer_confirmed_at",
    OrderStatus.PICTURE_REPLY_REJECTED: "customer_confirmed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
}


class Order:
    """Order aggregate root.

    Replies and confirmations share one ``sequence`` counter so that a
    confirmation can be told apart as answering the latest proof of an item
    or an older one.
    """

    def __init__(
        self,
        id: UUID | None = None,
        customer_id: str | None = None,
        items: list[LineItem] | None = None,
        status: OrderStatus = OrderStatus.PENDING_REVIEW,
        shipping: Decimal = ZERO,
        tax: Decimal = ZERO,
        stored_total: Decimal | None = None,
        admin_notes: str = "",
        customer_notes: str = "",
        replies: list[PictureReply] | None = None,
        confirmations: list[CustomerConfirmation] | None = None,
        refund_requests: list[RefundRequest] | None = None,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        payment_reference: str = "",
        refund_status: RefundStatus = RefundStatus.NONE,
        refunded_amount: Decimal = ZERO,
        submitted_at: datetime | None = None,
        reviewed_at: datetime | None = None,
        picture_reply_uploaded_at: datetime | None = None,
        customer_confirmed_at: datetime | None = None,
        shipped_at: datetime | None = None,
        delivered_at: datetime | None = None,
        refund_requested_at: datetime | None = None,
        version: int = 0,
    ):
        if shipping < 0 or tax < 0:
            raise ValidationError("Shipping and tax must be non-negative")

        self.id = id or uuid4()
        self.customer_id = customer_id
        self._items = items or []
        self._status = status
        self.shipping = to_money(shipping)
        self.tax = to_money(tax)
        self.stored_total = stored_total
        self.admin_notes = admin_notes
        self.customer_notes = customer_notes
        self._replies = replies or []
        self._confirmations = confirmations or []
        self._refund_requests = refund_requests or []
        self.payment_status = payment_status
        self.payment_reference = payment_reference
        self.refund_status = refund_status
        self.refunded_amount = refunded_amount
        self.submitted_at = submitted_at
        self.reviewed_at = reviewed_at
        self.picture_reply_uploaded_at = picture_reply_uploaded_at
        self.customer_confirmed_at = customer_confirmed_at
        self.shipped_at = shipped_at
        self.delivered_at = delivered_at
        self.refund_requested_at = refund_requested_at
        self.version = version

        seen = set()
        for item in self._items:
            if item.id in seen:
                raise ValidationError(f"Duplicate line item id {item.id}")
            seen.add(item.id)

    @classmethod
    def submit(
        cls,
        customer_id: str | None,
        items: list[LineItem],
        shipping: Decimal = ZERO,
        tax: Decimal = ZERO,
        customer_notes: str = "",
        at: datetime | None = None,
    ) -> "Order":
        """Create a new order in its initial state."""
        if not items:
            raise ValidationError("Cannot submit an order without items")
        return cls(
            customer_id=customer_id,
            items=items,
            shipping=shipping,
            tax=tax,
            customer_notes=customer_notes,
            submitted_at=at or datetime.now(timezone.utc),
        )

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def items(self) -> list[LineItem]:
        return list(self._items)

    @property
    def replies(self) -> list[PictureReply]:
        return list(self._replies)

    @property
    def confirmations(self) -> list[CustomerConfirmation]:
        return list(self._confirmations)

    @property
    def refund_requests(self) -> list[RefundRequest]:
        return list(self._refund_requests)

    def get_item(self, item_id: str) -> LineItem:
        for item in self._items:
            if item.id == str(item_id):
                return item
        raise NotFoundError("LineItem", item_id)

    # Totals

    @property
    def totals(self) -> OrderTotals:
        return order_totals(self._items, self.shipping, self.tax)

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def total(self) -> Decimal:
        """Recomputed total; ``stored_total`` is only a cache of it."""
        return self.totals.total

    # Picture replies and confirmations

    def _next_sequence(self) -> int:
        sequences = [r.sequence for r in self._replies] + [c.sequence for c in self._confirmations]
        return max(sequences, default=0) + 1

    def attach_replies(self, replies: Iterable[PictureReply], at: datetime) -> list[PictureReply]:
        replies = list(replies)
        if not replies:
            raise ValidationError("At least one picture reply is required")
        for reply in replies:
            self.get_item(reply.line_item_id)

        for reply in replies:
            reply.sequence = self._next_sequence()
            reply.uploaded_at = reply.uploaded_at or at
            self._replies.append(reply)
        self.picture_reply_uploaded_at = at
        return replies

    def latest_reply(self, item_id: str) -> PictureReply | None:
        candidates = [r for r in self._replies if r.line_item_id == item_id]
        return max(candidates, key=lambda r: r.sequence, default=None)

    def active_confirmation(self, item_id: str) -> CustomerConfirmation | None:
        candidates = [c for c in self._confirmations if c.line_item_id == item_id]
        return max(candidates, key=lambda c: c.sequence, default=None)

    def current_decision(self, item_id: str) -> CustomerConfirmation | None:
        """Active confirmation if it answers the item's latest proof."""
        reply = self.latest_reply(item_id)
        confirmation = self.active_confirmation(item_id)
        if reply is None or confirmation is None:
            return None
        if confirmation.sequence < reply.sequence:
            return None
        return confirmation

    @property
    def replied_item_ids(self) -> list[str]:
        replied = {r.line_item_id for r in self._replies}
        return [item.id for item in self._items if item.id in replied]

    @property
    def unreplied_item_ids(self) -> list[str]:
        replied = {r.line_item_id for r in self._replies}
        return [item.id for item in self._items if item.id not in replied]

    @property
    def awaiting_decision_item_ids(self) -> list[str]:
        return [i for i in self.replied_item_ids if self.current_decision(i) is None]

    @property
    def rejected_item_ids(self) -> list[str]:
        """Items whose latest proof was rejected and not yet replaced."""
        result = []
        for item_id in self.replied_item_ids:
            decision = self.current_decision(item_id)
            if decision is not None and not decision.confirmed:
                result.append(item_id)
        return result

    @property
    def all_proofs_approved(self) -> bool:
        """Every line item has a proof and its latest proof is approved."""
        if self.unreplied_item_ids:
            return False
        for item_id in self.replied_item_ids:
            decision = self.current_decision(item_id)
            if decision is None or not decision.confirmed:
                return False
        return True

    def record_confirmations(
        self, confirmations: Iterable[CustomerConfirmation], at: datetime
    ) -> list[CustomerConfirmation]:
        confirmations = list(confirmations)
        if not confirmations:
            raise ValidationError("At least one confirmation is required")

        seen = set()
        for confirmation in confirmations:
            item_id = confirmation.line_item_id
            self.get_item(item_id)
            if item_id in seen:
                raise ValidationError(f"Duplicate confirmation for item {item_id}")
            seen.add(item_id)
            if self.latest_reply(item_id) is None:
                raise ValidationError(f"Item {item_id} has no picture reply to confirm")
            decision = self.current_decision(item_id)
            if decision is not None and decision.confirmed:
                raise ValidationError(
                    f"Item {item_id} proof is already approved",
                    code="ALREADY_CONFIRMED",
                )

        for confirmation in confirmations:
            confirmation.sequence = self._next_sequence()
            confirmation.confirmed_at = confirmation.confirmed_at or at
            self._confirmations.append(confirmation)
        return confirmations

    # Payment

    def mark_payment_completed(self, reference: str = "") -> None:
        self.payment_status = PaymentStatus.COMPLETED
        if reference:
            self.payment_reference = reference

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.COMPLETED

    # Refunds

    @property
    def open_refund_request(self) -> RefundRequest | None:
        for request in self._refund_requests:
            if request.is_unresolved:
                return request
        return None

    def get_refund_request(self, refund_id) -> RefundRequest:
        return find_refund_request(self._refund_requests, refund_id)

    @property
    def refunded_item_ids(self) -> list[str]:
        ids: list[str] = []
        for request in self._refund_requests:
            if request.status == RefundRequestStatus.APPROVED:
                ids.extend(i for i in request.item_ids if i not in ids)
        return ids

    @property
    def has_approved_full_refund(self) -> bool:
        return any(
            r.status == RefundRequestStatus.APPROVED and r.refund_type == RefundType.FULL
            for r in self._refund_requests
        )

    def add_refund_request(self, request: RefundRequest, at: datetime) -> None:
        if self.open_refund_request is not None:
            raise ValidationError(
                f"Order {self.id} already has an unresolved refund request",
                code="REFUND_ALREADY_REQUESTED",
            )
        self._refund_requests.append(request)
        self.refund_status = RefundStatus.REQUESTED
        self.refund_requested_at = at

    def apply_refund_approval(self, request: RefundRequest) -> None:
        """Book an approved request against the order's refund state."""
        self.refunded_amount = to_money(self.refunded_amount + request.amount)
        if request.refund_type == RefundType.FULL:
            self.refund_status = RefundStatus.FULL
        else:
            self.refund_status = RefundStatus.PARTIAL

    def restore_refund_status(self) -> None:
        """Refund state after a request was rejected or cancelled."""
        approved = [r for r in self._refund_requests if r.status == RefundRequestStatus.APPROVED]
        if any(r.refund_type == RefundType.FULL for r in approved):
            self.refund_status = RefundStatus.FULL
        elif approved:
            self.refund_status = RefundStatus.PARTIAL
        else:
            self.refund_status = RefundStatus.NONE

    # Status

    def _apply_status(self, status: OrderStatus, at: datetime) -> None:
        """Set status and stamp its timestamp. Only the state machine calls this."""
        self._status = status
        attribute = STATUS_TIMESTAMPS.get(status)
        if attribute is not None:
            setattr(self, attribute, at)
