"""
Refund request lifecycle: request, approve, reject, cancel.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from order_lifecycle.domain.events import RefundRequested
from order_lifecycle.domain.order import OrderStatus
from order_lifecycle.domain.refund import (
    RefundQuote,
    RefundReason,
    RefundRequest,
    RefundType,
    calculate_refund,
    check_refund_eligibility,
)
from order_lifecycle.services.lifecycle import OrderServiceBase

logger = logging.getLogger(__name__)


class RefundService(OrderServiceBase):
    """Service for post-delivery refunds."""

    def quote_refund(self, order_id: UUID, refund_type: RefundType,
                     item_ids: list[str] | None = None) -> RefundQuote:
        order = self.order_repo.load(order_id)
        check_refund_eligibility(order, timezone.now(), settings.REFUND_WINDOW_DAYS)
        return calculate_refund(order, RefundType(refund_type), item_ids)

    @transaction.atomic
    def request_refund(
        self,
        order_id: UUID,
        refund_type: RefundType,
        item_ids: list[str] | None = None,
        reason: RefundReason = RefundReason.OTHER,
        description: str = "",
    ) -> RefundRequest:
        order = self.order_repo.load(order_id)
        version = order.version
        now = timezone.now()
        check_refund_eligibility(order, now, settings.REFUND_WINDOW_DAYS)
        quote = calculate_refund(order, RefundType(refund_type), item_ids)

        request = RefundRequest(
            order_id=order.id,
            refund_type=quote.refund_type,
            amount=quote.amount,
            item_ids=quote.item_ids,
            reason=RefundReason(reason),
            description=description,
            requested_at=now,
        )
        order.add_refund_request(request, at=now)

        events = [RefundRequested(
            aggregate_id=order.id,
            refund_id=request.id,
            refund_type=request.refund_type.value,
            amount=request.amount,
            item_ids=list(request.item_ids),
        )]
        self._save(order, version, events)
        logger.info(
            "refund_requested",
            extra={
                "order_id": str(order.id),
                "refund_id": str(request.id),
                "refund_type": request.refund_type.value,
                "amount": str(request.amount),
            },
        )
        return request

    @transaction.atomic
    def approve_refund(self, order_id: UUID, refund_id: UUID, admin_notes: str = ""):
        """Approve a request; a full refund moves the order to refunded."""
        order = self.order_repo.load(order_id)
        version = order.version
        request = order.get_refund_request(refund_id)
        request.approve(timezone.now(), admin_notes)
        order.apply_refund_approval(request)

        events: list = []
        if request.refund_type == RefundType.FULL:
            self._transition(order, OrderStatus.REFUNDED, events)

        logger.info(
            "refund_approved",
            extra={
                "order_id": str(order.id),
                "refund_id": str(request.id),
                "refunded_amount": str(order.refunded_amount),
            },
        )
        return self._save(order, version, events)

    @transaction.atomic
    def reject_refund(self, order_id: UUID, refund_id: UUID, reason: str, admin_notes: str = ""):
        order = self.order_repo.load(order_id)
        version = order.version
        request = order.get_refund_request(refund_id)
        request.reject(reason, timezone.now(), admin_notes)
        order.restore_refund_status()
        logger.info("refund_rejected", extra={"order_id": str(order.id), "refund_id": str(request.id)})
        return self._save(order, version, [])

    @transaction.atomic
    def cancel_refund(self, order_id: UUID, refund_id: UUID):
        """Customer withdraws a request still awaiting review."""
        order = self.order_repo.load(order_id)
        version = order.version
        request = order.get_refund_request(refund_id)
        request.cancel(timezone.now())
        order.restore_refund_status()
        logger.info("refund_cancelled", extra={"order_id": str(order.id), "refund_id": str(request.id)})
        return self._save(order, version, [])
