"""
Unit tests for refund eligibility and the refund amount calculator.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from django.test import TestCase

from order_lifecycle.domain.errors import NotFoundError, ValidationError
from order_lifecycle.domain.order import OrderStatus
from order_lifecycle.domain.refund import (
    RefundRequest,
    RefundRequestStatus,
    RefundStatus,
    RefundType,
    calculate_refund,
    check_refund_eligibility,
)
from order_lifecycle.test.factories import make_order, priced_item

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def delivered_order(**kwargs):
    return make_order(
        priced_item("item-1", "30.00"),
        priced_item("item-2", "35.00"),
        status=OrderStatus.DELIVERED,
        shipping="5",
        tax="4",
        delivered_at=NOW - timedelta(days=2),
        **kwargs,
    )


class CalculateRefundTest(TestCase):
    """Tests for calculate_refund."""

    def test_partial_refund_includes_tax_share(self):
        quote = calculate_refund(delivered_order(), RefundType.PARTIAL, ["item-1"])

        self.assertEqual(quote.amount, Decimal("31.85"))
        self.assertEqual(quote.items_amount, Decimal("30.00"))
        self.assertEqual(quote.tax_amount, Decimal("1.85"))
        self.assertEqual(quote.shipping_amount, Decimal("0"))
        self.assertEqual(quote.item_ids, ("item-1",))

    def test_full_refund_is_order_total(self):
        quote = calculate_refund(delivered_order(), RefundType.FULL)

        self.assertEqual(quote.amount, Decimal("74.00"))
        self.assertEqual(quote.shipping_amount, Decimal("5.00"))
        self.assertEqual(quote.item_ids, ("item-1", "item-2"))

    def test_accepts_type_string(self):
        quote = calculate_refund(delivered_order(), "partial", ["item-2"])
        self.assertEqual(quote.refund_type, RefundType.PARTIAL)

    def test_selecting_every_item_needs_full_refund(self):
        with self.assertRaises(ValidationError) as ctx:
            calculate_refund(delivered_order(), RefundType.PARTIAL, ["item-1", "item-2"])
        self.assertEqual(ctx.exception.code, "USE_FULL_REFUND")

    def test_empty_selection_fails(self):
        with self.assertRaises(ValidationError):
            calculate_refund(delivered_order(), RefundType.PARTIAL, [])

    def test_unknown_item_fails(self):
        with self.assertRaises(NotFoundError):
            calculate_refund(delivered_order(), RefundType.PARTIAL, ["item-9"])

    def test_open_request_blocks_new_quote(self):
        order = delivered_order()
        order.add_refund_request(RefundRequest(order.id, RefundType.PARTIAL, Decimal("31.85"), ["item-1"]), NOW)

        with self.assertRaises(ValidationError) as ctx:
            calculate_refund(order, RefundType.PARTIAL, ["item-2"])
        self.assertEqual(ctx.exception.code, "REFUND_ALREADY_REQUESTED")

    def test_refunded_items_cannot_be_refunded_again(self):
        order = delivered_order()
        request = RefundRequest(order.id, RefundType.PARTIAL, Decimal("31.85"), ["item-1"])
        order.add_refund_request(request, NOW)
        request.approve(NOW)
        order.apply_refund_approval(request)

        with self.assertRaises(ValidationError) as ctx:
            calculate_refund(order, RefundType.PARTIAL, ["item-1"])
        self.assertEqual(ctx.exception.code, "ITEMS_ALREADY_REFUNDED")

        with self.assertRaises(ValidationError) as ctx:
            calculate_refund(order, RefundType.FULL)
        self.assertEqual(ctx.exception.code, "PARTIAL_REFUND_EXISTS")

        self.assertEqual(calculate_refund(order, RefundType.PARTIAL, ["item-2"]).amount, Decimal("37.15"))


class RefundEligibilityTest(TestCase):
    """Tests for check_refund_eligibility."""

    def test_delivered_within_window(self):
        check_refund_eligibility(delivered_order(), NOW, 30)

    def test_not_delivered(self):
        order = make_order(status=OrderStatus.SHIPPED)
        with self.assertRaises(ValidationError) as ctx:
            check_refund_eligibility(order, NOW, 30)
        self.assertEqual(ctx.exception.code, "NOT_REFUNDABLE")

    def test_window_expired(self):
        order = delivered_order()
        with self.assertRaises(ValidationError) as ctx:
            check_refund_eligibility(order, NOW + timedelta(days=31), 30)
        self.assertEqual(ctx.exception.code, "REFUND_WINDOW_EXPIRED")


class RefundRequestTest(TestCase):
    """Tests for refund request resolution."""

    def test_resolution_happens_once(self):
        request = RefundRequest("order-1", RefundType.FULL, Decimal("10"))
        request.reject("not eligible", NOW, admin_notes="checked photos")

        self.assertEqual(request.status, RefundRequestStatus.REJECTED)
        self.assertEqual(request.rejection_reason, "not eligible")
        self.assertEqual(request.resolved_at, NOW)
        with self.assertRaises(ValidationError) as ctx:
            request.approve(NOW)
        self.assertEqual(ctx.exception.code, "REFUND_ALREADY_RESOLVED")

    def test_negative_amount_fails(self):
        with self.assertRaises(ValidationError):
            RefundRequest("order-1", RefundType.FULL, Decimal("-1"))

    def test_cancel_restores_order_refund_status(self):
        order = delivered_order()
        request = RefundRequest(order.id, RefundType.FULL, Decimal("74.00"))
        order.add_refund_request(request, NOW)
        self.assertEqual(order.refund_status, RefundStatus.REQUESTED)

        request.cancel(NOW)
        order.restore_refund_status()

        self.assertEqual(order.refund_status, RefundStatus.NONE)
        self.assertIsNone(order.open_refund_request)
