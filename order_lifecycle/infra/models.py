from __future__ import annotations

from uuid import uuid4

from django.db import models

from order_lifecycle.domain.order import OrderStatus, PaymentStatus
from order_lifecycle.domain.refund import (
    RefundReason,
    RefundRequestStatus,
    RefundStatus,
    RefundType,
)


def _choices(enum) -> tuple:
    return tuple((member.value, member.value) for member in enum)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class OrderORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    customer_id = models.CharField(max_length=255, blank=True, default="")
    status = models.CharField(max_length=40, choices=_choices(OrderStatus))
    shipping = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    # Cached totals, recomputed from line items on every load
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    admin_notes = models.TextField(blank=True, default="")
    customer_notes = models.TextField(blank=True, default="")
    payment_status = models.CharField(
        max_length=20, choices=_choices(PaymentStatus), default=PaymentStatus.PENDING.value,
    )
    payment_reference = models.CharField(max_length=255, blank=True, default="")
    refund_status = models.CharField(
        max_length=20, choices=_choices(RefundStatus), default=RefundStatus.NONE.value,
    )
    refunded_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    submitted_at = models.DateTimeField(null=True, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    picture_reply_uploaded_at = models.DateTimeField(null=True, blank=True)
    customer_confirmed_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    refund_requested_at = models.DateTimeField(null=True, blank=True)
    version = models.PositiveIntegerField(default=1)

    class Meta:
        indexes = [
            models.Index(fields=("customer_id", "status")),
            models.Index(fields=("status",)),
        ]

    def __str__(self):
        return f"Order {self.id} ({self.status})"


class LineItemORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="items",
    )
    # Stable identifier assigned at submission; replies and confirmations use it
    item_id = models.CharField(max_length=100)
    position = models.PositiveIntegerField(default=0)
    product_id = models.CharField(max_length=100, null=True, blank=True)
    quantity = models.PositiveIntegerField()
    customization = models.JSONField(null=True, blank=True)
    pricing = models.JSONField(null=True, blank=True)

    class Meta:
        unique_together = [("order", "item_id")]
        ordering = ("position",)
        indexes = [
            models.Index(fields=("order",)),
        ]

    def __str__(self):
        return f"{self.item_id} x{self.quantity}"


class PictureReplyORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="picture_replies",
    )
    line_item_id = models.CharField(max_length=100)
    image_ref = models.CharField(max_length=1024)
    notes = models.TextField(blank=True, default="")
    sequence = models.PositiveIntegerField()
    uploaded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("sequence",)
        indexes = [
            models.Index(fields=("order", "line_item_id")),
        ]


class CustomerConfirmationORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="confirmations",
    )
    line_item_id = models.CharField(max_length=100)
    confirmed = models.BooleanField()
    notes = models.TextField(blank=True, default="")
    sequence = models.PositiveIntegerField()
    confirmed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("sequence",)
        indexes = [
            models.Index(fields=("order", "line_item_id")),
        ]


class RefundRequestORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="refund_requests",
    )
    refund_type = models.CharField(max_length=20, choices=_choices(RefundType))
    status = models.CharField(max_length=20, choices=_choices(RefundRequestStatus))
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    item_ids = models.JSONField(default=list, blank=True)
    reason = models.CharField(max_length=40, choices=_choices(RefundReason))
    description = models.TextField(blank=True, default="")
    requested_at = models.DateTimeField()
    resolved_at = models.DateTimeField(null=True, blank=True)
    admin_notes = models.TextField(blank=True, default="")
    rejection_reason = models.TextField(blank=True, default="")

    class Meta:
        ordering = ("requested_at",)
        indexes = [
            models.Index(fields=("order", "status")),
        ]


class MaterialCostORM(TimeStampedModel):
    """Admin-editable material rate table."""
    name = models.CharField(max_length=100, unique=True)
    cost = models.DecimalField(max_digits=12, decimal_places=4)
    width = models.DecimalField(max_digits=12, decimal_places=2)
    length = models.DecimalField(max_digits=12, decimal_places=2)
    waste_factor = models.DecimalField(max_digits=6, decimal_places=3, default=1)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("name",)

    def __str__(self):
        return self.name


class CatalogProductORM(TimeStampedModel):
    """Read-only product prices maintained by the catalog system."""
    id = models.CharField(primary_key=True, max_length=100)
    name = models.CharField(max_length=255)
    base_price = models.DecimalField(max_digits=12, decimal_places=2)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name
