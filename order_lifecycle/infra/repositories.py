"""
Order aggregate persistence with optimistic concurrency.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from order_lifecycle.domain.errors import (
    ConcurrentModificationError,
    ConsistencyError,
    NotFoundError,
)
from order_lifecycle.domain.order import (
    CustomerConfirmation,
    LineItem,
    Order,
    OrderStatus,
    PaymentStatus,
    PictureReply,
)
from order_lifecycle.domain.pricing import PricingBreakdown, price_line_item
from order_lifecycle.domain.refund import (
    RefundReason,
    RefundRequest,
    RefundRequestStatus,
    RefundStatus,
    RefundType,
)
from order_lifecycle.infra.catalog import CatalogRepository, MaterialCostRepository
from order_lifecycle.infra.models import (
    CustomerConfirmationORM,
    LineItemORM,
    OrderORM,
    PictureReplyORM,
    RefundRequestORM,
)

logger = logging.getLogger(__name__)

ORDER_FIELDS = (
    "customer_id",
    "admin_notes",
    "customer_notes",
    "payment_reference",
    "refunded_amount",
    "submitted_at",
    "reviewed_at",
    "picture_reply_uploaded_at",
    "customer_confirmed_at",
    "shipped_at",
    "delivered_at",
    "refund_requested_at",
)


class OrderRepository:
    """Repository for the Order aggregate.

    ``load`` resolves every line item price through the pricing engine and
    compares the recomputed total with the cached one. ``save`` is a
    compare-and-set on the ``version`` column.
    """

    def __init__(
        self,
        catalog_repo: CatalogRepository | None = None,
        material_repo: MaterialCostRepository | None = None,
    ):
        self.catalog_repo = catalog_repo or CatalogRepository()
        self.material_repo = material_repo or MaterialCostRepository()

    def load(self, order_id: UUID) -> Order:
        try:
            order_orm = (
                OrderORM.objects
                .prefetch_related("items", "picture_replies", "confirmations", "refund_requests")
                .get(id=order_id)
            )
        except (OrderORM.DoesNotExist, DjangoValidationError):
            raise NotFoundError("Order", order_id)
        order = self._to_domain(order_orm)
        self._reconcile_total(order)
        return order

    def find(self, status: OrderStatus | None = None, customer_id: str | None = None,
             limit: int = 50, offset: int = 0) -> list[Order]:
        queryset = OrderORM.objects.prefetch_related(
            "items", "picture_replies", "confirmations", "refund_requests",
        )
        if status is not None:
            queryset = queryset.filter(status=OrderStatus(status).value)
        if customer_id:
            queryset = queryset.filter(customer_id=customer_id)
        orders = []
        for order_orm in queryset.order_by("-created_at")[offset:offset + limit]:
            order = self._to_domain(order_orm)
            self._reconcile_total(order)
            orders.append(order)
        return orders

    @transaction.atomic
    def save(self, order: Order, expected_version: int | None = None) -> Order:
        """Persist the full aggregate; returns it with its new version."""
        if expected_version is None:
            expected_version = order.version

        totals = order.totals
        fields = {name: getattr(order, name) for name in ORDER_FIELDS}
        fields.update(
            status=order.status.value,
            shipping=totals.shipping,
            tax=totals.tax,
            subtotal=totals.subtotal,
            total_amount=totals.total,
            payment_status=order.payment_status.value,
            refund_status=order.refund_status.value,
        )

        if expected_version == 0:
            OrderORM.objects.create(id=order.id, version=1, **fields)
            self._create_items(order)
            order.version = 1
        else:
            updated = OrderORM.objects.filter(id=order.id, version=expected_version).update(
                version=expected_version + 1,
                updated_at=timezone.now(),
                **fields,
            )
            if updated == 0:
                logger.warning(
                    "order_version_conflict",
                    extra={"order_id": str(order.id), "expected_version": expected_version},
                )
                raise ConcurrentModificationError(order.id, expected_version)
            self._backfill_pricing(order)
            order.version = expected_version + 1

        self._append_replies(order)
        self._append_confirmations(order)
        self._save_refund_requests(order)
        order.stored_total = totals.total
        return order

    def _create_items(self, order: Order) -> None:
        LineItemORM.objects.bulk_create([
            LineItemORM(
                order_id=order.id,
                item_id=item.id,
                position=position,
                product_id=item.product_id,
                quantity=item.quantity,
                customization=item.customization.to_dict() if item.customization else None,
                pricing=item.pricing.to_dict() if item.pricing else None,
            )
            for position, item in enumerate(order.items)
        ])

    def _backfill_pricing(self, order: Order) -> None:
        """Line items are immutable except for a missing pricing snapshot."""
        for item in order.items:
            if item.pricing is None:
                continue
            LineItemORM.objects.filter(
                order_id=order.id, item_id=item.id, pricing__isnull=True,
            ).update(pricing=item.pricing.to_dict())

    def _append_replies(self, order: Order) -> None:
        existing = set(
            PictureReplyORM.objects.filter(order_id=order.id).values_list("id", flat=True)
        )
        PictureReplyORM.objects.bulk_create([
            PictureReplyORM(
                id=reply.id,
                order_id=order.id,
                line_item_id=reply.line_item_id,
                image_ref=reply.image_ref,
                notes=reply.notes,
                sequence=reply.sequence,
                uploaded_at=reply.uploaded_at,
            )
            for reply in order.replies
            if reply.id not in existing
        ])

    def _append_confirmations(self, order: Order) -> None:
        existing = set(
            CustomerConfirmationORM.objects.filter(order_id=order.id).values_list("id", flat=True)
        )
        CustomerConfirmationORM.objects.bulk_create([
            CustomerConfirmationORM(
                id=confirmation.id,
                order_id=order.id,
                line_item_id=confirmation.line_item_id,
                confirmed=confirmation.confirmed,
                notes=confirmation.notes,
                sequence=confirmation.sequence,
                confirmed_at=confirmation.confirmed_at,
            )
            for confirmation in order.confirmations
            if confirmation.id not in existing
        ])

    def _save_refund_requests(self, order: Order) -> None:
        for request in order.refund_requests:
            RefundRequestORM.objects.update_or_create(
                id=request.id,
                defaults={
                    "order_id": order.id,
                    "refund_type": request.refund_type.value,
                    "status": request.status.value,
                    "amount": request.amount,
                    "item_ids": list(request.item_ids),
                    "reason": request.reason.value,
                    "description": request.description,
                    "requested_at": request.requested_at,
                    "resolved_at": request.resolved_at,
                    "admin_notes": request.admin_notes,
                    "rejection_reason": request.rejection_reason,
                },
            )

    def _reconcile_total(self, order: Order) -> None:
        """Recompute the total; a diverging cached total is corrected in place."""
        materials = self.material_repo.current()
        for item in order.items:
            item.pricing = price_line_item(item, self.catalog_repo.get_base_price, materials)

        recomputed = order.total
        stored = order.stored_total
        epsilon = Decimal(str(settings.ORDER_TOTAL_EPSILON))
        if stored is not None and abs(stored - recomputed) <= epsilon:
            return

        error = ConsistencyError(order.id, stored, recomputed)
        logger.warning(
            "order_total_corrected",
            extra={
                "order_id": str(order.id),
                "stored_total": str(stored),
                "recomputed_total": str(recomputed),
                "error": error.message,
            },
        )
        OrderORM.objects.filter(id=order.id).update(
            subtotal=order.subtotal,
            total_amount=recomputed,
        )
        order.stored_total = recomputed

    def _to_domain(self, order_orm: OrderORM) -> Order:
        """Convert ORM model to domain entity."""
        items = [
            LineItem(
                id=item_orm.item_id,
                product_id=item_orm.product_id,
                quantity=item_orm.quantity,
                customization=item_orm.customization,
                pricing=PricingBreakdown.from_dict(item_orm.pricing),
            )
            for item_orm in order_orm.items.all()
        ]
        replies = [
            PictureReply(
                id=reply_orm.id,
                line_item_id=reply_orm.line_item_id,
                image_ref=reply_orm.image_ref,
                notes=reply_orm.notes,
                sequence=reply_orm.sequence,
                uploaded_at=reply_orm.uploaded_at,
            )
            for reply_orm in order_orm.picture_replies.all()
        ]
        confirmations = [
            CustomerConfirmation(
                id=conf_orm.id,
                line_item_id=conf_orm.line_item_id,
                confirmed=conf_orm.confirmed,
                notes=conf_orm.notes,
                sequence=conf_orm.sequence,
                confirmed_at=conf_orm.confirmed_at,
            )
            for conf_orm in order_orm.confirmations.all()
        ]
        refund_requests = [
            RefundRequest(
                id=refund_orm.id,
                order_id=order_orm.id,
                refund_type=RefundType(refund_orm.refund_type),
                amount=refund_orm.amount,
                item_ids=refund_orm.item_ids or [],
                reason=RefundReason(refund_orm.reason),
                description=refund_orm.description,
                status=RefundRequestStatus(refund_orm.status),
                requested_at=refund_orm.requested_at,
                resolved_at=refund_orm.resolved_at,
                admin_notes=refund_orm.admin_notes,
                rejection_reason=refund_orm.rejection_reason,
            )
            for refund_orm in order_orm.refund_requests.all()
        ]

        return Order(
            id=order_orm.id,
            customer_id=order_orm.customer_id,
            items=items,
            status=OrderStatus(order_orm.status),
            shipping=order_orm.shipping,
            tax=order_orm.tax,
            stored_total=order_orm.total_amount,
            admin_notes=order_orm.admin_notes,
            customer_notes=order_orm.customer_notes,
            replies=replies,
            confirmations=confirmations,
            refund_requests=refund_requests,
            payment_status=PaymentStatus(order_orm.payment_status),
            payment_reference=order_orm.payment_reference,
            refund_status=RefundStatus(order_orm.refund_status),
            refunded_amount=order_orm.refunded_amount,
            submitted_at=order_orm.submitted_at,
            reviewed_at=order_orm.reviewed_at,
            picture_reply_uploaded_at=order_orm.picture_reply_uploaded_at,
            customer_confirmed_at=order_orm.customer_confirmed_at,
            shipped_at=order_orm.shipped_at,
            delivered_at=order_orm.delivered_at,
            refund_requested_at=order_orm.refund_requested_at,
            version=order_orm.version,
        )
