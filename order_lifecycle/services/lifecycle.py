"""
Application services for order submission, admin transitions and payment events.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID, uuid4

from django.db import transaction
from django.utils import timezone

from order_lifecycle.domain.errors import PaymentError, ValidationError
from order_lifecycle.domain.events import OrderStatusUpdated
from order_lifecycle.domain.order import LineItem, Order, OrderStatus
from order_lifecycle.domain.pricing import price_line_item
from order_lifecycle.domain.state_machine import OrderStateMachine
from order_lifecycle.infra.catalog import CatalogRepository, MaterialCostRepository
from order_lifecycle.infra.notifier import EventNotifier
from order_lifecycle.infra.repositories import OrderRepository

logger = logging.getLogger(__name__)


class OrderServiceBase:
    """Shared load / transition / save plumbing."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        notifier: EventNotifier | None = None,
        catalog_repo: CatalogRepository | None = None,
        material_repo: MaterialCostRepository | None = None,
    ):
        self.catalog_repo = catalog_repo or CatalogRepository()
        self.material_repo = material_repo or MaterialCostRepository()
        self.order_repo = order_repo or OrderRepository(self.catalog_repo, self.material_repo)
        self.notifier = notifier or EventNotifier()

    def _transition(self, order: Order, target: OrderStatus, events: list) -> None:
        previous = OrderStateMachine.transition(order, target, at=timezone.now())
        events.append(OrderStatusUpdated(
            aggregate_id=order.id,
            previous_status=previous.value,
            status=order.status.value,
        ))
        logger.info(
            "order_status_changed",
            extra={"order_id": str(order.id), "status": order.status.value, "previous_status": previous.value},
        )

    def _save(self, order: Order, expected_version: int, events: list) -> Order:
        self.order_repo.save(order, expected_version)
        for event in events:
            self.notifier.publish(event)
        return order


class OrderLifecycleService(OrderServiceBase):
    """Submission, admin-driven transitions and payment collaborator events."""

    def get_order(self, order_id: UUID) -> Order:
        return self.order_repo.load(order_id)

    def list_orders(self, status: OrderStatus | None = None, customer_id: str | None = None,
                    limit: int = 50, offset: int = 0) -> list[Order]:
        return self.order_repo.find(status=status, customer_id=customer_id, limit=limit, offset=offset)

    @transaction.atomic
    def submit_order(
        self,
        customer_id: str | None,
        items: list[dict],
        shipping: Decimal = Decimal("0"),
        tax: Decimal = Decimal("0"),
        customer_notes: str = "",
    ) -> Order:
        """Create an order in pending-review with a pricing snapshot per item."""
        if not items:
            raise ValidationError("Cannot submit an order without items")

        materials = self.material_repo.current()
        line_items = []
        for data in items:
            try:
                quantity = int(data.get("quantity", 1))
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid quantity: {data.get('quantity')!r}")
            item = LineItem(
                id=data.get("id") or str(uuid4()),
                product_id=data.get("productId") or data.get("product_id"),
                quantity=quantity,
                customization=data.get("customization"),
            )
            item.pricing = price_line_item(item, self.catalog_repo.get_base_price, materials)
            line_items.append(item)

        order = Order.submit(
            customer_id=customer_id,
            items=line_items,
            shipping=Decimal(str(shipping)),
            tax=Decimal(str(tax)),
            customer_notes=customer_notes,
            at=timezone.now(),
        )
        events = [OrderStatusUpdated(
            aggregate_id=order.id,
            previous_status="",
            status=order.status.value,
        )]
        self._save(order, 0, events)
        logger.info(
            "order_submitted",
            extra={"order_id": str(order.id), "items_count": len(line_items), "total": str(order.total)},
        )
        return order

    @transaction.atomic
    def update_status(self, order_id: UUID, target: OrderStatus, admin_notes: str | None = None) -> Order:
        """Admin-driven transition, e.g. production, shipping and delivery."""
        order = self.order_repo.load(order_id)
        version = order.version
        events: list = []
        if admin_notes is not None:
            order.admin_notes = admin_notes
        self._transition(order, OrderStatus(target), events)
        return self._save(order, version, events)

    def reject_submission(self, order_id: UUID, admin_notes: str = "") -> Order:
        """Send the design back to the customer for a new upload."""
        return self.update_status(order_id, OrderStatus.REJECTED_NEEDS_UPLOAD, admin_notes)

    @transaction.atomic
    def resubmit(self, order_id: UUID, customer_notes: str | None = None) -> Order:
        order = self.order_repo.load(order_id)
        version = order.version
        events: list = []
        if customer_notes is not None:
            order.customer_notes = customer_notes
        self._transition(order, OrderStatus.PENDING_REVIEW, events)
        return self._save(order, version, events)

    @transaction.atomic
    def handle_payment_confirmed(self, order_id: UUID, reference: str = "") -> Order:
        """React to PaymentConfirmed; replays of the same event change nothing."""
        order = self.order_repo.load(order_id)
        if order.is_paid and order.status != OrderStatus.PENDING_PAYMENT:
            logger.info("payment_confirmation_replayed", extra={"order_id": str(order.id)})
            return order

        version = order.version
        events: list = []
        order.mark_payment_completed(reference)
        self._transition(order, OrderStatus.APPROVED_PROCESSING, events)
        return self._save(order, version, events)

    def handle_payment_failed(self, order_id: UUID, reason: str) -> None:
        """React to PaymentFailed; the order stays in pending-payment."""
        order = self.order_repo.load(order_id)
        logger.warning(
            "payment_failed",
            extra={"order_id": str(order.id), "status": order.status.value, "error": reason},
        )
        raise PaymentError(order.id, reason)
