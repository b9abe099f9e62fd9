"""
One-time migration of orders written under the historical status vocabulary.

Maps legacy status strings onto the current states and backfills pricing
snapshots for line items that were stored without one.
"""
import logging

from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import F

from order_lifecycle.domain.errors import OrderLifecycleError
from order_lifecycle.domain.legacy import map_legacy_status
from order_lifecycle.domain.order import LineItem, OrderStatus
from order_lifecycle.domain.pricing import price_line_item
from order_lifecycle.infra.catalog import CatalogRepository, MaterialCostRepository
from order_lifecycle.infra.models import LineItemORM, OrderORM
from order_lifecycle.infra.repositories import OrderRepository

logger = logging.getLogger(__name__)

CURRENT_STATUSES = {status.value for status in OrderStatus}


class Command(BaseCommand):
    help = 'Map legacy order statuses and backfill missing line item pricing'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report what would change without writing',
        )
        parser.add_argument(
            '--seed-materials',
            action='store_true',
            help='Insert the default material rates missing from the table',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        material_repo = MaterialCostRepository()
        catalog_repo = CatalogRepository()

        if options['seed_materials'] and not dry_run:
            created = material_repo.seed_defaults()
            self.stdout.write(f'Seeded {created} material rates')

        with transaction.atomic():
            remapped, unknown = self._remap_statuses(dry_run)
            backfilled, failed = self._backfill_pricing(catalog_repo, material_repo, dry_run)
            if dry_run:
                transaction.set_rollback(True)

        if not dry_run:
            # Loading refreshes the cached totals of the touched orders.
            repository = OrderRepository(catalog_repo, material_repo)
            order_ids = OrderORM.objects.filter(status__in=CURRENT_STATUSES).values_list("id", flat=True)
            for order_id in order_ids:
                try:
                    repository.load(order_id)
                except OrderLifecycleError as e:
                    self.stdout.write(self.style.WARNING(f'Order {order_id}: {e.message}'))

        for order_id, status in unknown:
            self.stdout.write(self.style.WARNING(f'Order {order_id}: unknown status "{status}"'))
        for item_id, error in failed:
            self.stdout.write(self.style.WARNING(f'Line item {item_id}: {error}'))

        prefix = '[dry run] ' if dry_run else ''
        self.stdout.write(self.style.SUCCESS(
            f'{prefix}Remapped {remapped} orders, backfilled {backfilled} line items'
        ))

    def _remap_statuses(self, dry_run: bool):
        remapped = 0
        unknown = []
        legacy_rows = (
            OrderORM.objects
            .exclude(status__in=CURRENT_STATUSES)
            .values_list("id", "status")
        )
        for order_id, legacy_status in legacy_rows:
            status = map_legacy_status(legacy_status)
            if status is None:
                unknown.append((order_id, legacy_status))
                continue
            OrderORM.objects.filter(id=order_id).update(status=status.value, version=F("version") + 1)
            logger.info(
                "legacy_status_mapped",
                extra={
                    "order_id": str(order_id),
                    "legacy_status": legacy_status,
                    "status": status.value,
                    "dry_run": dry_run,
                },
            )
            remapped += 1
        return remapped, unknown

    def _backfill_pricing(self, catalog_repo, material_repo, dry_run: bool):
        materials = material_repo.current()
        backfilled = 0
        failed = []
        for row in LineItemORM.objects.filter(pricing__isnull=True):
            try:
                item = LineItem(
                    id=row.item_id,
                    product_id=row.product_id,
                    quantity=row.quantity,
                    customization=row.customization,
                )
                pricing = price_line_item(item, catalog_repo.get_base_price, materials)
            except OrderLifecycleError as e:
                failed.append((row.item_id, e.message))
                continue
            LineItemORM.objects.filter(id=row.id).update(pricing=pricing.to_dict())
            logger.info(
                "line_item_pricing_backfilled",
                extra={
                    "order_id": str(row.order_id),
                    "item_id": row.item_id,
                    "total_price": str(pricing.total_price),
                    "dry_run": dry_run,
                },
            )
            backfilled += 1
        return backfilled, failed
