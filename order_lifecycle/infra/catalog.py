"""
Read-only pricing inputs: catalog base prices and the material rate table.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from django.conf import settings

from order_lifecycle.domain.errors import NotFoundError
from order_lifecycle.domain.materials import MaterialCostConfig
from order_lifecycle.infra.models import CatalogProductORM, MaterialCostORM

logger = logging.getLogger(__name__)


class CatalogRepository:
    """Catalog collaborator backed by the product price table."""

    def get_base_price(self, product_id: str) -> Decimal:
        product = (
            CatalogProductORM.objects
            .filter(id=product_id, is_active=True)
            .values_list("base_price", flat=True)
            .first()
        )
        if product is None:
            raise NotFoundError("Product", product_id)
        return product


class MaterialCostRepository:
    """Snapshots the material rate table into an immutable config."""

    def current(self) -> MaterialCostConfig:
        rows = list(
            MaterialCostORM.objects
            .filter(is_active=True)
            .values("name", "cost", "width", "length", "waste_factor", "is_active")
        )
        if not rows:
            logger.debug("material_costs_default")
            rows = settings.DEFAULT_MATERIAL_COSTS
        return MaterialCostConfig.from_rows(rows, settings.STITCHES_PER_SQUARE_INCH)

    def seed_defaults(self) -> int:
        """Insert the default rates that are missing; returns the count created."""
        created = 0
        for row in settings.DEFAULT_MATERIAL_COSTS:
            _, was_created = MaterialCostORM.objects.get_or_create(
                name=row["name"],
                defaults={
                    "cost": row["cost"],
                    "width": row["width"],
                    "length": row["length"],
                    "waste_factor": row.get("waste_factor", 1),
                },
            )
            created += int(was_created)
        return created
