"""
Pricing engine: the single place where line item and order prices are computed.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Iterable

from order_lifecycle.domain.customization import (
    Design,
    LegacyCustomization,
    MultiDesignCustomization,
)
from order_lifecycle.domain.materials import (
    ZERO,
    MaterialCostConfig,
    calculate_material_costs,
    to_money,
)

if TYPE_CHECKING:
    from order_lifecycle.domain.order import LineItem


CUSTOM_PRODUCT_ID = "custom-embroidery"

# Returns the catalog base price of a product, raises NotFoundError.
CatalogLookup = Callable[[str], Decimal]


@dataclass(frozen=True)
class PricingBreakdown:
    """Decomposed price of one unit of a line item."""
    base_product_price: Decimal = ZERO
    embroidery_price: Decimal = ZERO
    embroidery_options_price: Decimal = ZERO
    total_price: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: dict | None) -> "PricingBreakdown | None":
        """Read a stored snapshot; accepts camelCase and snake_case keys."""
        if not data:
            return None

        def pick(camel: str, snake: str) -> Decimal:
            value = data.get(camel, data.get(snake))
            return to_money(value) if value not in (None, "") else ZERO

        return cls(
            base_product_price=pick("baseProductPrice", "base_product_price"),
            embroidery_price=pick("embroideryPrice", "embroidery_price"),
            embroidery_options_price=pick("embroideryOptionsPrice", "embroidery_options_price"),
            total_price=pick("totalPrice", "total_price"),
        )

    def to_dict(self) -> dict:
        return {
            "baseProductPrice": str(self.base_product_price),
            "embroideryPrice": str(self.embroidery_price),
            "embroideryOptionsPrice": str(self.embroidery_options_price),
            "totalPrice": str(self.total_price),
        }


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal


def base_price_for(product_id: str | None, catalog_lookup: CatalogLookup) -> Decimal:
    """Catalog base price, zero for fully custom items."""
    if not product_id or product_id == CUSTOM_PRODUCT_ID:
        return ZERO
    return to_money(catalog_lookup(product_id))


def price_design(design: Design, materials: MaterialCostConfig) -> tuple[Decimal, Decimal]:
    """Return ``(embroidery_price, options_price)`` of one design.

    A design-level total override is reported entirely as embroidery price.
    """
    if design.total_override is not None:
        return to_money(design.total_override), ZERO
    material_cost = calculate_material_costs(design.width, design.height, materials).total_cost
    return material_cost, to_money(design.styles.options_price)


def _design_is_priced(design: Design) -> bool:
    return design.total_override is not None or not design.styles.is_empty or design.area > 0


def _price_designs(
    designs: Iterable[Design],
    base_price: Decimal,
    materials: MaterialCostConfig,
) -> PricingBreakdown:
    embroidery = ZERO
    options = ZERO
    for design in designs:
        design_embroidery, design_options = price_design(design, materials)
        embroidery += design_embroidery
        options += design_options
    return PricingBreakdown(
        base_product_price=base_price,
        embroidery_price=embroidery,
        embroidery_options_price=options,
        total_price=base_price + embroidery + options,
    )


def price_line_item(
    item: "LineItem",
    catalog_lookup: CatalogLookup,
    materials: MaterialCostConfig,
) -> PricingBreakdown:
    """Resolve the unit price breakdown of a line item.

    Tiers are consulted in order and the first that applies wins:
    the persisted snapshot, the payload's total override, the per-design sum,
    the legacy single style set, and finally the plain catalog price.
    """
    # A stored snapshot is authoritative even at zero; only rows without
    # one are priced again.
    if item.pricing is not None:
        return item.pricing

    customization = item.customization

    if customization is not None and customization.total_override is not None:
        override = to_money(customization.total_override)
        return PricingBreakdown(
            base_product_price=ZERO,
            embroidery_price=override,
            embroidery_options_price=ZERO,
            total_price=override,
        )

    if isinstance(customization, MultiDesignCustomization) and customization.designs:
        base_price = base_price_for(item.product_id, catalog_lookup)
        return _price_designs(customization.designs, base_price, materials)

    if isinstance(customization, LegacyCustomization) and _design_is_priced(customization.design):
        base_price = base_price_for(item.product_id, catalog_lookup)
        return _price_designs([customization.design], base_price, materials)

    base_price = base_price_for(item.product_id, catalog_lookup)
    return PricingBreakdown(base_product_price=base_price, total_price=base_price)


def order_totals(items: Iterable["LineItem"], shipping: Decimal, tax: Decimal) -> OrderTotals:
    """Quantity-weighted subtotal plus shipping and tax, from item breakdowns."""
    subtotal = ZERO
    for item in items:
        subtotal += item.total_price * item.quantity
    subtotal = to_money(subtotal)
    shipping = to_money(shipping)
    tax = to_money(tax)
    return OrderTotals(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        total=subtotal + shipping + tax,
    )
