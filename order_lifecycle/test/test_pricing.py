"""
Unit tests for customization normalization and the pricing engine.
"""
import json
from decimal import Decimal

from django.test import TestCase

from order_lifecycle.domain.customization import (
    LegacyCustomization,
    MultiDesignCustomization,
    normalize_customization,
)
from order_lifecycle.domain.errors import NotFoundError, ValidationError
from order_lifecycle.domain.order import LineItem
from order_lifecycle.domain.pricing import (
    CUSTOM_PRODUCT_ID,
    PricingBreakdown,
    order_totals,
    price_line_item,
)
from order_lifecycle.test.factories import (
    flat_fabric_rate,
    make_order,
    priced_item,
    styled_customization,
)


def catalog(prices: dict):
    def lookup(product_id):
        if product_id not in prices:
            raise NotFoundError("Product", product_id)
        return Decimal(prices[product_id])
    return lookup


class NormalizeCustomizationTest(TestCase):
    """Tests for normalize_customization."""

    def test_legacy_payload(self):
        customization = normalize_customization(styled_customization())
        self.assertIsInstance(customization, LegacyCustomization)
        self.assertEqual(customization.design.area, Decimal("16"))
        self.assertEqual(customization.design.styles.options_price, Decimal("8"))

    def test_multi_design_payload(self):
        customization = normalize_customization({"designs": [styled_customization(), {"totalPrice": "12"}]})
        self.assertIsInstance(customization, MultiDesignCustomization)
        self.assertEqual(len(customization.designs), 2)
        self.assertEqual(customization.designs[1].total_override, Decimal("12"))

    def test_json_string_payload(self):
        customization = normalize_customization(json.dumps(styled_customization()))
        self.assertIsInstance(customization, LegacyCustomization)

    def test_embroidery_data_total_is_override(self):
        customization = normalize_customization({"embroideryData": {"totalPrice": "42.50"}})
        self.assertEqual(customization.total_override, Decimal("42.50"))

    def test_empty_payload_is_none(self):
        self.assertIsNone(normalize_customization(None))
        self.assertIsNone(normalize_customization(""))

    def test_malformed_payloads_fail(self):
        with self.assertRaises(ValidationError):
            normalize_customization("{not json")
        with self.assertRaises(ValidationError):
            normalize_customization(["a", "b"])
        with self.assertRaises(ValidationError):
            normalize_customization({"designs": "many"})
        with self.assertRaises(ValidationError):
            normalize_customization({"dimensions": {"width": "wide"}})

    def test_to_dict_round_trip_keeps_override(self):
        payload = {"designs": [{"name": "Logo", "totalPrice": "12"}], "embroideryData": {"totalPrice": "30"}}
        customization = normalize_customization(payload)
        self.assertEqual(normalize_customization(customization.to_dict()), customization)


class PriceLineItemTest(TestCase):
    """Tests for the tiered line item price resolution."""

    def setUp(self):
        self.materials = flat_fabric_rate("0.50")
        self.catalog = catalog({"tee": "20"})

    def test_styled_design_with_base_price(self):
        item = LineItem(id="item-1", product_id="tee", quantity=1, customization=styled_customization())

        breakdown = price_line_item(item, self.catalog, self.materials)

        self.assertEqual(breakdown.base_product_price, Decimal("20.00"))
        self.assertEqual(breakdown.embroidery_price, Decimal("8.00"))
        self.assertEqual(breakdown.embroidery_options_price, Decimal("8.00"))
        self.assertEqual(breakdown.total_price, Decimal("36.00"))

    def test_persisted_snapshot_wins_over_catalog_changes(self):
        item = LineItem(id="item-1", product_id="tee", quantity=1, customization=styled_customization())
        item.pricing = price_line_item(item, self.catalog, self.materials)

        repriced = price_line_item(item, catalog({"tee": "50"}), flat_fabric_rate("9.99"))

        self.assertEqual(repriced, item.pricing)
        self.assertEqual(repriced.total_price, Decimal("36.00"))

    def test_zero_snapshot_is_kept(self):
        item = LineItem(id="item-1", product_id="tee", quantity=1, pricing=PricingBreakdown())

        self.assertEqual(price_line_item(item, catalog({"tee": "50"}), self.materials), PricingBreakdown())
        self.assertEqual(price_line_item(item, catalog({}), self.materials).total_price, Decimal("0.00"))

    def test_missing_snapshot_is_priced(self):
        item = LineItem(id="item-1", product_id="tee", quantity=1)
        self.assertEqual(price_line_item(item, self.catalog, self.materials).total_price, Decimal("20.00"))

    def test_payload_override_beats_designs(self):
        payload = {"designs": [styled_customization()], "embroideryData": {"totalPrice": "99"}}
        item = LineItem(id="item-1", product_id="tee", quantity=1, customization=payload)

        breakdown = price_line_item(item, self.catalog, self.materials)

        self.assertEqual(breakdown.base_product_price, Decimal("0.00"))
        self.assertEqual(breakdown.embroidery_price, Decimal("99.00"))
        self.assertEqual(breakdown.total_price, Decimal("99.00"))

    def test_designs_summed_with_base_price_once(self):
        payload = {"designs": [
            styled_customization(coverage="5", material="0"),
            {"name": "Back", "totalPrice": "12"},
        ]}
        item = LineItem(id="item-1", product_id="tee", quantity=1, customization=payload)

        breakdown = price_line_item(item, self.catalog, self.materials)

        self.assertEqual(breakdown.base_product_price, Decimal("20.00"))
        self.assertEqual(breakdown.embroidery_price, Decimal("20.00"))
        self.assertEqual(breakdown.embroidery_options_price, Decimal("5.00"))
        self.assertEqual(breakdown.total_price, Decimal("45.00"))

    def test_threads_and_upgrades_add_up(self):
        payload = styled_customization(coverage="0", material="0", width=0, height=0)
        payload["selectedStyles"]["threads"] = [{"name": "Red", "price": "1.25"}, {"name": "Gold", "price": "2"}]
        payload["selectedStyles"]["upgrades"] = [{"name": "Metallic", "price": "4"}]
        item = LineItem(id="item-1", product_id="tee", quantity=1, customization=payload)

        breakdown = price_line_item(item, self.catalog, self.materials)

        self.assertEqual(breakdown.embroidery_options_price, Decimal("7.25"))
        self.assertEqual(breakdown.total_price, Decimal("27.25"))

    def test_custom_item_has_no_base_price(self):
        item = LineItem(
            id="item-1",
            product_id=CUSTOM_PRODUCT_ID,
            quantity=1,
            customization=styled_customization(),
        )
        self.assertEqual(price_line_item(item, self.catalog, self.materials).total_price, Decimal("16.00"))

    def test_plain_catalog_item(self):
        item = LineItem(id="item-1", product_id="tee", quantity=3)
        breakdown = price_line_item(item, self.catalog, self.materials)
        self.assertEqual(breakdown, PricingBreakdown(Decimal("20.00"), total_price=Decimal("20.00")))

    def test_unknown_product_fails(self):
        item = LineItem(id="item-1", product_id="hoodie", quantity=1)
        with self.assertRaises(NotFoundError):
            price_line_item(item, self.catalog, self.materials)

    def test_breakdown_from_dict_accepts_both_key_styles(self):
        camel = PricingBreakdown.from_dict({"baseProductPrice": "20", "totalPrice": "36"})
        snake = PricingBreakdown.from_dict({"base_product_price": "20", "total_price": "36"})
        self.assertEqual(camel, snake)
        self.assertIsNone(PricingBreakdown.from_dict({}))


class OrderTotalsTest(TestCase):
    """Tests for quantity-weighted order totals."""

    def test_totals_from_item_breakdowns(self):
        order = make_order(
            priced_item("item-1", "36.00"),
            priced_item("item-2", "10.00", quantity=2),
            shipping="5",
            tax="4",
            stored_total=Decimal("12.00"),
        )

        self.assertEqual(order.subtotal, Decimal("56.00"))
        self.assertEqual(order.total, Decimal("65.00"))
        self.assertEqual(order.stored_total, Decimal("12.00"))

    def test_order_totals_function(self):
        totals = order_totals([priced_item("a", "1.10", quantity=3)], Decimal("0"), Decimal("0.333"))
        self.assertEqual(totals.subtotal, Decimal("3.30"))
        self.assertEqual(totals.tax, Decimal("0.33"))
        self.assertEqual(totals.total, Decimal("3.63"))
