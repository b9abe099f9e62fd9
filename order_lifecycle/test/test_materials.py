"""
Unit tests for the material cost calculator.
"""
from decimal import Decimal

from django.conf import settings
from django.test import TestCase

from order_lifecycle.domain.materials import (
    MaterialCostConfig,
    MaterialKey,
    MaterialRate,
    calculate_material_costs,
    to_money,
)
from order_lifecycle.test.factories import flat_fabric_rate


class MaterialRateTest(TestCase):
    """Tests for MaterialRate."""

    def test_unit_rate_for_area_material(self):
        rate = MaterialRate(MaterialKey.FABRIC, Decimal("34"), Decimal("30"), Decimal("36"))
        self.assertEqual(rate.unit_rate(), Decimal("34") / Decimal("1080"))

    def test_thread_is_rated_per_million_stitches(self):
        rate = MaterialRate(MaterialKey.THREAD, Decimal("4"), Decimal("0"), Decimal("5000"))
        self.assertEqual(rate.unit_rate(), Decimal("0.004"))
        self.assertEqual(rate.unit_rate(Decimal("2000")), Decimal("0.008"))

    def test_bobbin_is_rated_per_spool_length(self):
        rate = MaterialRate(MaterialKey.BOBBIN, Decimal("50"), Decimal("0"), Decimal("35000"))
        self.assertEqual(
            rate.unit_rate(),
            Decimal("1000") / Decimal("35000") * Decimal("50") / Decimal("144"),
        )
        self.assertEqual(
            MaterialRate(MaterialKey.BOBBIN, Decimal("50"), Decimal("0"), Decimal("0")).unit_rate(),
            Decimal("0"),
        )

    def test_negative_cost_fails(self):
        with self.assertRaises(ValueError):
            MaterialRate(MaterialKey.FABRIC, Decimal("-1"), Decimal("1"), Decimal("1"))

    def test_waste_factor_below_one_fails(self):
        with self.assertRaises(ValueError):
            MaterialRate(MaterialKey.FABRIC, Decimal("1"), Decimal("1"), Decimal("1"), Decimal("0.9"))


class MaterialCostConfigTest(TestCase):
    """Tests for building the config from table rows."""

    def test_from_rows_maps_display_names(self):
        config = MaterialCostConfig.from_rows(settings.DEFAULT_MATERIAL_COSTS)
        self.assertEqual(len(config.rates), 6)
        stabilizer = config.rate_for(MaterialKey.CUT_AWAY_STABILIZER)
        self.assertEqual(stabilizer.cost, Decimal("180"))
        self.assertEqual(stabilizer.waste_factor, Decimal("1.5"))

    def test_from_rows_skips_inactive_and_unknown(self):
        config = MaterialCostConfig.from_rows([
            {"name": "Fabric", "cost": "1", "width": "1", "length": "1", "is_active": False},
            {"name": "Glitter", "cost": "1", "width": "1", "length": "1"},
            {"name": "Thread", "cost": "4", "width": "0", "length": "5000"},
        ])
        self.assertIsNone(config.rate_for(MaterialKey.FABRIC))
        self.assertEqual([r.key for r in config.rates], [MaterialKey.THREAD])

    def test_from_name(self):
        self.assertEqual(MaterialKey.from_name("Wash-Away Stabilizer"), MaterialKey.WASH_AWAY_STABILIZER)
        self.assertEqual(MaterialKey.from_name(" patch attach "), MaterialKey.PATCH_ATTACH)
        self.assertIsNone(MaterialKey.from_name("Sequins"))


class CalculateMaterialCostsTest(TestCase):
    """Tests for calculate_material_costs."""

    def test_flat_rate_four_by_four(self):
        breakdown = calculate_material_costs(4, 4, flat_fabric_rate("0.50"))
        self.assertEqual(breakdown.fabric_cost, Decimal("8.00"))
        self.assertEqual(breakdown.thread_cost, Decimal("0.00"))
        self.assertEqual(breakdown.total_cost, Decimal("8.00"))

    def test_default_table_rounds_each_material(self):
        config = MaterialCostConfig.from_rows(settings.DEFAULT_MATERIAL_COSTS)
        breakdown = calculate_material_costs(4, 4, config)

        self.assertEqual(breakdown.fabric_cost, Decimal("0.76"))
        self.assertEqual(breakdown.patch_attach_cost, Decimal("0.74"))
        self.assertEqual(breakdown.thread_cost, Decimal("0.08"))
        self.assertEqual(breakdown.bobbin_cost, Decimal("0.19"))
        self.assertEqual(breakdown.cut_away_stabilizer_cost, Decimal("0.07"))
        self.assertEqual(breakdown.wash_away_stabilizer_cost, Decimal("0.11"))
        self.assertEqual(breakdown.total_cost, Decimal("1.95"))

    def test_stitch_density_comes_from_config(self):
        config = MaterialCostConfig.from_rows(settings.DEFAULT_MATERIAL_COSTS, stitches_per_square_inch="2000")
        breakdown = calculate_material_costs(4, 4, config)

        self.assertEqual(config.stitches_per_square_inch, Decimal("2000"))
        self.assertEqual(breakdown.thread_cost, Decimal("0.15"))
        self.assertEqual(breakdown.bobbin_cost, Decimal("0.38"))
        self.assertEqual(breakdown.fabric_cost, Decimal("0.76"))

    def test_zero_or_missing_dimensions_cost_nothing(self):
        config = flat_fabric_rate()
        self.assertEqual(calculate_material_costs(0, 4, config).total_cost, Decimal("0.00"))
        self.assertEqual(calculate_material_costs(None, None, config).total_cost, Decimal("0.00"))
        self.assertEqual(calculate_material_costs(-2, 4, config).total_cost, Decimal("0.00"))

    def test_identical_inputs_yield_identical_outputs(self):
        config = MaterialCostConfig.from_rows(settings.DEFAULT_MATERIAL_COSTS)
        first = calculate_material_costs("3.5", "2.25", config)
        second = calculate_material_costs("3.5", "2.25", config)
        self.assertEqual(first, second)

    def test_to_dict_uses_camel_case(self):
        data = calculate_material_costs(4, 4, flat_fabric_rate()).to_dict()
        self.assertEqual(data["fabricCost"], "8.00")
        self.assertEqual(data["totalCost"], "8.00")

    def test_to_money_rounds_half_up(self):
        self.assertEqual(to_money("2.345"), Decimal("2.35"))
        self.assertEqual(to_money(Decimal("2.344")), Decimal("2.34"))
