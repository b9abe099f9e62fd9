"""
Material cost calculator: converts a design's area into consumable costs.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Mapping

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

# Design density used to estimate stitch count from area
STITCHES_PER_SQUARE_INCH = Decimal("1000")
STITCHES_PER_THREAD_UNIT = Decimal("1000000")
BOBBIN_SPOOL_INCHES = Decimal("144")


def to_money(value) -> Decimal:
    """Round a numeric value to cents."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


class MaterialKey(str, Enum):
    """Consumable materials that take part in a design's cost."""
    FABRIC = "fabric"
    PATCH_ATTACH = "patch_attach"
    THREAD = "thread"
    BOBBIN = "bobbin"
    CUT_AWAY_STABILIZER = "cut_away_stabilizer"
    WASH_AWAY_STABILIZER = "wash_away_stabilizer"

    @classmethod
    def from_name(cls, name: str) -> "MaterialKey | None":
        """Map a display name such as "Cut-Away Stabilizer" to its key."""
        slug = re.sub(r"[^a-z0-9]+", "_", name.strip().lower()).strip("_")
        try:
            return cls(slug)
        except ValueError:
            return None


@dataclass(frozen=True)
class MaterialRate:
    """One row of the rate table.

    ``cost`` buys a roll of ``width`` x ``length`` inches of an area material.
    Thread and bobbin are priced by stitch count instead: thread at ``cost``
    per million stitches, bobbin at ``cost / 144`` per ``length`` stitches.
    Their area rate follows from the stitch density.
    """
    key: MaterialKey
    cost: Decimal
    width: Decimal
    length: Decimal
    waste_factor: Decimal = Decimal("1.0")

    def __post_init__(self):
        if self.cost < 0 or self.width < 0 or self.length < 0:
            raise ValueError(f"Material {self.key.value} has negative dimensions or cost")
        if self.waste_factor < 1:
            raise ValueError(f"Material {self.key.value} waste factor must be >= 1")

    def unit_rate(self, stitches_per_square_inch: Decimal = STITCHES_PER_SQUARE_INCH) -> Decimal:
        """Cost per square inch of design area."""
        if self.key == MaterialKey.THREAD:
            return stitches_per_square_inch * self.cost / STITCHES_PER_THREAD_UNIT
        if self.key == MaterialKey.BOBBIN:
            if self.length <= 0:
                return Decimal("0")
            return stitches_per_square_inch / self.length * self.cost / BOBBIN_SPOOL_INCHES
        coverage = self.width * self.length
        if coverage <= 0:
            return Decimal("0")
        return self.cost / coverage


@dataclass(frozen=True)
class MaterialCostConfig:
    """Immutable snapshot of the material rate table."""
    rates: tuple[MaterialRate, ...] = ()
    stitches_per_square_inch: Decimal = STITCHES_PER_SQUARE_INCH

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping], stitches_per_square_inch=None) -> "MaterialCostConfig":
        """Build a config from rows shaped like the material cost table."""
        rates = []
        for row in rows:
            if not row.get("is_active", True):
                continue
            key = MaterialKey.from_name(str(row["name"]))
            if key is None:
                continue
            rates.append(MaterialRate(
                key=key,
                cost=Decimal(str(row["cost"])),
                width=Decimal(str(row["width"])),
                length=Decimal(str(row["length"])),
                waste_factor=Decimal(str(row.get("waste_factor", "1.0"))),
            ))
        if stitches_per_square_inch is None:
            return cls(rates=tuple(rates))
        return cls(rates=tuple(rates), stitches_per_square_inch=Decimal(str(stitches_per_square_inch)))

    def rate_for(self, key: MaterialKey) -> MaterialRate | None:
        for rate in self.rates:
            if rate.key == key:
                return rate
        return None


@dataclass(frozen=True)
class MaterialCostBreakdown:
    """Per-material cost of one design."""
    fabric_cost: Decimal = ZERO
    patch_attach_cost: Decimal = ZERO
    thread_cost: Decimal = ZERO
    bobbin_cost: Decimal = ZERO
    cut_away_stabilizer_cost: Decimal = ZERO
    wash_away_stabilizer_cost: Decimal = ZERO
    total_cost: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "fabricCost": str(self.fabric_cost),
            "patchAttachCost": str(self.patch_attach_cost),
            "threadCost": str(self.thread_cost),
            "bobbinCost": str(self.bobbin_cost),
            "cutAwayStabilizerCost": str(self.cut_away_stabilizer_cost),
            "washAwayStabilizerCost": str(self.wash_away_stabilizer_cost),
            "totalCost": str(self.total_cost),
        }


def calculate_material_costs(width, height, config: MaterialCostConfig) -> MaterialCostBreakdown:
    """Calculate material costs for a ``width`` x ``height`` inch design.

    Each material costs ``area * unit_rate * waste_factor`` rounded to cents,
    where thread and bobbin rates follow the config's stitch density;
    the total is the sum of the rounded parts. Materials missing from the
    config cost nothing.
    """
    width = Decimal(str(width or 0))
    height = Decimal(str(height or 0))
    if width <= 0 or height <= 0:
        return MaterialCostBreakdown()

    area = width * height
    costs = {}
    for key in MaterialKey:
        rate = config.rate_for(key)
        if rate is None:
            costs[key] = ZERO
        else:
            costs[key] = to_money(area * rate.unit_rate(config.stitches_per_square_inch) * rate.waste_factor)

    return MaterialCostBreakdown(
        fabric_cost=costs[MaterialKey.FABRIC],
        patch_attach_cost=costs[MaterialKey.PATCH_ATTACH],
        thread_cost=costs[MaterialKey.THREAD],
        bobbin_cost=costs[MaterialKey.BOBBIN],
        cut_away_stabilizer_cost=costs[MaterialKey.CUT_AWAY_STABILIZER],
        wash_away_stabilizer_cost=costs[MaterialKey.WASH_AWAY_STABILIZER],
        total_cost=sum(costs.values(), ZERO),
    )
