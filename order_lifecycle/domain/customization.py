"""
Customization payload of a line item.

Storefront payloads arrive in three shapes: a legacy object with a single
``selectedStyles`` set, an object with a ``designs`` array, or either of
those serialized as a JSON string. ``normalize_customization`` turns all of
them into ``LegacyCustomization`` or ``MultiDesignCustomization``.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Union

from order_lifecycle.domain.errors import ValidationError

SINGLE_OPTION_SLOTS = ("coverage", "material", "border", "backing", "cutting")
MULTI_OPTION_SLOTS = ("threads", "upgrades")


def _decimal(value, default: Decimal | None = Decimal("0")) -> Decimal | None:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid numeric value: {value!r}")


@dataclass(frozen=True)
class StyleOption:
    """A named, priced embroidery option."""
    name: str
    price: Decimal = Decimal("0")
    option_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "StyleOption":
        if not isinstance(data, dict):
            raise ValidationError(f"Style option must be an object, got {type(data).__name__}")
        option_id = data.get("id")
        return cls(
            name=str(data.get("name", "")),
            price=_decimal(data.get("price")),
            option_id=str(option_id) if option_id is not None else None,
        )

    def to_dict(self) -> dict:
        data = {"name": self.name, "price": str(self.price)}
        if self.option_id is not None:
            data["id"] = self.option_id
        return data


@dataclass(frozen=True)
class StyleSelection:
    """Selected options of one design."""
    coverage: StyleOption | None = None
    material: StyleOption | None = None
    border: StyleOption | None = None
    backing: StyleOption | None = None
    cutting: StyleOption | None = None
    threads: tuple[StyleOption, ...] = ()
    upgrades: tuple[StyleOption, ...] = ()

    @classmethod
    def from_dict(cls, data: dict | None) -> "StyleSelection":
        data = data or {}
        kwargs: dict[str, Any] = {}
        for slot in SINGLE_OPTION_SLOTS:
            if data.get(slot):
                kwargs[slot] = StyleOption.from_dict(data[slot])
        for slot in MULTI_OPTION_SLOTS:
            kwargs[slot] = tuple(StyleOption.from_dict(o) for o in data.get(slot) or [])
        return cls(**kwargs)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {}
        for slot in SINGLE_OPTION_SLOTS:
            option = getattr(self, slot)
            if option is not None:
                data[slot] = option.to_dict()
        for slot in MULTI_OPTION_SLOTS:
            data[slot] = [o.to_dict() for o in getattr(self, slot)]
        return data

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, slot) for slot in SINGLE_OPTION_SLOTS + MULTI_OPTION_SLOTS)

    @property
    def options_price(self) -> Decimal:
        """Sum of every selected option price."""
        total = Decimal("0")
        for slot in SINGLE_OPTION_SLOTS:
            option = getattr(self, slot)
            if option is not None:
                total += option.price
        for slot in MULTI_OPTION_SLOTS:
            total += sum((o.price for o in getattr(self, slot)), Decimal("0"))
        return total


@dataclass(frozen=True)
class Design:
    """One embroidery artwork within a line item."""
    name: str = ""
    width: Decimal = Decimal("0")
    height: Decimal = Decimal("0")
    styles: StyleSelection = field(default_factory=StyleSelection)
    total_override: Decimal | None = None
    image_ref: str | None = None

    @property
    def area(self) -> Decimal:
        return self.width * self.height

    @classmethod
    def from_dict(cls, data: dict) -> "Design":
        if not isinstance(data, dict):
            raise ValidationError("Design must be an object")
        dimensions = data.get("dimensions") or {}
        override = _decimal(data.get("totalPrice"), default=None)
        return cls(
            name=str(data.get("name", "")),
            width=_decimal(dimensions.get("width")),
            height=_decimal(dimensions.get("height")),
            styles=StyleSelection.from_dict(data.get("selectedStyles")),
            total_override=override if override else None,
            image_ref=data.get("imageRef") or data.get("imageUrl"),
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "name": self.name,
            "dimensions": {"width": str(self.width), "height": str(self.height)},
            "selectedStyles": self.styles.to_dict(),
        }
        if self.total_override is not None:
            data["totalPrice"] = str(self.total_override)
        if self.image_ref:
            data["imageRef"] = self.image_ref
        return data


@dataclass(frozen=True)
class LegacyCustomization:
    """Single style set applying to one implicit design."""
    design: Design
    total_override: Decimal | None = None

    def to_dict(self) -> dict:
        data = self.design.to_dict()
        if self.total_override is not None:
            data["embroideryData"] = {"totalPrice": str(self.total_override)}
        return data


@dataclass(frozen=True)
class MultiDesignCustomization:
    """Independently priced designs."""
    designs: tuple[Design, ...] = ()
    total_override: Decimal | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"designs": [d.to_dict() for d in self.designs]}
        if self.total_override is not None:
            data["embroideryData"] = {"totalPrice": str(self.total_override)}
        return data


Customization = Union[LegacyCustomization, MultiDesignCustomization]


def normalize_customization(raw) -> Customization | None:
    """Normalize a stored or submitted customization payload."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, (LegacyCustomization, MultiDesignCustomization)):
        return raw
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationError("Customization payload is not valid JSON")
    if not isinstance(raw, dict):
        raise ValidationError("Customization payload must be an object")

    embroidery_data = raw.get("embroideryData") or {}
    override = _decimal(embroidery_data.get("totalPrice"), default=None)
    override = override if override else None

    if "designs" in raw:
        designs = raw.get("designs") or []
        if not isinstance(designs, list):
            raise ValidationError("Customization designs must be a list")
        return MultiDesignCustomization(
            designs=tuple(Design.from_dict(d) for d in designs),
            total_override=override,
        )

    return LegacyCustomization(design=Design.from_dict(raw), total_override=override)
