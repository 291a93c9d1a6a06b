"""Shipment totals: weight, value and dimensional weight."""

from decimal import Decimal
from typing import Iterable

from shiprate.services.shipping.types import DimensionUnit, ShippingItem, Weight, WeightUnit
from shiprate.services.shipping.units import to_kg

# cm³ per kg
DIMENSIONAL_DIVISOR = Decimal("5000")


def total_weight(items: Iterable[ShippingItem]) -> Weight:
    """Sum of item weights in kilograms."""
    total = sum(
        (to_kg(item.weight) * item.effective_quantity for item in items),
        Decimal("0"),
    )
    return Weight(total, WeightUnit.KG)


def total_value(items: Iterable[ShippingItem]) -> Decimal:
    """Declared value of all items. Zero quantity counts as one, as for weight."""
    return sum(
        (item.value * item.effective_quantity for item in items),
        Decimal("0"),
    )


def dimensional_weight(items: Iterable[ShippingItem]) -> Weight:
    """Volumetric weight in kilograms (L×W×H cm / 5000)."""
    total = Decimal("0")
    for item in items:
        length, width, height = item.dimensions.in_unit(DimensionUnit.CM)
        volume = length * width * height
        total += volume / DIMENSIONAL_DIVISOR * item.effective_quantity
    return Weight(total, WeightUnit.KG)


def any_fragile(items: Iterable[ShippingItem]) -> bool:
    return any(item.is_fragile for item in items)


def any_hazardous(items: Iterable[ShippingItem]) -> bool:
    return any(item.is_hazardous for item in items)


def categories(items: Iterable[ShippingItem]) -> set[str]:
    return {item.category for item in items}
