"""Weight and dimension unit conversion.

Weights pivot through grams, dimensions through centimeters. Unknown units
fall through to the pivot value.
"""

from decimal import Decimal

from shiprate.services.shipping.types import DimensionUnit, Weight, WeightUnit

GRAMS_PER_UNIT: dict[WeightUnit, Decimal] = {
    WeightUnit.G: Decimal("1"),
    WeightUnit.KG: Decimal("1000"),
    WeightUnit.LB: Decimal("453.592"),
    WeightUnit.OZ: Decimal("28.3495"),
}

CM_PER_UNIT: dict[DimensionUnit, Decimal] = {
    DimensionUnit.CM: Decimal("1"),
    DimensionUnit.M: Decimal("100"),
    DimensionUnit.IN: Decimal("2.54"),
    DimensionUnit.FT: Decimal("30.48"),
}


def convert_weight(weight: Weight, target: WeightUnit) -> Decimal:
    """Convert ``weight`` to ``target`` units."""
    if weight.unit == target:
        return weight.value
    grams = weight.value * GRAMS_PER_UNIT.get(weight.unit, Decimal("1"))
    return grams / GRAMS_PER_UNIT.get(target, Decimal("1"))


def convert_dimension(
    value: Decimal,
    from_unit: DimensionUnit,
    to_unit: DimensionUnit,
) -> Decimal:
    """Convert a linear measurement between units."""
    if from_unit == to_unit:
        return value
    cm = value * CM_PER_UNIT.get(from_unit, Decimal("1"))
    return cm / CM_PER_UNIT.get(to_unit, Decimal("1"))


def to_kg(weight: Weight) -> Decimal:
    return convert_weight(weight, WeightUnit.KG)
