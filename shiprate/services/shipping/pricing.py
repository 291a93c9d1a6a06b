"""Cost model for matched shipping and carrier rules, including surcharges."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from shiprate.services.shipping.aggregate import any_fragile, any_hazardous
from shiprate.services.shipping.types import (
    AppliedSurcharge,
    CarrierRule,
    DimensionUnit,
    Dimensions,
    ShippingItem,
    ShippingMethod,
    ShippingOption,
    ShippingRule,
    ShippingZone,
    Surcharge,
    SurchargeType,
)

CENTS = Decimal("0.01")

# length × width × height, cm
OVERSIZE_LIMITS_CM = (Decimal("120"), Decimal("80"), Decimal("80"))
INSURANCE_SURCHARGE_MIN_VALUE = Decimal("1000")
INSURANCE_INCLUDED_MIN_VALUE = Decimal("100")
SIGNATURE_MIN_VALUE = Decimal("500")


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def delivery_date(now: datetime, days: int) -> Optional[datetime]:
    return now + timedelta(days=days) if days > 0 else None


# ── Surcharges ──────────────────────────────────────────


def is_oversized(dimensions: Dimensions) -> bool:
    sizes = dimensions.in_unit(DimensionUnit.CM)
    return any(size > limit for size, limit in zip(sizes, OVERSIZE_LIMITS_CM))


def surcharge_triggered(
    surcharge: Surcharge,
    items: Sequence[ShippingItem],
    total_value: Decimal,
) -> bool:
    kind = surcharge.type
    if kind == SurchargeType.FRAGILE:
        return any_fragile(items)
    if kind == SurchargeType.HAZARDOUS:
        return any_hazardous(items)
    if kind == SurchargeType.OVERSIZED:
        return any(is_oversized(item.dimensions) for item in items)
    if kind == SurchargeType.FUEL:
        return True
    if kind == SurchargeType.INSURANCE:
        return total_value > INSURANCE_SURCHARGE_MIN_VALUE
    return False


def surcharge_amount(surcharge: Surcharge, total_value: Decimal) -> Decimal:
    if surcharge.is_percentage:
        return total_value * surcharge.amount / Decimal("100")
    return surcharge.amount


def apply_surcharges(
    surcharges: Sequence[Surcharge],
    items: Sequence[ShippingItem],
    total_value: Decimal,
) -> list[AppliedSurcharge]:
    """Surcharges whose trigger holds, with their computed amounts."""
    return [
        AppliedSurcharge(
            type=s.type,
            name=s.name,
            amount=surcharge_amount(s, total_value),
            description=f"{s.name} surcharge",
        )
        for s in surcharges
        if surcharge_triggered(s, items, total_value)
    ]


# ── Rule pricing ────────────────────────────────────────


def rule_base_cost(
    rule: ShippingRule,
    weight_kg: Decimal,
    total_value: Decimal,
    dimensional_kg: Decimal,
) -> Decimal:
    """Flat rate, or base + weight + value + dimensional components."""
    if rule.flat_rate > 0:
        return rule.flat_rate

    cost = rule.base_cost
    if rule.weight_rate > 0:
        cost += weight_kg * rule.weight_rate
    if rule.value_rate > 0:
        cost += total_value * rule.value_rate / Decimal("100")
    if rule.dimensional_rate > 0:
        cost += dimensional_kg * rule.dimensional_rate
    return cost


def price_rule(
    rule: ShippingRule,
    items: Sequence[ShippingItem],
    zone: ShippingZone,
    weight_kg: Decimal,
    total_value: Decimal,
    dimensional_kg: Decimal,
    estimated_days: int,
    now: datetime,
) -> ShippingOption:
    """Build the option for a matched shipping rule."""
    applied = apply_surcharges(rule.surcharges, items, total_value)
    cost = rule_base_cost(rule, weight_kg, total_value, dimensional_kg)
    cost += sum((s.amount for s in applied), Decimal("0"))

    return ShippingOption(
        id=rule.id,
        method=rule.method,
        service_name=rule.name,
        cost=round_money(cost),
        base_cost=rule.base_cost,
        zone=zone,
        estimated_days=estimated_days,
        surcharges=applied,
        delivery_date=delivery_date(now, estimated_days),
        tracking_included=rule.method != ShippingMethod.STANDARD,
        insurance_included=total_value > INSURANCE_INCLUDED_MIN_VALUE,
        signature_required=total_value > SIGNATURE_MIN_VALUE,
        description=f"{rule.method.value} shipping via {rule.name}",
    )


def price_carrier(
    rule: CarrierRule,
    zone: ShippingZone,
    weight_kg: Decimal,
    now: datetime,
) -> ShippingOption:
    """Build the option for a matched carrier rule. No surcharges apply."""
    cost = rule.base_cost
    if rule.weight_rate > 0:
        cost += weight_kg * rule.weight_rate
    zone_rates = {ShippingZone(z): rate for z, rate in rule.zone_rates.items()}
    if zone in zone_rates:
        cost += zone_rates[zone]

    return ShippingOption(
        id=f"{rule.carrier_id}_{rule.service_code}",
        method=rule.method,
        service_name=f"{rule.carrier_name} {rule.method.value}",
        cost=round_money(cost),
        base_cost=rule.base_cost,
        zone=zone,
        estimated_days=rule.delivery_days,
        carrier_id=rule.carrier_id,
        carrier_name=rule.carrier_name,
        delivery_date=delivery_date(now, rule.delivery_days),
        tracking_included=rule.tracking_included,
        insurance_included=rule.insurance_included,
        signature_required=rule.signature_required,
        description=f"{rule.method.value} shipping via {rule.carrier_name}",
    )
