"""Delivery time estimation."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from shiprate.services.shipping.types import (
    DeliveryTimeRule,
    ShippingMethod,
    ShippingZone,
    Weight,
)
from shiprate.services.shipping.units import convert_weight

DEFAULT_DAYS: dict[ShippingMethod, int] = {
    ShippingMethod.SAME_DAY: 0,
    ShippingMethod.OVERNIGHT: 1,
    ShippingMethod.EXPRESS: 2,
    ShippingMethod.STANDARD: 5,
    ShippingMethod.PICKUP: 0,
}
FALLBACK_DAYS = 3

# datetime.weekday(): Friday = 4, Saturday = 5
WEEKEND_DELAY_WEEKDAYS = {4, 5}


def find_rule(
    rules: Iterable[DeliveryTimeRule],
    method: ShippingMethod,
    zone: ShippingZone,
) -> Optional[DeliveryTimeRule]:
    for rule in rules:
        if rule.method == method and rule.zone == zone:
            return rule
    return None


def estimate_days(
    method: ShippingMethod,
    zone: ShippingZone,
    weight: Weight,
    distance: Optional[float],
    rules: Iterable[DeliveryTimeRule],
    now: datetime,
) -> int:
    """Estimated delivery days for a method into a zone."""
    rule = find_rule(rules, method, zone)
    if rule is None:
        return DEFAULT_DAYS.get(method, FALLBACK_DAYS)

    days = rule.base_days
    threshold = rule.weight_threshold
    if threshold is not None and threshold.value > 0:
        if convert_weight(weight, threshold.unit) > threshold.value:
            days += rule.weight_delay_days
    if rule.distance_threshold > 0 and (distance or 0.0) > rule.distance_threshold:
        days += rule.distance_delay_days
    if now.weekday() in WEEKEND_DELAY_WEEKDAYS:
        days += rule.weekend_delay
    return days
