"""Rule applicability for a shipment."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from shiprate.services.shipping.types import (
    CarrierRule,
    Dimensions,
    ShippingCalculationInput,
    ShippingItem,
    ShippingRule,
    ShippingZone,
    Weight,
    as_utc,
)
from shiprate.services.shipping.units import convert_weight

logger = logging.getLogger(__name__)


def within_window(
    now: datetime,
    valid_from: Optional[datetime],
    valid_until: Optional[datetime],
) -> bool:
    """``now`` inside ``[valid_from, valid_until)``; None is unbounded.

    Naive datetimes are compared as UTC.
    """
    now, valid_from, valid_until = as_utc(now), as_utc(valid_from), as_utc(valid_until)
    if valid_from is not None and now < valid_from:
        return False
    if valid_until is not None and now >= valid_until:
        return False
    return True


def weight_within(
    weight: Weight,
    minimum: Optional[Weight],
    maximum: Optional[Weight],
) -> bool:
    """Bounds are compared in their own unit; a zero bound is unset."""
    if minimum is not None and minimum.value > 0:
        if convert_weight(weight, minimum.unit) < minimum.value:
            return False
    if maximum is not None and maximum.value > 0:
        if convert_weight(weight, maximum.unit) > maximum.value:
            return False
    return True


def value_within(value: Decimal, minimum: Decimal, maximum: Decimal) -> bool:
    if minimum > 0 and value < minimum:
        return False
    if maximum > 0 and value > maximum:
        return False
    return True


def fits_dimensions(items: Sequence[ShippingItem], limits: Optional[Dimensions]) -> bool:
    """Every item fits inside ``limits`` on each axis. Zero axis limits are unset."""
    if limits is None:
        return True
    for item in items:
        sizes = item.dimensions.in_unit(limits.unit)
        bounds = (limits.length, limits.width, limits.height)
        for size, bound in zip(sizes, bounds):
            if bound > 0 and size > bound:
                return False
    return True


def rule_applies(
    rule: ShippingRule,
    inp: ShippingCalculationInput,
    zone: ShippingZone,
    weight: Weight,
    value: Decimal,
    now: datetime,
) -> bool:
    """Whether a shipping rule prices this shipment."""
    if not rule.is_active:
        return False
    if not within_window(now, rule.valid_from, rule.valid_until):
        logger.debug("Rule %s outside validity window", rule.id)
        return False
    if rule.zone is not None and rule.zone != zone:
        return False
    if not weight_within(weight, rule.min_weight, rule.max_weight):
        return False
    if not value_within(value, rule.min_value, rule.max_value):
        return False
    if rule.applicable_countries and inp.destination.country not in rule.applicable_countries:
        return False
    if rule.applicable_states and inp.destination.state not in rule.applicable_states:
        return False
    if rule.applicable_categories and not any(
        item.category in rule.applicable_categories for item in inp.items
    ):
        return False
    return True


def carrier_applies(
    rule: CarrierRule,
    items: Sequence[ShippingItem],
    weight: Weight,
) -> bool:
    """Carrier weight and size limits."""
    if not weight_within(weight, None, rule.max_weight):
        logger.debug("Carrier %s/%s: over max weight", rule.carrier_id, rule.service_code)
        return False
    if not fits_dimensions(items, rule.max_dimensions):
        logger.debug("Carrier %s/%s: item too large", rule.carrier_id, rule.service_code)
        return False
    return True
