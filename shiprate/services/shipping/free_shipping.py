"""Free shipping eligibility."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from shiprate.services.shipping.matching import within_window
from shiprate.services.shipping.types import (
    FreeShippingRule,
    ShippingItem,
    ShippingOption,
    ShippingZone,
    Weight,
)
from shiprate.services.shipping.units import convert_weight

logger = logging.getLogger(__name__)

FREE_SHIPPING_SUFFIX = " (Free Shipping)"


def qualifies(
    rule: FreeShippingRule,
    items: Sequence[ShippingItem],
    zone: ShippingZone,
    weight: Weight,
    value: Decimal,
    now: datetime,
) -> bool:
    if not rule.is_active:
        return False
    if not within_window(now, rule.valid_from, rule.valid_until):
        return False
    if rule.min_order_value > 0 and value < rule.min_order_value:
        return False
    if rule.min_weight is not None and rule.min_weight.value > 0:
        if convert_weight(weight, rule.min_weight.unit) < rule.min_weight.value:
            return False
    if rule.applicable_zones and zone not in rule.applicable_zones:
        return False
    if rule.applicable_categories and not any(
        item.category in rule.applicable_categories for item in items
    ):
        return False
    if any(item.category in rule.excluded_categories for item in items):
        return False
    return True


def first_qualifying(
    rules: Iterable[FreeShippingRule],
    items: Sequence[ShippingItem],
    zone: ShippingZone,
    weight: Weight,
    value: Decimal,
    now: datetime,
) -> Optional[FreeShippingRule]:
    for rule in rules:
        if qualifies(rule, items, zone, weight, value, now):
            return rule
    return None


def make_cheapest_free(options: list[ShippingOption]) -> Optional[ShippingOption]:
    """Zero the cheapest option in place.

    An option that is already free stays the cheapest, so calling this again
    changes nothing.
    """
    if not options:
        return None
    cheapest = min(options, key=lambda o: o.cost)
    if cheapest.is_free_shipping:
        return cheapest
    cheapest.cost = Decimal("0.00")
    cheapest.service_name += FREE_SHIPPING_SUFFIX
    cheapest.is_free_shipping = True
    return cheapest


def apply_free_shipping(
    options: list[ShippingOption],
    rules: Iterable[FreeShippingRule],
    items: Sequence[ShippingItem],
    zone: ShippingZone,
    weight: Weight,
    value: Decimal,
    now: datetime,
) -> Optional[FreeShippingRule]:
    """Apply the first qualifying rule; returns it, or None."""
    rule = first_qualifying(rules, items, zone, weight, value, now)
    if rule is None:
        return None
    option = make_cheapest_free(options)
    if option is not None:
        logger.debug("Free shipping rule %r applied to option %s", rule.name, option.id)
    return rule
