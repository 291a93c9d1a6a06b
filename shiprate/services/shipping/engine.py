"""Shipping rate engine.

Runs a single pass over the shipment:

    validate items -> resolve zone -> distance -> restrictions
    -> price shipping rules -> price carrier rules -> free shipping -> rank

Business outcomes (no items, restricted shipment, nothing applicable) come
back as data on the result, never as exceptions.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from shiprate.services.shipping import aggregate
from shiprate.services.shipping.delivery import estimate_days
from shiprate.services.shipping.free_shipping import apply_free_shipping
from shiprate.services.shipping.geo import distance_km
from shiprate.services.shipping.matching import carrier_applies, rule_applies
from shiprate.services.shipping.pricing import delivery_date, price_carrier, price_rule
from shiprate.services.shipping.ranking import (
    RECOMMENDED_COST_FACTOR,
    RECOMMENDED_MAX_DAYS,
    rank_options,
)
from shiprate.services.shipping.restrictions import check_restrictions
from shiprate.services.shipping.types import (
    RuleSet,
    ShippingCalculationInput,
    ShippingCalculationResult,
    ShippingMethod,
    ShippingOption,
    ShippingZone,
)
from shiprate.services.shipping.zones import resolve_zone

logger = logging.getLogger(__name__)

NO_ITEMS_MESSAGE = "no items to ship"
NO_OPTIONS_MESSAGE = "no shipping options available"
DEFAULT_OPTION_ID = "default-standard"


class NoShippingOptionsError(ValueError):
    """Raised when a best option is requested but none can be offered."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ShippingEngine:
    """Computes shipping options against an immutable rule set snapshot."""

    def __init__(
        self,
        rules: Optional[RuleSet] = None,
        clock: Callable[[], datetime] = utc_now,
        default_option_cost: Decimal = Decimal("10.00"),
        default_option_days: int = 5,
        recommended_max_days: int = RECOMMENDED_MAX_DAYS,
        recommended_cost_factor: Decimal = RECOMMENDED_COST_FACTOR,
    ):
        self.rules = rules or RuleSet()
        self._clock = clock
        self._default_cost = default_option_cost
        self._default_days = default_option_days
        self._max_days = recommended_max_days
        self._cost_factor = recommended_cost_factor

    @classmethod
    def from_settings(cls, rules: Optional[RuleSet], settings) -> "ShippingEngine":
        return cls(
            rules=rules,
            default_option_cost=settings.default_option_cost,
            default_option_days=settings.default_option_days,
            recommended_max_days=settings.recommended_max_days,
            recommended_cost_factor=settings.recommended_cost_factor,
        )

    def calculate_shipping(self, inp: ShippingCalculationInput) -> ShippingCalculationResult:
        """Compute every available option for the shipment."""
        if not inp.items:
            return ShippingCalculationResult(is_valid=False, error_message=NO_ITEMS_MESSAGE)

        now = self._clock()
        weight = aggregate.total_weight(inp.items)
        value = aggregate.total_value(inp.items)
        result = ShippingCalculationResult(total_weight=weight, total_value=value)

        zone_rules = inp.zone_rules or self.rules.zone_rules
        zone = resolve_zone(inp.origin, inp.destination, zone_rules)
        result.zone = zone

        result.distance = distance_km(inp.origin, inp.destination)

        blocked = check_restrictions(inp.items, inp.destination, self.rules.restrictions)
        if blocked:
            logger.info("Shipment to %s restricted: %s", inp.destination.country, blocked)
            result.is_valid = False
            result.error_message = "Shipping restrictions apply: " + "; ".join(blocked)
            return result

        options: list[ShippingOption] = []
        if not inp.shipping_rules:
            options.append(self._default_option(zone, now))

        dimensional_kg = aggregate.dimensional_weight(inp.items).value
        for rule in inp.shipping_rules:
            if not rule_applies(rule, inp, zone, weight, value, now):
                continue
            days = estimate_days(
                rule.method, zone, weight, result.distance,
                self.rules.delivery_time_rules, now,
            )
            options.append(price_rule(
                rule, inp.items, zone, weight.value, value, dimensional_kg, days, now,
            ))

        for carrier in inp.carrier_rules:
            if carrier_applies(carrier, inp.items, weight):
                options.append(price_carrier(carrier, zone, weight.value, now))

        if inp.shipping_rules and not options:
            result.warnings.append("no shipping rules apply to this shipment")

        apply_free_shipping(
            options, self.rules.free_shipping_rules, inp.items, zone, weight, value, now,
        )

        ranking = rank_options(options, self._max_days, self._cost_factor)
        result.options = ranking.options
        result.cheapest_option = ranking.cheapest
        result.fastest_option = ranking.fastest
        result.recommended_option = ranking.recommended

        if inp.requested_method is not None and not any(
            o.method == inp.requested_method for o in result.options
        ):
            result.warnings.append(
                f"requested method {inp.requested_method.value} is not available"
            )

        logger.debug("Computed %d option(s) for zone %s", len(result.options), zone.value)
        return result

    def calculate_best_option(
        self,
        inp: ShippingCalculationInput,
        criteria: str = "recommended",
    ) -> ShippingOption:
        """Pick one option by ``cheapest``, ``fastest`` or ``recommended``.

        Unknown criteria fall back to ``recommended``.
        """
        result = self.calculate_shipping(inp)
        if not result.is_valid:
            raise NoShippingOptionsError(result.error_message)
        if not result.options:
            raise NoShippingOptionsError(NO_OPTIONS_MESSAGE)

        if criteria == "cheapest":
            return result.cheapest_option
        if criteria == "fastest":
            return result.fastest_option
        return result.recommended_option

    def _default_option(self, zone: ShippingZone, now: datetime) -> ShippingOption:
        return ShippingOption(
            id=DEFAULT_OPTION_ID,
            method=ShippingMethod.STANDARD,
            service_name="Standard Shipping",
            cost=self._default_cost,
            base_cost=self._default_cost,
            zone=zone,
            estimated_days=self._default_days,
            delivery_date=delivery_date(now, self._default_days),
            description="Standard shipping",
        )


def calculate(inp: ShippingCalculationInput) -> ShippingCalculationResult:
    """One-off calculation using only the zone rules carried by the input."""
    engine = ShippingEngine(RuleSet(zone_rules=tuple(inp.zone_rules)))
    return engine.calculate_shipping(inp)


def calculate_best_option(
    inp: ShippingCalculationInput,
    criteria: str = "recommended",
) -> ShippingOption:
    engine = ShippingEngine(RuleSet(zone_rules=tuple(inp.zone_rules)))
    return engine.calculate_best_option(inp, criteria)
