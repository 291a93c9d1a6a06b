"""Shipping zone resolution."""

from typing import Iterable, Optional

from shiprate.services.shipping.types import Address, ShippingZone, ZoneRule


def address_matches(address: Address, rule: ZoneRule) -> bool:
    """Check a destination against a zone rule. Empty criteria don't constrain."""
    if rule.countries and address.country not in rule.countries:
        return False
    if rule.states and address.state not in rule.states:
        return False
    if rule.postal_codes and address.postal_code not in rule.postal_codes:
        return False
    if rule.postal_code_ranges and not any(
        r.contains(address.postal_code) for r in rule.postal_code_ranges
    ):
        return False
    return True


def match_zone_rule(destination: Address, rules: Iterable[ZoneRule]) -> Optional[ZoneRule]:
    """Most specific matching rule; the first one wins a tie."""
    best: Optional[ZoneRule] = None
    for rule in rules:
        if not address_matches(destination, rule):
            continue
        if best is None or rule.specificity > best.specificity:
            best = rule
    return best


def fallback_zone(origin: Address, destination: Address) -> ShippingZone:
    """Zone from plain geography when no rule matches."""
    if origin.country != destination.country:
        return ShippingZone.INTERNATIONAL
    if origin.state and destination.state and origin.state != destination.state:
        return ShippingZone.NATIONAL
    if (
        origin.state == destination.state
        and origin.city and destination.city
        and origin.city != destination.city
    ):
        return ShippingZone.REGIONAL
    return ShippingZone.LOCAL


def resolve_zone(
    origin: Address,
    destination: Address,
    zone_rules: Iterable[ZoneRule] = (),
) -> ShippingZone:
    rule = match_zone_rule(destination, zone_rules)
    if rule is not None:
        return rule.zone
    return fallback_zone(origin, destination)
