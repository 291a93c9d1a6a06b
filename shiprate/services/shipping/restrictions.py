"""Shipping restrictions that block a calculation outright."""

from typing import Iterable, Sequence

from shiprate.services.shipping.aggregate import any_hazardous, categories
from shiprate.services.shipping.types import (
    Address,
    RestrictionType,
    ShippingItem,
    ShippingRestriction,
)


def restriction_applies(
    restriction: ShippingRestriction,
    items: Sequence[ShippingItem],
    destination: Address,
) -> bool:
    if restriction.type == RestrictionType.DESTINATION:
        return destination.country in restriction.countries
    if restriction.type == RestrictionType.ITEM_CATEGORY:
        return bool(categories(items) & set(restriction.categories))
    if restriction.type == RestrictionType.HAZARDOUS:
        return any_hazardous(items)
    return False


def check_restrictions(
    items: Sequence[ShippingItem],
    destination: Address,
    restrictions: Iterable[ShippingRestriction],
) -> list[str]:
    """Messages of every restriction that applies, in configured order."""
    return [
        r.message
        for r in restrictions
        if restriction_applies(r, items, destination)
    ]
