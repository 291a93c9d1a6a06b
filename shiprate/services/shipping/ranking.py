"""Option sorting and cheapest / fastest / recommended selection."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from shiprate.services.shipping.types import ShippingOption

RECOMMENDED_MAX_DAYS = 5
RECOMMENDED_COST_FACTOR = Decimal("1.5")


@dataclass
class Ranking:
    options: list[ShippingOption]
    cheapest: Optional[ShippingOption] = None
    fastest: Optional[ShippingOption] = None
    recommended: Optional[ShippingOption] = None


def rank_options(
    options: Sequence[ShippingOption],
    max_days: int = RECOMMENDED_MAX_DAYS,
    cost_factor: Decimal = RECOMMENDED_COST_FACTOR,
) -> Ranking:
    """Sort by cost and pick cheapest, fastest and recommended.

    min() keeps the first of equal keys, so ties go to the option generated
    first. The recommendation scans options in generation order.
    """
    if not options:
        return Ranking(options=[])

    cheapest = min(options, key=lambda o: o.cost)
    fastest = min(options, key=lambda o: o.estimated_days)
    ceiling = cheapest.cost * cost_factor
    recommended = next(
        (o for o in options if o.estimated_days <= max_days and o.cost <= ceiling),
        cheapest,
    )
    return Ranking(
        options=sorted(options, key=lambda o: o.cost),
        cheapest=cheapest,
        fastest=fastest,
        recommended=recommended,
    )
