"""Great-circle distance between addresses."""

import math
from typing import Optional

from shiprate.services.shipping.types import Address

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in kilometers between two decimal-degree points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def coordinates_complete(origin: Address, destination: Address) -> bool:
    """True when all four coordinate values are non-zero."""
    return all((
        origin.latitude, origin.longitude,
        destination.latitude, destination.longitude,
    ))


def distance_km(origin: Address, destination: Address) -> Optional[float]:
    """Distance between two addresses, or None unless coordinates are complete."""
    if not coordinates_complete(origin, destination):
        return None
    return haversine_km(
        origin.latitude, origin.longitude,
        destination.latitude, destination.longitude,
    )
