"""Value types for shipping rate calculation.

Money, rates, weights and dimensions are ``Decimal``; coordinates and
distances are plain floats.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional


class ShippingMethod(str, Enum):
    """Delivery service levels."""
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"
    SAME_DAY = "same_day"
    PICKUP = "pickup"
    FREE = "free"


class ShippingZone(str, Enum):
    """Coarse geographic buckets driving price tiers."""
    LOCAL = "local"
    REGIONAL = "regional"
    NATIONAL = "national"
    INTERNATIONAL = "international"


class WeightUnit(str, Enum):
    KG = "kg"
    LB = "lb"
    G = "g"
    OZ = "oz"


class DimensionUnit(str, Enum):
    CM = "cm"
    IN = "in"
    M = "m"
    FT = "ft"


class RestrictionType(str, Enum):
    DESTINATION = "destination"
    ITEM_CATEGORY = "item_category"
    HAZARDOUS = "hazardous"


class SurchargeType(str, Enum):
    FRAGILE = "fragile"
    HAZARDOUS = "hazardous"
    OVERSIZED = "oversized"
    FUEL = "fuel"
    INSURANCE = "insurance"


# ── Physical quantities ─────────────────────────────────


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are read as UTC."""
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Weight:
    """Immutable weight value; grams are the conversion pivot."""
    value: Decimal = Decimal("0")
    unit: WeightUnit = WeightUnit.KG

    def __post_init__(self):
        object.__setattr__(self, "value", _to_decimal(self.value))
        object.__setattr__(self, "unit", WeightUnit(self.unit))
        if self.value < 0:
            raise ValueError(f"Weight cannot be negative: {self.value}")

    def to(self, unit: WeightUnit) -> Decimal:
        from shiprate.services.shipping.units import convert_weight
        return convert_weight(self, unit)


@dataclass(frozen=True)
class Dimensions:
    """Immutable package dimensions; centimeters are the conversion pivot."""
    length: Decimal = Decimal("0")
    width: Decimal = Decimal("0")
    height: Decimal = Decimal("0")
    unit: DimensionUnit = DimensionUnit.CM

    def __post_init__(self):
        object.__setattr__(self, "unit", DimensionUnit(self.unit))
        for name in ("length", "width", "height"):
            object.__setattr__(self, name, _to_decimal(getattr(self, name)))
            if getattr(self, name) < 0:
                raise ValueError(f"Dimension {name} cannot be negative")

    def in_unit(self, unit: DimensionUnit) -> tuple[Decimal, Decimal, Decimal]:
        """Return (length, width, height) converted to ``unit``."""
        from shiprate.services.shipping.units import convert_dimension
        return (
            convert_dimension(self.length, self.unit, unit),
            convert_dimension(self.width, self.unit, unit),
            convert_dimension(self.height, self.unit, unit),
        )


@dataclass
class Address:
    """Origin or destination address."""
    street1: str = ""
    street2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    latitude: float = 0.0
    longitude: float = 0.0


@dataclass
class ShippingItem:
    """A line item to be shipped."""
    id: str = ""
    name: str = ""
    quantity: int = 1
    weight: Weight = field(default_factory=Weight)
    dimensions: Dimensions = field(default_factory=Dimensions)
    value: Decimal = Decimal("0")
    category: str = ""
    is_fragile: bool = False
    is_hazardous: bool = False
    requires_cold_chain: bool = False

    def __post_init__(self):
        self.value = _to_decimal(self.value)

    @property
    def effective_quantity(self) -> int:
        """Quantity with an unset (zero) quantity counted as one."""
        return self.quantity or 1


# ── Rules ───────────────────────────────────────────────


@dataclass
class Surcharge:
    type: str
    name: str
    amount: Decimal = Decimal("0")
    is_percentage: bool = False
    condition: str = ""  # informational only


@dataclass
class AppliedSurcharge:
    type: str
    name: str
    amount: Decimal
    description: str = ""


@dataclass
class ShippingRule:
    """Pricing rule for a method/zone combination."""
    id: str
    name: str
    method: ShippingMethod = ShippingMethod.STANDARD
    zone: Optional[ShippingZone] = None  # None = any zone
    min_weight: Optional[Weight] = None
    max_weight: Optional[Weight] = None
    min_value: Decimal = Decimal("0")
    max_value: Decimal = Decimal("0")
    base_cost: Decimal = Decimal("0")
    weight_rate: Decimal = Decimal("0")  # per kg
    value_rate: Decimal = Decimal("0")  # percent of total value
    dimensional_rate: Decimal = Decimal("0")  # per dimensional kg
    flat_rate: Decimal = Decimal("0")
    free_shipping_threshold: Decimal = Decimal("0")
    surcharges: list[Surcharge] = field(default_factory=list)
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    applicable_countries: list[str] = field(default_factory=list)
    applicable_states: list[str] = field(default_factory=list)
    applicable_categories: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.valid_from = as_utc(self.valid_from)
        self.valid_until = as_utc(self.valid_until)


@dataclass
class CarrierRule:
    """Carrier specific service pricing and limits."""
    carrier_id: str
    carrier_name: str
    service_code: str
    method: ShippingMethod = ShippingMethod.STANDARD
    base_cost: Decimal = Decimal("0")
    weight_rate: Decimal = Decimal("0")
    zone_rates: dict[ShippingZone, Decimal] = field(default_factory=dict)
    max_weight: Optional[Weight] = None
    max_dimensions: Optional[Dimensions] = None
    delivery_days: int = 0
    tracking_included: bool = False
    insurance_included: bool = False
    signature_required: bool = False


@dataclass
class PostalCodeRange:
    start: str
    end: str

    def contains(self, postal_code: str) -> bool:
        return self.start <= postal_code <= self.end


@dataclass
class ZoneRule:
    zone: ShippingZone
    countries: list[str] = field(default_factory=list)
    states: list[str] = field(default_factory=list)
    postal_codes: list[str] = field(default_factory=list)
    postal_code_ranges: list[PostalCodeRange] = field(default_factory=list)
    distance_km: float = 0.0

    @property
    def specificity(self) -> int:
        score = 0
        if self.states:
            score += 2
        if self.countries:
            score += 1
        return score


@dataclass
class DeliveryTimeRule:
    method: ShippingMethod
    zone: ShippingZone
    base_days: int = 0
    weight_delay_days: int = 0
    weight_threshold: Optional[Weight] = None
    distance_delay_days: int = 0
    distance_threshold: float = 0.0
    holiday_delay: int = 0  # stored, not applied
    weekend_delay: int = 0


@dataclass
class ShippingRestriction:
    type: RestrictionType
    message: str
    condition: str = ""
    methods: list[ShippingMethod] = field(default_factory=list)
    countries: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)


@dataclass
class FreeShippingRule:
    name: str
    id: str = ""
    min_order_value: Decimal = Decimal("0")
    min_weight: Optional[Weight] = None
    applicable_zones: list[ShippingZone] = field(default_factory=list)
    applicable_categories: list[str] = field(default_factory=list)
    excluded_categories: list[str] = field(default_factory=list)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = True

    def __post_init__(self):
        self.valid_from = as_utc(self.valid_from)
        self.valid_until = as_utc(self.valid_until)


@dataclass
class PackagingRule:
    """Packaging material definition, kept alongside the pricing rules."""
    name: str
    max_weight: Weight
    id: str = ""
    max_dimensions: Optional[Dimensions] = None
    packaging_cost: Decimal = Decimal("0")
    material_type: str = "box"  # box, envelope, tube, custom
    is_default: bool = False
    fragile_support: bool = False
    hazardous_support: bool = False


@dataclass(frozen=True)
class RuleSet:
    """Immutable snapshot of every rule collection."""
    shipping_rules: tuple[ShippingRule, ...] = ()
    carrier_rules: tuple[CarrierRule, ...] = ()
    zone_rules: tuple[ZoneRule, ...] = ()
    delivery_time_rules: tuple[DeliveryTimeRule, ...] = ()
    restrictions: tuple[ShippingRestriction, ...] = ()
    free_shipping_rules: tuple[FreeShippingRule, ...] = ()
    packaging_rules: tuple[PackagingRule, ...] = ()


# ── Calculation input / output ──────────────────────────


@dataclass
class ShippingCalculationInput:
    items: list[ShippingItem] = field(default_factory=list)
    origin: Address = field(default_factory=Address)
    destination: Address = field(default_factory=Address)
    shipping_rules: list[ShippingRule] = field(default_factory=list)
    zone_rules: list[ZoneRule] = field(default_factory=list)
    carrier_rules: list[CarrierRule] = field(default_factory=list)
    requested_method: Optional[ShippingMethod] = None


@dataclass
class ShippingOption:
    id: str
    method: ShippingMethod
    service_name: str
    cost: Decimal
    base_cost: Decimal
    zone: ShippingZone
    estimated_days: int = 0
    carrier_id: str = ""
    carrier_name: str = ""
    surcharges: list[AppliedSurcharge] = field(default_factory=list)
    delivery_date: Optional[datetime] = None
    tracking_included: bool = False
    insurance_included: bool = False
    signature_required: bool = False
    description: str = ""
    is_free_shipping: bool = False


@dataclass
class ShippingCalculationResult:
    options: list[ShippingOption] = field(default_factory=list)
    recommended_option: Optional[ShippingOption] = None
    cheapest_option: Optional[ShippingOption] = None
    fastest_option: Optional[ShippingOption] = None
    total_weight: Weight = field(default_factory=Weight)
    total_value: Decimal = Decimal("0")
    zone: Optional[ShippingZone] = None
    distance: Optional[float] = None
    is_valid: bool = True
    error_message: str = ""
    warnings: list[str] = field(default_factory=list)
