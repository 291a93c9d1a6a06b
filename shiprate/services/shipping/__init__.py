"""Shipping rate computation."""

from shiprate.services.shipping.engine import (
    NoShippingOptionsError,
    ShippingEngine,
    calculate,
    calculate_best_option,
)
from shiprate.services.shipping.types import (
    Address,
    AppliedSurcharge,
    CarrierRule,
    DeliveryTimeRule,
    DimensionUnit,
    Dimensions,
    FreeShippingRule,
    PackagingRule,
    PostalCodeRange,
    RestrictionType,
    RuleSet,
    ShippingCalculationInput,
    ShippingCalculationResult,
    ShippingItem,
    ShippingMethod,
    ShippingOption,
    ShippingRestriction,
    ShippingRule,
    ShippingZone,
    Surcharge,
    SurchargeType,
    Weight,
    WeightUnit,
    ZoneRule,
)

__all__ = [
    "Address",
    "AppliedSurcharge",
    "CarrierRule",
    "DeliveryTimeRule",
    "DimensionUnit",
    "Dimensions",
    "FreeShippingRule",
    "NoShippingOptionsError",
    "PackagingRule",
    "PostalCodeRange",
    "RestrictionType",
    "RuleSet",
    "ShippingCalculationInput",
    "ShippingCalculationResult",
    "ShippingEngine",
    "ShippingItem",
    "ShippingMethod",
    "ShippingOption",
    "ShippingRestriction",
    "ShippingRule",
    "ShippingZone",
    "Surcharge",
    "SurchargeType",
    "Weight",
    "WeightUnit",
    "ZoneRule",
    "calculate",
    "calculate_best_option",
]
