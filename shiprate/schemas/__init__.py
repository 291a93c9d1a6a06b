"""Pydantic schemas for the shipping API and rule documents."""

from typing import Optional

from pydantic import BaseModel, Field

from shiprate.services.shipping.types import (
    Address,
    CarrierRule,
    DeliveryTimeRule,
    FreeShippingRule,
    PackagingRule,
    RuleSet,
    ShippingCalculationInput,
    ShippingItem,
    ShippingMethod,
    ShippingRestriction,
    ShippingRule,
    ZoneRule,
)

RULESET_VERSION = 1
SUPPORTED_VERSIONS = {1}


# ── Calculation ──────────────────────────────────────────
class CalculationRequest(BaseModel):
    items: list[ShippingItem] = Field(default_factory=list)
    origin: Address = Field(default_factory=Address)
    destination: Address = Field(default_factory=Address)
    shipping_rules: list[ShippingRule] = Field(default_factory=list)
    zone_rules: list[ZoneRule] = Field(default_factory=list)
    carrier_rules: list[CarrierRule] = Field(default_factory=list)
    requested_method: Optional[ShippingMethod] = None
    # Append the store's shipping and carrier rules to the ones sent here
    use_stored_rules: bool = False

    def to_input(self, stored: Optional[RuleSet] = None) -> ShippingCalculationInput:
        shipping_rules = list(self.shipping_rules)
        carrier_rules = list(self.carrier_rules)
        if self.use_stored_rules and stored is not None:
            shipping_rules += list(stored.shipping_rules)
            carrier_rules += list(stored.carrier_rules)
        return ShippingCalculationInput(
            items=list(self.items),
            origin=self.origin,
            destination=self.destination,
            shipping_rules=shipping_rules,
            zone_rules=list(self.zone_rules),
            carrier_rules=carrier_rules,
            requested_method=self.requested_method,
        )


# ── Rule documents ───────────────────────────────────────
class RuleSetDocument(BaseModel):
    """Versioned export of every rule collection."""
    version: int = RULESET_VERSION
    shipping_rules: list[ShippingRule] = Field(default_factory=list)
    carrier_rules: list[CarrierRule] = Field(default_factory=list)
    zone_rules: list[ZoneRule] = Field(default_factory=list)
    delivery_time_rules: list[DeliveryTimeRule] = Field(default_factory=list)
    restrictions: list[ShippingRestriction] = Field(default_factory=list)
    free_shipping_rules: list[FreeShippingRule] = Field(default_factory=list)
    packaging_rules: list[PackagingRule] = Field(default_factory=list)

    @classmethod
    def from_ruleset(cls, rules: RuleSet) -> "RuleSetDocument":
        return cls(
            shipping_rules=list(rules.shipping_rules),
            carrier_rules=list(rules.carrier_rules),
            zone_rules=list(rules.zone_rules),
            delivery_time_rules=list(rules.delivery_time_rules),
            restrictions=list(rules.restrictions),
            free_shipping_rules=list(rules.free_shipping_rules),
            packaging_rules=list(rules.packaging_rules),
        )

    def to_ruleset(self) -> RuleSet:
        return RuleSet(
            shipping_rules=tuple(self.shipping_rules),
            carrier_rules=tuple(self.carrier_rules),
            zone_rules=tuple(self.zone_rules),
            delivery_time_rules=tuple(self.delivery_time_rules),
            restrictions=tuple(self.restrictions),
            free_shipping_rules=tuple(self.free_shipping_rules),
            packaging_rules=tuple(self.packaging_rules),
        )


# ── Responses ────────────────────────────────────────────
class IndexedRule(BaseModel):
    """Position of a rule kept in an ordered collection."""
    index: int


class ImportSummary(BaseModel):
    version: int
    statistics: dict[str, int]


class ValidationReport(BaseModel):
    warnings: list[str]
