"""In-memory store for shipping rule configuration.

Every collection supports add / update / remove / get / list with field and
uniqueness validation. The engine never reads the live collections; it gets
an immutable ``RuleSet`` from ``snapshot()``. Mutations and snapshots are
serialized by a lock so a long-lived service can edit rules while quoting.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Hashable, Optional, TypeVar

from shiprate.schemas import SUPPORTED_VERSIONS, RuleSetDocument
from shiprate.services.shipping import aggregate
from shiprate.services.shipping.engine import utc_now
from shiprate.services.shipping.matching import rule_applies, within_window
from shiprate.services.shipping.types import (
    CarrierRule,
    DeliveryTimeRule,
    FreeShippingRule,
    PackagingRule,
    RestrictionType,
    RuleSet,
    ShippingCalculationInput,
    ShippingMethod,
    ShippingRestriction,
    ShippingRule,
    ShippingZone,
    ZoneRule,
)
from shiprate.services.shipping.units import to_kg
from shiprate.services.shipping.zones import resolve_zone

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RuleValidationError(ValueError):
    """A rule is missing required fields or carries inconsistent values."""


class RuleNotFoundError(ValueError):
    """No rule exists under the given key."""


class DuplicateRuleError(ValueError):
    """A rule with the same key already exists."""


# ── Validation ──────────────────────────────────────────


def _check_window(valid_from: Optional[datetime], valid_until: Optional[datetime]) -> None:
    if valid_from is not None and valid_until is not None and valid_from > valid_until:
        raise RuleValidationError("valid_from must not be after valid_until")


def validate_shipping_rule(rule: ShippingRule) -> None:
    if not rule.id:
        raise RuleValidationError("Shipping rule ID cannot be empty")
    if not rule.name:
        raise RuleValidationError("Shipping rule name cannot be empty")
    if rule.base_cost < 0:
        raise RuleValidationError("Base cost cannot be negative")
    for rate in ("weight_rate", "value_rate", "dimensional_rate", "flat_rate"):
        if getattr(rule, rate) < 0:
            raise RuleValidationError(f"{rate} cannot be negative")
    _check_window(rule.valid_from, rule.valid_until)


def validate_carrier_rule(rule: CarrierRule) -> None:
    if not rule.carrier_id:
        raise RuleValidationError("Carrier ID cannot be empty")
    if not rule.carrier_name:
        raise RuleValidationError("Carrier name cannot be empty")
    if not rule.service_code:
        raise RuleValidationError("Service code cannot be empty")
    if rule.base_cost < 0:
        raise RuleValidationError("Base cost cannot be negative")


def validate_zone_rule(rule: ZoneRule) -> None:
    if not rule.zone:
        raise RuleValidationError("Zone cannot be empty")
    if not (rule.countries or rule.states or rule.postal_codes or rule.postal_code_ranges):
        raise RuleValidationError("Zone rule must specify at least one location criteria")
    for r in rule.postal_code_ranges:
        if r.start > r.end:
            raise RuleValidationError(f"Invalid postal code range: {r.start}-{r.end}")


def validate_delivery_time_rule(rule: DeliveryTimeRule) -> None:
    if rule.base_days < 0:
        raise RuleValidationError("Base days cannot be negative")


def validate_restriction(restriction: ShippingRestriction) -> None:
    if not restriction.type:
        raise RuleValidationError("Restriction type cannot be empty")
    try:
        RestrictionType(restriction.type)
    except ValueError:
        raise RuleValidationError(f"Invalid restriction type: {restriction.type}") from None
    if not restriction.message:
        raise RuleValidationError("Restriction message cannot be empty")


def validate_free_shipping_rule(rule: FreeShippingRule) -> None:
    if not rule.name:
        raise RuleValidationError("Free shipping rule name cannot be empty")
    if rule.min_order_value < 0:
        raise RuleValidationError("Minimum order value cannot be negative")
    _check_window(rule.valid_from, rule.valid_until)


def validate_packaging_rule(rule: PackagingRule) -> None:
    if not rule.name:
        raise RuleValidationError("Packaging rule name cannot be empty")
    if rule.max_weight.value <= 0:
        raise RuleValidationError("Max weight must be positive")


# ── Overlap detection ───────────────────────────────────


def _windows_overlap(a: ShippingRule, b: ShippingRule) -> bool:
    if a.valid_until is not None and b.valid_from is not None and a.valid_until <= b.valid_from:
        return False
    if b.valid_until is not None and a.valid_from is not None and b.valid_until <= a.valid_from:
        return False
    return True


def rules_overlap(a: ShippingRule, b: ShippingRule) -> bool:
    """Whether two rules could price the same shipment."""
    if a.zone is not None and b.zone is not None and a.zone != b.zone:
        return False
    if a.method != b.method:
        return False
    if not _windows_overlap(a, b):
        return False
    if a.max_weight and a.max_weight.value > 0 and b.min_weight and b.min_weight.value > 0:
        if to_kg(a.max_weight) < to_kg(b.min_weight):
            return False
    if b.max_weight and b.max_weight.value > 0 and a.min_weight and a.min_weight.value > 0:
        if to_kg(b.max_weight) < to_kg(a.min_weight):
            return False
    return True


class RuleStore:
    """Keyed rule collections with validation."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._lock = threading.RLock()
        self._clock = clock
        self._shipping: list[ShippingRule] = []
        self._carriers: list[CarrierRule] = []
        self._zones: list[ZoneRule] = []
        self._delivery: list[DeliveryTimeRule] = []
        self._restrictions: list[ShippingRestriction] = []
        self._free: list[FreeShippingRule] = []
        self._packaging: list[PackagingRule] = []

    # ── generic helpers ─────────────────────────────────

    def _add(self, bucket: list[T], item: T, key: Callable[[T], Hashable], label: str) -> T:
        with self._lock:
            k = key(item)
            if any(key(existing) == k for existing in bucket):
                raise DuplicateRuleError(f"{label} {k} already exists")
            bucket.append(copy.deepcopy(item))
            logger.info("Added %s %s", label, k)
            return item

    def _index_of(self, bucket: list[T], key: Callable[[T], Hashable], k: Hashable, label: str) -> int:
        for i, existing in enumerate(bucket):
            if key(existing) == k:
                return i
        raise RuleNotFoundError(f"{label} {k} not found")

    def _replace(self, bucket: list[T], key: Callable[[T], Hashable], k: Hashable, item: T, label: str) -> T:
        with self._lock:
            i = self._index_of(bucket, key, k, label)
            bucket[i] = copy.deepcopy(item)
            logger.info("Updated %s %s", label, k)
            return item

    def _delete(self, bucket: list[T], key: Callable[[T], Hashable], k: Hashable, label: str) -> None:
        with self._lock:
            i = self._index_of(bucket, key, k, label)
            del bucket[i]
            logger.info("Removed %s %s", label, k)

    def _get(self, bucket: list[T], key: Callable[[T], Hashable], k: Hashable, label: str) -> T:
        with self._lock:
            return copy.deepcopy(bucket[self._index_of(bucket, key, k, label)])

    def _check_index(self, bucket: list, index: int, label: str) -> None:
        if index < 0 or index >= len(bucket):
            raise RuleNotFoundError(f"Invalid {label} index: {index}")

    # ── shipping rules ──────────────────────────────────

    def add_shipping_rule(self, rule: ShippingRule) -> ShippingRule:
        validate_shipping_rule(rule)
        return self._add(self._shipping, rule, lambda r: r.id, "shipping rule")

    def update_shipping_rule(self, rule_id: str, rule: ShippingRule) -> ShippingRule:
        rule = _with(rule, id=rule_id)
        validate_shipping_rule(rule)
        return self._replace(self._shipping, lambda r: r.id, rule_id, rule, "shipping rule")

    def remove_shipping_rule(self, rule_id: str) -> None:
        self._delete(self._shipping, lambda r: r.id, rule_id, "shipping rule")

    def get_shipping_rule(self, rule_id: str) -> ShippingRule:
        return self._get(self._shipping, lambda r: r.id, rule_id, "shipping rule")

    def list_shipping_rules(self) -> list[ShippingRule]:
        with self._lock:
            return copy.deepcopy(self._shipping)

    def active_shipping_rules(self, now: Optional[datetime] = None) -> list[ShippingRule]:
        now = now or self._clock()
        return [
            r for r in self.list_shipping_rules()
            if r.is_active and within_window(now, r.valid_from, r.valid_until)
        ]

    # ── carrier rules ───────────────────────────────────

    @staticmethod
    def _carrier_key(rule: CarrierRule) -> tuple[str, str]:
        return (rule.carrier_id, rule.service_code)

    def add_carrier_rule(self, rule: CarrierRule) -> CarrierRule:
        validate_carrier_rule(rule)
        return self._add(self._carriers, rule, self._carrier_key, "carrier rule")

    def update_carrier_rule(self, carrier_id: str, service_code: str, rule: CarrierRule) -> CarrierRule:
        rule = _with(rule, carrier_id=carrier_id, service_code=service_code)
        validate_carrier_rule(rule)
        return self._replace(
            self._carriers, self._carrier_key, (carrier_id, service_code), rule, "carrier rule",
        )

    def remove_carrier_rule(self, carrier_id: str, service_code: str) -> None:
        self._delete(self._carriers, self._carrier_key, (carrier_id, service_code), "carrier rule")

    def get_carrier_rule(self, carrier_id: str, service_code: str) -> CarrierRule:
        return self._get(self._carriers, self._carrier_key, (carrier_id, service_code), "carrier rule")

    def list_carrier_rules(self, carrier_id: Optional[str] = None) -> list[CarrierRule]:
        with self._lock:
            rules = copy.deepcopy(self._carriers)
        if carrier_id:
            rules = [r for r in rules if r.carrier_id == carrier_id]
        return rules

    # ── zone rules (by position) ────────────────────────

    def add_zone_rule(self, rule: ZoneRule) -> int:
        validate_zone_rule(rule)
        with self._lock:
            self._zones.append(copy.deepcopy(rule))
            logger.info("Added zone rule for %s", rule.zone)
            return len(self._zones) - 1

    def update_zone_rule(self, index: int, rule: ZoneRule) -> ZoneRule:
        validate_zone_rule(rule)
        with self._lock:
            self._check_index(self._zones, index, "zone rule")
            self._zones[index] = copy.deepcopy(rule)
            return rule

    def remove_zone_rule(self, index: int) -> None:
        with self._lock:
            self._check_index(self._zones, index, "zone rule")
            del self._zones[index]

    def get_zone_rule(self, index: int) -> ZoneRule:
        with self._lock:
            self._check_index(self._zones, index, "zone rule")
            return copy.deepcopy(self._zones[index])

    def list_zone_rules(self, zone: Optional[ShippingZone] = None) -> list[ZoneRule]:
        with self._lock:
            rules = copy.deepcopy(self._zones)
        if zone:
            rules = [r for r in rules if r.zone == zone]
        return rules

    # ── delivery time rules ─────────────────────────────

    @staticmethod
    def _delivery_key(rule: DeliveryTimeRule) -> tuple[str, str]:
        return (ShippingMethod(rule.method).value, ShippingZone(rule.zone).value)

    def add_delivery_time_rule(self, rule: DeliveryTimeRule) -> DeliveryTimeRule:
        validate_delivery_time_rule(rule)
        return self._add(self._delivery, rule, self._delivery_key, "delivery time rule")

    def update_delivery_time_rule(
        self, method: ShippingMethod, zone: ShippingZone, rule: DeliveryTimeRule,
    ) -> DeliveryTimeRule:
        rule = _with(rule, method=ShippingMethod(method), zone=ShippingZone(zone))
        validate_delivery_time_rule(rule)
        return self._replace(
            self._delivery, self._delivery_key, self._delivery_key(rule), rule, "delivery time rule",
        )

    def remove_delivery_time_rule(self, method: ShippingMethod, zone: ShippingZone) -> None:
        key = (ShippingMethod(method).value, ShippingZone(zone).value)
        self._delete(self._delivery, self._delivery_key, key, "delivery time rule")

    def get_delivery_time_rule(self, method: ShippingMethod, zone: ShippingZone) -> DeliveryTimeRule:
        key = (ShippingMethod(method).value, ShippingZone(zone).value)
        return self._get(self._delivery, self._delivery_key, key, "delivery time rule")

    def list_delivery_time_rules(self) -> list[DeliveryTimeRule]:
        with self._lock:
            return copy.deepcopy(self._delivery)

    # ── restrictions (by position) ──────────────────────

    def add_restriction(self, restriction: ShippingRestriction) -> int:
        validate_restriction(restriction)
        with self._lock:
            self._restrictions.append(copy.deepcopy(restriction))
            logger.info("Added %s restriction", restriction.type)
            return len(self._restrictions) - 1

    def update_restriction(self, index: int, restriction: ShippingRestriction) -> ShippingRestriction:
        validate_restriction(restriction)
        with self._lock:
            self._check_index(self._restrictions, index, "restriction")
            self._restrictions[index] = copy.deepcopy(restriction)
            return restriction

    def remove_restriction(self, index: int) -> None:
        with self._lock:
            self._check_index(self._restrictions, index, "restriction")
            del self._restrictions[index]

    def get_restriction(self, index: int) -> ShippingRestriction:
        with self._lock:
            self._check_index(self._restrictions, index, "restriction")
            return copy.deepcopy(self._restrictions[index])

    def list_restrictions(self, restriction_type: Optional[str] = None) -> list[ShippingRestriction]:
        with self._lock:
            restrictions = copy.deepcopy(self._restrictions)
        if restriction_type:
            restrictions = [r for r in restrictions if r.type == restriction_type]
        return restrictions

    # ── free shipping rules ─────────────────────────────

    def add_free_shipping_rule(self, rule: FreeShippingRule) -> FreeShippingRule:
        validate_free_shipping_rule(rule)
        return self._add(self._free, rule, lambda r: r.name, "free shipping rule")

    def update_free_shipping_rule(self, name: str, rule: FreeShippingRule) -> FreeShippingRule:
        rule = _with(rule, name=name)
        validate_free_shipping_rule(rule)
        return self._replace(self._free, lambda r: r.name, name, rule, "free shipping rule")

    def remove_free_shipping_rule(self, name: str) -> None:
        self._delete(self._free, lambda r: r.name, name, "free shipping rule")

    def get_free_shipping_rule(self, name: str) -> FreeShippingRule:
        return self._get(self._free, lambda r: r.name, name, "free shipping rule")

    def list_free_shipping_rules(self) -> list[FreeShippingRule]:
        with self._lock:
            return copy.deepcopy(self._free)

    def active_free_shipping_rules(self, now: Optional[datetime] = None) -> list[FreeShippingRule]:
        now = now or self._clock()
        return [
            r for r in self.list_free_shipping_rules()
            if r.is_active and within_window(now, r.valid_from, r.valid_until)
        ]

    # ── packaging rules ─────────────────────────────────

    def add_packaging_rule(self, rule: PackagingRule) -> PackagingRule:
        validate_packaging_rule(rule)
        return self._add(self._packaging, rule, lambda r: r.name, "packaging rule")

    def update_packaging_rule(self, name: str, rule: PackagingRule) -> PackagingRule:
        rule = _with(rule, name=name)
        validate_packaging_rule(rule)
        return self._replace(self._packaging, lambda r: r.name, name, rule, "packaging rule")

    def remove_packaging_rule(self, name: str) -> None:
        self._delete(self._packaging, lambda r: r.name, name, "packaging rule")

    def get_packaging_rule(self, name: str) -> PackagingRule:
        return self._get(self._packaging, lambda r: r.name, name, "packaging rule")

    def list_packaging_rules(self) -> list[PackagingRule]:
        with self._lock:
            return copy.deepcopy(self._packaging)

    # ── whole-store operations ──────────────────────────

    def snapshot(self) -> RuleSet:
        """Immutable copy of every collection for the engine."""
        with self._lock:
            return RuleSet(
                shipping_rules=tuple(copy.deepcopy(self._shipping)),
                carrier_rules=tuple(copy.deepcopy(self._carriers)),
                zone_rules=tuple(copy.deepcopy(self._zones)),
                delivery_time_rules=tuple(copy.deepcopy(self._delivery)),
                restrictions=tuple(copy.deepcopy(self._restrictions)),
                free_shipping_rules=tuple(copy.deepcopy(self._free)),
                packaging_rules=tuple(copy.deepcopy(self._packaging)),
            )

    def replace_all(self, rules: RuleSet) -> None:
        """Validate every rule in ``rules`` and swap the collections at once."""
        staged = RuleStore(clock=self._clock)
        for r in rules.shipping_rules:
            staged.add_shipping_rule(r)
        for c in rules.carrier_rules:
            staged.add_carrier_rule(c)
        for z in rules.zone_rules:
            staged.add_zone_rule(z)
        for d in rules.delivery_time_rules:
            staged.add_delivery_time_rule(d)
        for x in rules.restrictions:
            staged.add_restriction(x)
        for f in rules.free_shipping_rules:
            staged.add_free_shipping_rule(f)
        for p in rules.packaging_rules:
            staged.add_packaging_rule(p)

        with self._lock:
            self._shipping = staged._shipping
            self._carriers = staged._carriers
            self._zones = staged._zones
            self._delivery = staged._delivery
            self._restrictions = staged._restrictions
            self._free = staged._free
            self._packaging = staged._packaging
        logger.info("Replaced rule set (%d shipping rules)", len(rules.shipping_rules))

    def clear(self) -> None:
        self.replace_all(RuleSet())

    def export_document(self) -> RuleSetDocument:
        return RuleSetDocument.from_ruleset(self.snapshot())

    def import_document(self, doc: RuleSetDocument) -> None:
        """Replace every collection with the rules in ``doc``."""
        if doc.version not in SUPPORTED_VERSIONS:
            raise RuleValidationError(f"Unsupported rule document version: {doc.version}")
        self.replace_all(doc.to_ruleset())

    def load_file(self, path: str | Path) -> RuleSetDocument:
        """Import a JSON rule document from disk."""
        doc = RuleSetDocument.model_validate_json(Path(path).read_text(encoding="utf-8"))
        self.import_document(doc)
        return doc

    def rules_by_name(self) -> list[ShippingRule]:
        return sorted(self.list_shipping_rules(), key=lambda r: r.name)

    def applicable_rules(
        self,
        inp: ShippingCalculationInput,
        now: Optional[datetime] = None,
    ) -> list[ShippingRule]:
        """Stored shipping rules that would price ``inp``."""
        now = now or self._clock()
        snap = self.snapshot()
        zone = resolve_zone(inp.origin, inp.destination, inp.zone_rules or snap.zone_rules)
        weight = aggregate.total_weight(inp.items)
        value = aggregate.total_value(inp.items)
        return [
            r for r in snap.shipping_rules
            if rule_applies(r, inp, zone, weight, value, now)
        ]

    def validate_configuration(self, now: Optional[datetime] = None) -> list[str]:
        """Warnings about overlapping rules, uncovered zones and expired rules."""
        now = now or self._clock()
        rules = self.list_shipping_rules()
        warnings = []

        for i, a in enumerate(rules):
            for b in rules[i + 1:]:
                if rules_overlap(a, b):
                    warnings.append(f"Shipping rules {a.id} and {b.id} may overlap")

        active = [r for r in rules if r.is_active and within_window(now, r.valid_from, r.valid_until)]
        for zone in ShippingZone:
            if not any(r.zone is None or r.zone == zone for r in active):
                warnings.append(f"No shipping rules cover zone {zone.value}")

        for r in rules:
            if r.is_active and r.valid_until is not None and not within_window(now, None, r.valid_until):
                warnings.append(f"Shipping rule {r.id} has expired")
        return warnings

    def statistics(self, now: Optional[datetime] = None) -> dict[str, int]:
        now = now or self._clock()
        snap = self.snapshot()
        return {
            "total_shipping_rules": len(snap.shipping_rules),
            "active_shipping_rules": len(self.active_shipping_rules(now)),
            "total_carrier_rules": len(snap.carrier_rules),
            "total_zone_rules": len(snap.zone_rules),
            "total_delivery_time_rules": len(snap.delivery_time_rules),
            "total_restrictions": len(snap.restrictions),
            "total_free_shipping_rules": len(snap.free_shipping_rules),
            "active_free_shipping_rules": len(self.active_free_shipping_rules(now)),
            "total_packaging_rules": len(snap.packaging_rules),
        }


def _with(rule: T, **changes) -> T:
    """Copy of a dataclass rule with some fields replaced."""
    return replace(rule, **changes)
