"""Rule store tests."""

import json
from datetime import timedelta
from decimal import Decimal

import pytest

from shiprate.schemas import RuleSetDocument
from shiprate.services.rule_store import (
    DuplicateRuleError,
    RuleNotFoundError,
    RuleStore,
    RuleValidationError,
    rules_overlap,
)
from shiprate.services.shipping.types import (
    Address,
    CarrierRule,
    DeliveryTimeRule,
    FreeShippingRule,
    PackagingRule,
    PostalCodeRange,
    RestrictionType,
    RuleSet,
    ShippingCalculationInput,
    ShippingItem,
    ShippingMethod,
    ShippingRestriction,
    ShippingRule,
    ShippingZone,
    Weight,
    ZoneRule,
)
from tests.conftest import WEDNESDAY, fixed_clock


@pytest.fixture
def store():
    return RuleStore(clock=fixed_clock())


@pytest.fixture
def populated(store):
    store.add_shipping_rule(ShippingRule(id="ground", name="Ground", base_cost=Decimal("5")))
    store.add_shipping_rule(ShippingRule(id="express", name="Express", method=ShippingMethod.EXPRESS,
                                         base_cost=Decimal("15")))
    store.add_carrier_rule(CarrierRule(carrier_id="ups", carrier_name="UPS", service_code="GND"))
    store.add_zone_rule(ZoneRule(zone=ShippingZone.LOCAL, states=["CA"]))
    store.add_delivery_time_rule(DeliveryTimeRule(method=ShippingMethod.STANDARD,
                                                  zone=ShippingZone.LOCAL, base_days=2))
    store.add_restriction(ShippingRestriction(type=RestrictionType.DESTINATION,
                                              message="No shipping to KP", countries=["KP"]))
    store.add_free_shipping_rule(FreeShippingRule(name="Over 100", min_order_value=Decimal("100")))
    store.add_packaging_rule(PackagingRule(name="Small box", max_weight=Weight(Decimal("2"))))
    return store


class TestShippingRules:
    def test_add_and_get(self, store):
        store.add_shipping_rule(ShippingRule(id="r1", name="Ground"))
        assert store.get_shipping_rule("r1").name == "Ground"

    def test_duplicate_id_rejected(self, store):
        store.add_shipping_rule(ShippingRule(id="r1", name="Ground"))
        with pytest.raises(DuplicateRuleError):
            store.add_shipping_rule(ShippingRule(id="r1", name="Other"))

    @pytest.mark.parametrize("rule", [
        ShippingRule(id="", name="Ground"),
        ShippingRule(id="r1", name=""),
        ShippingRule(id="r1", name="Ground", base_cost=Decimal("-1")),
        ShippingRule(id="r1", name="Ground", weight_rate=Decimal("-0.5")),
        ShippingRule(id="r1", name="Ground", valid_from=WEDNESDAY, valid_until=WEDNESDAY - timedelta(days=1)),
    ])
    def test_invalid_rejected(self, store, rule):
        with pytest.raises(RuleValidationError):
            store.add_shipping_rule(rule)
        assert store.list_shipping_rules() == []

    def test_update_keeps_id(self, store):
        store.add_shipping_rule(ShippingRule(id="r1", name="Ground"))
        updated = store.update_shipping_rule("r1", ShippingRule(id="other", name="Ground Plus"))
        assert updated.id == "r1"
        assert store.get_shipping_rule("r1").name == "Ground Plus"

    def test_update_missing(self, store):
        with pytest.raises(RuleNotFoundError):
            store.update_shipping_rule("nope", ShippingRule(id="nope", name="X"))

    def test_remove(self, store):
        store.add_shipping_rule(ShippingRule(id="r1", name="Ground"))
        store.remove_shipping_rule("r1")
        with pytest.raises(RuleNotFoundError):
            store.get_shipping_rule("r1")

    def test_returned_rules_are_copies(self, store):
        store.add_shipping_rule(ShippingRule(id="r1", name="Ground"))
        store.get_shipping_rule("r1").name = "Mutated"
        store.list_shipping_rules()[0].name = "Mutated"
        assert store.get_shipping_rule("r1").name == "Ground"

    def test_active_rules(self, store):
        store.add_shipping_rule(ShippingRule(id="on", name="On"))
        store.add_shipping_rule(ShippingRule(id="off", name="Off", is_active=False))
        store.add_shipping_rule(ShippingRule(id="old", name="Old", valid_until=WEDNESDAY))
        assert [r.id for r in store.active_shipping_rules()] == ["on"]

    def test_mixed_naive_and_aware_window(self, store):
        naive_wednesday = WEDNESDAY.replace(tzinfo=None)
        with pytest.raises(RuleValidationError):
            store.add_shipping_rule(ShippingRule(id="bad", name="Bad", valid_from=naive_wednesday,
                                                 valid_until=WEDNESDAY - timedelta(days=1)))
        store.add_shipping_rule(ShippingRule(id="old", name="Old", valid_from=naive_wednesday - timedelta(days=7),
                                             valid_until=naive_wednesday))
        assert store.active_shipping_rules() == []
        assert "Shipping rule old has expired" in store.validate_configuration()

    def test_rules_by_name(self, populated):
        assert [r.name for r in populated.rules_by_name()] == ["Express", "Ground"]


class TestOtherCollections:
    def test_carrier_key(self, populated):
        with pytest.raises(DuplicateRuleError):
            populated.add_carrier_rule(CarrierRule(carrier_id="ups", carrier_name="UPS", service_code="GND"))
        populated.add_carrier_rule(CarrierRule(carrier_id="ups", carrier_name="UPS", service_code="AIR"))
        assert len(populated.list_carrier_rules("ups")) == 2
        assert populated.list_carrier_rules("fedex") == []

    def test_carrier_update_keeps_key(self, populated):
        populated.update_carrier_rule("ups", "GND", CarrierRule(carrier_id="x", carrier_name="UPS Ground",
                                                                service_code="y"))
        assert populated.get_carrier_rule("ups", "GND").carrier_name == "UPS Ground"

    def test_carrier_requires_service_code(self, store):
        with pytest.raises(RuleValidationError):
            store.add_carrier_rule(CarrierRule(carrier_id="ups", carrier_name="UPS", service_code=""))

    def test_zone_rules_by_index(self, store):
        assert store.add_zone_rule(ZoneRule(zone=ShippingZone.LOCAL, states=["CA"])) == 0
        assert store.add_zone_rule(ZoneRule(zone=ShippingZone.NATIONAL, countries=["US"])) == 1
        store.remove_zone_rule(0)
        assert store.get_zone_rule(0).zone == ShippingZone.NATIONAL
        with pytest.raises(RuleNotFoundError):
            store.get_zone_rule(1)

    def test_zone_rule_needs_criteria(self, store):
        with pytest.raises(RuleValidationError):
            store.add_zone_rule(ZoneRule(zone=ShippingZone.LOCAL))

    def test_zone_rule_range_order(self, store):
        with pytest.raises(RuleValidationError):
            store.add_zone_rule(ZoneRule(zone=ShippingZone.LOCAL,
                                         postal_code_ranges=[PostalCodeRange("20000", "10000")]))

    def test_list_zone_rules_filter(self, populated):
        assert len(populated.list_zone_rules(ShippingZone.LOCAL)) == 1
        assert populated.list_zone_rules(ShippingZone.NATIONAL) == []

    def test_delivery_key(self, populated):
        with pytest.raises(DuplicateRuleError):
            populated.add_delivery_time_rule(DeliveryTimeRule(method=ShippingMethod.STANDARD,
                                                              zone=ShippingZone.LOCAL))
        rule = populated.get_delivery_time_rule(ShippingMethod.STANDARD, ShippingZone.LOCAL)
        assert rule.base_days == 2

    def test_delivery_update_and_remove(self, populated):
        populated.update_delivery_time_rule(
            ShippingMethod.STANDARD, ShippingZone.LOCAL,
            DeliveryTimeRule(method=ShippingMethod.EXPRESS, zone=ShippingZone.NATIONAL, base_days=4),
        )
        assert populated.get_delivery_time_rule(ShippingMethod.STANDARD, ShippingZone.LOCAL).base_days == 4
        populated.remove_delivery_time_rule(ShippingMethod.STANDARD, ShippingZone.LOCAL)
        assert populated.list_delivery_time_rules() == []

    def test_negative_base_days(self, store):
        with pytest.raises(RuleValidationError):
            store.add_delivery_time_rule(DeliveryTimeRule(method=ShippingMethod.STANDARD,
                                                          zone=ShippingZone.LOCAL, base_days=-1))

    def test_restriction_type_checked(self, store):
        with pytest.raises(RuleValidationError):
            store.add_restriction(ShippingRestriction(type="weather", message="Storm"))

    def test_restriction_message_required(self, store):
        with pytest.raises(RuleValidationError):
            store.add_restriction(ShippingRestriction(type=RestrictionType.HAZARDOUS, message=""))

    def test_restrictions_filter(self, populated):
        assert len(populated.list_restrictions("destination")) == 1
        assert populated.list_restrictions("hazardous") == []

    def test_free_shipping_by_name(self, populated):
        with pytest.raises(DuplicateRuleError):
            populated.add_free_shipping_rule(FreeShippingRule(name="Over 100"))
        populated.update_free_shipping_rule("Over 100", FreeShippingRule(name="ignored", is_active=False))
        assert populated.get_free_shipping_rule("Over 100").is_active is False
        assert populated.active_free_shipping_rules() == []

    def test_packaging_requires_positive_weight(self, store):
        with pytest.raises(RuleValidationError):
            store.add_packaging_rule(PackagingRule(name="Envelope", max_weight=Weight(Decimal("0"))))

    def test_packaging_remove(self, populated):
        populated.remove_packaging_rule("Small box")
        with pytest.raises(RuleNotFoundError):
            populated.remove_packaging_rule("Small box")


class TestSnapshot:
    def test_snapshot_is_isolated(self, populated):
        snap = populated.snapshot()
        populated.add_shipping_rule(ShippingRule(id="later", name="Later"))
        snap.shipping_rules[0].name = "Mutated"
        assert len(snap.shipping_rules) == 2
        assert populated.get_shipping_rule("ground").name == "Ground"

    def test_replace_all_is_atomic(self, populated):
        bad = RuleSet(shipping_rules=(
            ShippingRule(id="a", name="A"),
            ShippingRule(id="a", name="Duplicate"),
        ))
        with pytest.raises(DuplicateRuleError):
            populated.replace_all(bad)
        assert {r.id for r in populated.list_shipping_rules()} == {"ground", "express"}

    def test_clear(self, populated):
        populated.clear()
        assert all(v == 0 for v in populated.statistics().values())


class TestDocuments:
    def test_export_import_reproduces_rules(self, populated):
        doc = populated.export_document()
        other = RuleStore(clock=fixed_clock())
        other.import_document(doc)
        assert other.snapshot() == populated.snapshot()

    def test_json_round_trip(self, populated):
        text = populated.export_document().model_dump_json()
        other = RuleStore(clock=fixed_clock())
        other.import_document(RuleSetDocument.model_validate_json(text))
        assert other.snapshot() == populated.snapshot()

    def test_unsupported_version(self, store):
        with pytest.raises(RuleValidationError):
            store.import_document(RuleSetDocument(version=99))

    def test_load_file(self, store, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({
            "version": 1,
            "shipping_rules": [{"id": "ground", "name": "Ground", "base_cost": "5.00"}],
            "zone_rules": [{"zone": "local", "states": ["CA"]}],
        }))
        store.load_file(path)
        assert store.get_shipping_rule("ground").base_cost == Decimal("5.00")
        assert store.get_zone_rule(0).zone == ShippingZone.LOCAL


class TestAnalysis:
    def test_statistics(self, populated):
        stats = populated.statistics()
        assert stats["total_shipping_rules"] == 2
        assert stats["active_shipping_rules"] == 2
        assert stats["total_carrier_rules"] == 1
        assert stats["total_zone_rules"] == 1
        assert stats["total_delivery_time_rules"] == 1
        assert stats["total_restrictions"] == 1
        assert stats["total_free_shipping_rules"] == 1
        assert stats["active_free_shipping_rules"] == 1
        assert stats["total_packaging_rules"] == 1

    def test_overlap(self):
        a = ShippingRule(id="a", name="A", max_weight=Weight(Decimal("5")))
        b = ShippingRule(id="b", name="B", min_weight=Weight(Decimal("10")))
        c = ShippingRule(id="c", name="C")
        assert not rules_overlap(a, b)
        assert rules_overlap(a, c)
        assert not rules_overlap(c, ShippingRule(id="d", name="D", method=ShippingMethod.EXPRESS))
        assert not rules_overlap(
            ShippingRule(id="e", name="E", zone=ShippingZone.LOCAL),
            ShippingRule(id="f", name="F", zone=ShippingZone.NATIONAL),
        )

    def test_validate_configuration(self, store):
        store.add_shipping_rule(ShippingRule(id="a", name="A", zone=ShippingZone.LOCAL))
        store.add_shipping_rule(ShippingRule(id="b", name="B", zone=ShippingZone.LOCAL))
        store.add_shipping_rule(ShippingRule(id="old", name="Old", zone=ShippingZone.NATIONAL,
                                             method=ShippingMethod.EXPRESS, valid_until=WEDNESDAY))
        warnings = store.validate_configuration()
        assert "Shipping rules a and b may overlap" in warnings
        assert "Shipping rule old has expired" in warnings
        assert "No shipping rules cover zone national" in warnings
        assert "No shipping rules cover zone local" not in warnings

    def test_applicable_rules(self, populated):
        inp = ShippingCalculationInput(
            items=[ShippingItem(weight=Weight(Decimal("1")))],
            origin=Address(country="US", state="CA"),
            destination=Address(country="US", state="CA"),
        )
        assert {r.id for r in populated.applicable_rules(inp)} == {"ground", "express"}
