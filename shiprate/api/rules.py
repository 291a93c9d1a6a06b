"""Rule management API routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException

from shiprate.api.deps import get_store
from shiprate.schemas import ImportSummary, IndexedRule, RuleSetDocument, ValidationReport
from shiprate.services.rule_store import DuplicateRuleError, RuleNotFoundError
from shiprate.services.shipping.types import (
    CarrierRule,
    DeliveryTimeRule,
    FreeShippingRule,
    PackagingRule,
    ShippingMethod,
    ShippingRestriction,
    ShippingRule,
    ShippingZone,
    ZoneRule,
)

router = APIRouter(prefix="/rules", tags=["rules"])


def _http_error(e: ValueError) -> HTTPException:
    if isinstance(e, RuleNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, DuplicateRuleError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# --- Shipping rules ---

@router.get("/shipping", response_model=list[ShippingRule])
async def list_shipping_rules(active_only: bool = False, sort_by_name: bool = False):
    store = get_store()
    if active_only:
        return store.active_shipping_rules()
    if sort_by_name:
        return store.rules_by_name()
    return store.list_shipping_rules()


@router.post("/shipping", status_code=201, response_model=ShippingRule)
async def create_shipping_rule(body: ShippingRule):
    try:
        return get_store().add_shipping_rule(body)
    except ValueError as e:
        raise _http_error(e)


@router.get("/shipping/{rule_id}", response_model=ShippingRule)
async def get_shipping_rule(rule_id: str):
    try:
        return get_store().get_shipping_rule(rule_id)
    except ValueError as e:
        raise _http_error(e)


@router.put("/shipping/{rule_id}", response_model=ShippingRule)
async def update_shipping_rule(rule_id: str, body: ShippingRule):
    try:
        return get_store().update_shipping_rule(rule_id, body)
    except ValueError as e:
        raise _http_error(e)


@router.delete("/shipping/{rule_id}", status_code=204)
async def delete_shipping_rule(rule_id: str):
    try:
        get_store().remove_shipping_rule(rule_id)
    except ValueError as e:
        raise _http_error(e)


# --- Carrier rules ---

@router.get("/carriers", response_model=list[CarrierRule])
async def list_carrier_rules(carrier_id: Optional[str] = None):
    return get_store().list_carrier_rules(carrier_id)


@router.post("/carriers", status_code=201, response_model=CarrierRule)
async def create_carrier_rule(body: CarrierRule):
    try:
        return get_store().add_carrier_rule(body)
    except ValueError as e:
        raise _http_error(e)


@router.get("/carriers/{carrier_id}/{service_code}", response_model=CarrierRule)
async def get_carrier_rule(carrier_id: str, service_code: str):
    try:
        return get_store().get_carrier_rule(carrier_id, service_code)
    except ValueError as e:
        raise _http_error(e)


@router.put("/carriers/{carrier_id}/{service_code}", response_model=CarrierRule)
async def update_carrier_rule(carrier_id: str, service_code: str, body: CarrierRule):
    try:
        return get_store().update_carrier_rule(carrier_id, service_code, body)
    except ValueError as e:
        raise _http_error(e)


@router.delete("/carriers/{carrier_id}/{service_code}", status_code=204)
async def delete_carrier_rule(carrier_id: str, service_code: str):
    try:
        get_store().remove_carrier_rule(carrier_id, service_code)
    except ValueError as e:
        raise _http_error(e)


# --- Zone rules ---

@router.get("/zones", response_model=list[ZoneRule])
async def list_zone_rules(zone: Optional[ShippingZone] = None):
    return get_store().list_zone_rules(zone)


@router.post("/zones", status_code=201, response_model=IndexedRule)
async def create_zone_rule(body: ZoneRule):
    try:
        return IndexedRule(index=get_store().add_zone_rule(body))
    except ValueError as e:
        raise _http_error(e)


@router.get("/zones/{index}", response_model=ZoneRule)
async def get_zone_rule(index: int):
    try:
        return get_store().get_zone_rule(index)
    except ValueError as e:
        raise _http_error(e)


@router.put("/zones/{index}", response_model=ZoneRule)
async def update_zone_rule(index: int, body: ZoneRule):
    try:
        return get_store().update_zone_rule(index, body)
    except ValueError as e:
        raise _http_error(e)


@router.delete("/zones/{index}", status_code=204)
async def delete_zone_rule(index: int):
    try:
        get_store().remove_zone_rule(index)
    except ValueError as e:
        raise _http_error(e)


# --- Delivery time rules ---

@router.get("/delivery-times", response_model=list[DeliveryTimeRule])
async def list_delivery_time_rules():
    return get_store().list_delivery_time_rules()


@router.post("/delivery-times", status_code=201, response_model=DeliveryTimeRule)
async def create_delivery_time_rule(body: DeliveryTimeRule):
    try:
        return get_store().add_delivery_time_rule(body)
    except ValueError as e:
        raise _http_error(e)


@router.get("/delivery-times/{method}/{zone}", response_model=DeliveryTimeRule)
async def get_delivery_time_rule(method: ShippingMethod, zone: ShippingZone):
    try:
        return get_store().get_delivery_time_rule(method, zone)
    except ValueError as e:
        raise _http_error(e)


@router.put("/delivery-times/{method}/{zone}", response_model=DeliveryTimeRule)
async def update_delivery_time_rule(method: ShippingMethod, zone: ShippingZone, body: DeliveryTimeRule):
    try:
        return get_store().update_delivery_time_rule(method, zone, body)
    except ValueError as e:
        raise _http_error(e)


@router.delete("/delivery-times/{method}/{zone}", status_code=204)
async def delete_delivery_time_rule(method: ShippingMethod, zone: ShippingZone):
    try:
        get_store().remove_delivery_time_rule(method, zone)
    except ValueError as e:
        raise _http_error(e)


# --- Restrictions ---

@router.get("/restrictions", response_model=list[ShippingRestriction])
async def list_restrictions(restriction_type: Optional[str] = None):
    return get_store().list_restrictions(restriction_type)


@router.post("/restrictions", status_code=201, response_model=IndexedRule)
async def create_restriction(body: ShippingRestriction):
    try:
        return IndexedRule(index=get_store().add_restriction(body))
    except ValueError as e:
        raise _http_error(e)


@router.get("/restrictions/{index}", response_model=ShippingRestriction)
async def get_restriction(index: int):
    try:
        return get_store().get_restriction(index)
    except ValueError as e:
        raise _http_error(e)


@router.put("/restrictions/{index}", response_model=ShippingRestriction)
async def update_restriction(index: int, body: ShippingRestriction):
    try:
        return get_store().update_restriction(index, body)
    except ValueError as e:
        raise _http_error(e)


@router.delete("/restrictions/{index}", status_code=204)
async def delete_restriction(index: int):
    try:
        get_store().remove_restriction(index)
    except ValueError as e:
        raise _http_error(e)


# --- Free shipping rules ---

@router.get("/free-shipping", response_model=list[FreeShippingRule])
async def list_free_shipping_rules(active_only: bool = False):
    store = get_store()
    if active_only:
        return store.active_free_shipping_rules()
    return store.list_free_shipping_rules()


@router.post("/free-shipping", status_code=201, response_model=FreeShippingRule)
async def create_free_shipping_rule(body: FreeShippingRule):
    try:
        return get_store().add_free_shipping_rule(body)
    except ValueError as e:
        raise _http_error(e)


@router.get("/free-shipping/{name}", response_model=FreeShippingRule)
async def get_free_shipping_rule(name: str):
    try:
        return get_store().get_free_shipping_rule(name)
    except ValueError as e:
        raise _http_error(e)


@router.put("/free-shipping/{name}", response_model=FreeShippingRule)
async def update_free_shipping_rule(name: str, body: FreeShippingRule):
    try:
        return get_store().update_free_shipping_rule(name, body)
    except ValueError as e:
        raise _http_error(e)


@router.delete("/free-shipping/{name}", status_code=204)
async def delete_free_shipping_rule(name: str):
    try:
        get_store().remove_free_shipping_rule(name)
    except ValueError as e:
        raise _http_error(e)


# --- Packaging rules ---

@router.get("/packaging", response_model=list[PackagingRule])
async def list_packaging_rules():
    return get_store().list_packaging_rules()


@router.post("/packaging", status_code=201, response_model=PackagingRule)
async def create_packaging_rule(body: PackagingRule):
    try:
        return get_store().add_packaging_rule(body)
    except ValueError as e:
        raise _http_error(e)


@router.get("/packaging/{name}", response_model=PackagingRule)
async def get_packaging_rule(name: str):
    try:
        return get_store().get_packaging_rule(name)
    except ValueError as e:
        raise _http_error(e)


@router.put("/packaging/{name}", response_model=PackagingRule)
async def update_packaging_rule(name: str, body: PackagingRule):
    try:
        return get_store().update_packaging_rule(name, body)
    except ValueError as e:
        raise _http_error(e)


@router.delete("/packaging/{name}", status_code=204)
async def delete_packaging_rule(name: str):
    try:
        get_store().remove_packaging_rule(name)
    except ValueError as e:
        raise _http_error(e)


# --- Whole rule set ---

@router.get("/export", response_model=RuleSetDocument)
async def export_rules():
    return get_store().export_document()


@router.post("/import", response_model=ImportSummary)
async def import_rules(body: RuleSetDocument):
    store = get_store()
    try:
        store.import_document(body)
    except ValueError as e:
        raise _http_error(e)
    return ImportSummary(version=body.version, statistics=store.statistics())


@router.get("/stats")
async def rule_statistics():
    return get_store().statistics()


@router.get("/validate", response_model=ValidationReport)
async def validate_rules():
    return ValidationReport(warnings=get_store().validate_configuration())
