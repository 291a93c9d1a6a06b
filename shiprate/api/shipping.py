"""Shipping calculation API routes."""

from fastapi import APIRouter, HTTPException

from shiprate.api.deps import get_engine
from shiprate.schemas import CalculationRequest
from shiprate.services.shipping.engine import NoShippingOptionsError
from shiprate.services.shipping.types import ShippingCalculationResult, ShippingOption

router = APIRouter(prefix="/shipping", tags=["shipping"])


@router.post("/calculate", response_model=ShippingCalculationResult)
async def calculate_shipping(body: CalculationRequest):
    engine = get_engine()
    return engine.calculate_shipping(body.to_input(engine.rules))


@router.post("/best", response_model=ShippingOption)
async def best_option(body: CalculationRequest, criteria: str = "recommended"):
    engine = get_engine()
    try:
        return engine.calculate_best_option(body.to_input(engine.rules), criteria)
    except NoShippingOptionsError as e:
        raise HTTPException(status_code=422, detail=str(e))
