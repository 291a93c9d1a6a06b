"""Test fixtures."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shiprate.api.deps import get_store
from shiprate.main import app
from shiprate.services.shipping.types import (
    Address,
    Dimensions,
    ShippingItem,
    Weight,
    WeightUnit,
)

# A Wednesday; weekend delays do not apply
WEDNESDAY = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)
FRIDAY = datetime(2024, 1, 12, 12, 0, tzinfo=timezone.utc)


def fixed_clock(moment: datetime = WEDNESDAY):
    return lambda: moment


@pytest.fixture(autouse=True)
def reset_store():
    """The API store is a module singleton; start every test empty."""
    get_store().clear()
    yield
    get_store().clear()


@pytest.fixture
def origin():
    return Address(city="Los Angeles", state="CA", postal_code="90001", country="US")


@pytest.fixture
def destination():
    return Address(city="New York", state="NY", postal_code="10001", country="US")


@pytest.fixture
def items():
    return [
        ShippingItem(id="1", name="Mug", quantity=2, weight=Weight(Decimal("1"), WeightUnit.KG),
                     dimensions=Dimensions(30, 20, 10), value=Decimal("25.00"), category="kitchen"),
        ShippingItem(id="2", name="Book", quantity=1, weight=Weight(Decimal("500"), WeightUnit.G),
                     value=Decimal("15.00"), category="books"),
    ]


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
