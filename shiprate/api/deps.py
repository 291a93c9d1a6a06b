"""Shared route dependencies."""

from shiprate.config import get_settings
from shiprate.services.rule_store import RuleStore
from shiprate.services.shipping.engine import ShippingEngine

# Singleton store
_store = RuleStore()


def get_store() -> RuleStore:
    return _store


def get_engine() -> ShippingEngine:
    """Engine over a fresh snapshot of the stored rules."""
    return ShippingEngine.from_settings(_store.snapshot(), get_settings())
