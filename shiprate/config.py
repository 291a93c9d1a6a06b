"""Configuration."""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "shiprate"
    debug: bool = False
    log_level: str = "INFO"

    # JSON rule document loaded into the store at startup
    rules_file: Optional[str] = None

    # Offered when a calculation carries no shipping rules
    default_option_cost: Decimal = Decimal("10.00")
    default_option_days: int = 5

    # Recommended option: at most this many days, within factor × cheapest
    recommended_max_days: int = 5
    recommended_cost_factor: Decimal = Decimal("1.5")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "SHIPRATE_"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
