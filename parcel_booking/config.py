from dataclasses import dataclass
from typing import List, Tuple

from pydantic_settings import BaseSettings

from .pricing_engine import PricingTier, build_tiers


# (max_weight_kg, max_volume_m3, base_price), checked top to bottom
DEFAULT_PRICING_TIERS = [
    (5.0, 0.03, "31.00"),
    (10.0, 0.04, "34.00"),
    (15.0, 0.07, "38.00"),
    (20.0, 0.10, "43.00"),
    (25.0, 0.13, "53.00"),
    (30.0, 0.15, "59.00"),
    (35.0, 0.20, "67.00"),
]


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./parcels.db"

    # Anti-forgery tokens for the parcel form
    FORM_TOKEN_SECRET: str = ""  # REQUIRED when tokens are issued or checked
    FORM_TOKEN_ALGORITHM: str = "HS256"
    FORM_TOKEN_EXPIRE_MINUTES: int = 720
    REQUIRE_FORM_TOKEN: bool = True

    # Catalogue product that carries the parcel fields
    TARGET_PRODUCT_ID: int = 2898
    TARGET_PRODUCT_NAME: str = "Parcel booking"
    CURRENCY_SYMBOL: str = "£"

    # Override with a JSON list, e.g. PRICING_TIERS='[[5, 0.03, "31.00"]]'
    PRICING_TIERS: List[Tuple[float, float, str]] = DEFAULT_PRICING_TIERS

    class Config:
        env_file = ".env"


settings = Settings()


@dataclass(frozen=True)
class ParcelConfig:
    """Static parcel configuration. Built once and injected, never mutated at runtime."""
    tiers: Tuple[PricingTier, ...]
    target_product_id: int
    currency_symbol: str = "£"


def load_parcel_config(source: Settings = settings) -> ParcelConfig:
    return ParcelConfig(
        tiers=build_tiers(source.PRICING_TIERS),
        target_product_id=source.TARGET_PRODUCT_ID,
        currency_symbol=source.CURRENCY_SYMBOL,
    )
