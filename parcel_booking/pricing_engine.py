"""
Parcel Pricing Engine.

Weight + dimensions → volume → tier lookup → unit price.
Pure math. No I/O, no state beyond the tier table handed in at construction.

A parcel qualifies for a tier only when it fits BOTH bounds:
    weight_kg <= max_weight_kg AND volume_m3 <= max_volume_m3
Tiers are checked in table order; the first match wins. No match means the
parcel cannot be booked; there is no fallback to the largest tier.
"""

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Tuple

CM3_PER_M3 = 1_000_000.0

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"-?(\d+\.?\d*|\.\d+)")


@dataclass(frozen=True)
class PricingTier:
    max_weight_kg: float
    max_volume_m3: float
    base_price: Decimal

    def fits(self, weight_kg: float, volume_m3: float) -> bool:
        return weight_kg <= self.max_weight_kg and volume_m3 <= self.max_volume_m3


@dataclass(frozen=True)
class ParcelQuote:
    volume_m3: float
    unit_price: Optional[Decimal]

    @property
    def in_bounds(self) -> bool:
        return self.unit_price is not None


def build_tiers(rows: Iterable) -> Tuple[PricingTier, ...]:
    """Turn (max_weight_kg, max_volume_m3, base_price) rows into tiers, keeping row order."""
    return tuple(
        PricingTier(
            max_weight_kg=float(max_weight),
            max_volume_m3=float(max_volume),
            base_price=Decimal(str(price)).quantize(Decimal("0.01")),
        )
        for max_weight, max_volume, price in rows
    )


def parse_number(value) -> float:
    """
    Parse a user-entered number. Accepts comma decimals ("12,5" → 12.5).

    Anything outside [0-9.-] is stripped first, then the leading numeric
    part is read. Empty, unparseable or NaN input gives 0.0; callers reject
    non-positive values rather than treating this as a parse error.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, (float, Decimal)):
        number = float(value)
        return 0.0 if math.isnan(number) else number

    cleaned = _NON_NUMERIC.sub("", str(value).replace(",", "."))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    return float(match.group(0))


class PricingEngine:
    """Tier lookup over a fixed, ordered pricing table."""

    def __init__(self, tiers: Iterable[PricingTier]):
        self.tiers = tuple(tiers)
        if not self.tiers:
            raise ValueError("Pricing table needs at least one tier")

    def volume_m3(self, length_cm: float, width_cm: float, height_cm: float) -> float:
        """cm → m³. Clamped at zero so bad input never yields a negative volume."""
        return max(0.0, (length_cm * width_cm * height_cm) / CM3_PER_M3)

    def quote(self, weight_kg: float, volume_m3: float) -> Optional[Decimal]:
        """Base price of the first tier fitting both weight and volume, else None."""
        for tier in self.tiers:
            if tier.fits(weight_kg, volume_m3):
                return tier.base_price
        return None

    def price_parcel(
        self, weight_kg: float, length_cm: float, width_cm: float, height_cm: float,
    ) -> ParcelQuote:
        volume = self.volume_m3(length_cm, width_cm, height_cm)
        return ParcelQuote(volume_m3=volume, unit_price=self.quote(weight_kg, volume))

    def max_weight_kg(self) -> float:
        return max(t.max_weight_kg for t in self.tiers)

    def max_volume_m3(self) -> float:
        return max(t.max_volume_m3 for t in self.tiers)
