"""
Cart Line Binder — turns a parcel form submission into a priced cart line.

Draft (raw form fields) → Validated (ParcelInput) → Priced (ParcelRecord)
→ Bound (line data on a cart line) → Committed (order line metadata).

Nothing here talks to a database. The binder produces and reads the plain
dict stored as cart line data; the host owns the lines themselves.
"""

import re
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Tuple

from .pricing_engine import ParcelQuote, PricingEngine, parse_number

# Raw form field names
FIELD_CATEGORY = "category"
FIELD_DESCRIPTION = "description"
FIELD_LENGTH = "length_cm"
FIELD_WIDTH = "width_cm"
FIELD_HEIGHT = "height_cm"
FIELD_WEIGHT = "weight_kg"
FIELD_UNITS = "units"
FIELD_FRAGILE = "fragile"

# Cart line data keys
PARCEL_KEY = "parcel"
UNIQUE_KEY = "parcel_unique_key"

# Display / order metadata labels, in output order
LABEL_CATEGORY = "Category"
LABEL_DESCRIPTION = "Description"
LABEL_UNITS = "Units"
LABEL_FRAGILE = "Fragile"
LABEL_DIMENSIONS = "Dimensions (cm)"
LABEL_WEIGHT = "Weight (kg)"
LABEL_VOLUME = "Volume (m³)"
LABEL_TIER_PRICE = "Tier price"

_TAGS = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")
_UNCHECKED = {"", "0", "false", "off", "no"}

# Keeps tier price x units inside the Numeric(10, 2) line price columns
MAX_UNITS = 999

MetadataPairs = List[Tuple[str, str]]


# --- Rejections ---

class ParcelRejected(Exception):
    """A submission the user has to correct. Never fatal to the host."""

    code = "rejected"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class MissingField(ParcelRejected):
    code = "missing_field"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "field": self.field}


class InvalidNumeric(ParcelRejected):
    code = "invalid_numeric"


class OutOfBounds(ParcelRejected):
    code = "out_of_bounds"


class SecurityCheckFailed(ParcelRejected):
    code = "security_check_failed"


MSG_CATEGORY_REQUIRED = "Please choose a parcel category."
MSG_DESCRIPTION_REQUIRED = "Please enter a parcel description."
MSG_INVALID_DIMENSIONS = "Please enter valid parcel dimensions and weight."
MSG_OUT_OF_BOUNDS = "This parcel is outside the allowed size/weight limits."


# --- Records ---

@dataclass(frozen=True)
class Measurements:
    length_cm: float
    width_cm: float
    height_cm: float
    weight_kg: float


@dataclass(frozen=True)
class ParcelInput:
    category: str
    description: str
    length_cm: float
    width_cm: float
    height_cm: float
    weight_kg: float
    units: int = 1
    fragile: bool = False


@dataclass(frozen=True)
class ParcelRecord:
    parcel: ParcelInput
    quote: ParcelQuote

    @property
    def units(self) -> int:
        return self.parcel.units

    @property
    def unit_price(self) -> Decimal:
        return self.quote.unit_price

    def to_dict(self) -> dict:
        """JSON-safe snapshot stored as cart line data."""
        p = self.parcel
        return {
            "category": p.category,
            "description": p.description,
            "fragile": p.fragile,
            "units": p.units,
            "length_cm": p.length_cm,
            "width_cm": p.width_cm,
            "height_cm": p.height_cm,
            "weight_kg": p.weight_kg,
            "volume_m3": self.quote.volume_m3,
            "price": str(self.quote.unit_price),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ParcelRecord":
        parcel = ParcelInput(
            category=data["category"],
            description=data["description"],
            length_cm=float(data["length_cm"]),
            width_cm=float(data["width_cm"]),
            height_cm=float(data["height_cm"]),
            weight_kg=float(data["weight_kg"]),
            units=parse_units(data.get("units")),
            fragile=bool(data.get("fragile")),
        )
        quote = ParcelQuote(
            volume_m3=float(data["volume_m3"]),
            unit_price=Decimal(str(data["price"])),
        )
        return cls(parcel=parcel, quote=quote)


# --- Field shaping ---

def clean_text(value) -> str:
    """Strip tags, collapse whitespace and line breaks, trim."""
    if value is None:
        return ""
    text = _TAGS.sub("", str(value))
    return _WHITESPACE.sub(" ", text).strip()


def is_checked(value) -> bool:
    """Checkbox semantics: present and truthy."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in _UNCHECKED


def parse_units(value) -> int:
    """Whole units, clamped to 1..MAX_UNITS."""
    return int(min(MAX_UNITS, max(1, parse_number(value))))


def format_number(value: float) -> str:
    """Shortest exact form: 30.0 → "30", 12.5 → "12.5", 4e-07 stays "4e-07"."""
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return "0" if text == "-0" else text


class CartLineBinder:
    """Validates parcel submissions and manages their cart/order line data."""

    def __init__(self, engine: PricingEngine, target_product_id: int):
        self.engine = engine
        self.target_product_id = target_product_id

    def applies_to(self, product_id) -> bool:
        try:
            return int(product_id) == int(self.target_product_id)
        except (TypeError, ValueError):
            return False

    def price_dimensions(self, raw_fields: Mapping[str, Any]) -> Tuple[Measurements, ParcelQuote]:
        """
        Dimension + weight checks and tier lookup.

        Shared by the quote preview and add-to-cart so both always reach the
        same accept/reject decision.
        """
        measurements = Measurements(
            length_cm=parse_number(raw_fields.get(FIELD_LENGTH)),
            width_cm=parse_number(raw_fields.get(FIELD_WIDTH)),
            height_cm=parse_number(raw_fields.get(FIELD_HEIGHT)),
            weight_kg=parse_number(raw_fields.get(FIELD_WEIGHT)),
        )
        if min(
            measurements.length_cm, measurements.width_cm,
            measurements.height_cm, measurements.weight_kg,
        ) <= 0:
            raise InvalidNumeric(MSG_INVALID_DIMENSIONS)

        quote = self.engine.price_parcel(
            measurements.weight_kg,
            measurements.length_cm,
            measurements.width_cm,
            measurements.height_cm,
        )
        if not quote.in_bounds:
            raise OutOfBounds(MSG_OUT_OF_BOUNDS)
        return measurements, quote

    def validate_and_price(self, raw_fields: Mapping[str, Any]) -> ParcelRecord:
        """Raises the first ParcelRejected that applies, else returns the priced record."""
        category = clean_text(raw_fields.get(FIELD_CATEGORY))
        if not category:
            raise MissingField(FIELD_CATEGORY, MSG_CATEGORY_REQUIRED)

        description = clean_text(raw_fields.get(FIELD_DESCRIPTION))
        if not description:
            raise MissingField(FIELD_DESCRIPTION, MSG_DESCRIPTION_REQUIRED)

        measurements, quote = self.price_dimensions(raw_fields)

        parcel = ParcelInput(
            category=category,
            description=description,
            length_cm=measurements.length_cm,
            width_cm=measurements.width_cm,
            height_cm=measurements.height_cm,
            weight_kg=measurements.weight_kg,
            units=parse_units(raw_fields.get(FIELD_UNITS)),
            fragile=is_checked(raw_fields.get(FIELD_FRAGILE)),
        )
        return ParcelRecord(parcel=parcel, quote=quote)

    def attach_to_new_line(self, record: ParcelRecord, line_data: Optional[dict] = None) -> dict:
        """
        Line data for a brand new cart row.

        The random discriminator keeps two identical submissions from being
        merged into one line by the host: each one is a separate parcel.
        """
        data = dict(line_data or {})
        data[PARCEL_KEY] = record.to_dict()
        data[UNIQUE_KEY] = uuid.uuid4().hex
        return data

    def record_from_line_data(self, line_data: Optional[Mapping[str, Any]]) -> Optional[ParcelRecord]:
        """The stored record for a cart line, or None for non-parcel / unpriced lines."""
        if not line_data:
            return None
        stored = line_data.get(PARCEL_KEY)
        if not stored or not stored.get("price"):
            return None
        return ParcelRecord.from_dict(stored)

    def effective_line_price(self, record: ParcelRecord) -> Decimal:
        """Tier price × units, always from the stored record so reruns never compound."""
        return record.unit_price * record.units

    def present_line_summary(self, record: ParcelRecord) -> MetadataPairs:
        return self._metadata_pairs(record)

    def project_to_order_line(self, record: ParcelRecord) -> MetadataPairs:
        return self._metadata_pairs(record)

    def _metadata_pairs(self, record: ParcelRecord) -> MetadataPairs:
        p = record.parcel
        dimensions = " × ".join(
            format_number(v) for v in (p.length_cm, p.width_cm, p.height_cm)
        )
        return [
            (LABEL_CATEGORY, p.category),
            (LABEL_DESCRIPTION, p.description),
            (LABEL_UNITS, str(p.units)),
            (LABEL_FRAGILE, "Yes" if p.fragile else "No"),
            (LABEL_DIMENSIONS, dimensions),
            (LABEL_WEIGHT, format_number(p.weight_kg)),
            (LABEL_VOLUME, f"{record.quote.volume_m3:.3f}"),
            (LABEL_TIER_PRICE, f"{record.unit_price:.2f}"),
        ]
