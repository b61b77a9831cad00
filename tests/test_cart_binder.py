"""
Cart line binder tests — validation order, field shaping, line uniqueness,
line price, display/order metadata.
"""

from decimal import Decimal

import pytest

from parcel_booking.cart_binder import (
    PARCEL_KEY,
    UNIQUE_KEY,
    CartLineBinder,
    InvalidNumeric,
    MAX_UNITS,
    MissingField,
    OutOfBounds,
    ParcelRejected,
    clean_text,
    format_number,
    is_checked,
    parse_units,
)
from parcel_booking.config import DEFAULT_PRICING_TIERS
from parcel_booking.pricing_engine import PricingEngine, build_tiers


def _fields(**overrides):
    """A valid submission: 4 kg, 30 × 20 × 10.5 cm."""
    fields = {
        "category": "household",
        "description": "Books and kitchen items",
        "length_cm": "30",
        "width_cm": "20",
        "height_cm": "10,5",
        "weight_kg": "4",
        "units": "1",
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def binder():
    return CartLineBinder(PricingEngine(build_tiers(DEFAULT_PRICING_TIERS)), target_product_id=2898)


# ============================================================
# Validation
# ============================================================

def test_valid_submission_is_priced(binder):
    record = binder.validate_and_price(_fields())
    assert record.parcel.category == "household"
    assert record.parcel.height_cm == 10.5
    assert record.quote.volume_m3 == pytest.approx(0.0063)
    assert record.unit_price == Decimal("31.00")
    assert record.units == 1
    assert record.parcel.fragile is False


def test_category_checked_first(binder):
    """Empty category wins even when everything else is wrong too."""
    with pytest.raises(MissingField) as exc:
        binder.validate_and_price(_fields(category="", description="", weight_kg="abc"))
    assert exc.value.field == "category"


def test_description_checked_second(binder):
    with pytest.raises(MissingField) as exc:
        binder.validate_and_price(_fields(description="   ", weight_kg="0"))
    assert exc.value.field == "description"


def test_tag_only_text_counts_as_missing(binder):
    with pytest.raises(MissingField):
        binder.validate_and_price(_fields(category="<br>"))


def test_missing_fields_entirely(binder):
    with pytest.raises(MissingField):
        binder.validate_and_price({})


@pytest.mark.parametrize("field", ["length_cm", "width_cm", "height_cm", "weight_kg"])
def test_non_positive_measurement_rejected(binder, field):
    with pytest.raises(InvalidNumeric):
        binder.validate_and_price(_fields(**{field: "0"}))


def test_unparseable_number_rejected_as_non_positive(binder):
    """'abc' is read as 0, then rejected as non-positive."""
    with pytest.raises(InvalidNumeric) as exc:
        binder.validate_and_price(_fields(weight_kg="abc"))
    assert exc.value.code == "invalid_numeric"


def test_negative_dimension_rejected(binder):
    with pytest.raises(InvalidNumeric):
        binder.validate_and_price(_fields(length_cm="-30"))


def test_out_of_bounds_rejected(binder):
    with pytest.raises(OutOfBounds) as exc:
        binder.validate_and_price(_fields(weight_kg="40"))
    assert exc.value.to_dict()["code"] == "out_of_bounds"


def test_rejections_share_base_class(binder):
    for bad in (_fields(category=""), _fields(weight_kg="x"), _fields(weight_kg="36")):
        with pytest.raises(ParcelRejected):
            binder.validate_and_price(bad)


@pytest.mark.parametrize("field", ["length_cm", "width_cm", "height_cm", "weight_kg"])
def test_huge_measurement_is_out_of_bounds(binder, field):
    with pytest.raises(OutOfBounds):
        binder.validate_and_price(_fields(**{field: "9" * 400}))


def test_infinite_and_nan_measurements_rejected(binder):
    with pytest.raises(OutOfBounds):
        binder.validate_and_price(_fields(weight_kg=float("inf")))
    with pytest.raises(OutOfBounds):
        binder.validate_and_price(_fields(length_cm=10 ** 400))
    with pytest.raises(InvalidNumeric):
        binder.validate_and_price(_fields(height_cm=float("nan")))


def test_huge_units_clamped_not_raised(binder):
    record = binder.validate_and_price(_fields(units="9" * 400))
    assert record.units == MAX_UNITS
    assert binder.effective_line_price(record) == Decimal("30969.00")


def test_tiny_dimension_shown_exactly(binder):
    record = binder.validate_and_price(_fields(length_cm="0.0000004"))
    pairs = dict(binder.project_to_order_line(record))
    assert pairs["Dimensions (cm)"] == "4e-07 × 20 × 10.5"


def test_price_dimensions_ignores_text_fields(binder):
    """The quote preview only needs dimensions and weight."""
    measurements, quote = binder.price_dimensions(
        {"length_cm": "50", "width_cm": "20", "height_cm": "50", "weight_kg": "4"}
    )
    assert measurements.weight_kg == 4.0
    assert quote.unit_price == Decimal("38.00")


# ============================================================
# Field shaping
# ============================================================

def test_units_default_and_clamp():
    assert parse_units(None) == 1
    assert parse_units("") == 1
    assert parse_units("0") == 1
    assert parse_units("-2") == 1
    assert parse_units("abc") == 1
    assert parse_units("3") == 3
    assert parse_units("2.7") == 2


def test_units_huge_values_clamp_to_max():
    assert parse_units("9" * 400) == MAX_UNITS
    assert parse_units(float("inf")) == MAX_UNITS
    assert parse_units(10 ** 400) == MAX_UNITS
    assert parse_units("1000") == MAX_UNITS
    assert parse_units(float("nan")) == 1
    assert parse_units(float("-inf")) == 1


def test_fragile_checkbox():
    assert is_checked("1") is True
    assert is_checked("on") is True
    assert is_checked(True) is True
    assert is_checked(None) is False
    assert is_checked("") is False
    assert is_checked("0") is False
    assert is_checked(False) is False


def test_clean_text_strips_tags_and_whitespace():
    assert clean_text("  <b>Books</b>\n and   toys ") == "Books and toys"
    assert clean_text(None) == ""


def test_submission_shaping(binder):
    record = binder.validate_and_price(_fields(units="3", fragile="1", description=" Glass\tvase "))
    assert record.units == 3
    assert record.parcel.fragile is True
    assert record.parcel.description == "Glass vase"


def test_format_number():
    assert format_number(30.0) == "30"
    assert format_number(12.5) == "12.5"
    assert format_number(0.1) == "0.1"
    assert format_number(0.0000004) == "4e-07"
    assert format_number(12.3456789) == "12.3456789"
    assert format_number(-0.0) == "0"


# ============================================================
# Binding to cart lines
# ============================================================

def test_identical_submissions_get_distinct_line_data(binder):
    first = binder.attach_to_new_line(binder.validate_and_price(_fields()))
    second = binder.attach_to_new_line(binder.validate_and_price(_fields()))
    assert first[PARCEL_KEY] == second[PARCEL_KEY]
    assert first[UNIQUE_KEY] != second[UNIQUE_KEY]


def test_attach_keeps_existing_line_data(binder):
    record = binder.validate_and_price(_fields())
    data = binder.attach_to_new_line(record, {"gift_note": "hi"})
    assert data["gift_note"] == "hi"
    assert data[PARCEL_KEY]["price"] == "31.00"


def test_record_survives_line_data(binder):
    record = binder.validate_and_price(_fields(units="2", fragile="on"))
    data = binder.attach_to_new_line(record)
    assert binder.record_from_line_data(data) == record


def test_record_from_non_parcel_line(binder):
    assert binder.record_from_line_data(None) is None
    assert binder.record_from_line_data({}) is None
    assert binder.record_from_line_data({"gift_note": "hi"}) is None
    assert binder.record_from_line_data({PARCEL_KEY: {"price": ""}}) is None


def test_applies_to_target_product_only(binder):
    assert binder.applies_to(2898)
    assert binder.applies_to("2898")
    assert not binder.applies_to(1)
    assert not binder.applies_to(None)
    assert not binder.applies_to("abc")


# ============================================================
# Line price
# ============================================================

def test_effective_line_price_folds_units(binder):
    record = binder.validate_and_price(_fields(units="3"))
    assert binder.effective_line_price(record) == Decimal("93.00")


def test_effective_line_price_is_idempotent(binder):
    record = binder.validate_and_price(_fields(units="3"))
    prices = [binder.effective_line_price(record) for _ in range(5)]
    assert prices == [Decimal("93.00")] * 5
    assert record.unit_price == Decimal("31.00")


# ============================================================
# Metadata
# ============================================================

def test_order_projection_pairs(binder):
    record = binder.validate_and_price(_fields(units="2", fragile="1"))
    assert binder.project_to_order_line(record) == [
        ("Category", "household"),
        ("Description", "Books and kitchen items"),
        ("Units", "2"),
        ("Fragile", "Yes"),
        ("Dimensions (cm)", "30 × 20 × 10.5"),
        ("Weight (kg)", "4"),
        ("Volume (m³)", "0.006"),
        ("Tier price", "31.00"),
    ]


def test_line_summary_matches_projection_and_is_pure(binder):
    record = binder.validate_and_price(_fields())
    first = binder.present_line_summary(record)
    second = binder.present_line_summary(record)
    assert first == second == binder.project_to_order_line(record)
    assert ("Fragile", "No") in first
    assert record.unit_price == Decimal("31.00")
