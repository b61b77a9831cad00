"""
Host-facing entry points for parcel booking.

The cart/order host calls these at its own extension points:

    quote()                    — live price preview for the parcel form
    validate_add_to_cart()     — before a line is created; rejection blocks it
    add_cart_item_data()       — line data for the new line (record + discriminator)
    get_item_data()            — cart/checkout display pairs
    before_calculate_totals()  — set parcel line prices during a totals pass
    create_order_line_item()   — write metadata onto the order line at checkout

The host is reached only through the small protocols below.
"""

import logging
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol

from .cart_binder import CartLineBinder, MetadataPairs, ParcelRecord, ParcelRejected
from .config import ParcelConfig
from .form_token import ACTION_FIELDS, ACTION_QUOTE
from .pricing_engine import PricingEngine

logger = logging.getLogger(__name__)

TokenVerifier = Callable[[Optional[str], str], None]


class CartLine(Protocol):
    key: str
    product_id: int
    line_data: Optional[dict]


class CartHost(Protocol):
    def lines(self) -> Iterable[CartLine]:
        ...

    def set_unit_price(self, key: str, price: Decimal) -> None:
        ...


class OrderLineSink(Protocol):
    def add_meta_data(self, label: str, value: str) -> None:
        ...


class ParcelHooks:
    """Wires CartLineBinder into a cart/order host."""

    def __init__(
        self,
        config: ParcelConfig,
        verify_token: Optional[TokenVerifier] = None,
        require_token: bool = True,
    ):
        self.config = config
        self.engine = PricingEngine(config.tiers)
        self.binder = CartLineBinder(self.engine, config.target_product_id)
        self.verify_token = verify_token
        # Add-to-cart only; a quote token is checked whenever one is sent
        self.require_token = require_token

    def format_price(self, price: Decimal) -> str:
        return f"{self.config.currency_symbol}{price:,.2f}"

    def quote(self, raw_fields: Mapping[str, Any], token: Optional[str] = None) -> dict:
        """
        Price preview from raw dimension/weight strings.

        The token is optional here: the endpoint only reveals a tier price,
        so it is checked when sent and skipped when absent.
        """
        if token and self.verify_token:
            self.verify_token(token, ACTION_QUOTE)

        _, quote = self.binder.price_dimensions(raw_fields)
        return {
            "unit_price": str(quote.unit_price),
            "formatted_price": self.format_price(quote.unit_price),
            "volume_m3": round(quote.volume_m3, 6),
        }

    def validate_add_to_cart(
        self, raw_fields: Mapping[str, Any], product_id, token: Optional[str] = None,
    ) -> Optional[ParcelRecord]:
        """None for products other than the parcel product; raises ParcelRejected to block the line."""
        if not self.binder.applies_to(product_id):
            return None

        if self.verify_token and self.require_token:
            self.verify_token(token, ACTION_FIELDS)

        try:
            return self.binder.validate_and_price(raw_fields)
        except ParcelRejected as e:
            logger.warning(f"Parcel rejected ({e.code}): {e.message}")
            raise

    def add_cart_item_data(
        self,
        raw_fields: Mapping[str, Any],
        product_id,
        line_data: Optional[dict] = None,
        token: Optional[str] = None,
    ) -> dict:
        record = self.validate_add_to_cart(raw_fields, product_id, token=token)
        if record is None:
            return dict(line_data or {})

        data = self.binder.attach_to_new_line(record, line_data)
        logger.info(
            f"Parcel line prepared: {record.parcel.weight_kg}kg, "
            f"{record.quote.volume_m3:.3f}m3, tier {record.unit_price} x {record.units}"
        )
        return data

    def get_item_data(self, line_data: Optional[Mapping[str, Any]]) -> MetadataPairs:
        record = self.binder.record_from_line_data(line_data)
        if record is None:
            return []
        return self.binder.present_line_summary(record)

    def before_calculate_totals(self, cart: CartHost) -> int:
        """Set every parcel line's price from its stored record. Returns lines updated."""
        updated = 0
        for line in cart.lines():
            record = self.binder.record_from_line_data(line.line_data)
            if record is None:
                continue
            price = self.binder.effective_line_price(record)
            if price > 0:
                cart.set_unit_price(line.key, price)
                updated += 1
        return updated

    def create_order_line_item(
        self, order_line: OrderLineSink, line_data: Optional[Mapping[str, Any]],
    ) -> bool:
        """Write the parcel metadata once onto a new order line. False for non-parcel lines."""
        record = self.binder.record_from_line_data(line_data)
        if record is None:
            return False
        for label, value in self.binder.project_to_order_line(record):
            order_line.add_meta_data(label, value)
        return True
