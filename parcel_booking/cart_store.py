"""
SQLAlchemy-backed cart — the host side of the parcel hooks.

Lines are keyed by a hash of product id + line data, so adding the same
product with the same data bumps the quantity of the existing row instead
of adding a new one. Parcel lines escape this through the discriminator
ParcelHooks puts in their line data.
"""

import hashlib
import json
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models
from .hooks import ParcelHooks

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def line_key(product_id: int, line_data: Optional[dict]) -> str:
    canonical = json.dumps(
        {"product_id": int(product_id), "line_data": line_data or {}},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha1(canonical.encode()).hexdigest()


def generate_order_number(db: Session) -> str:
    count = db.query(models.Order).count()
    year = datetime.utcnow().year
    return f"PB-{year}-{str(count + 1).zfill(4)}"


class SqlCart:
    """A single cart row and its lines, exposed through the CartHost protocol."""

    def __init__(self, db: Session, cart: models.Cart):
        self.db = db
        self.cart = cart

    @classmethod
    def create(cls, db: Session) -> "SqlCart":
        cart = models.Cart(id=str(uuid.uuid4()), status=models.CartStatus.ACTIVE)
        db.add(cart)
        db.flush()
        return cls(db, cart)

    @classmethod
    def load(cls, db: Session, cart_id: str) -> Optional["SqlCart"]:
        cart = db.query(models.Cart).filter(models.Cart.id == cart_id).first()
        return cls(db, cart) if cart else None

    @property
    def id(self) -> str:
        return self.cart.id

    @property
    def is_active(self) -> bool:
        return self.cart.status == models.CartStatus.ACTIVE

    def lines(self) -> List[models.CartLine]:
        return list(self.cart.lines)

    def find_line(self, key: str) -> Optional[models.CartLine]:
        for line in self.cart.lines:
            if line.line_key == key:
                return line
        return None

    def add_line(self, product: models.Product, quantity: int, line_data: Optional[dict]) -> models.CartLine:
        key = line_key(product.id, line_data)
        existing = self.find_line(key)
        if existing:
            existing.quantity += quantity
            return existing

        line = models.CartLine(
            line_key=key,
            product_id=product.id,
            quantity=quantity,
            unit_price=Decimal(str(product.price or 0)),
            line_data=line_data or {},
        )
        self.cart.lines.append(line)
        self.db.flush()
        return line

    def set_unit_price(self, key: str, price: Decimal) -> None:
        line = self.find_line(key)
        if line is None:
            raise KeyError(key)
        line.unit_price = Decimal(price).quantize(CENTS)

    def remove_line(self, key: str) -> bool:
        line = self.find_line(key)
        if line is None:
            return False
        self.cart.lines.remove(line)
        return True

    def total(self) -> Decimal:
        return sum(
            (Decimal(str(line.unit_price or 0)) * line.quantity for line in self.cart.lines),
            Decimal("0.00"),
        ).quantize(CENTS)

    def checkout(self, hooks: ParcelHooks) -> models.Order:
        """
        Turn the cart into an order.

        Totals are recalculated first, then each line is copied into an order
        line and the parcel metadata is written onto it. The order keeps its
        own copy; the cart can be changed or deleted afterwards.
        """
        if not self.cart.lines:
            raise ValueError("Cart is empty")
        if not self.is_active:
            raise ValueError("Cart has already been checked out")

        hooks.before_calculate_totals(self)

        order = models.Order(
            order_number=generate_order_number(self.db),
            cart_id=self.cart.id,
        )
        for line in self.cart.lines:
            unit_price = Decimal(str(line.unit_price or 0)).quantize(CENTS)
            order_line = models.OrderLine(
                product_id=line.product_id,
                name=line.product.name,
                quantity=line.quantity,
                unit_price=unit_price,
                line_total=(unit_price * line.quantity).quantize(CENTS),
            )
            order.lines.append(order_line)
            hooks.create_order_line_item(order_line, line.line_data)

        order.total = sum((ol.line_total for ol in order.lines), Decimal("0.00"))
        self.cart.status = models.CartStatus.CONVERTED
        self.db.add(order)
        self.db.flush()

        logger.info(f"Order {order.order_number} created from cart {self.cart.id} ({len(order.lines)} lines)")
        return order
