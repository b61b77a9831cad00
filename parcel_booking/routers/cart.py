"""
Cart API — the host cart the parcel hooks plug into.

POST   /api/cart                           — Create an empty cart
GET    /api/cart/{id}                      — Lines, display metadata and total
POST   /api/cart/{id}/items                — Add a product (parcel fields for the parcel product)
DELETE /api/cart/{id}/items/{line_key}     — Remove a line
POST   /api/cart/{id}/recalculate          — Run the totals pass
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models
from ..cart_binder import ParcelRejected, parse_units
from ..cart_store import SqlCart
from ..database import get_db
from ..dependencies import form_fields, get_hooks, rejection_to_http
from ..hooks import ParcelHooks

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["cart"])


def _load_cart(db: Session, cart_id: str) -> SqlCart:
    cart = SqlCart.load(db, cart_id)
    if not cart:
        raise HTTPException(status_code=404, detail="Cart not found")
    return cart


def _load_active_cart(db: Session, cart_id: str) -> SqlCart:
    cart = _load_cart(db, cart_id)
    if not cart.is_active:
        raise HTTPException(status_code=409, detail="Cart has already been checked out")
    return cart


# --- Endpoints ---

@router.post("")
def create_cart(db: Session = Depends(get_db)):
    cart = SqlCart.create(db)
    db.commit()
    return {"cart_id": cart.id, "status": cart.cart.status}


@router.get("/{cart_id}")
def get_cart(
    cart_id: str,
    db: Session = Depends(get_db),
    hooks: ParcelHooks = Depends(get_hooks),
):
    cart = _load_cart(db, cart_id)
    if cart.is_active:
        hooks.before_calculate_totals(cart)
        db.commit()
    return _cart_to_dict(cart, hooks)


@router.post("/{cart_id}/items")
def add_item(
    cart_id: str,
    fields: Dict[str, Any] = Depends(form_fields),
    db: Session = Depends(get_db),
    hooks: ParcelHooks = Depends(get_hooks),
):
    """
    Add-to-cart. product_id defaults to the parcel product.

    Parcel submissions always become a new line of quantity 1, with the
    parcel's own units folded into the line price. A rejected submission
    creates nothing.
    """
    cart = _load_active_cart(db, cart_id)

    product_id = fields.get("product_id") or hooks.config.target_product_id
    try:
        product_id = int(product_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid product_id")

    product = db.query(models.Product).filter(models.Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    try:
        line_data = hooks.add_cart_item_data(fields, product_id, token=fields.get("form_token"))
    except ParcelRejected as e:
        raise rejection_to_http(e)

    is_parcel = hooks.binder.applies_to(product_id)
    quantity = 1 if is_parcel else parse_units(fields.get("quantity"))

    line = cart.add_line(product, quantity, line_data)
    hooks.before_calculate_totals(cart)
    db.commit()
    db.refresh(line)

    if is_parcel:
        logger.info(f"Parcel line {line.line_key[:8]} added to cart {cart.id}")

    return {
        "line": _line_to_dict(line, hooks),
        "cart_total": str(cart.total()),
    }


@router.delete("/{cart_id}/items/{line_key}")
def remove_item(cart_id: str, line_key: str, db: Session = Depends(get_db)):
    cart = _load_active_cart(db, cart_id)
    if not cart.remove_line(line_key):
        raise HTTPException(status_code=404, detail="Cart line not found")
    db.commit()
    return {"ok": True, "cart_total": str(cart.total())}


@router.post("/{cart_id}/recalculate")
def recalculate(
    cart_id: str,
    db: Session = Depends(get_db),
    hooks: ParcelHooks = Depends(get_hooks),
):
    cart = _load_active_cart(db, cart_id)
    updated = hooks.before_calculate_totals(cart)
    db.commit()
    return {"updated_lines": updated, "cart_total": str(cart.total())}


def _cart_to_dict(cart: SqlCart, hooks: ParcelHooks) -> dict:
    return {
        "cart_id": cart.id,
        "status": cart.cart.status,
        "lines": [_line_to_dict(line, hooks) for line in cart.lines()],
        "total": str(cart.total()),
    }


def _line_to_dict(line: models.CartLine, hooks: ParcelHooks) -> dict:
    return {
        "line_key": line.line_key,
        "product_id": line.product_id,
        "product_name": line.product.name if line.product else None,
        "quantity": line.quantity,
        "unit_price": f"{line.unit_price:.2f}",
        "item_data": [
            {"name": label, "value": value}
            for label, value in hooks.get_item_data(line.line_data)
        ],
    }
