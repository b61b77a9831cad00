"""
Checkout and orders.

POST /api/cart/{id}/checkout  — Finalize a cart into an order (writes parcel metadata once)
GET  /api/orders/{id}         — Order with per-line metadata
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models
from ..cart_store import SqlCart
from ..database import get_db
from ..dependencies import get_hooks
from ..hooks import ParcelHooks

router = APIRouter(tags=["orders"])


@router.post("/cart/{cart_id}/checkout")
def checkout(
    cart_id: str,
    db: Session = Depends(get_db),
    hooks: ParcelHooks = Depends(get_hooks),
):
    cart = SqlCart.load(db, cart_id)
    if not cart:
        raise HTTPException(status_code=404, detail="Cart not found")
    if not cart.is_active:
        raise HTTPException(status_code=409, detail="Cart has already been checked out")
    if not cart.lines():
        raise HTTPException(status_code=400, detail="Cart is empty")

    order = cart.checkout(hooks)
    db.commit()
    db.refresh(order)
    return _order_to_dict(order)


@router.get("/orders/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db)):
    order = db.query(models.Order).filter(models.Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return _order_to_dict(order)


def _order_to_dict(order: models.Order) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "cart_id": order.cart_id,
        "status": order.status,
        "total": f"{order.total:.2f}",
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "lines": [
            {
                "id": line.id,
                "product_id": line.product_id,
                "name": line.name,
                "quantity": line.quantity,
                "unit_price": f"{line.unit_price:.2f}",
                "line_total": f"{line.line_total:.2f}",
                "meta": [{"name": m.label, "value": m.value} for m in line.meta],
            }
            for line in order.lines
        ],
    }
