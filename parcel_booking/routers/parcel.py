"""
Parcel form API — everything the product page needs before add-to-cart.

GET  /api/parcel/tiers       — pricing table in precedence order
GET  /api/parcel/form-token  — fresh anti-forgery tokens for the form
POST /api/parcel/quote       — live price preview from raw dimensions/weight
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..cart_binder import ParcelRejected
from ..dependencies import form_fields, get_hooks, rejection_to_http
from ..form_token import ACTION_FIELDS, ACTION_QUOTE, issue_form_token
from ..hooks import ParcelHooks

router = APIRouter(prefix="/parcel", tags=["parcel"])


@router.get("/tiers")
def list_tiers(hooks: ParcelHooks = Depends(get_hooks)):
    return {
        "target_product_id": hooks.config.target_product_id,
        "max_weight_kg": hooks.engine.max_weight_kg(),
        "max_volume_m3": hooks.engine.max_volume_m3(),
        "tiers": [
            {
                "max_weight_kg": t.max_weight_kg,
                "max_volume_m3": t.max_volume_m3,
                "base_price": str(t.base_price),
            }
            for t in hooks.engine.tiers
        ],
    }


@router.get("/form-token")
def get_form_tokens():
    return {
        "quote_token": issue_form_token(ACTION_QUOTE),
        "fields_token": issue_form_token(ACTION_FIELDS),
    }


@router.post("/quote")
def quote_parcel(
    fields: Dict[str, Any] = Depends(form_fields),
    hooks: ParcelHooks = Depends(get_hooks),
):
    """
    Price preview. Malformed numbers are read as 0 and then rejected as
    invalid dimensions, never as a server error.
    """
    try:
        return hooks.quote(fields, token=fields.get("form_token"))
    except ParcelRejected as e:
        raise rejection_to_http(e)
