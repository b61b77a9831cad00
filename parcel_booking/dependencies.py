from typing import Any, Dict

from fastapi import HTTPException, Request, status

from .cart_binder import ParcelRejected, SecurityCheckFailed
from .config import load_parcel_config, settings
from .form_token import verify_form_token
from .hooks import ParcelHooks

# Global hooks instance, built from static config
parcel_hooks = ParcelHooks(
    load_parcel_config(settings),
    verify_token=verify_form_token,
    require_token=settings.REQUIRE_FORM_TOKEN,
)


def get_hooks() -> ParcelHooks:
    return parcel_hooks


async def form_fields(request: Request) -> Dict[str, Any]:
    """
    Raw submitted fields as an untyped mapping.

    Accepts a regular form post (urlencoded or multipart) or a flat JSON
    object. Nothing is parsed or validated here.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Malformed JSON body")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Expected a JSON object")
        return body

    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def rejection_to_http(exc: ParcelRejected) -> HTTPException:
    code = status.HTTP_403_FORBIDDEN if isinstance(exc, SecurityCheckFailed) else status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=exc.to_dict())
