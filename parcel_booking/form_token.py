"""
Anti-forgery tokens for the parcel form.

A token is a short JWT bound to one form action. The quote preview and the
add-to-cart submission use different actions, so a token minted for one
cannot be replayed against the other.

Libraries: python-jose[cryptography] for JWT.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from jose import JWTError, jwt

from .cart_binder import SecurityCheckFailed
from .config import settings

ACTION_QUOTE = "parcel_quote"
ACTION_FIELDS = "parcel_fields"

MSG_SECURITY_CHECK_FAILED = "Security check failed."
MSG_REFRESH_AND_RETRY = "Please refresh the page and try again."


def _get_secret() -> str:
    """Get the signing secret, failing loudly if not configured."""
    secret = settings.FORM_TOKEN_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="FORM_TOKEN_SECRET not configured. Set it in environment variables",
        )
    return secret


def issue_form_token(action: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.FORM_TOKEN_EXPIRE_MINUTES)
    payload = {
        "act": action,
        "exp": expire,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, _get_secret(), algorithm=settings.FORM_TOKEN_ALGORITHM)


def verify_form_token(token: Optional[str], action: str) -> None:
    """Raise SecurityCheckFailed unless token is a live token for this action."""
    message = MSG_SECURITY_CHECK_FAILED if action == ACTION_QUOTE else MSG_REFRESH_AND_RETRY
    if not token:
        raise SecurityCheckFailed(message)
    try:
        payload = jwt.decode(token, _get_secret(), algorithms=[settings.FORM_TOKEN_ALGORITHM])
    except JWTError:
        raise SecurityCheckFailed(message)
    if payload.get("act") != action:
        raise SecurityCheckFailed(message)
