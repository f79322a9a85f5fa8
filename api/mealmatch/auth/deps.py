"""
Authentication dependencies for FastAPI.

Identity is issued elsewhere; this module only verifies the bearer token and
applies the campus email-domain gate.
"""

import logging
from typing import Any

from fastapi import Header, HTTPException

from mealmatch.auth.security import decode_access_token
from mealmatch.config import ALLOWED_EMAIL_DOMAIN

logger = logging.getLogger(__name__)


def _extract_bearer(authorization: str | None) -> str:
    """Extract Bearer token from Authorization header."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return parts[1].strip()


def email_domain_allowed(email: str | None, domain: str = ALLOWED_EMAIL_DOMAIN) -> bool:
    if not domain:
        return True
    e = (email or "").strip().lower()
    return e.endswith(f"@{domain}")


def get_current_user(authorization: str | None = Header(default=None)) -> dict[str, Any]:
    token = _extract_bearer(authorization)
    payload = decode_access_token(token)

    user_id = str(payload.get("sub") or "")
    if not user_id:
        logger.warning("[auth] token missing subject")
        raise HTTPException(status_code=401, detail="Invalid token")

    email = str(payload.get("email") or "").strip().lower()
    if not email_domain_allowed(email):
        logger.warning("[auth] rejected email outside allowed domain user_id=%s", user_id)
        raise HTTPException(status_code=403, detail=f"Email must be @{ALLOWED_EMAIL_DOMAIN}")

    logger.debug("[auth] user_id=%s", user_id)
    return {"id": user_id, "email": email}
