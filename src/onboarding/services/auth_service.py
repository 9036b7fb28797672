"""
onboarding/services/auth_service.py — Bearer tokens of the onboarding service.

Tokens are issued by the SPID login flow once the assertion has been
validated; ``sub`` holds the user email and ``role`` the user role.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import jwt

from onboarding.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_DURATION = timedelta(hours=1)


def create_access_token(
    email: str,
    role: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    """Creates a signed access token for ``email``."""
    exp = datetime.now(timezone.utc) + (expires_delta or DEFAULT_TOKEN_DURATION)
    payload = {"sub": email, "role": role, "exp": exp, "type": "access"}
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_token(token: str, secret_key: str, algorithm: str = "HS256") -> dict:
    """Decodes and verifies a token (signature and expiry)."""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except Exception as exc:
        raise AuthenticationError(f"Invalid token: {exc}") from exc
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")
    return payload
