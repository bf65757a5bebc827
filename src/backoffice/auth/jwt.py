"""JWT token creation and verification.

- Access token: short-lived (BACKOFFICE_JWT_EXPIRES_IN, default 8h)
- Refresh token: long-lived (30 days, fixed)

Both carry the same identity claims:
``{userId, email, role, firstName, lastName, iat, exp}``.

Two very different read paths live here and must not be confused:
- ``verify_signature_and_claims`` checks the HMAC signature and expiry;
  only its result may be trusted for authentication.
- ``is_structurally_expired`` / ``token_expiration_time`` decode WITHOUT
  checking the signature. They exist for local expiry pre-checks (the
  session client) and fail closed on anything undecodable.
"""

import re
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from backoffice.config import settings

REFRESH_TOKEN_LIFETIME = timedelta(days=30)
BEARER_PREFIX = "Bearer "

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d|w)?\s*$", re.IGNORECASE)
_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
}


class TokenClaims(BaseModel):
    """Decoded payload of a verified token."""

    user_id: str = Field(alias="userId")
    email: str
    role: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    iat: int
    exp: int

    model_config = ConfigDict(populate_by_name=True)


def parse_duration(value: str) -> timedelta:
    """Parse "90", "30m", "8h", "1d" style lifetimes. Bare numbers are seconds."""
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=float(amount) * _UNIT_SECONDS[(unit or "s").lower()])


def _identity_claims(principal) -> dict:
    return {
        "userId": str(principal.id),
        "email": principal.email,
        "role": principal.role,
        "firstName": principal.first_name,
        "lastName": principal.last_name,
    }


def _sign(principal, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = _identity_claims(principal)
    payload["iat"] = now
    payload["exp"] = now + lifetime
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def issue_access_token(principal, expires_in: Optional[str] = None) -> str:
    """Create a signed access token for a user."""
    return _sign(principal, parse_duration(expires_in or settings.jwt_expires_in))


def issue_refresh_token(principal) -> str:
    """Create a signed refresh token for a user (always 30 days)."""
    return _sign(principal, REFRESH_TOKEN_LIFETIME)


def verify_signature_and_claims(token: str) -> Optional[TokenClaims]:
    """Verify signature + expiry and return the claims, or None.

    Never raises: a forged, malformed, expired or claim-less token is simply
    "no claims", and callers treat None as unauthenticated.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat"]},
        )
        return TokenClaims.model_validate(payload)
    except (jwt.PyJWTError, PydanticValidationError):
        return None


def token_expiration_time(token: str) -> Optional[int]:
    """Return the unverified ``exp`` (epoch seconds), or None if undecodable."""
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return int(exp)


def is_structurally_expired(token: str, now: Optional[float] = None) -> bool:
    """Unverified expiry check. Undecodable or exp-less tokens count as expired."""
    exp = token_expiration_time(token)
    if exp is None:
        return True
    return (time.time() if now is None else now) >= exp


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Strip the literal "Bearer " prefix; anything else is no token."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):] or None
