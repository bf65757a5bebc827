"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. They run before
the handler body, so a rejected request never reaches business logic.

    NoToken                     -> 401
    TokenInvalidOrExpired       -> 401
    PrincipalMissingOrInactive  -> 401
    RoleMismatch                -> 403
    OK                          -> handler runs

The token only says who the caller claims to be. The account is re-read
on every request, so deactivation and role changes take effect at once
instead of when the token expires.
"""

import uuid
from datetime import timedelta
from typing import Optional

import structlog
from fastapi import Depends, Header, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.jwt import extract_bearer_token, verify_signature_and_claims
from backoffice.db.engine import get_db
from backoffice.db.models import ADMIN_ROLES, User, as_utc, utcnow
from backoffice.errors import AuthenticationError, AuthorizationError
from backoffice.services.activity_log import RequestContext

logger = structlog.get_logger()

LAST_LOGIN_REFRESH = timedelta(hours=1)


async def _touch_last_login(user: User, db: AsyncSession) -> None:
    """Bump last_login at most hourly. A failed write never fails the request."""
    last = as_utc(user.last_login)
    now = utcnow()
    if last is not None and now - last < LAST_LOGIN_REFRESH:
        return
    try:
        user.last_login = now
        await db.commit()
    except SQLAlchemyError:
        logger.warning("auth.last_login_write_failed", user_id=str(user.id), exc_info=True)
        await db.rollback()


async def authenticate_request(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active User, or raise 401."""
    token = extract_bearer_token(authorization)
    if token is None:
        raise AuthenticationError()

    claims = verify_signature_and_claims(token)
    if claims is None:
        raise AuthenticationError()

    try:
        user_id = uuid.UUID(claims.user_id)
    except ValueError:
        raise AuthenticationError()

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise AuthenticationError()

    await _touch_last_login(user, db)
    return user


def require_roles(*roles: str):
    """Dependency factory: authenticated AND role in the allow-list.

    No roles means any authenticated user. The role checked is the one on
    the account now, not the one baked into the token.
    """
    allowed = frozenset(roles)

    async def dependency(user: User = Depends(authenticate_request)) -> User:
        if allowed and user.role not in allowed:
            logger.info(
                "auth.forbidden",
                user_id=str(user.id),
                role=user.role,
                required=sorted(allowed),
            )
            raise AuthorizationError()
        return user

    return dependency


require_admin = require_roles(*ADMIN_ROLES)


def request_context(request: Request) -> RequestContext:
    """Caller address and agent for the audit trail."""
    forwarded = request.headers.get("x-forwarded-for")
    ip = forwarded.split(",")[0].strip() if forwarded else None
    if not ip and request.client:
        ip = request.client.host
    return RequestContext(ip_address=ip, user_agent=request.headers.get("user-agent"))
