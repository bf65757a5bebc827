"""Authentication service — login, token refresh, logout, self-service profile.

Learn: Login is the only place a password is compared. Every failure
mode except a deactivated account collapses into one generic message,
so the endpoint cannot be used to discover which emails are registered.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.jwt import (
    issue_access_token,
    issue_refresh_token,
    verify_signature_and_claims,
)
from backoffice.auth.password import hash_password, verify_password
from backoffice.db.models import Category, Severity, User, utcnow
from backoffice.errors import AuthenticationError, NotFoundError, ValidationError
from backoffice.schemas.user import PasswordChange, ProfileUpdate
from backoffice.services.activity_log import ActivityRecorder, RequestContext

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_DEACTIVATED = "Account is deactivated"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Business logic behind /api/auth."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityRecorder(db)

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalars().first()

    # ─── Login / refresh / logout ───────────────────────

    async def login(
        self, email: str, password: str, ctx: Optional[RequestContext] = None
    ) -> tuple[User, str, str]:
        """Check credentials and issue a token pair.

        Raises AuthenticationError with the generic message for unknown
        emails and wrong passwords, and "Account is deactivated" for a
        correct login to a disabled account.
        """
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info("auth.login_failed", email=normalize_email(email))
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not user.is_active:
            logger.info("auth.login_deactivated", user_id=str(user.id))
            raise AuthenticationError(ACCOUNT_DEACTIVATED)

        user.last_login = utcnow()
        await self.db.commit()

        token = issue_access_token(user)
        refresh_token = issue_refresh_token(user)

        ctx = ctx or RequestContext()
        await self.activity.create_log(
            user.id,
            "LOGIN",
            "auth",
            f"{user.full_name} logged in",
            category=Category.AUTH.value,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        logger.info("auth.login", user_id=str(user.id))
        return user, token, refresh_token

    async def refresh(self, refresh_token: str) -> str:
        """Exchange a refresh token for a new access token.

        The account is re-read so a deactivated or deleted user cannot
        keep a session alive for the refresh token's 30 days.
        """
        claims = verify_signature_and_claims(refresh_token)
        if claims is None:
            raise AuthenticationError("Invalid or expired refresh token")
        try:
            user_id = uuid.UUID(claims.user_id)
        except ValueError:
            raise AuthenticationError("Invalid or expired refresh token")

        user = await self.get_user(user_id)
        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")
        return issue_access_token(user)

    async def logout(self, token: Optional[str], ctx: Optional[RequestContext] = None) -> None:
        """Audit a logout. Tokens are stateless, so there is nothing to revoke."""
        if not token:
            return
        claims = verify_signature_and_claims(token)
        if claims is None:
            return
        try:
            user_id = uuid.UUID(claims.user_id)
        except ValueError:
            return
        ctx = ctx or RequestContext()
        await self.activity.create_log(
            user_id,
            "LOGOUT",
            "auth",
            "User logged out",
            category=Category.AUTH.value,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )

    # ─── Self-service profile ───────────────────────────

    async def update_profile(self, user: User, body: ProfileUpdate) -> User:
        """Apply self-editable fields only. Role and active flag are not here."""
        for field, value in body.model_dump(exclude_unset=True).items():
            setattr(user, field, value)
        await self.db.commit()
        await self.activity.create_log(
            user.id,
            "UPDATE_PROFILE",
            "user",
            "Updated own profile",
            category=Category.USER.value,
            resource_id=str(user.id),
        )
        return user

    async def change_password(self, user_id: uuid.UUID, body: PasswordChange) -> None:
        user = await self.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        if not verify_password(body.current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        user.password_hash = hash_password(body.new_password)
        await self.db.commit()
        await self.activity.create_log(
            user.id,
            "CHANGE_PASSWORD",
            "user",
            "Changed own password",
            category=Category.AUTH.value,
            severity=Severity.MEDIUM.value,
            resource_id=str(user.id),
        )
