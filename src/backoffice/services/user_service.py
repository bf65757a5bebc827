"""User administration — the /api/admin/users surface.

Role rules:
- only a super_admin creates or assigns the admin and super_admin roles
- nobody deletes their own account
- only a super_admin deletes a super_admin
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.password import hash_password
from backoffice.db.models import ADMIN_ROLES, Category, Role, Severity, User
from backoffice.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from backoffice.schemas.user import PasswordReset, UserCreate, UserUpdate
from backoffice.services.activity_log import ActivityRecorder, RequestContext
from backoffice.services.auth_service import normalize_email
from backoffice.services.listing import apply_sort, drop_null_fields, paginate, search_filter

logger = structlog.get_logger()

EMAIL_TAKEN = "Email address is already registered"
SORTABLE = ("created_at", "updated_at", "first_name", "last_name", "email", "role", "last_login")
NON_NULLABLE = ("first_name", "last_name", "email", "role", "is_active")


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityRecorder(db)

    async def _email_taken(self, email: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        query = select(User.id).where(User.email == email)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def _commit_unique(self) -> None:
        """Commit, mapping a unique-index race onto the same 400 as the pre-check."""
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(EMAIL_TAKEN)

    async def list_users(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        department: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[User], int]:
        query = select(User)
        matches = search_filter(search, (User.first_name, User.last_name, User.email, User.department))
        if matches is not None:
            query = query.where(matches)
        if role:
            query = query.where(User.role == role)
        if is_active is not None:
            query = query.where(User.is_active == is_active)
        dept = search_filter(department, (User.department,))
        if dept is not None:
            query = query.where(dept)
        query = apply_sort(query, User, sort_by, sort_order, SORTABLE)
        return await paginate(self.db, query, page, limit)

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def create_user(self, actor: User, body: UserCreate, ctx: RequestContext) -> User:
        if body.role in ADMIN_ROLES and actor.role != Role.SUPER_ADMIN.value:
            raise AuthorizationError("Insufficient permissions to create this user role")

        email = normalize_email(body.email)
        if await self._email_taken(email):
            raise ConflictError(EMAIL_TAKEN)

        user = User(
            email=email,
            password_hash=hash_password(body.password),
            first_name=body.first_name,
            last_name=body.last_name,
            role=body.role,
            phone=body.phone,
            department=body.department,
        )
        self.db.add(user)
        await self._commit_unique()

        await self.activity.create_log(
            actor.id,
            "CREATE_USER",
            "user",
            f"Created new user: {user.full_name}",
            category=Category.USER.value,
            severity=Severity.MEDIUM.value,
            resource_id=str(user.id),
            metadata={"role": user.role, "department": user.department, "createdBy": str(actor.id)},
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        logger.info("users.created", user_id=str(user.id), role=user.role)
        return user

    async def update_user(
        self, actor: User, user_id: uuid.UUID, body: UserUpdate, ctx: RequestContext
    ) -> User:
        user = await self.get_user(user_id)
        changes = drop_null_fields(body.model_dump(exclude_unset=True), NON_NULLABLE)

        if changes.get("role") in ADMIN_ROLES and actor.role != Role.SUPER_ADMIN.value:
            raise AuthorizationError("Insufficient permissions to assign this role")
        if user.role == Role.SUPER_ADMIN.value and actor.role != Role.SUPER_ADMIN.value:
            raise AuthorizationError("Cannot modify super admin users")

        if changes.get("email"):
            changes["email"] = normalize_email(changes["email"])
            if await self._email_taken(changes["email"], exclude_id=user.id):
                raise ConflictError(EMAIL_TAKEN)

        for field, value in changes.items():
            setattr(user, field, value)
        await self._commit_unique()

        await self.activity.create_log(
            actor.id,
            "UPDATE_USER",
            "user",
            f"Updated user: {user.full_name}",
            category=Category.USER.value,
            resource_id=str(user.id),
            metadata={"updatedFields": sorted(changes)},
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return user

    async def delete_user(self, actor: User, user_id: uuid.UUID, ctx: RequestContext) -> None:
        user = await self.get_user(user_id)
        if user.role == Role.SUPER_ADMIN.value and actor.role != Role.SUPER_ADMIN.value:
            raise AuthorizationError("Cannot delete super admin users")
        if user.id == actor.id:
            raise ValidationError("Cannot delete your own account")

        name, role = user.full_name, user.role
        await self.db.delete(user)
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "DELETE_USER",
            "user",
            f"Deleted user: {name}",
            category=Category.USER.value,
            severity=Severity.HIGH.value,
            resource_id=str(user_id),
            metadata={"deletedUserRole": role},
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        logger.info("users.deleted", user_id=str(user_id))

    async def reset_password(
        self, actor: User, user_id: uuid.UUID, body: PasswordReset, ctx: RequestContext
    ) -> None:
        user = await self.get_user(user_id)
        if user.role == Role.SUPER_ADMIN.value and actor.role != Role.SUPER_ADMIN.value:
            raise AuthorizationError("Cannot modify super admin users")

        user.password_hash = hash_password(body.new_password)
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "RESET_PASSWORD",
            "user",
            f"Reset password for user: {user.full_name}",
            category=Category.USER.value,
            severity=Severity.HIGH.value,
            resource_id=str(user.id),
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
