"""First-run bootstrap: create the initial super_admin.

Learn: This is the only way to get the first account into an empty
database. It refuses to do anything once any user exists, so it is safe
to leave the endpoint exposed.
"""

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.password import hash_password
from backoffice.config import settings
from backoffice.db.models import Category, Role, Severity, User
from backoffice.services.activity_log import ActivityRecorder
from backoffice.services.auth_service import normalize_email

logger = structlog.get_logger()


class SetupService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def status(self) -> dict:
        user_count = await self.db.scalar(select(func.count()).select_from(User))
        admin = await self.db.execute(
            select(User.id)
            .where(User.role == Role.SUPER_ADMIN.value, User.is_active.is_(True))
            .limit(1)
        )
        return {
            "userCount": user_count or 0,
            "hasAdmin": admin.first() is not None,
            "databaseConnected": True,
        }

    async def create_default_admin(self) -> dict:
        existing = await self.db.scalar(select(func.count()).select_from(User))
        if existing:
            return {"success": True, "message": "Users already exist"}

        admin = User(
            first_name="Super",
            last_name="Admin",
            email=normalize_email(settings.default_admin_email),
            password_hash=hash_password(settings.default_admin_password),
            role=Role.SUPER_ADMIN.value,
            department="IT",
            is_active=True,
        )
        self.db.add(admin)
        await self.db.commit()

        await ActivityRecorder(self.db).create_log(
            admin.id,
            "BOOTSTRAP_ADMIN",
            "user",
            "Created default super admin",
            category=Category.SYSTEM.value,
            severity=Severity.HIGH.value,
            resource_id=str(admin.id),
        )
        logger.info("setup.admin_created", email=admin.email)
        return {
            "success": True,
            "message": "Default admin user created successfully",
            "user": {"id": str(admin.id), "email": admin.email, "role": admin.role},
        }
