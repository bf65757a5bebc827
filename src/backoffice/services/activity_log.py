"""Activity recorder — append-only audit trail of privileged actions.

Learn: Audit writes are best-effort. The action they describe has already
been committed, so a failure here is logged and swallowed rather than
turning a successful request into a 500. Each record is committed on its
own, after the primary change, in a short-lived session on the same
bind: rolling back a failed write there leaves the request's session and
the objects it is about to serialize untouched.
"""

import uuid
from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.models import ActivityLog, Severity
from backoffice.services.listing import paginate

logger = structlog.get_logger()


class ActivityRecorder:
    """Writes and reads ActivityLog rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_log(
        self,
        actor_id: uuid.UUID,
        action: str,
        resource: str,
        description: str,
        *,
        category: str,
        severity: str = Severity.LOW.value,
        resource_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[ActivityLog]:
        """Append one record. Returns None if the write failed."""
        entry = ActivityLog(
            user_id=actor_id,
            action=action,
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else None,
            description=description,
            meta=metadata or {},
            ip_address=ip_address,
            user_agent=user_agent,
            severity=severity,
            category=category,
        )
        async with AsyncSession(self.db.bind, expire_on_commit=False) as audit:
            try:
                audit.add(entry)
                await audit.commit()
            except SQLAlchemyError:
                logger.exception("activity.write_failed", action=action, resource=resource)
                await audit.rollback()
                return None
        return entry

    async def list_logs(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        category: Optional[str] = None,
        severity: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
    ) -> tuple[list[ActivityLog], int]:
        """Newest first, filtered. Returns (page of rows, total matching)."""
        query = select(ActivityLog)
        if category:
            query = query.where(ActivityLog.category == category)
        if severity:
            query = query.where(ActivityLog.severity == severity)
        if user_id:
            query = query.where(ActivityLog.user_id == user_id)
        if action:
            query = query.where(ActivityLog.action == action)

        query = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        return await paginate(self.db, query, page, limit)


class RequestContext:
    """Who is acting and from where; threaded from routes into services."""

    def __init__(
        self,
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        self.actor_id = actor_id
        self.ip_address = ip_address
        self.user_agent = user_agent
