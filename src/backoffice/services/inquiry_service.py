"""Inquiries — contact form submissions and their triage."""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.models import Category, Inquiry, Severity, User, utcnow
from backoffice.errors import NotFoundError
from backoffice.schemas.inquiry import InquiryCreate, InquiryUpdate
from backoffice.services.activity_log import ActivityRecorder, RequestContext
from backoffice.services.auth_service import normalize_email
from backoffice.services.listing import apply_sort, drop_null_fields, paginate, search_filter
from backoffice.services.notes import append_note

logger = structlog.get_logger()

SORTABLE = ("created_at", "updated_at", "name", "email", "subject", "status", "priority")
NON_NULLABLE = (
    "name", "email", "subject", "message", "status", "priority", "category", "tags", "is_archived",
)


class InquiryService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityRecorder(db)

    async def list_inquiries(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Inquiry], int]:
        query = select(Inquiry)
        matches = search_filter(
            search,
            (Inquiry.name, Inquiry.email, Inquiry.company, Inquiry.subject, Inquiry.message),
        )
        if matches is not None:
            query = query.where(matches)
        if status:
            query = query.where(Inquiry.status == status)
        if priority:
            query = query.where(Inquiry.priority == priority)
        if category:
            query = query.where(Inquiry.category == category)
        query = apply_sort(query, Inquiry, sort_by, sort_order, SORTABLE)
        return await paginate(self.db, query, page, limit)

    async def get_inquiry(self, inquiry_id: uuid.UUID) -> Inquiry:
        inquiry = await self.db.get(Inquiry, inquiry_id)
        if not inquiry:
            raise NotFoundError("Inquiry not found")
        return inquiry

    async def submit(self, body: InquiryCreate) -> Inquiry:
        """Public contact form. There is no actor, so nothing is audited."""
        data = body.model_dump(exclude={"email"})
        inquiry = Inquiry(**data, email=normalize_email(body.email), status="unread")
        self.db.add(inquiry)
        await self.db.commit()
        logger.info("inquiries.submitted", inquiry_id=str(inquiry.id), category=inquiry.category)
        return inquiry

    async def update_inquiry(
        self, actor: User, inquiry_id: uuid.UUID, body: InquiryUpdate, ctx: RequestContext
    ) -> Inquiry:
        inquiry = await self.get_inquiry(inquiry_id)
        changes = drop_null_fields(body.model_dump(exclude_unset=True), NON_NULLABLE)
        if changes.get("email"):
            changes["email"] = normalize_email(changes["email"])

        previous_status = inquiry.status
        for field, value in changes.items():
            setattr(inquiry, field, value)

        new_status = changes.get("status")
        if new_status and new_status != previous_status:
            if new_status == "read" and inquiry.responded_at is None:
                inquiry.responded_at = utcnow()
            if new_status == "resolved" and inquiry.resolved_at is None:
                inquiry.resolved_at = utcnow()
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "UPDATE_INQUIRY",
            "inquiry",
            f"Updated inquiry: {inquiry.subject}",
            category=Category.INQUIRY.value,
            resource_id=str(inquiry.id),
            metadata={"updatedFields": sorted(changes), "previousStatus": previous_status},
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return inquiry

    async def delete_inquiry(self, actor: User, inquiry_id: uuid.UUID, ctx: RequestContext) -> None:
        inquiry = await self.get_inquiry(inquiry_id)
        subject = inquiry.subject
        await self.db.delete(inquiry)
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "DELETE_INQUIRY",
            "inquiry",
            f"Deleted inquiry: {subject}",
            category=Category.INQUIRY.value,
            severity=Severity.HIGH.value,
            resource_id=str(inquiry_id),
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )

    async def add_note(
        self, actor: User, inquiry_id: uuid.UUID, content: str, ctx: RequestContext
    ) -> Inquiry:
        inquiry = await self.get_inquiry(inquiry_id)
        inquiry.notes = append_note(inquiry.notes, content, actor)
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "ADD_INQUIRY_NOTE",
            "inquiry",
            f"Added note to inquiry: {inquiry.subject}",
            category=Category.INQUIRY.value,
            resource_id=str(inquiry.id),
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return inquiry
