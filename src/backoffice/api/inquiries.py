"""Inquiries API — public submission, triage for signed-in users."""

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import authenticate_request, request_context, require_admin
from backoffice.db.engine import get_db
from backoffice.db.models import User
from backoffice.schemas.common import DataResponse, MessageResponse, NoteCreate, Pagination
from backoffice.schemas.inquiry import InquiryCreate, InquiryList, InquiryRead, InquiryUpdate
from backoffice.services.activity_log import RequestContext
from backoffice.services.inquiry_service import InquiryService
from backoffice.services.listing import MAX_PAGE_SIZE

router = APIRouter(prefix="/inquiries")


def _svc(db: AsyncSession = Depends(get_db)) -> InquiryService:
    return InquiryService(db)


@router.post("", response_model=DataResponse[InquiryRead], status_code=201)
async def submit_inquiry(body: InquiryCreate, svc: InquiryService = Depends(_svc)):
    """Contact form endpoint. No authentication."""
    inquiry = await svc.submit(body)
    return DataResponse(data=InquiryRead.model_validate(inquiry), message="Inquiry created successfully")


@router.get("", response_model=DataResponse[InquiryList])
async def list_inquiries(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    user: User = Depends(authenticate_request),
    svc: InquiryService = Depends(_svc),
):
    inquiries, total = await svc.list_inquiries(
        page=page,
        limit=limit,
        search=search,
        status=status,
        priority=priority,
        category=category,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return DataResponse(
        data=InquiryList(
            inquiries=[InquiryRead.model_validate(i) for i in inquiries],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get("/{inquiry_id}", response_model=DataResponse[InquiryRead])
async def get_inquiry(
    inquiry_id: uuid.UUID,
    user: User = Depends(authenticate_request),
    svc: InquiryService = Depends(_svc),
):
    return DataResponse(data=InquiryRead.model_validate(await svc.get_inquiry(inquiry_id)))


@router.put("/{inquiry_id}", response_model=DataResponse[InquiryRead])
async def update_inquiry(
    inquiry_id: uuid.UUID,
    body: InquiryUpdate,
    user: User = Depends(authenticate_request),
    svc: InquiryService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    inquiry = await svc.update_inquiry(user, inquiry_id, body, ctx)
    return DataResponse(data=InquiryRead.model_validate(inquiry), message="Inquiry updated successfully")


@router.delete("/{inquiry_id}", response_model=MessageResponse)
async def delete_inquiry(
    inquiry_id: uuid.UUID,
    user: User = Depends(require_admin),
    svc: InquiryService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    await svc.delete_inquiry(user, inquiry_id, ctx)
    return MessageResponse(message="Inquiry deleted successfully")


@router.post("/{inquiry_id}/notes", response_model=DataResponse[InquiryRead])
async def add_inquiry_note(
    inquiry_id: uuid.UUID,
    body: NoteCreate,
    user: User = Depends(authenticate_request),
    svc: InquiryService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    inquiry = await svc.add_note(user, inquiry_id, body.content, ctx)
    return DataResponse(data=InquiryRead.model_validate(inquiry), message="Note added successfully")
