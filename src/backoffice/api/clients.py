"""Clients API — any signed-in user may read and edit, admins delete."""

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import authenticate_request, request_context, require_admin
from backoffice.db.engine import get_db
from backoffice.db.models import User
from backoffice.schemas.client import ClientCreate, ClientList, ClientRead, ClientUpdate
from backoffice.schemas.common import DataResponse, MessageResponse, NoteCreate, Pagination
from backoffice.services.activity_log import RequestContext
from backoffice.services.client_service import ClientService
from backoffice.services.listing import MAX_PAGE_SIZE

router = APIRouter(prefix="/clients")


def _svc(db: AsyncSession = Depends(get_db)) -> ClientService:
    return ClientService(db)


@router.get("", response_model=DataResponse[ClientList])
async def list_clients(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = None,
    status: Optional[str] = None,
    industry: Optional[str] = None,
    assigned_to: Optional[uuid.UUID] = Query(None, alias="assignedTo"),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    user: User = Depends(authenticate_request),
    svc: ClientService = Depends(_svc),
):
    clients, total = await svc.list_clients(
        page=page,
        limit=limit,
        search=search,
        status=status,
        industry=industry,
        assigned_to=assigned_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return DataResponse(
        data=ClientList(
            clients=[ClientRead.model_validate(c) for c in clients],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post("", response_model=DataResponse[ClientRead], status_code=201)
async def create_client(
    body: ClientCreate,
    user: User = Depends(authenticate_request),
    svc: ClientService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    client = await svc.create_client(user, body, ctx)
    return DataResponse(data=ClientRead.model_validate(client), message="Client created successfully")


@router.get("/{client_id}", response_model=DataResponse[ClientRead])
async def get_client(
    client_id: uuid.UUID,
    user: User = Depends(authenticate_request),
    svc: ClientService = Depends(_svc),
):
    return DataResponse(data=ClientRead.model_validate(await svc.get_client(client_id)))


@router.put("/{client_id}", response_model=DataResponse[ClientRead])
async def update_client(
    client_id: uuid.UUID,
    body: ClientUpdate,
    user: User = Depends(authenticate_request),
    svc: ClientService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    client = await svc.update_client(user, client_id, body, ctx)
    return DataResponse(data=ClientRead.model_validate(client), message="Client updated successfully")


@router.delete("/{client_id}", response_model=MessageResponse)
async def delete_client(
    client_id: uuid.UUID,
    user: User = Depends(require_admin),
    svc: ClientService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    await svc.delete_client(user, client_id, ctx)
    return MessageResponse(message="Client deleted successfully")


@router.post("/{client_id}/notes", response_model=DataResponse[ClientRead])
async def add_client_note(
    client_id: uuid.UUID,
    body: NoteCreate,
    user: User = Depends(authenticate_request),
    svc: ClientService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    client = await svc.add_note(user, client_id, body.content, ctx)
    return DataResponse(data=ClientRead.model_validate(client), message="Note added successfully")
