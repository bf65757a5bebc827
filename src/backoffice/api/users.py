"""User administration API — /api/admin/users, admins only."""

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import request_context, require_admin
from backoffice.db.engine import get_db
from backoffice.db.models import User
from backoffice.schemas.common import DataResponse, MessageResponse, Pagination
from backoffice.schemas.user import PasswordReset, UserCreate, UserList, UserRead, UserUpdate
from backoffice.services.activity_log import RequestContext
from backoffice.services.listing import MAX_PAGE_SIZE
from backoffice.services.user_service import UserService

router = APIRouter(prefix="/admin/users")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("", response_model=DataResponse[UserList])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = None,
    role: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    department: Optional[str] = None,
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    actor: User = Depends(require_admin),
    svc: UserService = Depends(_svc),
):
    users, total = await svc.list_users(
        page=page,
        limit=limit,
        search=search,
        role=role,
        is_active=is_active,
        department=department,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return DataResponse(
        data=UserList(
            users=[UserRead.model_validate(u) for u in users],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post("", response_model=DataResponse[UserRead], status_code=201)
async def create_user(
    body: UserCreate,
    actor: User = Depends(require_admin),
    svc: UserService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    user = await svc.create_user(actor, body, ctx)
    return DataResponse(data=UserRead.model_validate(user), message="User created successfully")


@router.get("/{user_id}", response_model=DataResponse[UserRead])
async def get_user(
    user_id: uuid.UUID,
    actor: User = Depends(require_admin),
    svc: UserService = Depends(_svc),
):
    return DataResponse(data=UserRead.model_validate(await svc.get_user(user_id)))


@router.put("/{user_id}", response_model=DataResponse[UserRead])
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    actor: User = Depends(require_admin),
    svc: UserService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    user = await svc.update_user(actor, user_id, body, ctx)
    return DataResponse(data=UserRead.model_validate(user), message="User updated successfully")


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: uuid.UUID,
    actor: User = Depends(require_admin),
    svc: UserService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    await svc.delete_user(actor, user_id, ctx)
    return MessageResponse(message="User deleted successfully")


@router.patch("/{user_id}/password", response_model=MessageResponse)
async def reset_password(
    user_id: uuid.UUID,
    body: PasswordReset,
    actor: User = Depends(require_admin),
    svc: UserService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    await svc.reset_password(actor, user_id, body, ctx)
    return MessageResponse(message="Password reset successfully")
