"""Projects API."""

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import authenticate_request, request_context, require_admin
from backoffice.db.engine import get_db
from backoffice.db.models import User
from backoffice.schemas.common import DataResponse, MessageResponse, Pagination
from backoffice.schemas.project import ProjectCreate, ProjectList, ProjectRead, ProjectUpdate
from backoffice.services.activity_log import RequestContext
from backoffice.services.listing import MAX_PAGE_SIZE
from backoffice.services.project_service import ProjectService

router = APIRouter(prefix="/projects")


def _svc(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


@router.get("", response_model=DataResponse[ProjectList])
async def list_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    client: Optional[uuid.UUID] = None,
    assigned_to: Optional[uuid.UUID] = Query(None, alias="assignedTo"),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    user: User = Depends(authenticate_request),
    svc: ProjectService = Depends(_svc),
):
    projects, total = await svc.list_projects(
        page=page,
        limit=limit,
        search=search,
        status=status,
        priority=priority,
        category=category,
        client_id=client,
        assigned_to=assigned_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return DataResponse(
        data=ProjectList(
            projects=[ProjectRead.model_validate(p) for p in projects],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post("", response_model=DataResponse[ProjectRead], status_code=201)
async def create_project(
    body: ProjectCreate,
    user: User = Depends(authenticate_request),
    svc: ProjectService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    project = await svc.create_project(user, body, ctx)
    return DataResponse(data=ProjectRead.model_validate(project), message="Project created successfully")


@router.get("/{project_id}", response_model=DataResponse[ProjectRead])
async def get_project(
    project_id: uuid.UUID,
    user: User = Depends(authenticate_request),
    svc: ProjectService = Depends(_svc),
):
    return DataResponse(data=ProjectRead.model_validate(await svc.get_project(project_id)))


@router.put("/{project_id}", response_model=DataResponse[ProjectRead])
async def update_project(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    user: User = Depends(authenticate_request),
    svc: ProjectService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    project = await svc.update_project(user, project_id, body, ctx)
    return DataResponse(data=ProjectRead.model_validate(project), message="Project updated successfully")


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: uuid.UUID,
    user: User = Depends(require_admin),
    svc: ProjectService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    await svc.delete_project(user, project_id, ctx)
    return MessageResponse(message="Project deleted successfully")
