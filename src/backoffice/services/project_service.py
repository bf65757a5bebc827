"""Projects delivered for clients."""

import uuid
from typing import Optional

from sqlalchemy import String, cast, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.models import Category, Client, Project, Severity, User
from backoffice.errors import NotFoundError, ValidationError
from backoffice.schemas.project import ProjectCreate, ProjectUpdate
from backoffice.services.activity_log import ActivityRecorder, RequestContext
from backoffice.services.listing import (
    apply_sort,
    drop_null_fields,
    escape_like,
    paginate,
    search_filter,
)

SORTABLE = ("created_at", "updated_at", "title", "status", "priority", "deadline", "progress")
NON_NULLABLE = (
    "title", "description", "category", "services", "status",
    "priority", "actual_hours", "progress", "tags", "is_archived",
)


class ProjectService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityRecorder(db)

    async def _require_client(self, client_id: uuid.UUID) -> Client:
        client = await self.db.get(Client, client_id)
        if not client:
            raise ValidationError("Client not found", details={"client": ["Client does not exist"]})
        return client

    async def _require_users(self, user_ids: list[uuid.UUID]) -> list[str]:
        """Every assignee must be an existing account. Returns ids as strings."""
        unique = list(dict.fromkeys(user_ids))
        result = await self.db.execute(select(User.id).where(User.id.in_(unique)))
        found = set(result.scalars().all())
        missing = [str(uid) for uid in unique if uid not in found]
        if missing:
            raise ValidationError("Unknown assignee", details={"assignedTo": missing})
        return [str(uid) for uid in unique]

    async def list_projects(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        client_id: Optional[uuid.UUID] = None,
        assigned_to: Optional[uuid.UUID] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Project], int]:
        query = select(Project)
        matches = search_filter(search, (Project.title, Project.description))
        if matches is not None:
            query = query.where(matches)
        if status:
            query = query.where(Project.status == status)
        if priority:
            query = query.where(Project.priority == priority)
        by_category = search_filter(category, (Project.category,))
        if by_category is not None:
            query = query.where(by_category)
        if client_id:
            query = query.where(Project.client_id == client_id)
        if assigned_to:
            # assigned_to is a JSON array of id strings
            pattern = f'%"{escape_like(str(assigned_to))}"%'
            query = query.where(cast(Project.assigned_to, String).like(pattern, escape="\\"))
        query = apply_sort(query, Project, sort_by, sort_order, SORTABLE)
        return await paginate(self.db, query, page, limit)

    async def get_project(self, project_id: uuid.UUID) -> Project:
        project = await self.db.get(Project, project_id)
        if not project:
            raise NotFoundError("Project not found")
        return project

    async def create_project(self, actor: User, body: ProjectCreate, ctx: RequestContext) -> Project:
        client = await self._require_client(body.client_id)
        assignees = await self._require_users(body.assigned_to)

        data = body.model_dump(exclude={"assigned_to"})
        project = Project(**data, assigned_to=assignees)
        self.db.add(project)
        client.total_projects = (client.total_projects or 0) + 1
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "CREATE_PROJECT",
            "project",
            f"Created new project: {project.title}",
            category=Category.PROJECT.value,
            severity=Severity.MEDIUM.value,
            resource_id=str(project.id),
            metadata={"client": str(client.id), "services": project.services},
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return project

    async def update_project(
        self, actor: User, project_id: uuid.UUID, body: ProjectUpdate, ctx: RequestContext
    ) -> Project:
        project = await self.get_project(project_id)
        changes = body.model_dump(exclude_unset=True, exclude={"assigned_to", "milestones"})
        changes = drop_null_fields(changes, NON_NULLABLE)

        if body.assigned_to is not None:
            changes["assigned_to"] = await self._require_users(body.assigned_to)
        if body.milestones is not None:
            changes["milestones"] = [m.model_dump(mode="json", by_alias=True) for m in body.milestones]
        if changes.get("milestones"):
            done = sum(1 for m in changes["milestones"] if m.get("completed"))
            changes["progress"] = round(done / len(changes["milestones"]) * 100)

        for field, value in changes.items():
            setattr(project, field, value)
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "UPDATE_PROJECT",
            "project",
            f"Updated project: {project.title}",
            category=Category.PROJECT.value,
            resource_id=str(project.id),
            metadata={"updatedFields": sorted(changes)},
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return project

    async def delete_project(self, actor: User, project_id: uuid.UUID, ctx: RequestContext) -> None:
        project = await self.get_project(project_id)
        title = project.title
        client = await self.db.get(Client, project.client_id)
        if client and client.total_projects:
            client.total_projects -= 1
        await self.db.delete(project)
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "DELETE_PROJECT",
            "project",
            f"Deleted project: {title}",
            category=Category.PROJECT.value,
            severity=Severity.HIGH.value,
            resource_id=str(project_id),
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
