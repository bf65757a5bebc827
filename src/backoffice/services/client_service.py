"""Client records (customers and prospects)."""

import uuid
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.models import Category, Client, Project, Severity, User
from backoffice.errors import ConflictError, NotFoundError
from backoffice.schemas.client import ClientCreate, ClientUpdate
from backoffice.services.activity_log import ActivityRecorder, RequestContext
from backoffice.services.auth_service import normalize_email
from backoffice.services.listing import apply_sort, drop_null_fields, paginate, search_filter
from backoffice.services.notes import append_note

EMAIL_TAKEN = "Email address is already registered"
SORTABLE = ("created_at", "updated_at", "first_name", "last_name", "email", "company", "status")
NON_NULLABLE = ("first_name", "last_name", "email", "status", "source", "tags", "is_archived")


class ClientService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityRecorder(db)

    async def _email_taken(self, email: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        query = select(Client.id).where(Client.email == email)
        if exclude_id is not None:
            query = query.where(Client.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def _commit_unique(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(EMAIL_TAKEN)

    async def list_clients(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
        industry: Optional[str] = None,
        assigned_to: Optional[uuid.UUID] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Client], int]:
        query = select(Client)
        matches = search_filter(
            search, (Client.first_name, Client.last_name, Client.email, Client.company)
        )
        if matches is not None:
            query = query.where(matches)
        if status:
            query = query.where(Client.status == status)
        by_industry = search_filter(industry, (Client.industry,))
        if by_industry is not None:
            query = query.where(by_industry)
        if assigned_to:
            query = query.where(Client.assigned_to_id == assigned_to)
        query = apply_sort(query, Client, sort_by, sort_order, SORTABLE)
        return await paginate(self.db, query, page, limit)

    async def get_client(self, client_id: uuid.UUID) -> Client:
        client = await self.db.get(Client, client_id)
        if not client:
            raise NotFoundError("Client not found")
        return client

    async def create_client(self, actor: User, body: ClientCreate, ctx: RequestContext) -> Client:
        email = normalize_email(body.email)
        if await self._email_taken(email):
            raise ConflictError(EMAIL_TAKEN)

        data = body.model_dump(exclude={"email", "address"})
        client = Client(
            **data,
            email=email,
            address=body.address.model_dump(by_alias=True) if body.address else {},
        )
        self.db.add(client)
        await self._commit_unique()

        await self.activity.create_log(
            actor.id,
            "CREATE_CLIENT",
            "client",
            f"Created new client: {client.first_name} {client.last_name}",
            category=Category.CLIENT.value,
            severity=Severity.MEDIUM.value,
            resource_id=str(client.id),
            metadata={"company": client.company, "source": client.source},
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return client

    async def update_client(
        self, actor: User, client_id: uuid.UUID, body: ClientUpdate, ctx: RequestContext
    ) -> Client:
        client = await self.get_client(client_id)
        changes = drop_null_fields(
            body.model_dump(exclude_unset=True, exclude={"address", "social_links"}), NON_NULLABLE
        )

        if changes.get("email"):
            changes["email"] = normalize_email(changes["email"])
            if await self._email_taken(changes["email"], exclude_id=client.id):
                raise ConflictError(EMAIL_TAKEN)
        if body.address is not None:
            changes["address"] = body.address.model_dump(by_alias=True)
        if body.social_links is not None:
            changes["social_links"] = body.social_links.model_dump(by_alias=True)

        for field, value in changes.items():
            setattr(client, field, value)
        await self._commit_unique()

        await self.activity.create_log(
            actor.id,
            "UPDATE_CLIENT",
            "client",
            f"Updated client: {client.first_name} {client.last_name}",
            category=Category.CLIENT.value,
            resource_id=str(client.id),
            metadata={"updatedFields": sorted(changes)},
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return client

    async def delete_client(self, actor: User, client_id: uuid.UUID, ctx: RequestContext) -> None:
        client = await self.get_client(client_id)
        name = f"{client.first_name} {client.last_name}"
        await self.db.execute(delete(Project).where(Project.client_id == client.id))
        await self.db.delete(client)
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "DELETE_CLIENT",
            "client",
            f"Deleted client: {name}",
            category=Category.CLIENT.value,
            severity=Severity.HIGH.value,
            resource_id=str(client_id),
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )

    async def add_note(
        self, actor: User, client_id: uuid.UUID, content: str, ctx: RequestContext
    ) -> Client:
        client = await self.get_client(client_id)
        client.notes = append_note(client.notes, content, actor)
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "ADD_CLIENT_NOTE",
            "client",
            f"Added note to client: {client.first_name} {client.last_name}",
            category=Category.CLIENT.value,
            resource_id=str(client.id),
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return client
