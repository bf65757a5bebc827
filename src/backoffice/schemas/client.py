"""Schemas for clients (customer records)."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field

from backoffice.schemas.common import URL_OR_EMPTY, CamelModel, Note, Pagination

ClientStatus = Literal["active", "inactive", "prospect", "former"]
ClientSource = Literal["inquiry", "referral", "cold_outreach", "conference", "social_media", "other"]


class Address(CamelModel):
    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)


class SocialLinks(CamelModel):
    linkedin: Optional[str] = Field(None, pattern=URL_OR_EMPTY)
    twitter: Optional[str] = Field(None, pattern=URL_OR_EMPTY)
    facebook: Optional[str] = Field(None, pattern=URL_OR_EMPTY)
    instagram: Optional[str] = Field(None, pattern=URL_OR_EMPTY)


class ClientCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: Optional[str] = None
    company: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    address: Optional[Address] = None
    website: Optional[str] = Field(None, pattern=URL_OR_EMPTY)
    industry: Optional[str] = Field(None, max_length=100)
    source: ClientSource = "inquiry"
    assigned_to_id: Optional[uuid.UUID] = Field(None, alias="assignedTo")
    tags: list[str] = Field(default_factory=list)


class ClientUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    company: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    address: Optional[Address] = None
    website: Optional[str] = Field(None, pattern=URL_OR_EMPTY)
    industry: Optional[str] = Field(None, max_length=100)
    status: Optional[ClientStatus] = None
    source: Optional[ClientSource] = None
    assigned_to_id: Optional[uuid.UUID] = Field(None, alias="assignedTo")
    tags: Optional[list[str]] = None
    social_links: Optional[SocialLinks] = None
    last_contact: Optional[datetime] = None
    next_follow_up: Optional[datetime] = None
    is_archived: Optional[bool] = None


class ClientRead(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    address: Address
    website: Optional[str] = None
    industry: Optional[str] = None
    status: ClientStatus
    source: ClientSource
    assigned_to_id: Optional[uuid.UUID] = Field(None, alias="assignedTo")
    tags: list[str]
    notes: list[Note]
    social_links: SocialLinks
    total_projects: int
    total_revenue: float
    last_contact: Optional[datetime] = None
    next_follow_up: Optional[datetime] = None
    is_archived: bool
    created_at: datetime
    updated_at: datetime


class ClientList(CamelModel):
    clients: list[ClientRead]
    pagination: Pagination
