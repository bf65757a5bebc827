"""Schemas for client projects."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from backoffice.schemas.common import CamelModel, Note, Pagination

ProjectStatus = Literal["planning", "in_progress", "on_hold", "completed", "cancelled"]
Priority = Literal["low", "medium", "high", "urgent"]


class Milestone(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    due_date: Optional[datetime] = None
    completed: bool = False
    completed_at: Optional[datetime] = None


class ProjectCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    client_id: uuid.UUID = Field(..., alias="client")
    assigned_to: list[uuid.UUID] = Field(..., min_length=1)
    status: ProjectStatus = "planning"
    priority: Priority = "medium"
    category: str = Field(..., min_length=1, max_length=50)
    services: list[str] = Field(..., min_length=1)
    budget: Optional[float] = Field(None, ge=0)
    estimated_hours: Optional[float] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)


class ProjectUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    assigned_to: Optional[list[uuid.UUID]] = Field(None, min_length=1)
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    services: Optional[list[str]] = Field(None, min_length=1)
    budget: Optional[float] = Field(None, ge=0)
    estimated_hours: Optional[float] = Field(None, ge=0)
    actual_hours: Optional[float] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    tags: Optional[list[str]] = None
    milestones: Optional[list[Milestone]] = None
    is_archived: Optional[bool] = None


class ProjectRead(CamelModel):
    id: uuid.UUID
    title: str
    description: str
    client_id: uuid.UUID = Field(..., alias="client")
    assigned_to: list[uuid.UUID]
    status: ProjectStatus
    priority: Priority
    category: str
    services: list[str]
    budget: Optional[float] = None
    estimated_hours: Optional[float] = None
    actual_hours: float
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    progress: int
    tags: list[str]
    milestones: list[Milestone]
    notes: list[Note]
    is_archived: bool
    created_at: datetime
    updated_at: datetime


class ProjectList(CamelModel):
    projects: list[ProjectRead]
    pagination: Pagination
