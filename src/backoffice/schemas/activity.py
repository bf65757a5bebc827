"""Schemas for the audit trail."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from backoffice.schemas.common import CamelModel, Pagination


class ActivityRead(CamelModel):
    id: int
    user_id: uuid.UUID
    action: str
    resource: str
    resource_id: Optional[str] = None
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    severity: str
    category: str
    created_at: datetime


class ActivityList(CamelModel):
    activities: list[ActivityRead]
    pagination: Pagination
