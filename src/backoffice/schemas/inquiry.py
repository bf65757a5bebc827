"""Schemas for inquiries (contact form submissions)."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field

from backoffice.schemas.common import CamelModel, Note, Pagination

InquiryStatus = Literal["unread", "read", "in_progress", "resolved", "closed"]
Priority = Literal["low", "medium", "high", "urgent"]
InquirySource = Literal["website", "email", "phone", "referral", "social_media", "other"]


class InquiryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = None
    company: Optional[str] = Field(None, max_length=100)
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    category: str = Field(..., min_length=1, max_length=50)
    priority: Priority = "medium"
    source: InquirySource = "website"


class InquiryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    company: Optional[str] = Field(None, max_length=100)
    subject: Optional[str] = Field(None, min_length=1, max_length=200)
    message: Optional[str] = Field(None, min_length=1, max_length=2000)
    status: Optional[InquiryStatus] = None
    priority: Optional[Priority] = None
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    assigned_to_id: Optional[uuid.UUID] = Field(None, alias="assignedTo")
    tags: Optional[list[str]] = None
    is_archived: Optional[bool] = None


class InquiryRead(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    subject: str
    message: str
    status: InquiryStatus
    priority: Priority
    category: str
    source: InquirySource
    assigned_to_id: Optional[uuid.UUID] = Field(None, alias="assignedTo")
    tags: list[str]
    notes: list[Note]
    is_archived: bool
    responded_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class InquiryList(CamelModel):
    inquiries: list[InquiryRead]
    pagination: Pagination
