"""SQLAlchemy ORM models — single source of truth for the database schema.

Declarative ORM mapping, SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Column types are the portable ones (Uuid, JSON) so the same models run on
PostgreSQL in deployment and SQLite in local development and tests.

Nested documents (addresses, notes, milestones, settings sections) live in
JSON columns; they are always replaced wholesale, never mutated in place.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UtcDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    PostgreSQL keeps the offset itself; SQLite stores wall-clock text, so
    values are normalized to UTC on the way in and tagged UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        value = as_utc(value)
        return value.astimezone(timezone.utc) if value is not None else None

    def process_result_value(self, value, dialect):
        return as_utc(value)


class Role(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    STAFF = "staff"


ADMIN_ROLES = (Role.SUPER_ADMIN.value, Role.ADMIN.value)


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Category(str, enum.Enum):
    AUTH = "auth"
    USER = "user"
    INQUIRY = "inquiry"
    CLIENT = "client"
    PROJECT = "project"
    SYSTEM = "system"
    SETTINGS = "settings"


# ══════════════════════════════════════════════════════════════
# Principals
# ══════════════════════════════════════════════════════════════


class User(Base):
    """A staff account that can log in to the admin panel.

    The password hash never leaves the service layer: read schemas do not
    declare it, so it cannot be serialized into a response.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.STAFF.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login: Mapped[Optional[datetime]] = mapped_column(UtcDateTime)
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    department: Mapped[Optional[str]] = mapped_column(String(100))
    avatar: Mapped[Optional[str]] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UtcDateTime, default=utcnow, onupdate=utcnow
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


# ══════════════════════════════════════════════════════════════
# Business entities
# ══════════════════════════════════════════════════════════════


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (
        Index("idx_clients_status", "status"),
        Index("idx_clients_assigned", "assigned_to_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    company: Mapped[Optional[str]] = mapped_column(String(100))
    position: Mapped[Optional[str]] = mapped_column(String(100))
    address: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    website: Mapped[Optional[str]] = mapped_column(String(500))
    industry: Mapped[Optional[str]] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="prospect")
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="inquiry")
    assigned_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    social_links: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    total_projects: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_revenue: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    last_contact: Mapped[Optional[datetime]] = mapped_column(UtcDateTime)
    next_follow_up: Mapped[Optional[datetime]] = mapped_column(UtcDateTime)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UtcDateTime, default=utcnow, onupdate=utcnow
    )


class Inquiry(Base):
    """A message submitted through the public contact form."""

    __tablename__ = "inquiries"
    __table_args__ = (
        Index("idx_inquiries_status", "status"),
        Index("idx_inquiries_priority", "priority"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    company: Mapped[Optional[str]] = mapped_column(String(100))
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="unread")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="website")
    assigned_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    responded_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UtcDateTime, default=utcnow, onupdate=utcnow
    )


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        Index("idx_projects_client", "client_id"),
        Index("idx_projects_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    assigned_to: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # user id strings
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="planning")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    services: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    budget: Mapped[Optional[float]] = mapped_column(Float)
    estimated_hours: Mapped[Optional[float]] = mapped_column(Float)
    actual_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    start_date: Mapped[Optional[datetime]] = mapped_column(UtcDateTime)
    end_date: Mapped[Optional[datetime]] = mapped_column(UtcDateTime)
    deadline: Mapped[Optional[datetime]] = mapped_column(UtcDateTime)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    milestones: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UtcDateTime, default=utcnow, onupdate=utcnow
    )


class SiteSettings(Base):
    """Singleton row (id=1) holding one JSON document per settings section.

    Stored sections may be partial; readers always go through
    ``schemas.settings.SettingsDocument`` which merges them over defaults.
    """

    __tablename__ = "site_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    general: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    notifications: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    security: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    appearance: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    integrations: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    backup: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UtcDateTime, default=utcnow, onupdate=utcnow
    )


# ══════════════════════════════════════════════════════════════
# Audit trail
# ══════════════════════════════════════════════════════════════


class ActivityLog(Base):
    """Append-only audit record of a privileged action.

    user_id is deliberately not a foreign key: entries outlive the accounts
    they mention (DELETE_USER is written about a row that is then removed).
    """

    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("idx_activity_user_created", "user_id", "created_at"),
        Index("idx_activity_category_created", "category", "created_at"),
        Index("idx_activity_severity_created", "severity", "created_at"),
        Index("idx_activity_action", "action"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_id: Mapped[Optional[str]] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    meta: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    # Python attr is "meta" because "metadata" is reserved by SQLAlchemy.
    ip_address: Mapped[Optional[str]] = mapped_column(String(64))
    user_agent: Mapped[Optional[str]] = mapped_column(String(500))
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default=Severity.LOW.value)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow)
