"""Schemas for users, login and the token round trips."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field, model_validator

from backoffice.schemas.common import PHONE, URL_OR_EMPTY, CamelModel, Pagination

RoleName = Literal["super_admin", "admin", "staff"]

_PERSON_NAME = r"^[a-zA-Z\s'-]+$"


class UserRead(CamelModel):
    """Outward view of a user. There is no password field, by construction."""
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: RoleName
    is_active: bool
    last_login: Optional[datetime] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    avatar: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=50, pattern=_PERSON_NAME)
    last_name: str = Field(..., min_length=1, max_length=50, pattern=_PERSON_NAME)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: RoleName
    phone: Optional[str] = Field(None, pattern=PHONE)
    department: Optional[str] = Field(None, max_length=100)


class UserUpdate(CamelModel):
    """Partial update — only provided fields are applied."""
    first_name: Optional[str] = Field(None, min_length=1, max_length=50, pattern=_PERSON_NAME)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50, pattern=_PERSON_NAME)
    email: Optional[EmailStr] = None
    role: Optional[RoleName] = None
    phone: Optional[str] = Field(None, pattern=PHONE)
    department: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None


class PasswordReset(CamelModel):
    new_password: str = Field(..., min_length=8)


class ProfileUpdate(CamelModel):
    """Fields a user may change on their own account."""
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: Optional[str] = Field(None, pattern=PHONE)
    department: Optional[str] = Field(None, max_length=100)
    avatar: Optional[str] = Field(None, pattern=URL_OR_EMPTY)


class PasswordChange(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)
    confirm_password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class UserList(CamelModel):
    users: list[UserRead]
    pagination: Pagination


# ─── Auth round trips ────────────────────────────────────


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(CamelModel):
    success: bool = True
    token: str
    refresh_token: str
    user: UserRead
    message: str = "Login successful"


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class RefreshResponse(CamelModel):
    success: bool = True
    token: str
    message: str = "Token refreshed successfully"


class ProfileResponse(CamelModel):
    success: bool = True
    user: UserRead
    message: Optional[str] = None
