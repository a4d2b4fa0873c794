"""User schemas."""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from crowdfund.models.user import UserRole

CONTACT_PATTERN = r"^\d{10}$"


class UserProfile(BaseModel):
    firstname: str | None = Field(default=None, max_length=100)
    lastname: str | None = Field(default=None, max_length=100)
    contact: str | None = Field(default=None, pattern=CONTACT_PATTERN)
    address: str | None = Field(default=None, max_length=255)
    purpose: str | None = None


class UserCreate(UserProfile):
    username: str = Field(min_length=1, max_length=100)
    email: EmailStr
    role: UserRole = UserRole.DONOR
    is_active: bool = True


class UserUpdate(UserProfile):
    """Self-service profile change; role and activation stay admin-managed."""

    username: str | None = Field(default=None, min_length=6, max_length=100)
    email: EmailStr | None = None


class UserRead(BaseModel):
    id: int
    username: str
    # Erased accounts carry a placeholder address, so no deliverability check here.
    email: str
    role: UserRole
    is_active: bool
    firstname: str | None = None
    lastname: str | None = None
    contact: str | None = None
    address: str | None = None
    purpose: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserDeleted(BaseModel):
    user_id: int
    mode: Literal["deleted", "erased"]
