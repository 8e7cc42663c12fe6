"""Pydantic schemas for user resources."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from loxodon.models.user import UserStatus
from loxodon.schemas.common import CamelModel


class UserUpdate(CamelModel):
    email: str | None = Field(default=None, min_length=3, max_length=320)
    role_id: int | None = Field(default=None, alias="role")
    status: UserStatus | None = None


class UserRead(CamelModel):
    oid: str
    email: str
    tenant_id: str
    # read from the role_id column, exposed as "role"
    role_id: int | None = Field(default=None, validation_alias="role_id", serialization_alias="role")
    status: UserStatus
    first_login: datetime | None = None
    last_active: datetime | None = None
    created_at: datetime
    updated_at: datetime


class UserActivityRead(UserRead):
    first_login_set: bool = False


__all__ = ["UserActivityRead", "UserRead", "UserUpdate"]
