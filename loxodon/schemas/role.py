"""Pydantic schemas for role resources."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from loxodon.schemas.common import CamelModel


class RoleCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    tenant_id: str = Field(..., alias="tenantID", min_length=1, max_length=64)
    description: str | None = None
    permissions: list[str] = Field(..., min_length=1)


class RoleUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    tenant_id: str | None = Field(default=None, alias="tenantID", min_length=1, max_length=64)
    description: str | None = None
    permissions: list[str] | None = None


class RoleRead(CamelModel):
    id: int
    title: str
    tenant_id: str = Field(..., alias="tenantID")
    description: str | None
    permissions: list[str]
    created_at: datetime
    updated_at: datetime


__all__ = ["RoleCreate", "RoleRead", "RoleUpdate"]
