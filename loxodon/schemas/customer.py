"""Pydantic schemas for customer resources."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from loxodon.schemas.common import CamelModel


class CustomerCreate(CamelModel):
    domain: str = Field(..., min_length=1, max_length=255)
    tenant_id: str = Field(..., min_length=1, max_length=64)
    auto_sync: bool = False
    geolocation_enabled: bool | None = None


class CustomerUpdate(CamelModel):
    domain: str | None = Field(default=None, min_length=1, max_length=255)
    active: bool | None = None
    auto_sync: bool | None = None
    geolocation_enabled: bool | None = None


class CustomerRead(CamelModel):
    domain: str
    tenant_id: str
    active: bool
    auto_sync: bool
    created_at: datetime
    updated_at: datetime


__all__ = ["CustomerCreate", "CustomerRead", "CustomerUpdate"]
