"""Pydantic schemas for audit log resources."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from loxodon.schemas.common import CamelModel


class AuditLogCreate(CamelModel):
    tenant_id: str = Field(..., min_length=1, max_length=64)
    user_id: str = Field(..., min_length=1, max_length=64)
    action: str = Field(..., min_length=1, max_length=128)
    description: str = Field(..., min_length=1)


class AuditLogRead(CamelModel):
    id: int
    tenant_id: str
    user_id: str
    action: str
    description: str
    created_at: datetime


__all__ = ["AuditLogCreate", "AuditLogRead"]
