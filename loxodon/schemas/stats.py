"""Schemas for aggregate statistics."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from loxodon.core.dates import LoginStatsRange
from loxodon.schemas.common import CamelModel


class RangeCounts(CamelModel):
    last7days: int = Field(..., alias="last7days")
    last_month: int
    last_year: int


class StatsOverview(CamelModel):
    active_customers: int
    total_users: int
    new_users: RangeCounts
    deleted_users: RangeCounts
    active_now: int


class LoginStats(CamelModel):
    range: LoginStatsRange
    from_: datetime = Field(..., alias="from")
    to: datetime
    success_count: int
    failure_count: int


__all__ = ["LoginStats", "LoginStatsRange", "RangeCounts", "StatsOverview"]
