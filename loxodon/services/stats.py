"""Aggregate counts for the administration dashboard."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from loxodon.core.dates import months_before, utcnow
from loxodon.models import Customer, User, UserStatus


@dataclass(slots=True, frozen=True)
class RangeCounts:
    last7days: int
    last_month: int
    last_year: int


@dataclass(slots=True, frozen=True)
class Overview:
    active_customers: int
    total_users: int
    new_users: RangeCounts
    deleted_users: RangeCounts
    active_now: int


def overview(
    session: Session,
    *,
    tenant_id: str | None = None,
    now: datetime | None = None,
    active_window_seconds: int = 120,
) -> Overview:
    """Count customers and users, optionally restricted to one tenant."""

    now = now or utcnow()
    starts = (now - timedelta(days=7), months_before(now, 1), months_before(now, 12))

    def _count_users(*criteria) -> int:
        statement = select(func.count()).select_from(User)
        if tenant_id is not None:
            statement = statement.where(User.tenant_id == tenant_id)
        return int(session.scalar(statement.where(*criteria)) or 0)

    customers = select(func.count()).select_from(Customer).where(Customer.active.is_(True))
    if tenant_id is not None:
        customers = customers.where(Customer.tenant_id == tenant_id)

    new_users = RangeCounts(*(_count_users(User.created_at >= start) for start in starts))
    deleted_users = RangeCounts(
        *(_count_users(User.status == UserStatus.DELETED, User.updated_at >= start) for start in starts)
    )
    cutoff = now - timedelta(seconds=active_window_seconds)
    return Overview(
        active_customers=int(session.scalar(customers) or 0),
        total_users=_count_users(),
        new_users=new_users,
        deleted_users=deleted_users,
        active_now=_count_users(User.last_active >= cutoff),
    )


__all__ = ["Overview", "RangeCounts", "overview"]
