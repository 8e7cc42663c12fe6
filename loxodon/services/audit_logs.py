"""Audit trail persistence, queries and CSV export."""
from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from loxodon.core.dates import iso_z
from loxodon.models import AuditLog, User
from loxodon.services.tasks import PostCommitTask

CSV_HEADER = "id,tenantId,userId,action,description,createdAt"


@dataclass(slots=True, frozen=True)
class AuditLogPage:
    items: list[AuditLog]
    total: int
    page: int
    limit: int


def normalize_page(page: str | int | None, limit: str | int | None, *, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Parse paging parameters, falling back to defaults for junk values."""

    def _positive(value: str | int | None, fallback: int) -> int:
        try:
            parsed = int(value) if value is not None else fallback
        except (TypeError, ValueError):
            return fallback
        return parsed if parsed > 0 else fallback

    return _positive(page, 1), min(_positive(limit, default_limit), max_limit)


def list_audit_logs(
    session: Session,
    *,
    page: int,
    limit: int,
    user_id: str | None = None,
    tenant_id: str | None = None,
) -> AuditLogPage:
    statement = select(AuditLog)
    count_statement = select(func.count()).select_from(AuditLog)
    if user_id:
        statement = statement.where(AuditLog.user_id == user_id)
        count_statement = count_statement.where(AuditLog.user_id == user_id)
    if tenant_id:
        statement = statement.where(AuditLog.tenant_id == tenant_id)
        count_statement = count_statement.where(AuditLog.tenant_id == tenant_id)

    statement = (
        statement.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = list(session.scalars(statement).all())
    total = int(session.scalar(count_statement) or 0)
    return AuditLogPage(items=items, total=total, page=page, limit=limit)


def get_audit_log(session: Session, log_id: int) -> AuditLog | None:
    return session.get(AuditLog, log_id)


def create_audit_log(
    session: Session, *, tenant_id: str, user_id: str, action: str, description: str
) -> AuditLog:
    log = AuditLog(tenant_id=tenant_id, user_id=user_id, action=action, description=description)
    session.add(log)
    session.flush()
    return log


def create_if_user_exists(
    session: Session, *, tenant_id: str, user_id: str, action: str, description: str
) -> AuditLog | None:
    """Append an entry unless the acting user no longer exists."""

    if session.get(User, user_id) is None:
        return None
    return create_audit_log(
        session, tenant_id=tenant_id, user_id=user_id, action=action, description=description
    )


def audit_task(
    *, tenant_id: str | None, user_id: str | None, action: str, description: str
) -> PostCommitTask:
    """Wrap an audit entry as a post-commit task; a missing actor or tenant is a no-op."""

    def _run(session: Session) -> AuditLog | None:
        if not tenant_id or not user_id:
            return None
        return create_if_user_exists(
            session, tenant_id=tenant_id, user_id=user_id, action=action, description=description
        )

    return PostCommitTask(name=f"audit:{action}", run=_run)


def list_by_date_range(
    session: Session,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    user_id: str | None = None,
    tenant_id: str | None = None,
) -> list[AuditLog]:
    statement = select(AuditLog)
    if user_id:
        statement = statement.where(AuditLog.user_id == user_id)
    if tenant_id:
        statement = statement.where(AuditLog.tenant_id == tenant_id)
    if start is not None:
        statement = statement.where(AuditLog.created_at >= start)
    if end is not None:
        statement = statement.where(AuditLog.created_at <= end)
    statement = statement.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    return list(session.scalars(statement).all())


def render_csv(logs: Sequence[AuditLog]) -> str:
    """Render logs as CSV with a JSON-quoted description column."""

    rows = [CSV_HEADER]
    for log in logs:
        rows.append(
            ",".join(
                [
                    str(log.id),
                    log.tenant_id,
                    log.user_id,
                    log.action,
                    json.dumps(log.description, ensure_ascii=False),
                    iso_z(log.created_at),
                ]
            )
        )
    return "\n".join(rows)


__all__ = [
    "AuditLogPage",
    "CSV_HEADER",
    "audit_task",
    "create_audit_log",
    "create_if_user_exists",
    "get_audit_log",
    "list_audit_logs",
    "list_by_date_range",
    "normalize_page",
    "render_csv",
]
