"""User queries, updates and directory synchronisation."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from loxodon.core.dates import utcnow
from loxodon.models import Customer, User, UserStatus
from loxodon.obs.metrics import DIRECTORY_SYNC_COUNTER
from loxodon.services.directory import DirectoryClient, DirectoryNotConfiguredError, DirectoryUser

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ActivityResult:
    user: User
    first_login_set: bool


@dataclass(slots=True, frozen=True)
class SyncResult:
    """Outcome of one directory sync; ``error`` is set when the sync was abandoned."""

    inserted: int = 0
    marked_deleted: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def list_by_tenant(session: Session, tenant_id: str) -> list[User]:
    statement = select(User).where(User.tenant_id == tenant_id).order_by(User.created_at.desc(), User.oid)
    return list(session.scalars(statement).all())


def get_by_oid(session: Session, oid: str) -> User | None:
    return session.get(User, oid)


def update_user(session: Session, user: User, *, changes: dict[str, object]) -> User:
    for field_name, value in changes.items():
        setattr(user, field_name, value)
    session.commit()
    session.refresh(user)
    return user


def soft_delete(session: Session, user: User) -> User:
    """Mark the user deleted; the row stays for reporting."""

    user.status = UserStatus.DELETED
    session.commit()
    session.refresh(user)
    return user


def touch_activity(session: Session, user: User, *, now: datetime | None = None) -> ActivityResult:
    """Record activity; ``first_login`` is set only the first time."""

    timestamp = now or utcnow()
    first_login_set = user.first_login is None
    if first_login_set:
        user.first_login = timestamp
    user.last_active = timestamp
    session.commit()
    session.refresh(user)
    return ActivityResult(user=user, first_login_set=first_login_set)


def upsert_directory_users(session: Session, tenant_id: str, directory_users: Iterable[DirectoryUser]) -> int:
    """Insert directory users whose oid is not stored yet; existing rows are left untouched."""

    incoming: dict[str, str] = {}
    for entry in directory_users:
        incoming.setdefault(entry.oid, entry.email)
    if not incoming:
        return 0
    existing = set(session.scalars(select(User.oid).where(User.oid.in_(list(incoming)))).all())
    inserted = 0
    for oid, email in incoming.items():
        if oid in existing:
            continue
        session.add(User(oid=oid, email=email, tenant_id=tenant_id, status=UserStatus.ACTIVE))
        inserted += 1
    session.flush()
    return inserted


def mark_missing_as_deleted(session: Session, tenant_id: str, present_oids: Iterable[str]) -> int:
    """Soft-delete the tenant's users absent from ``present_oids``.

    An empty ``present_oids`` marks every user of the tenant deleted.
    """

    oids = list(present_oids)
    statement = update(User).where(User.tenant_id == tenant_id, User.status != UserStatus.DELETED)
    if oids:
        statement = statement.where(User.oid.not_in(oids))
    result = session.execute(
        statement.values(status=UserStatus.DELETED, updated_at=utcnow()),
        execution_options={"synchronize_session": "fetch"},
    )
    return result.rowcount or 0


def sync_directory_users(session: Session, directory: DirectoryClient, customer: Customer) -> SyncResult:
    """Mirror the directory's users for the customer's domain.

    Failures are logged and swallowed; the session is left clean either way.
    """

    tenant_id = customer.tenant_id
    try:
        fetched = directory.list_domain_users(customer.domain)
        inserted = upsert_directory_users(session, tenant_id, fetched)
        marked = mark_missing_as_deleted(session, tenant_id, (entry.oid for entry in fetched))
        session.commit()
    except DirectoryNotConfiguredError as exc:
        session.rollback()
        logger.warning("directory sync skipped for tenant %s: %s", tenant_id, exc)
        DIRECTORY_SYNC_COUNTER.labels(outcome="skipped").inc()
        return SyncResult(error=str(exc))
    except Exception as exc:
        session.rollback()
        logger.error("directory sync failed for tenant %s", tenant_id, exc_info=True)
        DIRECTORY_SYNC_COUNTER.labels(outcome="failed").inc()
        return SyncResult(error=str(exc))
    DIRECTORY_SYNC_COUNTER.labels(outcome="succeeded").inc()
    logger.info(
        "directory sync for tenant %s inserted %d users and marked %d deleted", tenant_id, inserted, marked
    )
    return SyncResult(inserted=inserted, marked_deleted=marked)


__all__ = [
    "ActivityResult",
    "SyncResult",
    "get_by_oid",
    "list_by_tenant",
    "mark_missing_as_deleted",
    "soft_delete",
    "sync_directory_users",
    "touch_activity",
    "update_user",
    "upsert_directory_users",
]
