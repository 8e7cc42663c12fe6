"""Role management and Site Admin permission propagation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from loxodon.core.errors import ValidationError
from loxodon.db.session import atomic
from loxodon.models import DEFAULT_ROLE_TITLES, SITE_ADMIN_TITLE, Role, User, is_platform_admin_title
from loxodon.models.role import is_site_admin_title

logger = logging.getLogger(__name__)

GEOLOCATION_PERMISSIONS = ("location.read", "location.update")


@dataclass(slots=True)
class RoleUpdateResult:
    role: Role
    pruned_role_ids: list[int] = field(default_factory=list)
    propagation_error: str | None = None


def list_roles(session: Session, *, tenant_id: str | None = None) -> list[Role]:
    statement = select(Role)
    if tenant_id is not None:
        statement = statement.where(Role.tenant_id == tenant_id)
    return list(session.scalars(statement.order_by(Role.id)).all())


def get_role(session: Session, role_id: int) -> Role | None:
    return session.get(Role, role_id)


def get_site_admin_role(session: Session, tenant_id: str) -> Role | None:
    for role in list_roles(session, tenant_id=tenant_id):
        if role.is_site_admin:
            return role
    return None


def enforce_site_admin_ceiling(
    session: Session,
    tenant_id: str,
    title: str,
    permissions: list[str] | None,
    *,
    role_id: int | None = None,
) -> None:
    """Reject permissions the tenant's Site Admin role does not hold.

    Site Admin and platform admin roles are exempt, as are tenants without a
    Site Admin role.
    """

    if is_site_admin_title(title) or is_platform_admin_title(title):
        return
    site_admin = get_site_admin_role(session, tenant_id)
    if site_admin is None or site_admin.id == role_id:
        return
    ceiling = set(site_admin.permissions or [])
    excess = [perm for perm in dict.fromkeys(permissions or []) if perm not in ceiling]
    if excess:
        raise ValidationError(f"Permissions not held by {SITE_ADMIN_TITLE}: {', '.join(excess)}")


def create_role(
    session: Session,
    *,
    title: str,
    tenant_id: str,
    permissions: list[str],
    description: str | None = None,
) -> Role:
    enforce_site_admin_ceiling(session, tenant_id, title, permissions)
    role = Role(
        title=title,
        tenant_id=tenant_id,
        description=description,
        permissions=list(dict.fromkeys(permissions)),
    )
    session.add(role)
    session.commit()
    session.refresh(role)
    return role


def create_defaults_for_tenant(session: Session, tenant_id: str) -> list[Role]:
    """Create the conventional roles for a tenant, skipping titles that already exist."""

    existing = {role.title.strip().lower() for role in list_roles(session, tenant_id=tenant_id)}
    created: list[Role] = []
    for title in DEFAULT_ROLE_TITLES:
        if title.lower() in existing:
            continue
        role = Role(title=title, tenant_id=tenant_id, description=None, permissions=[])
        session.add(role)
        created.append(role)
    session.flush()
    return created


def set_site_admin_permissions(
    session: Session, tenant_id: str, permissions: tuple[str, ...], *, enabled: bool
) -> Role | None:
    """Add or remove the given permissions on the tenant's Site Admin role."""

    role = get_site_admin_role(session, tenant_id)
    if role is None:
        logger.warning("tenant %s has no %s role", tenant_id, SITE_ADMIN_TITLE)
        return None
    current = list(role.permissions or [])
    if enabled:
        updated = current + [perm for perm in permissions if perm not in current]
    else:
        updated = [perm for perm in current if perm not in permissions]
    role.permissions = updated
    session.flush()
    return role


def update_role(
    session: Session,
    role: Role,
    *,
    changes: dict[str, object],
) -> RoleUpdateResult:
    """Apply ``changes`` to ``role`` and, for a Site Admin, prune its siblings.

    The role update commits first. When the role's title before the update was
    Site Admin, its new permission list becomes the ceiling for every other
    role of the tenant except platform admin roles; the pruning runs as one
    separate transaction, so a failure there leaves the Site Admin update in
    place and no sibling modified. Any other role must stay within the ceiling.
    """

    was_site_admin = is_site_admin_title(role.title)
    if not was_site_admin and ("permissions" in changes or "title" in changes):
        enforce_site_admin_ceiling(
            session,
            role.tenant_id,
            changes.get("title", role.title),  # type: ignore[arg-type]
            changes.get("permissions", role.permissions),  # type: ignore[arg-type]
            role_id=role.id,
        )
    for field_name, value in changes.items():
        if field_name == "permissions" and value is not None:
            value = list(dict.fromkeys(value))  # type: ignore[arg-type]
        setattr(role, field_name, value)
    session.commit()
    session.refresh(role)

    result = RoleUpdateResult(role=role)
    if not was_site_admin:
        return result

    try:
        result.pruned_role_ids = propagate_site_admin_ceiling(session, role)
    except Exception as exc:
        logger.error(
            "failed to propagate site admin permissions for tenant %s",
            role.tenant_id,
            exc_info=True,
        )
        result.propagation_error = str(exc)
    session.refresh(role)
    return result


def propagate_site_admin_ceiling(session: Session, site_admin: Role) -> list[int]:
    """Remove from sibling roles every permission the Site Admin does not hold."""

    with atomic(session):
        return prune_to_site_admin(session, site_admin)


def prune_to_site_admin(session: Session, site_admin: Role) -> list[int]:
    """Prune siblings of ``site_admin`` within the caller's transaction."""

    ceiling = set(site_admin.permissions or [])
    pruned: list[int] = []
    siblings = session.scalars(
        select(Role).where(Role.tenant_id == site_admin.tenant_id, Role.id != site_admin.id)
    ).all()
    for sibling in siblings:
        if is_platform_admin_title(sibling.title):
            continue
        current = list(sibling.permissions or [])
        kept = [perm for perm in current if perm in ceiling]
        if kept != current:
            sibling.permissions = kept
            pruned.append(sibling.id)
    session.flush()
    return pruned


def delete_role(session: Session, role: Role) -> None:
    """Delete a role after detaching the users that reference it."""

    with atomic(session):
        session.execute(update(User).where(User.role_id == role.id).values(role_id=None))
        session.delete(role)


__all__ = [
    "GEOLOCATION_PERMISSIONS",
    "RoleUpdateResult",
    "create_defaults_for_tenant",
    "create_role",
    "delete_role",
    "enforce_site_admin_ceiling",
    "get_role",
    "get_site_admin_role",
    "list_roles",
    "propagate_site_admin_ceiling",
    "prune_to_site_admin",
    "set_site_admin_permissions",
    "update_role",
]
