"""Caller authorization: permission resolution and tenant isolation.

Every request builds one ``AccessContext`` from the verified token claims and
the request's database session. The context resolves the caller's User row and
Role at most once and is then threaded through handlers and services, so that
permission checks and tenant scoping share the same memoized answer.

Two independent sources confer global (cross-tenant) access:

* a ``roles`` claim in the token naming the platform admin role, and
* a persisted Role whose title is the platform admin title, or whose
  permission list contains the ``"*"`` wildcard.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from loxodon.core.errors import AuthorizationError
from loxodon.models import User, WILDCARD_PERMISSION, is_platform_admin_title
from loxodon.services.identity import TokenClaims


@dataclass(slots=True, frozen=True)
class ResolvedAccess:
    """Effective permissions and tenant of the caller's persisted identity."""

    permissions: frozenset[str] = frozenset()
    tenant_id: str | None = None


@dataclass(slots=True)
class AccessContext:
    """Per-request authorization state for a single caller."""

    session: Session
    claims: TokenClaims
    _resolved: ResolvedAccess | None = field(default=None, init=False, repr=False)

    @property
    def oid(self) -> str | None:
        return self.claims.subject

    def resolve(self) -> ResolvedAccess:
        """Look up the caller's User and Role once per request."""

        if self._resolved is None:
            self._resolved = _load_access(self.session, self.oid)
        return self._resolved

    @property
    def permissions(self) -> frozenset[str]:
        return self.resolve().permissions

    @property
    def tenant_id(self) -> str | None:
        return self.resolve().tenant_id

    def token_grants_platform_admin(self) -> bool:
        return any(is_platform_admin_title(role) for role in self.claims.roles)

    def is_platform_admin(self) -> bool:
        if self.token_grants_platform_admin():
            return True
        if self.oid is None:
            return False
        return WILDCARD_PERMISSION in self.permissions

    def has_global_access(self) -> bool:
        return self.is_platform_admin() or WILDCARD_PERMISSION in self.permissions

    def has_all(self, required: Iterable[str]) -> bool:
        if self.has_global_access():
            return True
        granted = self.permissions
        return all(permission in granted for permission in required)

    def has_any(self, required: Iterable[str]) -> bool:
        if self.has_global_access():
            return True
        granted = self.permissions
        return any(permission in granted for permission in required)

    def is_self(self, subject_oid: str | None) -> bool:
        return self.oid is not None and subject_oid is not None and self.oid == subject_oid

    def require_permissions(self, required: Iterable[str]) -> None:
        if not self.has_all(required):
            raise AuthorizationError()

    def require_any_permission(self, required: Iterable[str]) -> None:
        if not self.has_any(required):
            raise AuthorizationError()

    def require_self_or_permission(self, permission: str, subject_oid: str | None) -> None:
        if self.token_grants_platform_admin() or self.is_self(subject_oid):
            return
        self.require_permissions([permission])

    def require_global_access(self) -> None:
        if not self.has_global_access():
            raise AuthorizationError()

    def ensure_tenant_access(self, resource_tenant_id: str) -> None:
        """Reject access to a resource owned by another tenant."""

        if self.has_global_access():
            return
        if self.tenant_id is None or self.tenant_id != resource_tenant_id:
            raise AuthorizationError()

    def ensure_can_grant(self, title: str, permissions: Iterable[str] | None) -> None:
        """Reject a tenant-bound caller granting a role that confers global access."""

        if self.has_global_access():
            return
        if is_platform_admin_title(title) or WILDCARD_PERMISSION in (permissions or ()):
            raise AuthorizationError()

    def scope_tenant(self, requested_tenant_id: str | None) -> str | None:
        """Return the tenant filter to apply to a list or export query.

        Global callers get their requested filter (or ``None`` for every
        tenant). Anyone else is pinned to their own tenant and may only repeat
        it explicitly; naming a different tenant is forbidden.
        """

        if self.has_global_access():
            return requested_tenant_id
        if self.tenant_id is None:
            raise AuthorizationError()
        if requested_tenant_id is not None and requested_tenant_id != self.tenant_id:
            raise AuthorizationError()
        return self.tenant_id


def _load_access(session: Session, oid: str | None) -> ResolvedAccess:
    if oid is None:
        return ResolvedAccess()
    user = session.get(User, oid)
    if user is None:
        return ResolvedAccess()
    role = user.role
    if role is None:
        return ResolvedAccess(tenant_id=user.tenant_id)
    if is_platform_admin_title(role.title):
        return ResolvedAccess(permissions=frozenset({WILDCARD_PERMISSION}), tenant_id=user.tenant_id)
    return ResolvedAccess(permissions=frozenset(role.permissions or ()), tenant_id=user.tenant_id)


__all__ = ["AccessContext", "ResolvedAccess"]
