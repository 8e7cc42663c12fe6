"""Common dependencies for API routes."""
from __future__ import annotations

from collections.abc import Callable, Iterator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from loxodon.core.config import get_settings
from loxodon.core.errors import AuthenticationError, ValidationError
from loxodon.db.session import SessionLocal
from loxodon.services.authorization import AccessContext
from loxodon.services.directory import DirectoryClient
from loxodon.services.identity import TokenClaims


def get_db_session() -> Iterator[Session]:
    """Yield a database session for FastAPI dependencies."""

    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def get_directory_client() -> Iterator[DirectoryClient]:
    client = DirectoryClient.from_settings(get_settings())
    try:
        yield client
    finally:
        client.close()


def get_claims(request: Request) -> TokenClaims:
    claims = getattr(request.state, "claims", None)
    if claims is None:
        raise AuthenticationError()
    return claims


def get_access_context(
    claims: TokenClaims = Depends(get_claims),
    session: Session = Depends(get_db_session),
) -> AccessContext:
    """One context per request; FastAPI caches it across dependants."""

    return AccessContext(session=session, claims=claims)


def parse_id(raw: str, message: str) -> int:
    """Parse a numeric path identifier, answering 400 with ``message`` otherwise."""

    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(message) from exc


def require_permissions(*permissions: str) -> Callable[..., AccessContext]:
    required = tuple(permissions)

    def dependency(access: AccessContext = Depends(get_access_context)) -> AccessContext:
        access.require_permissions(required)
        return access

    return dependency


def require_any_permission(*permissions: str) -> Callable[..., AccessContext]:
    required = tuple(permissions)

    def dependency(access: AccessContext = Depends(get_access_context)) -> AccessContext:
        access.require_any_permission(required)
        return access

    return dependency


def require_self_or_permission(permission: str) -> Callable[..., AccessContext]:
    """Allow the caller acting on their own ``oid`` path parameter, else require ``permission``."""

    def dependency(oid: str, access: AccessContext = Depends(get_access_context)) -> AccessContext:
        access.require_self_or_permission(permission, oid)
        return access

    return dependency


def require_global_access(access: AccessContext = Depends(get_access_context)) -> AccessContext:
    access.require_global_access()
    return access


__all__ = [
    "get_access_context",
    "get_claims",
    "get_db_session",
    "get_directory_client",
    "parse_id",
    "require_any_permission",
    "require_global_access",
    "require_permissions",
    "require_self_or_permission",
]
