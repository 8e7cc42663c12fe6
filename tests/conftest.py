from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

TEST_JWT_SECRET = "test-signing-secret"

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["JWT_SECRET"] = TEST_JWT_SECRET
os.environ["JWT_ALGORITHMS"] = '["HS256"]'
os.environ["ENABLE_TRACING"] = "false"

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt  # type: ignore[import-untyped]
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from loxodon.api.deps import get_db_session, get_directory_client
from loxodon.main import app
from loxodon.models import Base, Customer, Role, User, UserStatus
from loxodon.services.directory import DirectoryClient

engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@dataclass
class FakeGraph:
    """In-memory stand-in for the Graph endpoints used by ``DirectoryClient``."""

    users: list[dict[str, Any]] = field(default_factory=list)
    sign_ins: list[dict[str, Any]] = field(default_factory=list)
    fail_users: bool = False
    requests: list[httpx.Request] = field(default_factory=list)

    def add_user(self, oid: str, email: str, name: str | None = None) -> None:
        self.users.append({"id": oid, "mail": email, "userPrincipalName": email, "displayName": name})

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/oauth2/v2.0/token"):
            return httpx.Response(200, json={"access_token": "graph-token", "token_type": "Bearer"})
        if request.url.path.endswith("/users"):
            if self.fail_users:
                return httpx.Response(503, text="unavailable")
            return httpx.Response(200, json={"value": list(self.users)})
        if request.url.path.endswith("/auditLogs/signIns"):
            return httpx.Response(200, json={"value": list(self.sign_ins)})
        return httpx.Response(404, json={"error": "not found"})


def build_directory_client(graph: FakeGraph) -> DirectoryClient:
    return DirectoryClient(
        tenant_id="directory-tenant",
        client_id="client-id",
        client_secret="client-secret",
        authority_url="https://login.test",
        graph_url="https://graph.test/v1.0",
        client=httpx.Client(transport=httpx.MockTransport(graph.handle)),
    )


def make_token(oid: str | None = None, *, roles: list[str] | None = None, **extra: Any) -> str:
    now = datetime.now(timezone.utc)
    claims: dict[str, Any] = {"iat": int(now.timestamp()), "exp": int((now + timedelta(hours=1)).timestamp())}
    if oid is not None:
        claims["oid"] = oid
    if roles is not None:
        claims["roles"] = roles
    claims.update(extra)
    return jwt.encode(claims, TEST_JWT_SECRET, algorithm="HS256")


def bearer(oid: str | None = None, *, roles: list[str] | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(oid, roles=roles)}"}


class Seeder:
    """Helpers that insert committed rows for a test."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def customer(self, tenant_id: str, domain: str | None = None, *, active: bool = True) -> Customer:
        customer = Customer(tenant_id=tenant_id, domain=domain or f"{tenant_id.lower()}.example", active=active)
        self.session.add(customer)
        self.session.commit()
        return customer

    def role(self, tenant_id: str, title: str, permissions: list[str] | None = None) -> Role:
        role = Role(tenant_id=tenant_id, title=title, permissions=list(permissions or []))
        self.session.add(role)
        self.session.commit()
        return role

    def user(
        self,
        oid: str,
        tenant_id: str,
        *,
        role: Role | None = None,
        email: str | None = None,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> User:
        user = User(
            oid=oid,
            email=email or f"{oid}@{tenant_id.lower()}.example",
            tenant_id=tenant_id,
            role_id=role.id if role is not None else None,
            status=status,
        )
        self.session.add(user)
        self.session.commit()
        return user

    def member(self, oid: str, tenant_id: str, permissions: list[str], *, title: str | None = None) -> User:
        """A user holding a fresh role with ``permissions``."""

        role = self.role(tenant_id, title or f"{oid}-role", permissions)
        return self.user(oid, tenant_id, role=role)


@pytest.fixture()
def db_session() -> Iterator[Session]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture()
def seed(db_session: Session) -> Seeder:
    return Seeder(db_session)


@pytest.fixture()
def graph() -> FakeGraph:
    return FakeGraph()


@pytest.fixture()
def directory_client(graph: FakeGraph) -> Iterator[DirectoryClient]:
    client = build_directory_client(graph)
    yield client
    client.close()


@pytest.fixture()
def client(db_session: Session, directory_client: DirectoryClient) -> Iterator[TestClient]:
    def override_get_db() -> Iterator[Session]:
        try:
            yield db_session
        finally:
            db_session.rollback()

    def override_directory() -> Iterator[DirectoryClient]:
        yield directory_client

    app.dependency_overrides[get_db_session] = override_get_db
    app.dependency_overrides[get_directory_client] = override_directory

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_db_session, None)
    app.dependency_overrides.pop(get_directory_client, None)


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    """Headers for a caller granted platform admin by the token alone."""

    return bearer("platform-operator", roles=["Platform Admin"])
