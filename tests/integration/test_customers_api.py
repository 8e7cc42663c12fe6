from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from loxodon.models import AuditLog, Customer, Role, User
from tests.conftest import FakeGraph, bearer


def test_create_customer_seeds_roles_and_users(
    client: TestClient, db_session: Session, graph: FakeGraph, admin_headers: dict[str, str]
) -> None:
    graph.add_user("u-1", "ann@acme.com", "Ann")
    graph.add_user("u-2", "bob@other.com", "Bob")

    response = client.post("/customers", json={"domain": "acme.com", "tenantId": "T1"}, headers=admin_headers)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["domain"] == "acme.com"
    assert data["tenantId"] == "T1"
    assert data["active"] is True
    assert data["autoSync"] is False

    roles = client.get("/roles", params={"tenantId": "T1"}, headers=admin_headers).json()
    assert roles["count"] == 3
    assert {role["title"] for role in roles["data"]} == {"Site Admin", "Viewer", "Manager"}
    assert all(role["permissions"] == [] for role in roles["data"])

    users = db_session.query(User).filter(User.tenant_id == "T1").all()
    assert [user.oid for user in users] == ["u-1"]


def test_create_customer_with_geolocation_grants_site_admin(
    client: TestClient, db_session: Session, admin_headers: dict[str, str]
) -> None:
    response = client.post(
        "/customers",
        json={"domain": "acme.com", "tenantId": "T1", "geolocationEnabled": True},
        headers=admin_headers,
    )

    assert response.status_code == 201
    site_admin = db_session.query(Role).filter(Role.tenant_id == "T1", Role.title == "Site Admin").one()
    assert site_admin.permissions == ["location.read", "location.update"]


def test_create_customer_survives_directory_outage(
    client: TestClient, db_session: Session, graph: FakeGraph, admin_headers: dict[str, str]
) -> None:
    graph.fail_users = True

    response = client.post("/customers", json={"domain": "acme.com", "tenantId": "T1"}, headers=admin_headers)

    assert response.status_code == 201
    assert db_session.query(Role).filter(Role.tenant_id == "T1").count() == 3


def test_duplicate_customer_conflicts(client: TestClient, seed, admin_headers: dict[str, str]) -> None:
    seed.customer("T1")

    response = client.post("/customers", json={"domain": "acme.com", "tenantId": "T1"}, headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["success"] is False


def test_tenant_member_cannot_create_customers(client: TestClient, seed) -> None:
    seed.customer("T1")
    seed.member("alice", "T1", ["customers.read", "customers.update"])

    response = client.post(
        "/customers", json={"domain": "new.com", "tenantId": "T9"}, headers=bearer("alice")
    )

    assert response.status_code == 403


def test_tenant_member_lists_only_own_customer(client: TestClient, seed) -> None:
    seed.customer("T1")
    seed.customer("T2")
    seed.member("alice", "T1", ["customers.read"])

    listed = client.get("/customers", headers=bearer("alice")).json()
    other = client.get("/customers/T2", headers=bearer("alice"))

    assert [customer["tenantId"] for customer in listed["data"]] == ["T1"]
    assert other.status_code == 403


def test_platform_admin_role_sees_every_customer(client: TestClient, seed) -> None:
    seed.customer("T1")
    seed.customer("T2")
    seed.member("root", "T1", [], title="Platform Admin")

    listed = client.get("/customers", headers=bearer("root")).json()

    assert listed["count"] == 2


def test_unknown_customer_is_not_found(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.get("/customers/nope", headers=admin_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Customer not found"}


def test_update_customer_and_disable_geolocation(
    client: TestClient, db_session: Session, seed
) -> None:
    seed.customer("T1")
    seed.role("T1", "Site Admin", ["users.read", "location.read", "location.update"])
    viewer = seed.role("T1", "Viewer", ["users.read", "location.read"])
    seed.member("alice", "T1", ["customers.update"])

    response = client.put(
        "/customers/T1",
        json={"active": False, "autoSync": True, "geolocationEnabled": False},
        headers=bearer("alice"),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["active"] is False
    assert data["autoSync"] is True
    db_session.refresh(viewer)
    assert viewer.permissions == ["users.read"]
    logs = db_session.query(AuditLog).filter(AuditLog.action == "customers.update").all()
    assert [(log.tenant_id, log.user_id) for log in logs] == [("T1", "alice")]


def test_delete_customer_cascades(client: TestClient, db_session: Session, seed, admin_headers) -> None:
    seed.customer("T1")
    seed.customer("T2")
    seed.member("alice", "T1", ["users.read"])
    seed.member("bob", "T2", ["users.read"])

    response = client.delete("/customers/T1", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["tenantId"] == "T1"
    assert db_session.get(Customer, "T1") is None
    assert db_session.query(User).filter(User.tenant_id == "T1").count() == 0
    assert db_session.query(Role).filter(Role.tenant_id == "T1").count() == 0
    assert db_session.query(User).filter(User.tenant_id == "T2").count() == 1


def test_member_cannot_update_another_customer(client: TestClient, db_session: Session, seed) -> None:
    seed.customer("T1")
    foreign = seed.customer("T2")
    seed.member("alice", "T1", ["customers.update"])

    response = client.put("/customers/T2", json={"active": False}, headers=bearer("alice"))

    assert response.status_code == 403
    db_session.refresh(foreign)
    assert foreign.active is True
