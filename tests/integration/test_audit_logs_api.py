from __future__ import annotations

from datetime import datetime, timezone

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from loxodon.models import AuditLog
from tests.conftest import bearer


def _add_logs(db_session: Session, tenant_id: str, user_id: str, days: range) -> None:
    for day in days:
        db_session.add(
            AuditLog(
                tenant_id=tenant_id,
                user_id=user_id,
                action="users.update",
                description=f"{tenant_id} day {day}",
                created_at=datetime(2024, 1, day, tzinfo=timezone.utc),
            )
        )
    db_session.commit()


def test_list_pages_newest_first(client: TestClient, db_session: Session, admin_headers) -> None:
    _add_logs(db_session, "T1", "alice", range(1, 6))

    response = client.get("/audit-logs", params={"page": 2, "limit": 2}, headers=admin_headers)

    body = response.json()
    assert response.status_code == 200
    assert (body["count"], body["page"], body["limit"]) == (5, 2, 2)
    assert [log["description"] for log in body["data"]] == ["T1 day 3", "T1 day 2"]
    assert body["data"][0]["tenantId"] == "T1"


def test_junk_paging_falls_back_to_defaults(client: TestClient, admin_headers) -> None:
    body = client.get("/audit-logs", params={"page": "x", "limit": "-1"}, headers=admin_headers).json()

    assert (body["page"], body["limit"], body["count"]) == (1, 20, 0)


def test_member_sees_own_tenant_and_view_is_audited(client: TestClient, db_session: Session, seed) -> None:
    seed.customer("T1")
    seed.customer("T2")
    seed.member("alice", "T1", ["logs.read"])
    _add_logs(db_session, "T1", "alice", range(1, 3))
    _add_logs(db_session, "T2", "bob", range(1, 4))

    body = client.get("/audit-logs", headers=bearer("alice")).json()

    assert body["count"] == 2
    assert {log["tenantId"] for log in body["data"]} == {"T1"}
    views = db_session.query(AuditLog).filter(AuditLog.action == "audit_logs.view").all()
    assert [(log.tenant_id, log.user_id) for log in views] == [("T1", "alice")]


def test_filtering_by_user_of_another_tenant_is_forbidden(client: TestClient, seed) -> None:
    seed.customer("T1")
    seed.customer("T2")
    seed.member("alice", "T1", ["audit_logs.read", "audit_logs.export"])
    seed.user("bob", "T2")

    listed = client.get("/audit-logs", params={"userId": "bob"}, headers=bearer("alice"))
    exported = client.get("/audit-logs/export", params={"userId": "bob"}, headers=bearer("alice"))
    other_tenant = client.get("/audit-logs", params={"tenantId": "T2"}, headers=bearer("alice"))

    assert listed.status_code == 403
    assert exported.status_code == 403
    assert other_tenant.status_code == 403


def test_export_returns_csv(client: TestClient, db_session: Session, admin_headers) -> None:
    _add_logs(db_session, "T1", "alice", range(1, 4))

    response = client.get(
        "/audit-logs/export",
        params={"startDate": "2024-01-02T00:00:00Z", "endDate": "2024-01-03T00:00:00Z"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == 'attachment; filename="audit-logs.csv"'
    lines = response.text.splitlines()
    assert lines[0] == "id,tenantId,userId,action,description,createdAt"
    assert [line.split(",")[4] for line in lines[1:]] == ['"T1 day 3"', '"T1 day 2"']
    assert lines[1].endswith("2024-01-03T00:00:00.000Z")


def test_export_rejects_bad_dates(client: TestClient, admin_headers) -> None:
    response = client.get("/audit-logs/export", params={"startDate": "yesterday"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid startDate"


def test_get_single_log(client: TestClient, db_session: Session, seed, admin_headers) -> None:
    _add_logs(db_session, "T2", "bob", range(1, 2))
    seed.customer("T1")
    seed.member("alice", "T1", ["logs.read"])
    log_id = db_session.query(AuditLog).one().id

    found = client.get(f"/audit-logs/{log_id}", headers=admin_headers)
    foreign = client.get(f"/audit-logs/{log_id}", headers=bearer("alice"))
    invalid = client.get("/audit-logs/abc", headers=admin_headers)
    missing = client.get("/audit-logs/999", headers=admin_headers)

    assert found.json()["data"]["id"] == log_id
    assert foreign.status_code == 403
    assert invalid.json()["message"] == "Invalid audit log id"
    assert missing.status_code == 404


def test_create_log(client: TestClient, seed) -> None:
    seed.customer("T1")
    seed.member("alice", "T1", ["logs.write"])

    response = client.post(
        "/audit-logs",
        json={"tenantId": "T1", "userId": "alice", "action": "reports.run", "description": "Ran report"},
        headers=bearer("alice"),
    )
    foreign = client.post(
        "/audit-logs",
        json={"tenantId": "T2", "userId": "alice", "action": "reports.run", "description": "Ran report"},
        headers=bearer("alice"),
    )

    assert response.status_code == 201
    assert response.json()["data"]["action"] == "reports.run"
    assert foreign.status_code == 403
