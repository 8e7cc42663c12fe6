from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import bearer, make_token


def test_health_is_public(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_missing_bearer_is_rejected(client: TestClient) -> None:
    response = client.get("/customers")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Unauthorized"}


def test_invalid_token_is_rejected(client: TestClient) -> None:
    response = client.get("/customers", headers={"Authorization": "Bearer not-a-token"})
    expired = client.get(
        "/customers", headers={"Authorization": f"Bearer {make_token('alice', exp=1)}"}
    )

    assert response.status_code == 401
    assert expired.status_code == 401


def test_options_requests_skip_authentication(client: TestClient) -> None:
    response = client.options("/customers")

    assert response.status_code != 401


def test_unknown_caller_without_permissions_is_forbidden(client: TestClient, seed) -> None:
    seed.customer("T1")

    response = client.get("/customers", headers=bearer("stranger"))

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "Forbidden"}


def test_request_validation_errors_use_envelope(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.post("/customers", json={"tenantId": "T1"}, headers=admin_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"].startswith("domain:")


def test_openapi_documents_error_envelope(client: TestClient) -> None:
    document = client.get("/openapi.json").json()

    forbidden = document["paths"]["/roles/{role_id}"]["put"]["responses"]["403"]
    assert forbidden["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
    assert "/entra-id/login-stats" in document["paths"]
