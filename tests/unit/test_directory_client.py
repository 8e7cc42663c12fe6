from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest
from prometheus_client import REGISTRY

from loxodon.services.directory import (
    DirectoryClient,
    DirectoryError,
    DirectoryNotConfiguredError,
    to_directory_user,
)


def _client(handler) -> DirectoryClient:
    return DirectoryClient(
        tenant_id="tenant",
        client_id="client",
        client_secret="secret",
        authority_url="https://login.test",
        graph_url="https://graph.test/v1.0",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def test_list_domain_users_follows_next_link_and_filters() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        if request.url.path == "/tenant/oauth2/v2.0/token":
            assert b"grant_type=client_credentials" in request.content
            return httpx.Response(200, json={"access_token": "abc"})
        assert request.headers["Authorization"] == "Bearer abc"
        if "page=2" in str(request.url):
            return httpx.Response(
                200,
                json={"value": [{"id": "3", "mail": None, "userPrincipalName": "guest_acme.com#EXT#@x.onmicrosoft.com"}]},
            )
        return httpx.Response(
            200,
            json={
                "value": [
                    {"id": "1", "mail": "Ann@Acme.com", "displayName": "Ann"},
                    {"id": "2", "mail": "bob@other.com"},
                    {"id": "4", "mail": None, "userPrincipalName": None},
                ],
                "@odata.nextLink": "https://graph.test/v1.0/users?page=2",
            },
        )

    client = _client(handler)
    users = client.list_domain_users("ACME.com")

    assert [(user.oid, user.email) for user in users] == [
        ("1", "Ann@Acme.com"),
        ("3", "guest_acme.com#EXT#@x.onmicrosoft.com"),
    ]
    assert users[0].name == "Ann"
    assert len(seen) == 3


def test_unconfigured_client_raises() -> None:
    client = DirectoryClient(tenant_id=None, client_id="c", client_secret="s", client=httpx.Client())

    assert not client.configured
    with pytest.raises(DirectoryNotConfiguredError):
        client.list_domain_users("acme.com")


def test_token_failure_raises_directory_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="bad secret")

    with pytest.raises(DirectoryError):
        _client(handler).list_domain_users("acme.com")


def test_login_stats_counts_success_and_failure() -> None:
    captured: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/token"):
            return httpx.Response(200, json={"access_token": "abc"})
        captured["filter"] = request.url.params["$filter"]
        return httpx.Response(
            200,
            json={
                "value": [
                    {"status": {"errorCode": 0}},
                    {"status": {}},
                    {"status": {"errorCode": 50126}},
                ]
            },
        )

    now = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)
    summary = _client(handler).login_stats("lastmonth", now=now)

    assert summary.success_count == 2
    assert summary.failure_count == 1
    assert summary.start == datetime(2024, 2, 29, 12, 0, tzinfo=timezone.utc)
    assert captured["filter"] == (
        "createdDateTime ge 2024-02-29T12:00:00.000Z and createdDateTime le 2024-03-31T12:00:00.000Z"
    )


def test_entry_without_email_is_skipped() -> None:
    assert to_directory_user({"id": "x"}) is None
    user = to_directory_user({"id": "y", "userPrincipalName": "y@acme.com", "givenName": "Y", "surname": "Z"})
    assert user is not None
    assert user.name == "Y Z"


def test_directory_queries_are_timed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/token"):
            return httpx.Response(200, json={"access_token": "abc"})
        return httpx.Response(200, json={"value": []})

    labels = {"operation": "sign_ins"}
    before = REGISTRY.get_sample_value("directory_request_seconds_count", labels) or 0.0

    _client(handler).sign_in_events(
        datetime(2024, 1, 1, tzinfo=timezone.utc), datetime(2024, 1, 2, tzinfo=timezone.utc)
    )

    assert REGISTRY.get_sample_value("directory_request_seconds_count", labels) == before + 1
