"""HTTP client for the external identity directory (Microsoft Graph)."""
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from loxodon.core.config import Settings
from loxodon.core.dates import iso_z, range_start, utcnow
from loxodon.obs.metrics import DIRECTORY_REQUEST_SECONDS
from loxodon.obs.tracing import directory_span

USER_FIELDS = "id,mail,userPrincipalName,displayName,givenName,surname,accountEnabled"
PAGE_SIZE = 999


class DirectoryError(RuntimeError):
    """Raised when the directory cannot be queried."""


class DirectoryNotConfiguredError(DirectoryError):
    """Raised when client credentials for the directory are missing."""


@dataclass(slots=True, frozen=True)
class DirectoryUser:
    oid: str
    email: str
    name: str


@dataclass(slots=True, frozen=True)
class SignInSummary:
    range: str
    start: datetime
    end: datetime
    success_count: int
    failure_count: int


def _matches_domain(entry: dict[str, Any], domain: str) -> bool:
    mail = (entry.get("mail") or "").lower()
    upn = (entry.get("userPrincipalName") or "").lower()
    return (bool(mail) and mail.endswith(f"@{domain}")) or (bool(upn) and f"_{domain}" in upn)


def to_directory_user(entry: dict[str, Any]) -> DirectoryUser | None:
    """Convert a Graph user entry; entries without any email are skipped."""

    email = entry.get("mail") or entry.get("userPrincipalName")
    if not email or not entry.get("id"):
        return None
    full_name = f"{entry.get('givenName') or ''} {entry.get('surname') or ''}".strip()
    name = entry.get("displayName") or full_name or email
    return DirectoryUser(oid=str(entry["id"]), email=email, name=name)


class DirectoryClient:
    """Synchronous wrapper around the Graph API using client credentials."""

    def __init__(
        self,
        *,
        tenant_id: str | None,
        client_id: str | None,
        client_secret: str | None,
        authority_url: str = "https://login.microsoftonline.com",
        graph_url: str = "https://graph.microsoft.com/v1.0",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._authority_url = authority_url.rstrip("/")
        self._graph_url = graph_url.rstrip("/")
        self._timeout = timeout
        self._client = client or httpx.Client()
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: Settings, *, client: httpx.Client | None = None) -> "DirectoryClient":
        return cls(
            tenant_id=settings.directory_tenant_id,
            client_id=settings.directory_client_id,
            client_secret=settings.directory_client_secret,
            authority_url=settings.directory_authority_url,
            graph_url=settings.directory_graph_url,
            timeout=settings.directory_timeout_seconds,
            client=client,
        )

    @property
    def configured(self) -> bool:
        return bool(self._tenant_id and self._client_id and self._client_secret)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "DirectoryClient":  # pragma: no cover - convenience
        return self

    def __exit__(self, *_args: object) -> None:  # pragma: no cover - convenience
        self.close()

    def list_domain_users(self, domain: str) -> list[DirectoryUser]:
        """Return directory users whose mail or UPN belongs to ``domain``."""

        normalized = domain.strip().lower()
        if not normalized:
            raise DirectoryError("domain is required")
        entries = self._paginate(
            "list_users",
            f"{self._graph_url}/users",
            params={"$select": USER_FIELDS, "$top": PAGE_SIZE},
            domain=normalized,
        )
        users = []
        for entry in entries:
            if not _matches_domain(entry, normalized):
                continue
            user = to_directory_user(entry)
            if user is not None:
                users.append(user)
        return users

    def sign_in_events(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        """Return raw sign-in events created between ``start`` and ``end``."""

        return self._paginate(
            "sign_ins",
            f"{self._graph_url}/auditLogs/signIns",
            params={
                "$select": "createdDateTime,status",
                "$top": PAGE_SIZE,
                "$filter": f"createdDateTime ge {iso_z(start)} and createdDateTime le {iso_z(end)}",
            },
        )

    def login_stats(self, range_name: str, *, now: datetime | None = None) -> SignInSummary:
        """Count successful and failed sign-ins over a named range ending now.

        A sign-in with ``status.errorCode == 0`` (or no error code) is a success.
        """

        end = now or utcnow()
        start = range_start(range_name, end)
        success = 0
        failure = 0
        for event in self.sign_in_events(start, end):
            error_code = (event.get("status") or {}).get("errorCode") or 0
            if error_code == 0:
                success += 1
            else:
                failure += 1
        return SignInSummary(
            range=range_name, start=start, end=end, success_count=success, failure_count=failure
        )

    def _access_token(self) -> str:
        if not self.configured:
            raise DirectoryNotConfiguredError("directory client credentials are not configured")
        response = self._client.post(
            f"{self._authority_url}/{self._tenant_id}/oauth2/v2.0/token",
            data={
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "scope": "https://graph.microsoft.com/.default",
                "grant_type": "client_credentials",
            },
            timeout=self._timeout,
        )
        if response.is_error:
            raise DirectoryError(f"failed to get access token: {response.status_code} {response.text}")
        return response.json()["access_token"]

    def _paginate(
        self, operation: str, url: str, *, params: dict[str, Any], **attributes: Any
    ) -> list[dict[str, Any]]:
        """Follow ``@odata.nextLink`` until every page of ``url`` is collected."""

        started = time.perf_counter()
        with directory_span(operation, **attributes) as span:
            token = self._access_token()
            headers = {"Authorization": f"Bearer {token}", "ConsistencyLevel": "eventual"}
            items: list[dict[str, Any]] = []
            next_url: str | None = url
            next_params: dict[str, Any] | None = params
            pages = 0
            while next_url:
                try:
                    response = self._client.get(
                        next_url, params=next_params, headers=headers, timeout=self._timeout
                    )
                except httpx.HTTPError as exc:
                    raise DirectoryError(f"directory request failed: {exc}") from exc
                if response.is_error:
                    raise DirectoryError(f"directory request failed: {response.status_code} {response.text}")
                data = response.json()
                items.extend(data.get("value", []))
                next_url = data.get("@odata.nextLink")
                next_params = None
                pages += 1
            span.set_attribute("directory.pages", pages)
            span.set_attribute("directory.items", len(items))
        DIRECTORY_REQUEST_SECONDS.labels(operation=operation).observe(time.perf_counter() - started)
        return items


__all__ = [
    "DirectoryClient",
    "DirectoryError",
    "DirectoryNotConfiguredError",
    "DirectoryUser",
    "SignInSummary",
    "to_directory_user",
]
