"""Bearer token verification against a shared secret or a remote JWKS."""
from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from jose import JWTError, jwt  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from loxodon.core.config import Settings
from loxodon.core.errors import AuthenticationError

logger = logging.getLogger(__name__)


class TokenClaims(BaseModel):
    """Verified token payload reduced to the fields authorization relies on."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    oid: str | None = None
    sub: str | None = None
    roles: tuple[str, ...] = ()

    @field_validator("roles", mode="before")
    @classmethod
    def _keep_string_roles(cls, value: Any) -> tuple[str, ...]:
        if not isinstance(value, (list, tuple)):
            return ()
        return tuple(item for item in value if isinstance(item, str))

    @field_validator("oid", "sub", mode="before")
    @classmethod
    def _string_or_none(cls, value: Any) -> str | None:
        return value if isinstance(value, str) and value else None

    @property
    def subject(self) -> str | None:
        return self.oid or self.sub


class TokenVerifier:
    """Validates signature, issuer and audience and returns ``TokenClaims``."""

    def __init__(self, settings: Settings, *, client: httpx.Client | None = None) -> None:
        self._settings = settings
        self._client = client
        self._jwks: dict[str, Any] | None = None
        self._jwks_fetched_at = 0.0

    def verify(self, token: str) -> TokenClaims:
        if not token:
            raise AuthenticationError()

        options = {"verify_aud": self._settings.jwt_audience is not None}
        try:
            payload = jwt.decode(
                token,
                self._signing_key(),
                algorithms=self._settings.jwt_algorithms,
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options=options,
            )
        except JWTError as exc:
            raise AuthenticationError() from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("failed to fetch signing keys", extra={"error": str(exc)})
            raise AuthenticationError() from exc

        try:
            claims = TokenClaims.model_validate(payload)
        except ValidationError as exc:
            raise AuthenticationError() from exc
        if claims.subject is None:
            raise AuthenticationError()
        return claims

    def _signing_key(self) -> Any:
        if self._settings.jwt_secret:
            return self._settings.jwt_secret
        if not self._settings.jwks_url:
            raise JWTError("No signing key configured")
        now = time.monotonic()
        if self._jwks is None or now - self._jwks_fetched_at > self._settings.jwks_cache_seconds:
            self._jwks = self._fetch_jwks()
            self._jwks_fetched_at = now
        return self._jwks

    def _fetch_jwks(self) -> dict[str, Any]:
        client = self._client or httpx.Client()
        try:
            response = client.get(self._settings.jwks_url, timeout=5.0)
            response.raise_for_status()
            return response.json()
        finally:
            if self._client is None:
                client.close()


__all__ = ["TokenClaims", "TokenVerifier"]
