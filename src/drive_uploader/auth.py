"""Credential strategies for the Google Drive REST API.

Both strategies wrap a google-auth credential, which builds the grant and
parses the token response. Token requests go through the same httpx client as
the Drive calls, via a small google-auth transport adapter.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx
from google.auth import credentials as google_credentials
from google.auth import exceptions, transport
from google.oauth2 import credentials as oauth2_credentials
from google.oauth2 import service_account

from drive_uploader.config import Settings
from drive_uploader.exceptions import AuthenticationError, ConfigError

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
DRIVE_FILE_SCOPE = "https://www.googleapis.com/auth/drive.file"


class _HttpxResponse(transport.Response):
    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def status(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> Mapping[str, str]:
        return dict(self._response.headers)

    @property
    def data(self) -> bytes:
        return self._response.content


class HttpxRequest(transport.Request):
    """google-auth transport that sends token requests through an httpx.Client."""

    def __init__(self, http: httpx.Client) -> None:
        self.http = http

    def __call__(
        self,
        url: str,
        method: str = "GET",
        body: bytes | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> _HttpxResponse:
        try:
            response = self.http.request(
                method,
                url,
                content=body,
                headers=headers,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.HTTPError as e:
            raise exceptions.TransportError(e) from e
        return _HttpxResponse(response)


class Credentials:
    """Base class holding a google-auth credential and its cached token."""

    def __init__(self, credentials: google_credentials.Credentials) -> None:
        self._credentials = credentials

    @property
    def token(self) -> str | None:
        return self._credentials.token

    @property
    def expired(self) -> bool:
        # google-auth treats a token as invalid a few minutes before expiry
        return not self._credentials.valid

    def refresh(self, http: httpx.Client) -> str:
        """Exchange the grant for a fresh access token.

        Raises:
            AuthenticationError: If the token endpoint rejects the grant or
                cannot be reached
        """
        try:
            self._credentials.refresh(HttpxRequest(http))
        except exceptions.GoogleAuthError as e:
            raise AuthenticationError(f"Token refresh failed: {e}") from e

        logger.debug(f"Obtained access token via {type(self).__name__}")
        return self._credentials.token  # type: ignore[no-any-return]

    def ensure_token(self, http: httpx.Client) -> str:
        if self.expired:
            return self.refresh(http)
        return self.token  # type: ignore[return-value]


class RefreshTokenCredentials(Credentials):
    """OAuth client credentials plus a long-lived refresh token."""

    def __init__(self, client_id: str, client_secret: str, refresh_token: str) -> None:
        super().__init__(
            oauth2_credentials.Credentials(
                token=None,
                refresh_token=refresh_token,
                token_uri=TOKEN_URI,
                client_id=client_id,
                client_secret=client_secret,
            )
        )


class ServiceAccountCredentials(Credentials):
    """Service-account key that signs its own JWT bearer assertions."""

    def __init__(self, info: dict[str, Any], scopes: list[str] | None = None) -> None:
        if "client_email" not in info or "private_key" not in info:
            raise ConfigError("Service account info needs client_email and private_key")
        try:
            credentials = service_account.Credentials.from_service_account_info(
                {"token_uri": TOKEN_URI, **info}, scopes=scopes or [DRIVE_FILE_SCOPE]
            )
        except ValueError as e:
            raise ConfigError(f"Invalid service account info: {e}") from e
        super().__init__(credentials)
        self.client_email: str = info["client_email"]

    @classmethod
    def from_file(
        cls, path: Path | str, scopes: list[str] | None = None
    ) -> ServiceAccountCredentials:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Service account file not found: {path}")
        return cls(json.loads(path.read_text()), scopes)


def credentials_from_settings(settings: Settings) -> Credentials:
    """Pick the credential strategy configured in settings.

    The refresh-token strategy wins when both are configured.
    """
    if settings.uses_refresh_token:
        return RefreshTokenCredentials(
            settings.client_id,  # type: ignore[arg-type]
            settings.client_secret,  # type: ignore[arg-type]
            settings.refresh_token,  # type: ignore[arg-type]
        )
    if settings.credentials_path:
        return ServiceAccountCredentials.from_file(settings.credentials_path)
    raise ConfigError("No Google Drive credentials configured")
