"""httpx transport for the Google Drive v3 REST API with token handling."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from typing import Any

import httpx

from drive_uploader.auth import Credentials
from drive_uploader.exceptions import RemoteStoreError

logger = logging.getLogger(__name__)

BASE_URL = "https://www.googleapis.com/drive/v3"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"

RETRYABLE_STATUS = {429, 500, 502, 503, 504}
CHUNK_SIZE = 1024 * 1024


class DriveAPI:
    """Thin wrapper over httpx.Client that adds bearer tokens and retries.

    Only requests made with retry=True are retried on timeouts, 429 and 5xx.
    Callers pass retry=True for idempotent reads; creates and uploads must not
    be retried since a lost response would produce a duplicate.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        timeout: float = 60.0,
        max_retries: int = 3,
        backoff: float = 1.0,
        http: httpx.Client | None = None,
    ) -> None:
        self.credentials = credentials
        self.max_retries = max_retries
        self.backoff = backoff
        self._client = http or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _headers(self, extra: dict[str, str] | None) -> dict[str, str]:
        token = self.credentials.ensure_token(self._client)
        headers = {"Authorization": f"Bearer {token}"}
        if extra:
            headers.update(extra)
        return headers

    def _sleep(self, attempt: int) -> None:
        delay = self.backoff * (2**attempt)
        if delay > 0:
            time.sleep(delay)

    def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        content: Any = None,
        headers: dict[str, str] | None = None,
        retry: bool = False,
        stream: bool = False,
    ) -> httpx.Response:
        """Send a request, raising RemoteStoreError on any failure."""
        if not url.startswith("http"):
            url = f"{BASE_URL}{url}"

        attempts = self.max_retries + 1 if retry else 1
        refreshed = False
        attempt = 0
        while True:
            request = self._client.build_request(
                method,
                url,
                params=params,
                json=json,
                content=content,
                headers=self._headers(headers),
            )
            try:
                response = self._client.send(request, stream=stream)
            except httpx.TimeoutException as e:
                attempt += 1
                if attempt < attempts:
                    logger.warning(
                        f"Timeout on {method} {url}, retrying (attempt {attempt}/{attempts - 1})"
                    )
                    self._sleep(attempt - 1)
                    continue
                raise RemoteStoreError(f"{method} {url} timed out: {e}") from e
            except httpx.HTTPError as e:
                raise RemoteStoreError(f"{method} {url} failed: {e}") from e

            # Token revoked or expired early: refresh once and resend
            if response.status_code == 401 and not refreshed and content is None:
                response.close()
                refreshed = True
                self.credentials.refresh(self._client)
                continue

            if response.status_code in RETRYABLE_STATUS:
                attempt += 1
                if attempt < attempts:
                    logger.warning(
                        f"{method} {url} returned {response.status_code}, "
                        f"retrying (attempt {attempt}/{attempts - 1})"
                    )
                    response.close()
                    self._sleep(attempt - 1)
                    continue

            if response.is_error:
                if stream:
                    response.read()
                    response.close()
                raise RemoteStoreError(
                    f"{method} {url} returned {response.status_code}: {response.text}",
                    status_code=response.status_code,
                )
            return response

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request("GET", path, params=params, retry=True).json()  # type: ignore[no-any-return]

    def post_json(
        self, path: str, payload: dict[str, Any], params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return self.request("POST", path, params=params, json=payload).json()  # type: ignore[no-any-return]

    def iter_download(self, path: str, params: dict[str, Any] | None = None) -> Iterator[bytes]:
        """Open a streaming GET and yield its body in chunks.

        The response is opened eagerly so errors surface before iteration.
        """
        response = self.request("GET", path, params=params, retry=True, stream=True)

        def _chunks() -> Iterator[bytes]:
            try:
                yield from response.iter_bytes(CHUNK_SIZE)
            finally:
                response.close()

        return _chunks()
