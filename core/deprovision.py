"""Deprovision client — revokes this device's cluster membership.

Sends a single ``DELETE`` to the control plane with the local API token
as the ``Authorization`` header. The token is read from disk on every
attempt because the agent may rotate it.
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

DEPROVISION_URL = "http://iofog:54321/v2/deprovision"
_DEFAULT_TIMEOUT = 10.0  # seconds


class AuthTokenError(Exception):
    """Raised when the local auth token cannot be read."""


class DeprovisionError(Exception):
    """Raised when the deprovision call fails or is rejected."""


def load_auth_token(path: str | Path) -> str:
    """Read and trim the auth token at *path*."""
    token_path = Path(path)
    try:
        token = token_path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        raise AuthTokenError(f"Failed to read {token_path}: {exc}") from exc
    if not token:
        raise AuthTokenError(f"Auth token file {token_path} is empty")
    return token


class DeprovisionClient:
    """Issues the revocation call. Exactly one HTTP attempt per call."""

    def __init__(
        self,
        url: str = DEPROVISION_URL,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def url(self) -> str:
        return self._url

    def __enter__(self) -> DeprovisionClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def deprovision(self, auth_token: str) -> None:
        """DELETE the deprovision endpoint; success is exactly HTTP 200."""
        try:
            resp = self._client.delete(
                self._url, headers={"Authorization": auth_token}
            )
        except httpx.HTTPError as exc:
            raise DeprovisionError(
                f"Failed to send DELETE request to {self._url}: {exc}"
            ) from exc

        if resp.status_code != httpx.codes.OK:
            raise DeprovisionError(f"Unexpected response status: {resp.status_code}")
        logger.info("Deprovision accepted by %s", self._url)
