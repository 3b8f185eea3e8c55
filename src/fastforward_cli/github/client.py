"""Minimal GitHub REST client for pull requests, permissions and comments."""

from __future__ import annotations

import logging
import os
import ssl
from typing import Any, Optional

import httpx
import truststore

from fastforward_cli.merge.errors import TransportError

__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_REST_TIMEOUT",
    "GitHubClient",
    "github_token",
]

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_REST_TIMEOUT = 30.0
API_VERSION = "2022-11-28"


def github_token(cli_token: str | None = None) -> str | None:
    """Return sanitized GitHub token (cli arg takes precedence) or None."""
    return ((cli_token or os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN") or "").strip()) or None


class GitHubClient:
    """Authenticated calls against the GitHub REST API."""

    def __init__(
        self,
        token: str | None,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_REST_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._token = token
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _get_http_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._http_client is None:
            ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            self._http_client = httpx.Client(
                verify=ssl_context,
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._http_client

    def close(self) -> None:
        """Close HTTP client."""
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = self._get_http_client()
        logger.debug("%s %s", method, url)
        try:
            response = client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as exc:
            raise TransportError(f"{method} {url} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    def _json(self, response: httpx.Response) -> Any:
        if response.status_code >= 400:
            raise TransportError(
                f"{response.request.method} {response.request.url} returned "
                f"{response.status_code}: {response.text.strip()[:500]}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{response.request.url} returned invalid JSON: {exc}") from exc

    def get_pull_request(self, url: str) -> dict[str, Any]:
        """Fetch a pull request by its API URL."""
        payload = self._json(self._request("GET", url))
        if not isinstance(payload, dict):
            raise TransportError(f"{url} did not return a pull request object")
        return payload

    def get_permission(self, repository: str, username: str) -> dict[str, Any]:
        """Return the collaborator permission payload for ``username``.

        ``repository`` is ``owner/name``.
        """
        url = f"{self.api_url}/repos/{repository}/collaborators/{username}/permission"
        payload = self._json(self._request("GET", url))
        if not isinstance(payload, dict):
            raise TransportError(f"{url} did not return a permission object")
        return payload

    def post_comment(self, comments_url: str, body: str) -> str | None:
        """Post ``body`` to a pull request thread; returns the comment URL."""
        payload = self._json(self._request("POST", comments_url, json={"body": body}))
        return payload.get("html_url") if isinstance(payload, dict) else None
