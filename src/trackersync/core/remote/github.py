"""
GitHub contents API remote store.

Stores the dataset as a single JSON file in a GitHub repository using the
REST contents endpoint:

- GET  /repos/{owner}/{repo}/contents/{path}  -> base64 content + blob sha
- PUT  /repos/{owner}/{repo}/contents/{path}  -> new content, commit message, prior sha

Every write looks up the latest blob sha first, so concurrent writers
resolve as last-writer-wins instead of failing with a sha conflict.

Example:
    >>> async with GitHubContentsStore("acme", "books", token) as store:
    ...     document = await store.read()
    ...     result = await store.write(dataset, "Manual save: Update business data")
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from types import TracebackType
from typing import Any

import httpx

from trackersync.core.config.models import GitHubSettings
from trackersync.core.errors import (
    AuthError,
    DocumentParseError,
    NotFoundError,
    RateLimitError,
    RemoteStoreError,
    TransportError,
)
from trackersync.core.remote.protocol import RemoteDocument, WriteResult
from trackersync.core.remote.retry import RetryPolicy, Sleeper, retry_async

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase or "Unknown error"


def _json_object(response: httpx.Response, what: str) -> dict[str, Any]:
    """Decode a response body that must be a JSON object."""
    try:
        body = response.json()
    except ValueError as e:
        raise DocumentParseError(f"{what}: response is not valid JSON: {e}") from e
    if not isinstance(body, dict):
        raise DocumentParseError(
            f"{what}: expected a JSON object, got {type(body).__name__}",
            body_type=type(body).__name__,
        )
    return body


def classify_http_error(error: httpx.HTTPError, timeout: float | None = None) -> RemoteStoreError:
    """
    Translate an httpx error into the remote store error taxonomy.

    Args:
        error: Error raised by httpx (status or transport)
        timeout: Configured timeout, used in the timeout message

    Returns:
        NotFoundError, AuthError, RateLimitError or TransportError
    """
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        status = response.status_code
        message = _error_message(response)
        if status == 404:
            return NotFoundError(f"Not Found: {message}", status=status)
        if status == 401:
            return AuthError(f"Authentication failed: {message}", status=status)
        if status == 403:
            if "rate limit" in message.lower():
                return RateLimitError(f"Rate limit exceeded: {message}", status=status)
            return AuthError(f"Permission denied: {message}", status=status)
        if status >= 500:
            return TransportError(
                f"GitHub server error ({status}): {message}",
                status=status,
                error_type="SERVER_ERROR",
            )
        return TransportError(f"GitHub API error ({status}): {message}", status=status)

    if isinstance(error, httpx.TimeoutException):
        return TransportError(
            f"Request timeout after {timeout:g} seconds" if timeout else "Request timed out",
            error_type="TIMEOUT",
        )

    return TransportError(
        f"Network request failed. Please check your internet connection. ({error})",
        error_type="NETWORK_ERROR",
    )


class GitHubContentsStore:
    """
    RemoteStore backed by one JSON file in a GitHub repository.

    The store counts as connected when owner, repo and token are all set.
    Its file identity combines repository, path and branch, so switching
    any of them makes the orchestrator reload.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        path: str = "data.json",
        *,
        branch: str | None = None,
        api_base: str = GITHUB_API_BASE,
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """
        Initialize the store.

        Args:
            owner: Repository owner (user or organization)
            repo: Repository name
            token: Personal access token with contents permission
            path: Path of the data file inside the repository
            branch: Branch to read/write (default branch when None)
            api_base: GitHub API base URL
            timeout: Per-request timeout in seconds
            retry: Retry behavior for transient failures
            client: Shared AsyncClient (the store creates and owns one if omitted)
            sleep: Awaitable sleep used between retries
        """
        self.owner = owner
        self.repo = repo
        self.token = token
        self.path = path.lstrip("/")
        self.branch = branch
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.retry = retry or RetryPolicy()
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, settings: GitHubSettings, client: httpx.AsyncClient | None = None
    ) -> GitHubContentsStore:
        """Build a store from GitHubSettings."""
        return cls(
            owner=settings.owner or "",
            repo=settings.repo or "",
            token=settings.token or "",
            path=settings.path,
            branch=settings.branch,
            api_base=settings.api_base,
            timeout=settings.timeout_seconds,
            retry=RetryPolicy.from_settings(settings),
            client=client,
        )

    @property
    def is_connected(self) -> bool:
        return bool(self.owner and self.repo and self.token)

    @property
    def file_identity(self) -> str | None:
        if not self.is_connected:
            return None
        identity = f"{self.owner}/{self.repo}:{self.path}"
        return f"{identity}@{self.branch}" if self.branch else identity

    @property
    def repo_url(self) -> str:
        return f"{self.api_base}/repos/{self.owner}/{self.repo}"

    @property
    def contents_url(self) -> str:
        return f"{self.repo_url}/contents/{self.path}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _request(
        self, method: str, url: str, *, context: str, **kwargs: Any
    ) -> httpx.Response:
        """Send a request with retries; raises RemoteStoreError on failure."""
        client = self._get_client()

        async def attempt() -> httpx.Response:
            response = await client.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            return response

        try:
            return await retry_async(attempt, self.retry, context=context, sleep=self._sleep)
        except httpx.HTTPError as e:
            raise classify_http_error(e, self.timeout) from e

    def _ref_params(self) -> dict[str, str]:
        return {"ref": self.branch} if self.branch else {}

    async def read(self) -> RemoteDocument:
        """
        Fetch and decode the data file.

        Returns:
            RemoteDocument with the parsed payload (None for an empty file)

        Raises:
            NotFoundError: If the file does not exist
            DocumentParseError: If the response is not a file object or the
                content is not valid JSON
            TransportError: For any other failure
        """
        response = await self._request(
            "GET", self.contents_url, params=self._ref_params(), context="Fetch data"
        )
        file_data = _json_object(response, f"Fetch {self.path}")
        sha = file_data.get("sha")

        try:
            content = base64.b64decode(file_data.get("content") or "").decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise DocumentParseError(f"Failed to decode data file: {e}. SHA: {sha}", sha=sha) from e

        if not content.strip():
            logger.warning("GitHub data file %s is empty", self.path)
            return RemoteDocument(data=None, sha=sha)

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise DocumentParseError(f"Failed to parse data file: {e}. SHA: {sha}", sha=sha) from e

        logger.debug("Fetched %s (sha %s)", self.path, sha)
        return RemoteDocument(data=data, sha=sha)

    async def _current_sha(self) -> str | None:
        try:
            response = await self._request(
                "GET", self.contents_url, params=self._ref_params(), context="Lookup sha"
            )
        except NotFoundError:
            logger.debug("%s does not exist yet, creating new file", self.path)
            return None
        sha = _json_object(response, f"Lookup sha of {self.path}").get("sha")
        return str(sha) if sha else None

    async def write(self, payload: dict[str, Any], message: str) -> WriteResult:
        """
        Create or replace the data file.

        Args:
            payload: Dataset to store (serialized as indented JSON)
            message: Commit message

        Returns:
            WriteResult; failures are reported, not raised
        """
        if not isinstance(payload, dict):
            return WriteResult(success=False, error="Invalid data: must be a valid object")

        try:
            encoded = base64.b64encode(
                json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
            ).decode("ascii")
        except (TypeError, ValueError) as e:
            return WriteResult(success=False, error=f"Failed to encode data: {e}")

        try:
            sha = await self._current_sha()
            body: dict[str, Any] = {"message": message or f"Update {self.path}", "content": encoded}
            if sha:
                body["sha"] = sha
            if self.branch:
                body["branch"] = self.branch

            response = await self._request(
                "PUT", self.contents_url, json=body, context="Update data"
            )
            result = _json_object(response, f"Update {self.path}")
        except RemoteStoreError as e:
            logger.error("Failed to write %s: %s", self.path, e)
            return WriteResult(success=False, error=str(e))

        logger.info("Wrote %s to %s/%s", self.path, self.owner, self.repo)
        return WriteResult(
            success=True,
            sha=(result.get("content") or {}).get("sha"),
            commit_sha=(result.get("commit") or {}).get("sha"),
        )

    async def test_connection(self) -> dict[str, Any]:
        """
        Check that the repository is reachable with the configured token.

        Returns:
            Dict with ``success`` and repository details, or ``error`` and
            ``error_type`` on failure
        """
        try:
            response = await self._request("GET", self.repo_url, context="Connection test")
        except TransportError as e:
            return {
                "success": False,
                "error": str(e),
                "error_type": e.error_type,
                "status": e.status,
            }
        except NotFoundError as e:
            return {"success": False, "error": str(e), "error_type": "NOT_FOUND_ERROR"}

        try:
            repo_data = _json_object(response, "Connection test")
        except DocumentParseError as e:
            return {"success": False, "error": str(e), "error_type": "INVALID_RESPONSE"}
        permissions = repo_data.get("permissions") or {}
        return {
            "success": True,
            "full_name": repo_data.get("full_name"),
            "private": repo_data.get("private"),
            "has_write_access": bool(permissions.get("push", False)),
        }

    async def aclose(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> GitHubContentsStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


__all__ = ["GITHUB_API_BASE", "GitHubContentsStore", "classify_http_error"]
