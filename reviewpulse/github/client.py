"""Paginated GitHub REST client for pull requests and reviews."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

import httpx
from pydantic import ValidationError

from reviewpulse.core.errors import (
    AuthenticationFailed,
    Forbidden,
    GitHubError,
    InsufficientScope,
    NotFound,
    RateLimitExceeded,
    RemoteError,
    RemoteTimeout,
)
from reviewpulse.models.domain import Credential, PullRequest, Review

_logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ACCEPT = "application/vnd.github.v3+json"
DEFAULT_USER_AGENT = "reviewpulse"


class GitHubClient:
    """Synchronous client over one pooled ``httpx.Client``.

    Every listing is fetched page by page until GitHub returns an empty page,
    and returned fully materialised. Nothing is retried here.
    """

    def __init__(
        self,
        base_url: str = "https://api.github.com",
        *,
        timeout: float = 30.0,
        accept: str = DEFAULT_ACCEPT,
        user_agent: str = DEFAULT_USER_AGENT,
        page_size: int = 100,
        max_pages: int = 50,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            headers={"Accept": accept, "User-Agent": user_agent},
            transport=transport,
        )
        self._page_size = page_size
        self._max_pages = max(max_pages, 1)

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def list_pull_requests(
        self, owner: str, repo: str, credential: Optional[Credential] = None
    ) -> list[PullRequest]:
        return self._paginate(
            f"repos/{owner}/{repo}/pulls",
            credential,
            _parse_pull_request,
            params={"state": "all", "sort": "created", "direction": "desc"},
        )

    def list_reviews(
        self, owner: str, repo: str, number: int, credential: Optional[Credential] = None
    ) -> list[Review]:
        return self._paginate(f"repos/{owner}/{repo}/pulls/{number}/reviews", credential, _parse_review)

    def _paginate(
        self,
        path: str,
        credential: Optional[Credential],
        parse: Callable[[dict], Optional[T]],
        params: dict[str, Any] | None = None,
    ) -> list[T]:
        items: list[T] = []
        for page in range(1, self._max_pages + 1):
            query = {**(params or {}), "per_page": self._page_size, "page": page}
            payload = self._get(path, credential, query)
            if not payload:
                return items
            items.extend(
                parsed for raw in payload if isinstance(raw, dict) and (parsed := parse(raw)) is not None
            )
        _logger.warning("Stopped paginating %s after %d pages", path, self._max_pages)
        return items

    def _get(self, path: str, credential: Optional[Credential], params: dict[str, Any]) -> list[dict]:
        headers = {}
        if credential is not None:
            headers["Authorization"] = credential.authorization_header()
        _logger.info(
            "GitHub API GET /%s page=%s (auth: %s, source: %s)",
            path,
            params.get("page"),
            "yes" if credential else "no",
            credential.source.value if credential else "none",
        )
        try:
            response = self._client.get(path, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise RemoteTimeout(f"GitHub API request timed out: /{path}") from exc
        except httpx.TransportError as exc:
            raise RemoteError(f"GitHub API request failed: {exc}") from exc
        if not response.is_success:
            raise map_error_response(response)
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteError(f"GitHub API returned a non-JSON body for /{path}", response.status_code) from exc
        if not isinstance(payload, list):
            raise RemoteError(f"GitHub API returned an unexpected payload for /{path}", response.status_code)
        return payload


def map_error_response(response: httpx.Response) -> GitHubError:
    """Translate a non-2xx response into the matching GitHubError subclass."""

    status = response.status_code
    if status == 401:
        return AuthenticationFailed("GitHub authentication failed. Please check your token.", status)
    if status == 403:
        if response.headers.get("X-RateLimit-Remaining") == "0":
            reset = response.headers.get("X-RateLimit-Reset")
            return RateLimitExceeded(
                "GitHub API rate limit exceeded",
                status,
                reset_at=int(reset) if reset and reset.isdigit() else None,
            )
        if "scope" in response.text:
            return InsufficientScope(
                "The token lacks a required permission (Contents, Metadata and Pull requests: Read).",
                status,
            )
        return Forbidden("GitHub API access forbidden. Check token permissions.", status)
    if status == 404:
        return NotFound("Repository or pull request not found, or not visible to this token.", status)
    return RemoteError(f"GitHub API Error: {status} {response.reason_phrase}", status)


def _parse_pull_request(raw: dict) -> Optional[PullRequest]:
    try:
        return PullRequest.model_validate(raw)
    except ValidationError as exc:
        _logger.warning("Skipping malformed pull request %s: %s", raw.get("number"), exc)
        return None


def _parse_review(raw: dict) -> Optional[Review]:
    # Pending reviews have no submission time and are only visible to their author.
    try:
        return Review.model_validate(raw)
    except ValidationError as exc:
        _logger.debug("Skipping review %s: %s", raw.get("id"), exc)
        return None
