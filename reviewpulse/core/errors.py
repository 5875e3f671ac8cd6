"""Error taxonomy shared by the remote client, cache stores and services."""

from __future__ import annotations

from typing import Optional


class ReviewPulseError(Exception):
    """Base class for every error raised by the engine."""


class GitHubError(ReviewPulseError):
    """A call against the GitHub REST API failed."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class AuthenticationFailed(GitHubError):
    """The credential was rejected (HTTP 401)."""


class InsufficientScope(GitHubError):
    """The credential lacks a permission the endpoint needs."""


class Forbidden(GitHubError):
    """Access was refused for a reason other than quota or scope."""


class NotFound(GitHubError):
    """Repository or pull request does not exist or is not visible."""


class RateLimitExceeded(GitHubError):
    """The remote quota for the current credential is exhausted."""

    def __init__(self, message: str, status: Optional[int] = 403, reset_at: Optional[int] = None) -> None:
        super().__init__(message, status)
        self.reset_at = reset_at


class RemoteTimeout(GitHubError):
    """The remote call did not complete within the configured timeout."""


class RemoteError(GitHubError):
    """Any other non-2xx response, an unusable response body, or a transport failure."""


class InvalidRepository(ReviewPulseError):
    """The repository identifier is not of the form owner/name."""


class CacheUnavailable(ReviewPulseError):
    """The cache backend could not be read or written."""


class AdmissionDenied(ReviewPulseError):
    """The caller exceeded its request budget for the admission window."""

    def __init__(self, client_key: str, retry_after: float) -> None:
        super().__init__(f"Too many requests from {client_key}")
        self.client_key = client_key
        self.retry_after = retry_after
