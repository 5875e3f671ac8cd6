"""Cache store contract shared by the SQLite and Redis backends."""

from __future__ import annotations

from typing import Protocol

from reviewpulse.models.domain import AggregationResult, PullRequestWithReviews


class CacheStore(Protocol):
    """Persists aggregated pull requests keyed by (repository, user).

    Only raw pull request and review fields are stored. The review lifecycle
    is recomputed on every read.
    """

    def init(self) -> None:  # pragma: no cover - interface
        ...

    def close(self) -> None:  # pragma: no cover - interface
        ...

    def has_cached_data(self, user: str, repository: str) -> bool:  # pragma: no cover - interface
        ...

    def get_cached_data(self, user: str, repository: str) -> AggregationResult:  # pragma: no cover - interface
        ...

    def upsert(self, pull_request: PullRequestWithReviews, repository: str) -> None:  # pragma: no cover - interface
        ...
