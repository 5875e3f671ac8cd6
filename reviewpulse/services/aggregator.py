"""Build the authored/reviewed pull request sets for a user from live GitHub data."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Protocol, Sequence

from reviewpulse.core.errors import GitHubError
from reviewpulse.models.domain import AggregationResult, Credential, PullRequest, Review
from reviewpulse.services.reconciler import with_lifecycle
from reviewpulse.telemetry import record_aggregation_duration, record_review_fetch_failure

_logger = logging.getLogger(__name__)


class PullRequestSource(Protocol):
    """Remote listing capability the aggregator depends on."""

    def list_pull_requests(
        self, owner: str, repo: str, credential: Optional[Credential] = None
    ) -> Sequence[PullRequest]:  # pragma: no cover - interface
        ...

    def list_reviews(
        self, owner: str, repo: str, number: int, credential: Optional[Credential] = None
    ) -> Sequence[Review]:  # pragma: no cover - interface
        ...


class ContributionAggregator:
    """Fetches every pull request once and partitions it by authorship.

    Review fetches run on a bounded thread pool. A failed review fetch degrades
    to an empty list for that pull request only; a failed pull request listing
    aborts the aggregation.
    """

    def __init__(self, source: PullRequestSource, *, max_workers: int = 4) -> None:
        self._source = source
        self._max_workers = max(max_workers, 1)

    def aggregate(
        self,
        owner: str,
        repo: str,
        user: str,
        credential: Optional[Credential] = None,
    ) -> AggregationResult:
        started = time.perf_counter()
        pull_requests = list(self._source.list_pull_requests(owner, repo, credential))
        authored = [pr for pr in pull_requests if pr.user.login == user]
        candidates = [pr for pr in pull_requests if pr.user.login != user]

        failures: set[int] = set()

        def fetch(pr: PullRequest) -> list[Review]:
            try:
                return list(self._source.list_reviews(owner, repo, pr.number, credential))
            except GitHubError as exc:
                _logger.warning("Failed to fetch reviews for %s/%s#%d: %s", owner, repo, pr.number, exc)
                record_review_fetch_failure()
                failures.add(pr.number)
                return []

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            authored_reviews = executor.map(fetch, authored)
            candidate_reviews = executor.map(fetch, candidates)
            created = [with_lifecycle(pr, reviews) for pr, reviews in zip(authored, authored_reviews)]
            reviewed = [
                with_lifecycle(pr, reviews, viewpoint_user=user)
                for pr, reviews in zip(candidates, candidate_reviews)
                if any(review.user.login == user for review in reviews)
            ]

        record_aggregation_duration(time.perf_counter() - started)
        _logger.info(
            "Aggregated %s/%s for %s: %d pull requests, %d created, %d reviewed",
            owner,
            repo,
            user,
            len(pull_requests),
            len(created),
            len(reviewed),
        )
        return AggregationResult(
            created=created,
            reviewed=reviewed,
            review_fetch_failures=sorted(failures),
        )
