"""Service orchestration for cached contribution lookups."""

from __future__ import annotations

import logging
from typing import Optional

from reviewpulse.core.errors import AdmissionDenied, InvalidRepository
from reviewpulse.github.credentials import CredentialResolver
from reviewpulse.models.domain import AggregationResult
from reviewpulse.repositories.base import CacheStore
from reviewpulse.services.admission import SlidingWindowLimiter
from reviewpulse.services.aggregator import ContributionAggregator
from reviewpulse.telemetry import record_admission_denied, record_cache_lookup

_logger = logging.getLogger(__name__)


def split_repository(repository: str) -> tuple[str, str]:
    owner, sep, name = repository.partition("/")
    if not sep or not owner or not name or "/" in name:
        raise InvalidRepository(f"Repository must be given as owner/name, got {repository!r}")
    return owner, name


class ContributionService:
    """Coordinates admission, cache lookup, live aggregation and cache refresh."""

    def __init__(
        self,
        store: CacheStore,
        aggregator: ContributionAggregator,
        resolver: CredentialResolver,
        limiter: SlidingWindowLimiter | None = None,
    ) -> None:
        self._store = store
        self._aggregator = aggregator
        self._resolver = resolver
        self._limiter = limiter

    def get_contributions(
        self,
        user: str,
        repository: str,
        force_refresh: bool = False,
        client_credential: Optional[str] = None,
        *,
        header_token: Optional[str] = None,
        client_key: Optional[str] = None,
    ) -> AggregationResult:
        """Return the user's authored and reviewed pull requests for ``owner/name``.

        Cached data is served unless ``force_refresh`` is set. A live run
        overwrites the cache for every pull request it returns; when it fails
        the error propagates and stale cache is not used.
        """

        if client_key is not None and self._limiter is not None and not self._limiter.allow(client_key):
            record_admission_denied()
            raise AdmissionDenied(client_key, self._limiter.retry_after(client_key))

        owner, name = split_repository(repository)

        if not force_refresh:
            hit = self._store.has_cached_data(user, repository)
            record_cache_lookup(hit)
            if hit:
                _logger.info("Serving %s for %s from cache", repository, user)
                return self._store.get_cached_data(user, repository)

        credential = self._resolver.resolve(client_credential, header_token)
        if credential is None:
            _logger.info("No valid GitHub token available; fetching %s unauthenticated", repository)
        result = self._aggregator.aggregate(owner, name, user, credential)
        for pull_request in result.pull_requests():
            self._store.upsert(pull_request, repository)
        return result
