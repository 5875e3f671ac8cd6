"""Application dependency wiring."""

from __future__ import annotations

from functools import lru_cache

from redis import Redis

from reviewpulse.core.config import settings
from reviewpulse.core.encryption import get_decrypted_token
from reviewpulse.github.client import GitHubClient
from reviewpulse.github.credentials import CredentialResolver
from reviewpulse.repositories import CacheStore, RedisCacheStore, SqliteCacheStore
from reviewpulse.services.admission import SlidingWindowLimiter
from reviewpulse.services.aggregator import ContributionAggregator
from reviewpulse.services.contributions import ContributionService


@lru_cache
def get_store() -> CacheStore:
    backend = settings.cache_backend.lower().strip()
    if backend == "redis":
        return RedisCacheStore(Redis.from_url(settings.redis_url, decode_responses=True))
    if backend == "sqlite":
        return SqliteCacheStore(settings.database_path)
    raise ValueError(f"Unsupported cache backend '{settings.cache_backend}'")


@lru_cache
def get_github_client() -> GitHubClient:
    return GitHubClient(
        settings.github_api_base,
        timeout=settings.github_timeout_seconds,
        accept=settings.github_accept,
        user_agent=settings.github_user_agent,
        page_size=settings.github_page_size,
        max_pages=settings.github_max_pages,
    )


@lru_cache
def get_credential_resolver() -> CredentialResolver:
    return CredentialResolver(get_decrypted_token(settings.github_token, settings.encryption_password))


@lru_cache
def get_limiter() -> SlidingWindowLimiter:
    return SlidingWindowLimiter(
        settings.admission_max_requests,
        settings.admission_window_seconds,
        max_tracked_keys=settings.admission_max_tracked_keys,
    )


@lru_cache
def get_aggregator() -> ContributionAggregator:
    return ContributionAggregator(get_github_client(), max_workers=settings.review_fetch_concurrency)


@lru_cache
def get_contribution_service() -> ContributionService:
    return ContributionService(get_store(), get_aggregator(), get_credential_resolver(), get_limiter())
