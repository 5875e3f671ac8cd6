from __future__ import annotations

import pytest

from conftest import CLASSIC_TOKEN, FINE_GRAINED_TOKEN, FakeSource, make_pr, make_review
from reviewpulse.core.errors import AdmissionDenied, AuthenticationFailed, InvalidRepository, RateLimitExceeded
from reviewpulse.github.credentials import CredentialResolver
from reviewpulse.models.domain import TokenSource
from reviewpulse.repositories.sqlite_store import SqliteCacheStore
from reviewpulse.services.admission import SlidingWindowLimiter
from reviewpulse.services.aggregator import ContributionAggregator
from reviewpulse.services.contributions import ContributionService, split_repository

REPO = "acme/shop"


@pytest.fixture
def store():
    cache = SqliteCacheStore(":memory:")
    cache.init()
    yield cache
    cache.close()


def _service(store, source, *, server_token=None, limiter=None) -> ContributionService:
    return ContributionService(
        store,
        ContributionAggregator(source, max_workers=2),
        CredentialResolver(server_token),
        limiter,
    )


def test_first_call_fetches_live_and_populates_cache(store, sample_source):
    service = _service(store, sample_source)

    live = service.get_contributions("alice", REPO)

    assert live.cached is False
    assert sample_source.list_calls == 1
    assert store.has_cached_data("alice", REPO)


def test_cache_hit_skips_remote(store, sample_source):
    service = _service(store, sample_source)
    live = service.get_contributions("alice", REPO)

    cached = service.get_contributions("alice", REPO)

    assert cached.cached is True
    assert sample_source.list_calls == 1
    assert cached.created == live.created
    assert cached.reviewed == live.reviewed


def test_force_refresh_always_reaggregates_and_overwrites(store):
    source = FakeSource([make_pr(4, "alice")], {4: [make_review(40, "bob", "COMMENTED", 2)]})
    service = _service(store, source)
    service.get_contributions("alice", REPO)

    source.reviews[4] = [make_review(40, "bob", "COMMENTED", 2), make_review(41, "bob", "APPROVED", 6)]
    refreshed = service.get_contributions("alice", REPO, force_refresh=True)

    assert source.list_calls == 2
    assert refreshed.created[0].review_approved_at is not None
    assert store.get_cached_data("alice", REPO).created == refreshed.created


def test_failed_refresh_does_not_fall_back_to_cache(store):
    source = FakeSource([make_pr(4, "alice")])
    service = _service(store, source)
    service.get_contributions("alice", REPO)

    source.list_error = RateLimitExceeded("GitHub API rate limit exceeded")
    with pytest.raises(RateLimitExceeded):
        service.get_contributions("alice", REPO, force_refresh=True)


def test_authentication_failure_is_distinguishable(store):
    source = FakeSource([], list_error=AuthenticationFailed("bad credentials", 401))
    with pytest.raises(AuthenticationFailed) as excinfo:
        _service(store, source).get_contributions("alice", REPO)
    assert not isinstance(excinfo.value, RateLimitExceeded)


def test_credentials_follow_precedence(store):
    source = FakeSource([])
    service = _service(store, source, server_token=CLASSIC_TOKEN)

    service.get_contributions("alice", REPO, True, "garbage", header_token=FINE_GRAINED_TOKEN)
    service.get_contributions("alice", REPO, True)
    service.get_contributions("alice", REPO, True, CLASSIC_TOKEN, header_token=FINE_GRAINED_TOKEN)

    assert [credential.source for credential in source.credentials] == [
        TokenSource.HEADER,
        TokenSource.SERVER,
        TokenSource.CLIENT,
    ]


def test_unauthenticated_when_no_token_is_valid(store):
    source = FakeSource([])
    _service(store, source).get_contributions("alice", REPO, True, "garbage")
    assert source.credentials == [None]


def test_admission_denied_never_reaches_aggregator(store, sample_source):
    limiter = SlidingWindowLimiter(1, 60)
    service = _service(store, sample_source, limiter=limiter)
    service.get_contributions("alice", REPO, True, client_key="10.0.0.1")

    with pytest.raises(AdmissionDenied) as excinfo:
        service.get_contributions("alice", REPO, True, client_key="10.0.0.1")

    assert excinfo.value.retry_after > 0
    assert sample_source.list_calls == 1


@pytest.mark.parametrize("repository", ["acme", "acme/", "/shop", "acme/shop/extra"])
def test_malformed_repository_is_rejected(store, sample_source, repository):
    with pytest.raises(InvalidRepository):
        _service(store, sample_source).get_contributions("alice", repository)
    assert sample_source.list_calls == 0


def test_split_repository():
    assert split_repository("acme/shop") == ("acme", "shop")
