from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from reviewpulse.core.errors import GitHubError, RemoteError
from reviewpulse.models.domain import GitHubUser, PullRequest, Review

BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

CLASSIC_TOKEN = "ghp_" + "a" * 36
FINE_GRAINED_TOKEN = "github_pat_" + "b" * 82
OTHER_CLASSIC_TOKEN = "gho_" + "c" * 36


def at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


_user_ids = {"alice": 1, "bob": 2, "carol": 3, "dave": 4}


def make_user(login: str) -> GitHubUser:
    return GitHubUser(login=login, id=_user_ids.get(login, 99))


def make_pr(
    number: int,
    author: str,
    *,
    created: int = 0,
    merged: Optional[int] = None,
    closed: Optional[int] = None,
) -> PullRequest:
    if merged is not None and closed is None:
        closed = merged
    return PullRequest(
        id=1000 + number,
        number=number,
        title=f"Change #{number}",
        state="closed" if closed is not None else "open",
        created_at=at(created),
        updated_at=at(created + 1),
        closed_at=at(closed) if closed is not None else None,
        merged_at=at(merged) if merged is not None else None,
        user=make_user(author),
        html_url=f"https://github.com/acme/shop/pull/{number}",
    )


def make_review(review_id: int, reviewer: str, state: str, minute: int, body: Optional[str] = None) -> Review:
    return Review(
        id=review_id,
        user=make_user(reviewer),
        body=body,
        state=state,
        submitted_at=at(minute),
    )


class FakeSource:
    """In-memory stand-in for the GitHub client."""

    def __init__(self, pull_requests, reviews=None, failing=(), list_error: GitHubError | None = None):
        self.pull_requests = list(pull_requests)
        self.reviews = dict(reviews or {})
        self.failing = set(failing)
        self.list_error = list_error
        self.list_calls = 0
        self.review_calls: list[int] = []
        self.credentials = []

    def list_pull_requests(self, owner, repo, credential=None):
        self.list_calls += 1
        self.credentials.append(credential)
        if self.list_error is not None:
            raise self.list_error
        return list(self.pull_requests)

    def list_reviews(self, owner, repo, number, credential=None):
        self.review_calls.append(number)
        if number in self.failing:
            raise RemoteError("GitHub API Error: 502 Bad Gateway", 502)
        return list(self.reviews.get(number, []))


@pytest.fixture
def sample_source() -> FakeSource:
    """alice authors #3, #7 and #9; bob authors #5 and #11; carol authors #13."""

    pulls = [
        make_pr(13, "carol", created=50),
        make_pr(11, "bob", created=40, merged=90),
        make_pr(9, "alice", created=30),
        make_pr(7, "alice", created=20, closed=60),
        make_pr(5, "bob", created=10),
        make_pr(3, "alice", created=0, merged=45),
    ]
    reviews = {
        3: [make_review(31, "bob", "COMMENTED", 5), make_review(32, "carol", "APPROVED", 8)],
        5: [make_review(51, "carol", "APPROVED", 12), make_review(52, "alice", "COMMENTED", 15)],
        7: [make_review(71, "bob", "DISMISSED", 25), make_review(72, "bob", "CHANGES_REQUESTED", 27)],
        9: [],
        11: [
            make_review(111, "alice", "DISMISSED", 41),
            make_review(112, "alice", "APPROVED", 44),
            make_review(113, "carol", "COMMENTED", 42),
        ],
        13: [make_review(131, "bob", "APPROVED", 55)],
    }
    return FakeSource(pulls, reviews)
