"""Redis-backed cache of aggregated pull requests and their reviews."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Iterable, Optional

from redis import Redis
from redis.exceptions import RedisError

from reviewpulse.core.errors import CacheUnavailable
from reviewpulse.models.domain import AggregationResult, PullRequest, PullRequestWithReviews, Review
from reviewpulse.services.reconciler import with_lifecycle

_logger = logging.getLogger(__name__)

SCHEMA_KEY = "reviewpulse:schema"
SCHEMA_VERSION = "1"


def _timestamp(dt: datetime) -> float:
    return dt.timestamp()


class RedisCacheStore:
    """Stores pull requests and reviews as JSON records with sorted-set secondary indexes.

    ``pulls:{repository}:{login}`` holds the ids of pull requests authored by a
    login and ``reviewed:{repository}:{login}`` the ids of pull requests that
    login reviewed, both scored by creation time. Review ids per pull request
    are scored by submission time.
    """

    def __init__(self, client: Redis) -> None:
        # Keys are built from index members, so the client must decode responses.

        self._client = client

    def init(self) -> None:
        try:
            self._client.ping()
            self._client.setnx(SCHEMA_KEY, SCHEMA_VERSION)
        except RedisError as exc:
            raise CacheUnavailable(f"Redis cache unavailable: {exc}") from exc
        _logger.info("Redis cache store initialised")

    def close(self) -> None:
        self._client.close()

    def upsert(self, pull_request: PullRequestWithReviews, repository: str) -> None:
        pr = pull_request
        try:
            previous = self._load(self._pull_request_key(pr.id))
            pipeline = self._client.pipeline()
            if previous and (previous["repository"], previous["user"]["login"]) != (repository, pr.user.login):
                pipeline.zrem(self._authored_key(previous["repository"], previous["user"]["login"]), pr.id)
            record = pr.model_dump(mode="json", exclude={"reviews", "review_started_at", "review_approved_at"})
            record["repository"] = repository
            pipeline.set(self._pull_request_key(pr.id), json.dumps(record))
            pipeline.zadd(self._authored_key(repository, pr.user.login), {pr.id: _timestamp(pr.created_at)})

            for review in pr.reviews:
                entry = review.model_dump(mode="json")
                entry["pr_id"] = pr.id
                entry["repository"] = repository
                pipeline.set(self._review_key(review.id), json.dumps(entry))
                pipeline.zadd(self._pull_request_reviews_key(pr.id), {review.id: _timestamp(review.submitted_at)})
                pipeline.zadd(self._reviewed_key(repository, review.user.login), {pr.id: _timestamp(pr.created_at)})
            pipeline.execute()
        except RedisError as exc:
            raise CacheUnavailable(f"Could not store pull request {pr.id}: {exc}") from exc
        _logger.debug("Upserted pull request %s#%d with %d reviews", repository, pr.number, len(pr.reviews))

    def has_cached_data(self, user: str, repository: str) -> bool:
        try:
            return bool(
                self._client.zcard(self._authored_key(repository, user))
                or self._client.zcard(self._reviewed_key(repository, user))
            )
        except RedisError as exc:
            raise CacheUnavailable(f"Could not query cache: {exc}") from exc

    def get_cached_data(self, user: str, repository: str) -> AggregationResult:
        try:
            authored = self._pull_requests(self._client.zrevrange(self._authored_key(repository, user), 0, -1), repository)
            reviewed = self._pull_requests(self._client.zrevrange(self._reviewed_key(repository, user), 0, -1), repository)
            created = [
                with_lifecycle(pr, self._reviews(pr.id, repository))
                for pr in authored
                if pr.user.login == user
            ]
            reviewed_prs = [
                with_lifecycle(pr, self._reviews(pr.id, repository), viewpoint_user=user)
                for pr in reviewed
                if pr.user.login != user
            ]
        except RedisError as exc:
            raise CacheUnavailable(f"Could not read cached data: {exc}") from exc
        return AggregationResult(created=created, reviewed=reviewed_prs, cached=True)

    def _pull_requests(self, ids: Iterable[str], repository: str) -> list[PullRequest]:
        keys = [self._pull_request_key(pr_id) for pr_id in ids]
        if not keys:
            return []
        pulls = []
        for blob in self._client.mget(keys):
            if not blob:
                continue
            record = json.loads(blob)
            if record.get("repository") == repository:
                pulls.append(PullRequest.model_validate(record))
        pulls.sort(key=lambda pr: (pr.created_at, pr.id), reverse=True)
        return pulls

    def _reviews(self, pr_id: int, repository: str) -> list[Review]:
        keys = [self._review_key(review_id) for review_id in self._client.zrange(self._pull_request_reviews_key(pr_id), 0, -1)]
        if not keys:
            return []
        reviews = []
        for blob in self._client.mget(keys):
            if not blob:
                continue
            entry = json.loads(blob)
            if entry.get("repository") == repository:
                reviews.append(Review.model_validate(entry))
        return reviews

    def _load(self, key: str) -> Optional[dict]:
        blob = self._client.get(key)
        return json.loads(blob) if blob else None

    @staticmethod
    def _pull_request_key(pr_id: int | str) -> str:
        return f"pull_request:{pr_id}"

    @staticmethod
    def _pull_request_reviews_key(pr_id: int | str) -> str:
        return f"pull_request:{pr_id}:reviews"

    @staticmethod
    def _review_key(review_id: int | str) -> str:
        return f"review:{review_id}"

    @staticmethod
    def _authored_key(repository: str, login: str) -> str:
        return f"pulls:{repository}:{login}"

    @staticmethod
    def _reviewed_key(repository: str, login: str) -> str:
        return f"reviewed:{repository}:{login}"
