"""Domain data models for pull-request contribution tracking."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class PullRequestState(str, Enum):
    """Lifecycle states reported by GitHub for a pull request."""

    OPEN = "open"
    CLOSED = "closed"


class ReviewState(str, Enum):
    """Submitted review verdicts."""

    COMMENTED = "COMMENTED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    APPROVED = "APPROVED"
    DISMISSED = "DISMISSED"


class TokenKind(str, Enum):
    CLASSIC = "classic"
    FINE_GRAINED = "fine_grained"


class TokenSource(str, Enum):
    """Where a resolved credential came from, in precedence order."""

    CLIENT = "client"
    HEADER = "header"
    SERVER = "server"


class GitHubUser(BaseModel):
    login: str
    id: int


class Review(BaseModel):
    """A single reviewer verdict on a pull request."""

    id: int
    user: GitHubUser
    body: Optional[str] = None
    state: ReviewState
    submitted_at: datetime


class PullRequest(BaseModel):
    """A pull request as listed by the repository pulls endpoint."""

    id: int
    number: int
    title: str
    state: PullRequestState
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    user: GitHubUser
    html_url: str

    @model_validator(mode="after")
    def _merged_implies_closed(self) -> "PullRequest":
        if self.merged_at is not None and (self.closed_at is None or self.state != PullRequestState.CLOSED):
            raise ValueError("a merged pull request must be closed and carry closed_at")
        return self


class PullRequestWithReviews(PullRequest):
    """Pull request enriched with its reviews and the derived review lifecycle."""

    reviews: list[Review] = Field(default_factory=list)
    review_started_at: Optional[datetime] = Field(
        None, description="Submission time of the first COMMENTED, CHANGES_REQUESTED or APPROVED review."
    )
    review_approved_at: Optional[datetime] = Field(
        None, description="Submission time of the first APPROVED review."
    )


class AggregationResult(BaseModel):
    """Authored and reviewed pull requests for one (repository, user) pair."""

    created: list[PullRequestWithReviews] = Field(default_factory=list)
    reviewed: list[PullRequestWithReviews] = Field(default_factory=list)
    cached: bool = False
    review_fetch_failures: list[int] = Field(
        default_factory=list,
        description="Numbers of pull requests whose reviews could not be fetched and are reported empty.",
    )

    def pull_requests(self) -> list[PullRequestWithReviews]:
        return [*self.created, *self.reviewed]


@dataclass(frozen=True)
class Credential:
    """A validated bearer token and the tier it was resolved from."""

    value: str = field(repr=False)
    kind: TokenKind
    source: TokenSource

    def authorization_header(self) -> str:
        return f"Bearer {self.value}"
