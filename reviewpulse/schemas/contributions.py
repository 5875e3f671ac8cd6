"""API schemas for contribution lookups."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from reviewpulse.models.domain import AggregationResult, PullRequestWithReviews

REPOSITORY_PATTERN = r"^[^/\s]+/[^/\s]+$"


class ContributionsRequest(BaseModel):
    """Request body for POST /v1/contributions."""

    user: str = Field(..., min_length=1, description="GitHub login whose activity is aggregated.")
    repo: str = Field(..., pattern=REPOSITORY_PATTERN, description="Repository as owner/name.")
    refresh: bool = Field(False, description="Bypass the cache and re-fetch from GitHub.")
    token: Optional[str] = Field(
        None,
        description="Optional GitHub token used for this request only; never stored.",
    )


class ContributionsResponse(BaseModel):
    created_prs: list[PullRequestWithReviews]
    reviewed_prs: list[PullRequestWithReviews]
    cached: bool = False
    review_fetch_failures: list[int] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: AggregationResult) -> "ContributionsResponse":
        return cls(
            created_prs=result.created,
            reviewed_prs=result.reviewed,
            cached=result.cached,
            review_fetch_failures=result.review_fetch_failures,
        )
