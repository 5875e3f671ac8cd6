"""Derive review lifecycle timestamps from a pull request's reviews."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from reviewpulse.models.domain import PullRequest, PullRequestWithReviews, Review, ReviewState

REVIEW_STARTED_STATES = frozenset({ReviewState.COMMENTED, ReviewState.CHANGES_REQUESTED, ReviewState.APPROVED})


@dataclass(frozen=True)
class ReviewLifecycle:
    started_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None


def submission_order(reviews: Iterable[Review]) -> list[Review]:
    """Reviews sorted by submission time, ties broken by review id."""

    return sorted(reviews, key=lambda review: (review.submitted_at, review.id))


def derive_lifecycle(reviews: Iterable[Review], viewpoint_user: Optional[str] = None) -> ReviewLifecycle:
    """Compute when review started and when it was first approved.

    With a viewpoint user only that login's reviews count. DISMISSED reviews
    never mark the start of review.
    """

    ordered = submission_order(reviews)
    if viewpoint_user is not None:
        ordered = [review for review in ordered if review.user.login == viewpoint_user]

    started = next((r.submitted_at for r in ordered if r.state in REVIEW_STARTED_STATES), None)
    approved = next((r.submitted_at for r in ordered if r.state == ReviewState.APPROVED), None)
    return ReviewLifecycle(started_at=started, approved_at=approved)


def with_lifecycle(
    pull_request: PullRequest,
    reviews: Iterable[Review],
    viewpoint_user: Optional[str] = None,
) -> PullRequestWithReviews:
    """Attach reviews and their derived lifecycle to a pull request."""

    ordered = submission_order(reviews)
    lifecycle = derive_lifecycle(ordered, viewpoint_user)
    base = pull_request.model_dump(exclude={"reviews", "review_started_at", "review_approved_at"})
    return PullRequestWithReviews(
        **base,
        reviews=ordered,
        review_started_at=lifecycle.started_at,
        review_approved_at=lifecycle.approved_at,
    )
