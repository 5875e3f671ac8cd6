"""API routes for contribution lookups."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from reviewpulse.core.config import settings
from reviewpulse.core.errors import (
    AdmissionDenied,
    AuthenticationFailed,
    CacheUnavailable,
    Forbidden,
    InsufficientScope,
    InvalidRepository,
    NotFound,
    RateLimitExceeded,
    RemoteError,
    RemoteTimeout,
    ReviewPulseError,
)
from reviewpulse.dependencies import get_contribution_service
from reviewpulse.github.credentials import bearer_token
from reviewpulse.schemas.contributions import REPOSITORY_PATTERN, ContributionsRequest, ContributionsResponse
from reviewpulse.services.contributions import ContributionService

_logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{settings.api_v1_prefix}/contributions", tags=["contributions"])

_STATUS_BY_ERROR: list[tuple[type[ReviewPulseError], int, str]] = [
    (RateLimitExceeded, status.HTTP_429_TOO_MANY_REQUESTS, "GitHub API rate limit reached. Retry later."),
    (AuthenticationFailed, status.HTTP_401_UNAUTHORIZED, "GitHub authentication failed. Check your token."),
    (InsufficientScope, status.HTTP_403_FORBIDDEN, "The token lacks a required permission."),
    (Forbidden, status.HTTP_403_FORBIDDEN, "GitHub refused access to this repository."),
    (NotFound, status.HTTP_404_NOT_FOUND, "Repository not found or not visible to this token."),
    (RemoteTimeout, status.HTTP_504_GATEWAY_TIMEOUT, "GitHub did not respond in time."),
    (RemoteError, status.HTTP_502_BAD_GATEWAY, "Failed to fetch data from GitHub."),
    (CacheUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE, "The contribution cache is unavailable."),
]


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def _to_http_error(exc: ReviewPulseError) -> HTTPException:
    if isinstance(exc, AdmissionDenied):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Wait a moment and retry.",
            headers={"Retry-After": str(max(int(exc.retry_after + 0.999), 1))},
        )
    for error_type, status_code, detail in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=detail)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


def _lookup(
    service: ContributionService,
    request: Request,
    *,
    user: str,
    repo: str,
    refresh: bool,
    token: Optional[str],
    authorization: Optional[str],
) -> ContributionsResponse:
    try:
        result = service.get_contributions(
            user,
            repo,
            refresh,
            token,
            header_token=bearer_token(authorization),
            client_key=client_key(request),
        )
    except InvalidRepository as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ReviewPulseError as exc:
        if not isinstance(exc, AdmissionDenied):
            _logger.error("Contribution lookup for %s on %s failed: %s", user, repo, exc)
        raise _to_http_error(exc) from exc
    return ContributionsResponse.from_result(result)


@router.get("", response_model=ContributionsResponse)
def get_contributions(
    request: Request,
    user: str = Query(..., min_length=1),
    repo: str = Query(..., pattern=REPOSITORY_PATTERN),
    refresh: bool = False,
    authorization: Optional[str] = Header(None),
    service: ContributionService = Depends(get_contribution_service),
) -> ContributionsResponse:
    return _lookup(
        service,
        request,
        user=user,
        repo=repo,
        refresh=refresh,
        token=None,
        authorization=authorization,
    )


@router.post("", response_model=ContributionsResponse)
def post_contributions(
    payload: ContributionsRequest,
    request: Request,
    authorization: Optional[str] = Header(None),
    service: ContributionService = Depends(get_contribution_service),
) -> ContributionsResponse:
    return _lookup(
        service,
        request,
        user=payload.user,
        repo=payload.repo,
        refresh=payload.refresh,
        token=payload.token,
        authorization=authorization,
    )
