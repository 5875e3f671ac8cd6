"""Choose which GitHub token authenticates a remote call."""

from __future__ import annotations

from typing import Optional

from reviewpulse.models.domain import Credential, TokenKind, TokenSource

CLASSIC_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "ghr_")
FINE_GRAINED_PREFIX = "github_pat_"

CLASSIC_LENGTH = (35, 50)
FINE_GRAINED_LENGTH = (80, 100)


def token_kind(token: Optional[str]) -> Optional[TokenKind]:
    """Classify a token by shape, or return None when it matches neither shape."""

    if not token:
        return None
    if token.startswith(FINE_GRAINED_PREFIX):
        low, high = FINE_GRAINED_LENGTH
        return TokenKind.FINE_GRAINED if low <= len(token) <= high else None
    if token.startswith(CLASSIC_PREFIXES):
        low, high = CLASSIC_LENGTH
        return TokenKind.CLASSIC if low <= len(token) <= high else None
    return None


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""

    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None


def resolve_credential(
    client_supplied: Optional[str] = None,
    header_token: Optional[str] = None,
    server_configured: Optional[str] = None,
) -> Optional[Credential]:
    """Pick the first well-formed token, in client > header > server order.

    A malformed candidate is skipped, never used partially. None means the
    call goes out unauthenticated.
    """

    candidates = (
        (client_supplied, TokenSource.CLIENT),
        (header_token, TokenSource.HEADER),
        (server_configured, TokenSource.SERVER),
    )
    for token, source in candidates:
        kind = token_kind(token)
        if kind is not None:
            return Credential(value=token, kind=kind, source=source)
    return None


class CredentialResolver:
    """Binds the server-held token so callers only pass per-request candidates."""

    def __init__(self, server_token: Optional[str] = None) -> None:
        self._server_token = server_token

    @property
    def has_server_token(self) -> bool:
        return token_kind(self._server_token) is not None

    def resolve(
        self,
        client_supplied: Optional[str] = None,
        header_token: Optional[str] = None,
    ) -> Optional[Credential]:
        return resolve_credential(client_supplied, header_token, self._server_token)
