from __future__ import annotations

import pytest

from conftest import CLASSIC_TOKEN, FINE_GRAINED_TOKEN, OTHER_CLASSIC_TOKEN
from reviewpulse.github.credentials import CredentialResolver, bearer_token, resolve_credential, token_kind
from reviewpulse.models.domain import TokenKind, TokenSource


@pytest.mark.parametrize(
    "token, expected",
    [
        ("ghp_" + "x" * 31, TokenKind.CLASSIC),
        ("ghs_" + "x" * 46, TokenKind.CLASSIC),
        ("ghp_" + "x" * 30, None),
        ("ghp_" + "x" * 47, None),
        ("github_pat_" + "x" * 69, TokenKind.FINE_GRAINED),
        ("github_pat_" + "x" * 89, TokenKind.FINE_GRAINED),
        ("github_pat_" + "x" * 30, None),
        ("xyz_" + "x" * 36, None),
        ("", None),
        (None, None),
    ],
)
def test_token_kind_shapes(token, expected):
    assert token_kind(token) == expected


def test_bearer_token_extraction():
    assert bearer_token(f"Bearer {CLASSIC_TOKEN}") == CLASSIC_TOKEN
    assert bearer_token(f"token {CLASSIC_TOKEN}") is None
    assert bearer_token("Bearer ") is None
    assert bearer_token(None) is None


def test_client_token_beats_header_and_server():
    credential = resolve_credential(CLASSIC_TOKEN, FINE_GRAINED_TOKEN, OTHER_CLASSIC_TOKEN)
    assert credential.value == CLASSIC_TOKEN
    assert credential.source == TokenSource.CLIENT
    assert credential.kind == TokenKind.CLASSIC


def test_header_token_beats_server():
    credential = resolve_credential(None, FINE_GRAINED_TOKEN, OTHER_CLASSIC_TOKEN)
    assert credential.value == FINE_GRAINED_TOKEN
    assert credential.source == TokenSource.HEADER
    assert credential.kind == TokenKind.FINE_GRAINED


def test_invalid_client_token_falls_back_to_header():
    credential = resolve_credential("ghp_short", FINE_GRAINED_TOKEN, OTHER_CLASSIC_TOKEN)
    assert credential.value == FINE_GRAINED_TOKEN
    assert credential.source == TokenSource.HEADER


def test_invalid_candidates_fall_back_to_server():
    credential = resolve_credential("not-a-token", "ghp_short", OTHER_CLASSIC_TOKEN)
    assert credential.value == OTHER_CLASSIC_TOKEN
    assert credential.source == TokenSource.SERVER


def test_no_valid_candidate_resolves_to_none():
    assert resolve_credential("bad", "worse", "github_pat_tooshort") is None
    assert resolve_credential() is None


def test_resolver_binds_server_token():
    resolver = CredentialResolver(OTHER_CLASSIC_TOKEN)
    assert resolver.has_server_token
    assert resolver.resolve().source == TokenSource.SERVER
    assert resolver.resolve(client_supplied=CLASSIC_TOKEN).source == TokenSource.CLIENT
    assert not CredentialResolver(None).has_server_token


def test_credential_repr_hides_token():
    credential = resolve_credential(CLASSIC_TOKEN)
    assert CLASSIC_TOKEN not in repr(credential)
    assert credential.authorization_header() == f"Bearer {CLASSIC_TOKEN}"
