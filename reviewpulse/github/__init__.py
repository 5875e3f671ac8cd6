"""GitHub REST access: credential resolution and the paginated client."""

from .client import GitHubClient
from .credentials import CredentialResolver, bearer_token, resolve_credential, token_kind

__all__ = ["GitHubClient", "CredentialResolver", "bearer_token", "resolve_credential", "token_kind"]
