"""
Bearer-token authentication.

Every API route except /health resolves the caller from the bearer token.
Production verifies tokens with Supabase auth; tests and
local runs use an in-memory token table.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from supabase import AuthError, Client, create_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: Optional[str] = None


class AuthClient(Protocol):
    def get_user(self, token: str) -> Optional[AuthUser]:
        ...


@dataclass
class InMemoryAuthClient:
    """Token table for tests and local development."""

    tokens: Dict[str, AuthUser] = field(default_factory=dict)

    def issue_token(self, user_id: str, email: Optional[str] = None) -> str:
        token = secrets.token_urlsafe(24)
        self.tokens[token] = AuthUser(id=user_id, email=email)
        return token

    def get_user(self, token: str) -> Optional[AuthUser]:
        return self.tokens.get(token)


@dataclass
class SupabaseAuthClient:
    """Validates access tokens against Supabase auth."""

    url: str
    anon_key: str

    def __post_init__(self):
        self._client: Client = create_client(self.url, self.anon_key)

    def get_user(self, token: str) -> Optional[AuthUser]:
        try:
            response = self._client.auth.get_user(token)
        except AuthError as e:
            logger.info("Rejected bearer token: %s", e)
            return None
        if response is None or response.user is None:
            return None
        return AuthUser(id=response.user.id, email=response.user.email)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an "Authorization: Bearer <token>" header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
