"""
In-memory store for the gateway and document-authority tokens.

The store only holds state. It performs no I/O and no locking; the
Authenticator serializes every read-modify-write against it.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from ..constants import (
    AUTHORITY_TOKEN_LIFETIME,
    AUTHORITY_TOKEN_REFRESH_MARGIN,
    GATEWAY_TOKEN_LIFETIME,
    GATEWAY_TOKEN_REFRESH_MARGIN,
    TokenKind,
)
from ..schemas.token_schemas import Token, TokenPolicy

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


DEFAULT_TOKEN_POLICIES: Dict[TokenKind, TokenPolicy] = {
    TokenKind.GATEWAY: TokenPolicy(
        lifetime=GATEWAY_TOKEN_LIFETIME, refresh_margin=GATEWAY_TOKEN_REFRESH_MARGIN
    ),
    TokenKind.DOCUMENT_AUTHORITY: TokenPolicy(
        lifetime=AUTHORITY_TOKEN_LIFETIME, refresh_margin=AUTHORITY_TOKEN_REFRESH_MARGIN
    ),
}


class TokenStore:
    """Holds at most one token per TokenKind together with its expiry."""

    def __init__(
        self,
        policies: Optional[Dict[TokenKind, TokenPolicy]] = None,
        clock: Clock = utc_now,
    ):
        """
        Args:
            policies: Per-kind lifetime overrides; defaults cover both kinds
            clock: Returns the current aware datetime; injectable for tests
        """
        self.policies = dict(DEFAULT_TOKEN_POLICIES)
        if policies:
            self.policies.update(policies)
        self._clock = clock
        self._tokens: Dict[TokenKind, Optional[Token]] = {kind: None for kind in TokenKind}

    def now(self) -> datetime:
        return self._clock()

    def get(self, kind: TokenKind) -> Optional[Token]:
        return self._tokens[kind]

    def set(self, kind: TokenKind, value: str, issued_at: Optional[datetime] = None) -> Token:
        """Store a freshly issued token, deriving its expiry from the kind's policy."""
        issued_at = issued_at or self.now()
        token = Token(
            kind=kind,
            value=value,
            issued_at=issued_at,
            expires_at=self.policies[kind].expires_at(issued_at),
        )
        self._tokens[kind] = token
        return token

    def clear(self, kind: TokenKind) -> None:
        self._tokens[kind] = None

    def is_valid(self, kind: TokenKind) -> bool:
        token = self._tokens[kind]
        return token is not None and token.is_valid_at(self.now())
