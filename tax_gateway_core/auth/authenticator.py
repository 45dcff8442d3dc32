"""
Two-stage portal login.

Stage one authenticates this client with the gateway using the API
key/secret. Stage two authenticates the company with its document authority
using the company's own username/password/GSTIN, presenting the gateway token.

Each token kind has its own lock, held across check-authenticate-store so
that concurrent callers never refresh the same token twice and a 401 clear
never discards a token another caller has just refreshed. A rejected
authority login also clears the gateway token it presented, so a token the
portal revoked early is not replayed until it expires locally.
"""

import threading
from typing import Any, Dict, Optional

import requests

from ..config import AuthorityCredentials, PortalConfig
from ..constants import API_VERSION, JSON_CONTENT_TYPE, AuthStage, PortalHeader, TokenKind
from ..exceptions import AuthenticationError, ErrorCode, TransportError
from ..schemas.token_schemas import Token
from ..utils.logger import get_logger
from .authorities import DocumentAuthority, format_error_details
from .token_store import TokenStore

_REJECTED_STATUSES = (401, 403)


class Authenticator:
    """Obtains, caches and invalidates the gateway and authority tokens."""

    def __init__(
        self,
        portal: PortalConfig,
        credentials: AuthorityCredentials,
        authority: DocumentAuthority,
        token_store: TokenStore,
        session: requests.Session,
    ):
        self.portal = portal
        self.credentials = credentials
        self.authority = authority
        self.token_store = token_store
        self.session = session
        self.logger = get_logger()
        self._locks = {kind: threading.Lock() for kind in TokenKind}

    def get_valid_token(self, kind: TokenKind) -> str:
        """
        Return a usable token of the given kind, logging in first if needed.

        The authority lock is taken before the gateway lock (the authority
        login needs a gateway token), never the other way round.
        """
        with self._locks[kind]:
            if self.token_store.is_valid(kind):
                return self.token_store.get(kind).value
            if kind is TokenKind.GATEWAY:
                return self._login_gateway().value
            return self._login_document_authority().value

    def authenticate_gateway(self) -> Token:
        """Force a fresh gateway login."""
        with self._locks[TokenKind.GATEWAY]:
            return self._login_gateway()

    def authenticate_document_authority(self) -> Token:
        """Force a fresh document-authority login (and a gateway login if needed)."""
        with self._locks[TokenKind.DOCUMENT_AUTHORITY]:
            return self._login_document_authority()

    def invalidate(self, used_tokens: Optional[Dict[TokenKind, str]] = None) -> None:
        """
        Drop both tokens after the portal rejected them.

        Args:
            used_tokens: Token values the rejected request carried. A stored
                token is only cleared if it still holds that value; a token
                refreshed in the meantime by another caller is kept.
        """
        used_tokens = used_tokens or {}
        for kind in (TokenKind.DOCUMENT_AUTHORITY, TokenKind.GATEWAY):
            with self._locks[kind]:
                self._clear_if_current(kind, used_tokens.get(kind))

        self.logger.warning(
            "Portal rejected session tokens, cleared cached tokens",
            extra={"authority": self.authority.name},
        )

    def _clear_if_current(self, kind: TokenKind, used: Optional[str]) -> None:
        """Clear the stored token unless it differs from the one that was rejected. Caller holds the lock."""
        current = self.token_store.get(kind)
        if current is None:
            return
        if used is None or used == current.value:
            self.token_store.clear(kind)

    def _post(self, url: str, stage: AuthStage, headers: Dict[str, str], payload: Dict[str, Any]) -> Any:
        try:
            response = self.session.post(url, json=payload, headers=headers, timeout=self.portal.timeout)
        except requests.Timeout as e:
            raise TransportError(
                f"{stage.value} authentication request timed out: {e}",
                cause=e,
                error_code=ErrorCode.TIMEOUT_ERROR,
                stage=stage.value,
            ) from e
        except requests.RequestException as e:
            raise TransportError(
                f"{stage.value} authentication request failed: {e}", cause=e, stage=stage.value
            ) from e

        if response.status_code in _REJECTED_STATUSES:
            if stage is AuthStage.GATEWAY:
                message = (
                    "Gateway authentication failed: invalid API credentials "
                    f"for {self.portal.environment} environment"
                )
            else:
                message = f"{self.authority.name} authentication failed: credentials rejected"
            raise AuthenticationError(message, stage=stage, http_status=response.status_code)

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"{stage.value} authentication failed with HTTP {response.status_code}",
                http_status=response.status_code,
                stage=stage.value,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"{stage.value} authentication returned a non-JSON body",
                http_status=response.status_code,
                cause=e,
                stage=stage.value,
            ) from e

    def _login_gateway(self) -> Token:
        body = self._post(
            f"{self.portal.base_url}/authenticate",
            AuthStage.GATEWAY,
            headers={
                PortalHeader.API_KEY.value: self.portal.api_key,
                PortalHeader.API_SECRET.value: self.portal.api_secret,
                PortalHeader.API_VERSION.value: API_VERSION,
                PortalHeader.CONTENT_TYPE.value: JSON_CONTENT_TYPE,
            },
            payload={},
        )

        data = body.get("data") if isinstance(body, dict) else None
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise TransportError("Invalid authentication response from gateway", stage=AuthStage.GATEWAY.value)

        token = self.token_store.set(TokenKind.GATEWAY, access_token)
        self.logger.info(
            "Gateway authentication successful",
            extra={"environment": self.portal.environment, "expires_at": token.expires_at.isoformat()},
        )
        return token

    def _discard_gateway_token(self, gateway_token: str) -> None:
        # Authority lock is held; gateway lock comes second, matching get_valid_token
        with self._locks[TokenKind.GATEWAY]:
            self._clear_if_current(TokenKind.GATEWAY, gateway_token)
        self.logger.warning(
            f"{self.authority.name} login rejected, cleared the gateway token it presented",
            extra={"authority": self.authority.name},
        )

    def _login_document_authority(self) -> Token:
        gateway_token = self.get_valid_token(TokenKind.GATEWAY)

        try:
            body = self._post(
                f"{self.portal.base_url}{self.authority.login_path}",
                AuthStage.DOCUMENT_AUTHORITY,
                headers={
                    PortalHeader.AUTHORIZATION.value: gateway_token,
                    PortalHeader.API_KEY.value: self.portal.api_key,
                    PortalHeader.API_VERSION.value: API_VERSION,
                    PortalHeader.CONTENT_TYPE.value: JSON_CONTENT_TYPE,
                },
                payload={
                    "username": self.credentials.username,
                    "password": self.credentials.password,
                    "gstin": self.credentials.gstin,
                },
            )
        except AuthenticationError:
            self._discard_gateway_token(gateway_token)
            raise

        auth_token = self.authority.extract_token(body)
        if auth_token:
            token = self.token_store.set(TokenKind.DOCUMENT_AUTHORITY, auth_token)
            self.logger.info(
                f"{self.authority.name} authentication successful",
                extra={"gstin": self.credentials.gstin, "expires_at": token.expires_at.isoformat()},
            )
            return token

        errors = self.authority.extract_errors(body)
        if errors:
            self._discard_gateway_token(gateway_token)
            raise AuthenticationError(
                f"{self.authority.name} authentication failed: {format_error_details(errors)}",
                stage=AuthStage.DOCUMENT_AUTHORITY,
                details=errors,
            )

        raise TransportError(
            f"Invalid authentication response from {self.authority.name} portal",
            stage=AuthStage.DOCUMENT_AUTHORITY.value,
        )
