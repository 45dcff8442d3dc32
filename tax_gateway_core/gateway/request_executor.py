"""
Authenticated portal requests with bounded retries.

Every attempt obtains both tokens, sends the request, and classifies the
outcome:

- 2xx: return the body.
- 4xx other than 401: ClientError, no retry.
- 401: invalidate both tokens; the next attempt logs in again.
- 5xx, timeouts, connection errors, transport failures while logging in:
  retried after an exponential backoff.

AuthenticationError and CancelledError are never retried.
"""

import math
import threading
import time
from typing import Any, Callable, Dict, Optional

import requests

from ..auth.authenticator import Authenticator
from ..auth.authorities import DocumentAuthority, format_error_details
from ..config import PortalConfig, RetryConfig
from ..constants import API_VERSION, JSON_CONTENT_TYPE, PortalHeader, TokenKind
from ..context.cancellation import CancellationToken
from ..exceptions import ClientError, DuplicateDocumentError, ErrorCode, RequestError, TransportError
from ..utils.backoff import BackoffPolicy
from ..utils.json_utils import to_jsonable
from ..utils.logger import get_logger

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# Longest uninterrupted sleep while a cancellation token is watched
CANCELLATION_CHECK_INTERVAL = 0.1


class RequestExecutor:
    """Sends document requests to the portal for one company."""

    def __init__(
        self,
        portal: PortalConfig,
        authenticator: Authenticator,
        authority: DocumentAuthority,
        session: requests.Session,
        retry: Optional[RetryConfig] = None,
        backoff: Optional[BackoffPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            portal: Portal connection settings
            authenticator: Sole source of tokens
            authority: Document authority whose token header is attached
            session: HTTP session used for document calls
            retry: Attempt budget and backoff settings (defaults apply if omitted)
            backoff: Explicit backoff policy; derived from retry if omitted
            sleep: Wait function used for backoff; with a cancellation token the
                delay is slept in short slices with a cancellation check between them
        """
        self.portal = portal
        self.authenticator = authenticator
        self.authority = authority
        self.session = session
        self.retry = retry or RetryConfig()
        self.backoff = backoff or BackoffPolicy.from_retry_config(self.retry)
        self._sleep = sleep
        self.logger = get_logger()
        self._state = threading.local()

    @property
    def retry_count(self) -> int:
        """
        Retries spent by the calling thread's current (or last failed) operation.

        Zero after success. Kept per thread so concurrent operations on one
        executor never see each other's count.
        """
        return getattr(self._state, "retry_count", 0)

    def execute(
        self,
        endpoint: str,
        method: str = "POST",
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Any:
        """
        Perform an authenticated request, retrying transient failures.

        Args:
            endpoint: Path appended to the portal base URL
            method: HTTP method
            body: JSON payload, sent for POST/PUT/PATCH only
            headers: Extra headers merged over the standard ones
            cancellation: Checked before every network call and during backoff

        Returns:
            Decoded response body

        Raises:
            ClientError: Portal rejected the request (4xx other than 401)
            AuthenticationError: Login rejected while obtaining tokens
            RequestError: All attempts failed transiently
            CancelledError: Cancellation requested
        """
        method = method.upper()
        url = f"{self.portal.base_url}{endpoint}"
        payload = to_jsonable(body) if body is not None and method in BODY_METHODS else None
        max_attempts = self.retry.max_retries
        last_error: Optional[Exception] = None
        self._state.retry_count = 0

        for attempt in range(max_attempts):
            self._checkpoint(cancellation, "obtaining tokens")
            used_tokens: Dict[TokenKind, str] = {}
            try:
                used_tokens[TokenKind.GATEWAY] = self.authenticator.get_valid_token(TokenKind.GATEWAY)
                used_tokens[TokenKind.DOCUMENT_AUTHORITY] = self.authenticator.get_valid_token(
                    TokenKind.DOCUMENT_AUTHORITY
                )
                self._checkpoint(cancellation, "portal request")
                response = self.session.request(
                    method,
                    url,
                    headers=self._build_headers(used_tokens, headers),
                    json=payload,
                    timeout=self.portal.timeout,
                )
            except TransportError as e:
                last_error = e
            except requests.RequestException as e:
                last_error = self._transport_error(e, endpoint)
            else:
                status = response.status_code
                if 200 <= status < 300:
                    self._state.retry_count = 0
                    return self._decode(response)
                if status == 401:
                    self.authenticator.invalidate(used_tokens)
                    last_error = TransportError(
                        "Portal rejected the session tokens", http_status=status, endpoint=endpoint
                    )
                elif 400 <= status < 500:
                    raise self._client_error(response, endpoint)
                else:
                    last_error = TransportError(
                        f"Portal returned HTTP {status}", http_status=status, endpoint=endpoint
                    )

            if attempt == max_attempts - 1:
                break

            self._state.retry_count = attempt + 1
            delay = self.backoff.delay(attempt)
            self.logger.warning(
                "Portal request failed, retrying",
                extra={
                    "endpoint": endpoint,
                    "attempt": attempt + 1,
                    "max_attempts": max_attempts,
                    "delay_seconds": delay,
                    "cause": str(last_error),
                },
            )
            self._wait(delay, cancellation)

        raise RequestError(
            f"Portal request failed after {max_attempts} attempts: {last_error}",
            last_cause=last_error,
            endpoint=endpoint,
            method=method,
            attempts=max_attempts,
            retries=self._state.retry_count,
        )

    def _build_headers(
        self, tokens: Dict[TokenKind, str], extra: Optional[Dict[str, str]]
    ) -> Dict[str, str]:
        headers = {
            PortalHeader.AUTHORIZATION.value: tokens[TokenKind.GATEWAY],
            PortalHeader.API_KEY.value: self.portal.api_key,
            PortalHeader.API_VERSION.value: API_VERSION,
            self.authority.token_header.value: tokens[TokenKind.DOCUMENT_AUTHORITY],
            PortalHeader.CONTENT_TYPE.value: JSON_CONTENT_TYPE,
        }
        if extra:
            headers.update(extra)
        return headers

    def _checkpoint(self, cancellation: Optional[CancellationToken], stage: str) -> None:
        if cancellation is not None:
            cancellation.raise_if_cancelled(stage)

    def _wait(self, delay: float, cancellation: Optional[CancellationToken]) -> None:
        if cancellation is None:
            self._sleep(delay)
            return

        slices = max(1, math.ceil(delay / CANCELLATION_CHECK_INTERVAL))
        for _ in range(slices):
            cancellation.raise_if_cancelled("retry backoff")
            self._sleep(delay / slices)
        cancellation.raise_if_cancelled("retry backoff")

    @staticmethod
    def _transport_error(error: requests.RequestException, endpoint: str) -> TransportError:
        if isinstance(error, requests.Timeout):
            return TransportError(
                f"Portal request timed out: {error}",
                cause=error,
                error_code=ErrorCode.TIMEOUT_ERROR,
                endpoint=endpoint,
            )
        return TransportError(f"Portal request failed: {error}", cause=error, endpoint=endpoint)

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return response.text

    def _client_error(self, response: requests.Response, endpoint: str) -> ClientError:
        body = self._decode(response)
        status = response.status_code
        errors = self.authority.extract_errors(body)

        if errors and self.authority.is_duplicate(errors):
            return DuplicateDocumentError(
                f"Document already registered with {self.authority.name} portal: "
                f"{format_error_details(errors)}",
                status=status,
                details=errors,
                response_body=body,
                endpoint=endpoint,
            )

        message = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
        if not message and errors:
            message = format_error_details(errors)
        if not message:
            message = f"{self.authority.name} API client error (HTTP {status})"

        return ClientError(str(message), status=status, response_body=body, endpoint=endpoint)
