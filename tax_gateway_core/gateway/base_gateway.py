"""
Base gateway wiring shared by the e-invoice and e-way bill gateways.
"""

import time
from typing import Any, Callable, Dict, Optional, Type

import requests

from ..auth.authenticator import Authenticator
from ..auth.authorities import DocumentAuthority, format_error_details
from ..auth.token_store import TokenStore
from ..config import AppConfig, AuthorityCredentials, PortalConfig, RetryConfig
from ..constants import DocumentStatusValue, PortalHeader
from ..context.cancellation import CancellationToken
from ..context.company_context import company_context
from ..exceptions import ClientError, DuplicateDocumentError, ValidationError, validation_failed
from ..schemas.document_schemas import CancellationResult, DocumentStatus, ValidationResult
from ..utils.hash_utils import idempotency_key
from ..utils.logger import get_logger
from .request_executor import RequestExecutor

# Status codes seen across portal versions, mapped to our lifecycle states
_STATUS_ALIASES = {
    "ACT": DocumentStatusValue.GENERATED,
    "ACTIVE": DocumentStatusValue.GENERATED,
    "GENERATED": DocumentStatusValue.GENERATED,
    "CNL": DocumentStatusValue.CANCELLED,
    "CANCELLED": DocumentStatusValue.CANCELLED,
    "CANCELED": DocumentStatusValue.CANCELLED,
}

# Portal replied 2xx but the body carries no document; surfaced as a client error
REJECTED_IN_BODY_STATUS = 422


def unwrap(body: Any) -> Dict[str, Any]:
    """The portal wraps results in a "data" envelope, sometimes twice."""
    payload = body if isinstance(body, dict) else {}
    for key in ("data", "Data"):
        inner = payload.get(key)
        if isinstance(inner, dict):
            payload = inner
    return payload


def first_value(payload: Dict[str, Any], *keys: str) -> Optional[Any]:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def map_status(raw_status: Any) -> DocumentStatusValue:
    if raw_status is None:
        return DocumentStatusValue.UNKNOWN
    return _STATUS_ALIASES.get(str(raw_status).strip().upper(), DocumentStatusValue.UNKNOWN)


class BaseGateway:
    """
    Owns one company's credentials, token store, authenticator and executor.

    One instance per company: document-authority credentials are
    company-specific and tokens are never shared between instances.
    """

    authority_class: Type[DocumentAuthority] = DocumentAuthority

    def __init__(
        self,
        portal: PortalConfig,
        credentials: AuthorityCredentials,
        retry: Optional[RetryConfig] = None,
        session: Optional[requests.Session] = None,
        token_store: Optional[TokenStore] = None,
        sleep: Callable[[float], None] = time.sleep,
        use_idempotency_key: bool = True,
    ):
        self.portal = portal
        self.credentials = credentials
        self.authority = self.authority_class()
        self.session = session or requests.Session()
        self.token_store = token_store or TokenStore()
        self.use_idempotency_key = use_idempotency_key
        self.logger = get_logger()
        self.authenticator = Authenticator(
            portal=portal,
            credentials=credentials,
            authority=self.authority,
            token_store=self.token_store,
            session=self.session,
        )
        self.executor = RequestExecutor(
            portal=portal,
            authenticator=self.authenticator,
            authority=self.authority,
            session=self.session,
            retry=retry,
            sleep=sleep,
        )

    @classmethod
    def from_config(
        cls, credentials: AuthorityCredentials, config: Optional[AppConfig] = None, **kwargs
    ) -> "BaseGateway":
        """Build a gateway from application configuration (environment defaults)."""
        config = config or AppConfig.from_env()
        return cls(
            portal=cls._portal_for(config),
            credentials=credentials,
            retry=config.retry,
            use_idempotency_key=config.features.enable_idempotency_key,
            **kwargs,
        )

    @classmethod
    def _portal_for(cls, config: AppConfig) -> PortalConfig:
        return config.portal

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "BaseGateway":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @staticmethod
    def _require_reference(reference_number: Any) -> str:
        if not isinstance(reference_number, str) or not reference_number.strip():
            raise validation_failed("reference_number", reference_number, "reference number is required")
        return reference_number.strip()

    def _ensure_valid(self, result: ValidationResult, document: Dict[str, Any]) -> None:
        for warning in result.warnings:
            self.logger.warning(
                f"{self.authority.name} validation warning", extra={"warning": warning}
            )
        if not result.is_valid:
            document_number = None
            if isinstance(document, dict):
                document_number = document.get("DocNo") or document.get("docNo")
            raise ValidationError(
                f"{self.authority.name} document failed validation: {'; '.join(result.errors)}",
                errors=result.errors,
                warnings=result.warnings,
                document_number=document_number,
            )

    def _submission_headers(self, document: Dict[str, Any]) -> Dict[str, str]:
        if not self.use_idempotency_key:
            return {}
        key = idempotency_key(document, self.authority.idempotency_fields)
        return {PortalHeader.IDEMPOTENCY_KEY.value: key}

    def _rejected_in_body(self, body: Any, what: str) -> ClientError:
        """Error for a 2xx reply that carries portal errors instead of a result."""
        errors = self.authority.extract_errors(body)
        if errors and self.authority.is_duplicate(errors):
            return DuplicateDocumentError(
                f"Document already registered with {self.authority.name} portal: "
                f"{format_error_details(errors)}",
                status=REJECTED_IN_BODY_STATUS,
                details=errors,
                response_body=body,
            )
        message = format_error_details(errors) if errors else f"Portal response did not include {what}"
        return ClientError(message, status=REJECTED_IN_BODY_STATUS, response_body=body, details=errors)

    def _submit(
        self, document: Dict[str, Any], result: ValidationResult, cancellation: Optional[CancellationToken]
    ) -> Any:
        self._ensure_valid(result, document)
        return self.executor.execute(
            self.authority.document_path(),
            "POST",
            document,
            headers=self._submission_headers(document),
            cancellation=cancellation,
        )

    def cancel(
        self,
        reference_number: str,
        reason: str,
        remarks: str = "",
        cancellation: Optional[CancellationToken] = None,
    ) -> CancellationResult:
        """
        Cancel a previously registered document.

        Args:
            reference_number: Authority-issued reference number
            reason: Cancellation reason code; must not be empty
            remarks: Free-text remarks
            cancellation: Optional cancellation token for this call

        Returns:
            CancellationResult with status "cancelled"
        """
        reference_number = self._require_reference(reference_number)
        if reason is None or not str(reason).strip():
            raise validation_failed("reason", reason, "cancellation reason is required")

        with company_context(self.credentials.gstin):
            self.logger.info(
                f"Cancelling {self.authority.name} document",
                extra={"reference_number": reference_number, "reason": reason},
            )
            body = self.executor.execute(
                self.authority.document_path(reference_number, "cancel"),
                "POST",
                {"cancel_reason": reason, "remarks": remarks or ""},
                cancellation=cancellation,
            )
            if self.authority.extract_errors(body):
                raise self._rejected_in_body(body, "a cancellation")
            payload = unwrap(body)
            self.logger.info(
                f"{self.authority.name} document cancelled", extra={"reference_number": reference_number}
            )
            return CancellationResult(
                reference_number=reference_number,
                cancelled_at=first_value(payload, "CancelDate", "cancelDate", "cancel_date"),
                raw=body if isinstance(body, dict) else {},
            )

    def get_status(
        self, reference_number: str, cancellation: Optional[CancellationToken] = None
    ) -> DocumentStatus:
        """Fetch the portal-side state of a document. Read-only and idempotent."""
        reference_number = self._require_reference(reference_number)

        with company_context(self.credentials.gstin):
            self.logger.info(
                f"Getting {self.authority.name} document status",
                extra={"reference_number": reference_number},
            )
            body = self.executor.execute(
                self.authority.document_path(reference_number), "GET", cancellation=cancellation
            )
            payload = unwrap(body)
            return DocumentStatus(
                reference_number=reference_number,
                status=map_status(first_value(payload, "Status", "status")),
                acknowledgment_number=self._optional_str(first_value(payload, "AckNo", "ack_no", "ackNo")),
                acknowledgment_date=self._optional_str(first_value(payload, "AckDt", "ack_dt", "ackDt")),
                raw=body if isinstance(body, dict) else {},
            )

    @staticmethod
    def _optional_str(value: Any) -> Optional[str]:
        return None if value is None else str(value)
