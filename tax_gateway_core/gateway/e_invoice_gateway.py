"""
E-invoice operations against the Invoice Registration Portal.
"""

from typing import Any, Dict, Optional

from ..auth.authorities import EInvoiceAuthority
from ..context.cancellation import CancellationToken
from ..context.company_context import company_context
from ..schemas.document_schemas import SubmissionResult
from ..validation.document_validator import validate_einvoice
from .base_gateway import BaseGateway, first_value, unwrap


class EInvoiceGateway(BaseGateway):
    """
    Registers, cancels and queries e-invoices for one company.

    Usage:
        gateway = EInvoiceGateway.from_config(credentials)
        result = gateway.submit(invoice)
        status = gateway.get_status(result.reference_number)
    """

    authority_class = EInvoiceAuthority

    def submit(
        self, document: Dict[str, Any], cancellation: Optional[CancellationToken] = None
    ) -> SubmissionResult:
        """
        Validate an e-invoice locally and register it to obtain an IRN.

        Raises:
            ValidationError: Document failed local checks; nothing was sent
            DuplicateDocumentError: Portal already issued an IRN for this document
            ClientError: Portal rejected the document
            AuthenticationError: Credentials or GSTIN rejected
            RequestError: Transient failures exhausted the retry budget
        """
        with company_context(self.credentials.gstin):
            self.logger.info(
                "Generating e-invoice",
                extra={"document_number": _doc_field(document, "DocNo"), "document_date": _doc_field(document, "DocDt")},
            )
            body = self._submit(document, validate_einvoice(document), cancellation)

            payload = unwrap(body)
            irn = first_value(payload, "Irn", "irn")
            if not irn:
                raise self._rejected_in_body(body, "an IRN")

            result = SubmissionResult(
                reference_number=str(irn),
                acknowledgment_number=self._optional_str(first_value(payload, "AckNo", "ack_no", "ackNo")),
                acknowledgment_date=self._optional_str(first_value(payload, "AckDt", "ack_dt", "ackDt")),
                signed_payload=first_value(payload, "SignedInvoice", "signed_invoice"),
                signed_qr_code=first_value(payload, "SignedQRCode", "signed_qr_code"),
                raw=body if isinstance(body, dict) else {},
            )
            self.logger.info(
                "E-invoice generated",
                extra={"reference_number": result.reference_number, "ack_number": result.acknowledgment_number},
            )
            return result


def _doc_field(document: Any, field: str) -> Any:
    return document.get(field) if isinstance(document, dict) else None
