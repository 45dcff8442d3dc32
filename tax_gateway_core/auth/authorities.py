"""
Document authority profiles.

The portal fronts two business authorities, e-invoicing (IRP) and e-way
bills, behind the same gateway login. They differ in login path, in the
header that carries their token, in where documents live, and in the shape
of their login responses. A DocumentAuthority captures those differences so
the authenticator and executor stay authority-agnostic.
"""

from typing import Any, Dict, List, Optional

from ..constants import DUPLICATE_DOCUMENT_ERROR_CODE, PortalHeader
from ..utils.hash_utils import EINVOICE_KEY_FIELDS, EWAY_BILL_KEY_FIELDS


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _normalize_error_details(raw: Any) -> List[Dict[str, Any]]:
    """Coerce the portal's ErrorDetails list into ErrorCode/ErrorMessage dicts."""
    if not isinstance(raw, list):
        return []
    details = []
    for item in raw:
        if isinstance(item, dict):
            details.append(
                {
                    "ErrorCode": str(item.get("ErrorCode", item.get("errorCode", ""))),
                    "ErrorMessage": item.get("ErrorMessage", item.get("errorMessage", "")),
                }
            )
        else:
            details.append({"ErrorCode": "", "ErrorMessage": str(item)})
    return details


def format_error_details(details: List[Dict[str, Any]]) -> str:
    return ", ".join(f"{d['ErrorCode']}: {d['ErrorMessage']}" for d in details)


class DocumentAuthority:
    """Base profile; subclasses fill in the class attributes."""

    name: str = ""
    login_path: str = ""
    documents_path: str = ""
    token_header: PortalHeader = PortalHeader.EINVOICE_TOKEN
    idempotency_fields: List[str] = []

    def document_path(self, reference_number: Optional[str] = None, action: Optional[str] = None) -> str:
        """Endpoint for the document collection, one document, or an action on it."""
        path = self.documents_path
        if reference_number:
            path = f"{path}/{reference_number}"
        if action:
            path = f"{path}/{action}"
        return path

    def extract_token(self, body: Any) -> Optional[str]:
        raise NotImplementedError

    def extract_errors(self, body: Any) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def is_duplicate(self, errors: List[Dict[str, Any]]) -> bool:
        return any(error["ErrorCode"] == DUPLICATE_DOCUMENT_ERROR_CODE for error in errors)


class EInvoiceAuthority(DocumentAuthority):
    """Invoice Registration Portal: issues IRNs for e-invoices."""

    name = "e-invoice"
    login_path = "/gst/compliance/e-invoice/tax-payer/authenticate"
    documents_path = "/api/v1/gst/compliance/e-invoice"
    token_header = PortalHeader.EINVOICE_TOKEN
    idempotency_fields = EINVOICE_KEY_FIELDS

    def extract_token(self, body: Any) -> Optional[str]:
        inner = _as_dict(_as_dict(_as_dict(body).get("data")).get("Data"))
        return inner.get("AuthToken") or inner.get("authToken")

    def extract_errors(self, body: Any) -> List[Dict[str, Any]]:
        # Errors arrive inside a 200 under data.Data, data, or the top level
        data = _as_dict(_as_dict(body).get("data"))
        for container in (_as_dict(data.get("Data")), data, _as_dict(body)):
            details = _normalize_error_details(container.get("ErrorDetails"))
            if details:
                return details
        return []


class EWayBillAuthority(DocumentAuthority):
    """E-way bill portal: issues EWB numbers for goods movements."""

    name = "e-way-bill"
    login_path = "/gst/compliance/e-way-bill/tax-payer/authenticate"
    documents_path = "/api/v1/gst/compliance/e-way-bill"
    token_header = PortalHeader.EWAYBILL_TOKEN
    idempotency_fields = EWAY_BILL_KEY_FIELDS

    def extract_token(self, body: Any) -> Optional[str]:
        data = _as_dict(_as_dict(body).get("data"))
        return data.get("authToken") or data.get("AuthToken")

    def extract_errors(self, body: Any) -> List[Dict[str, Any]]:
        data = _as_dict(_as_dict(body).get("data"))
        error = data.get("error") or _as_dict(body).get("error")
        if not error:
            return []
        if isinstance(error, dict):
            codes = error.get("errorCodes")
            message = error.get("message", "")
            if codes:
                return [
                    {"ErrorCode": code.strip(), "ErrorMessage": message}
                    for code in str(codes).split(",")
                    if code.strip()
                ]
            return [{"ErrorCode": "", "ErrorMessage": message or "Authentication failed"}]
        return [{"ErrorCode": "", "ErrorMessage": str(error)}]
