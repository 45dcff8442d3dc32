"""
Local structural validation of documents before they are sent to the portal.

Validation is pure and cheap: it never touches the network. Errors block
submission; warnings are informational only.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from ..auth.token_store import utc_now
from ..config import GSTIN_PATTERN
from ..constants import CANCELLATION_WINDOW
from ..schemas.document_schemas import ValidationResult

EINVOICE_MANDATORY_FIELDS = ["DocDt", "DocNo", "SellerGstin", "BuyerName", "ItemList", "TotInvVal"]
EINVOICE_ITEM_MANDATORY_FIELDS = ["SlNo", "PrdDesc", "HsnCd", "Qty", "UnitPrice", "TotAmt"]
EWAY_BILL_MANDATORY_FIELDS = ["docNo", "docDate"]

MIN_HSN_LENGTH = 6
VEHICLE_NUMBER_PATTERN = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z]{1,2}[0-9]{4}$")
# Recipients without GST registration are identified as "Unregistered Person"
UNREGISTERED_RECIPIENT = "URP"


def _is_missing(document: Dict[str, Any], field: str) -> bool:
    value = document.get(field)
    return value is None or (isinstance(value, str) and not value.strip())


def _to_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def validate_gstin(gstin: Any) -> bool:
    """True if gstin is a well-formed 15-character GST registration identifier."""
    return isinstance(gstin, str) and bool(GSTIN_PATTERN.match(gstin))


def normalize_vehicle_number(vehicle_number: str) -> str:
    return re.sub(r"\s", "", vehicle_number).upper()


def validate_vehicle_number(vehicle_number: Any) -> bool:
    """True for registration plates like MH12AB1234 or DL01C1234 (spaces ignored)."""
    if not vehicle_number or not isinstance(vehicle_number, str):
        return False
    return bool(VEHICLE_NUMBER_PATTERN.match(normalize_vehicle_number(vehicle_number)))


def _check_positive_total(document: Dict[str, Any], field: str, label: str, errors: List[str]) -> None:
    if _is_missing(document, field):
        return
    amount = _to_decimal(document[field])
    if amount is None:
        errors.append(f"{label} ({field}) must be a number: {document[field]}")
    elif amount <= 0:
        errors.append(f"{label} ({field}) must be greater than 0")


def validate_einvoice(document: Any) -> ValidationResult:
    """
    Check an e-invoice payload against the portal's structural rules.

    Checks, in order: mandatory top-level fields, a non-empty item list with
    mandatory item fields, HSN code length (warning only), seller and buyer
    GSTIN format, and a positive total invoice value.
    """
    result = ValidationResult()
    if not isinstance(document, dict):
        result.errors.append("Document must be an object")
        return result

    for field in EINVOICE_MANDATORY_FIELDS:
        if _is_missing(document, field):
            result.errors.append(f"Missing mandatory field: {field}")

    items = document.get("ItemList")
    if isinstance(items, list) and items:
        for index, item in enumerate(items, start=1):
            if not isinstance(item, dict):
                result.errors.append(f"Item {index} must be an object")
                continue
            for field in EINVOICE_ITEM_MANDATORY_FIELDS:
                if item.get(field) is None:
                    result.errors.append(f"Missing mandatory field in item {index}: {field}")

            hsn_code = item.get("HsnCd")
            if hsn_code is not None and len(str(hsn_code)) < MIN_HSN_LENGTH:
                result.warnings.append(
                    f"HSN code in item {index} should be at least {MIN_HSN_LENGTH} digits: {hsn_code}"
                )
    elif items is not None:
        result.errors.append("ItemList must be a non-empty list")

    seller_gstin = document.get("SellerGstin")
    if not _is_missing(document, "SellerGstin") and not validate_gstin(seller_gstin):
        result.errors.append(f"Invalid seller GSTIN format (SellerGstin): {seller_gstin}")

    buyer_gstin = document.get("BuyerGstin")
    if not _is_missing(document, "BuyerGstin") and not validate_gstin(buyer_gstin):
        result.errors.append(f"Invalid buyer GSTIN format (BuyerGstin): {buyer_gstin}")

    _check_positive_total(document, "TotInvVal", "Total invoice value", result.errors)

    return result


def validate_eway_bill(document: Any) -> ValidationResult:
    """Check an e-way bill payload: document identity, party GSTINs, vehicle and value."""
    result = ValidationResult()
    if not isinstance(document, dict):
        result.errors.append("Document must be an object")
        return result

    for field in EWAY_BILL_MANDATORY_FIELDS:
        if _is_missing(document, field):
            result.errors.append(f"Missing mandatory field: {field}")

    for field, label in (("fromGstin", "consignor"), ("toGstin", "consignee")):
        value = document.get(field)
        if _is_missing(document, field) or value == UNREGISTERED_RECIPIENT:
            continue
        if not validate_gstin(value):
            result.errors.append(f"Invalid {label} GSTIN format ({field}): {value}")

    vehicle_number = document.get("vehicleNo")
    if not _is_missing(document, "vehicleNo") and not validate_vehicle_number(vehicle_number):
        result.errors.append(f"Invalid vehicle number format (vehicleNo): {vehicle_number}")

    _check_positive_total(document, "totInvValue", "Total invoice value", result.errors)

    return result


def cancellation_window_open(acknowledgment_date: datetime, now: Optional[datetime] = None) -> bool:
    """
    True while a document may still be cancelled with the authority.

    The authority accepts cancellations for 24 hours after acknowledgment,
    inclusive. Naive datetimes are treated as UTC.
    """
    now = now or utc_now()
    if acknowledgment_date.tzinfo is None:
        acknowledgment_date = acknowledgment_date.replace(tzinfo=now.tzinfo)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=acknowledgment_date.tzinfo)
    return now - acknowledgment_date <= CANCELLATION_WINDOW
