"""Pre-flight document validation."""

from .document_validator import (
    cancellation_window_open,
    normalize_vehicle_number,
    validate_einvoice,
    validate_eway_bill,
    validate_gstin,
    validate_vehicle_number,
)

__all__ = [
    "cancellation_window_open",
    "normalize_vehicle_number",
    "validate_einvoice",
    "validate_eway_bill",
    "validate_gstin",
    "validate_vehicle_number",
]
