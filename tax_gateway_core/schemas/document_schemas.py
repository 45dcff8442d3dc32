"""
Pydantic schemas for validation outcomes and gateway operation results.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..constants import DocumentStatusValue


class ValidationResult(BaseModel):
    """Outcome of local document validation. Errors block submission."""

    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class SubmissionResult(BaseModel):
    """Reference number and acknowledgment issued for an accepted e-invoice."""

    reference_number: str = Field(..., description="Invoice Reference Number (IRN)")
    acknowledgment_number: Optional[str] = None
    acknowledgment_date: Optional[str] = None
    signed_payload: Optional[str] = Field(default=None, description="Signed invoice, if returned")
    signed_qr_code: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)


class EWayBillResult(BaseModel):
    """E-way bill number issued for a goods movement."""

    reference_number: str = Field(..., description="E-way bill number")
    bill_date: Optional[str] = None
    valid_upto: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)


class CancellationResult(BaseModel):
    reference_number: str
    status: DocumentStatusValue = DocumentStatusValue.CANCELLED
    cancelled_at: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)


class VehicleUpdateResult(BaseModel):
    reference_number: str
    vehicle_number: str
    valid_upto: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)


class DocumentStatus(BaseModel):
    """Portal-side state of a previously submitted document."""

    reference_number: str
    status: DocumentStatusValue
    acknowledgment_number: Optional[str] = None
    acknowledgment_date: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)
