"""Pydantic schemas for tokens, validation results and portal responses."""

from .document_schemas import (
    CancellationResult,
    DocumentStatus,
    EWayBillResult,
    SubmissionResult,
    ValidationResult,
    VehicleUpdateResult,
)
from .token_schemas import Token, TokenPolicy

__all__ = [
    "CancellationResult",
    "DocumentStatus",
    "EWayBillResult",
    "SubmissionResult",
    "ValidationResult",
    "VehicleUpdateResult",
    "Token",
    "TokenPolicy",
]
