"""
E-way bill operations against the e-way bill portal.
"""

from typing import Any, Dict, Optional

from ..auth.authorities import EWayBillAuthority
from ..config import AppConfig, PortalConfig
from ..context.cancellation import CancellationToken
from ..context.company_context import company_context
from ..exceptions import validation_failed
from ..schemas.document_schemas import EWayBillResult, VehicleUpdateResult
from ..validation.document_validator import (
    normalize_vehicle_number,
    validate_eway_bill,
    validate_vehicle_number,
)
from .base_gateway import BaseGateway, first_value, unwrap


class EWayBillGateway(BaseGateway):
    """Generates, cancels, re-assigns vehicles for, and queries e-way bills."""

    authority_class = EWayBillAuthority

    @classmethod
    def _portal_for(cls, config: AppConfig) -> PortalConfig:
        return config.eway_bill_portal()

    def submit(
        self, document: Dict[str, Any], cancellation: Optional[CancellationToken] = None
    ) -> EWayBillResult:
        """Validate and generate an e-way bill, returning its EWB number."""
        with company_context(self.credentials.gstin):
            self.logger.info(
                "Generating e-way bill",
                extra={
                    "document_number": document.get("docNo") if isinstance(document, dict) else None,
                    "document_date": document.get("docDate") if isinstance(document, dict) else None,
                },
            )
            body = self._submit(document, validate_eway_bill(document), cancellation)

            payload = unwrap(body)
            ewb_number = first_value(payload, "ewbNo", "EwbNo", "ewayBillNo")
            if not ewb_number:
                raise self._rejected_in_body(body, "an e-way bill number")

            result = EWayBillResult(
                reference_number=str(ewb_number),
                bill_date=self._optional_str(first_value(payload, "ewayBillDate", "EwbDt")),
                valid_upto=self._optional_str(first_value(payload, "validUpto", "EwbValidTill")),
                raw=body if isinstance(body, dict) else {},
            )
            self.logger.info(
                "E-way bill generated",
                extra={"reference_number": result.reference_number, "valid_upto": result.valid_upto},
            )
            return result

    def update_vehicle(
        self,
        reference_number: str,
        vehicle_number: str,
        reason_code: str,
        remarks: str = "",
        cancellation: Optional[CancellationToken] = None,
    ) -> VehicleUpdateResult:
        """
        Move an e-way bill to a different vehicle (Part-B update).

        The vehicle number is checked locally and sent normalized
        (spaces removed, upper case).
        """
        reference_number = self._require_reference(reference_number)
        if not validate_vehicle_number(vehicle_number):
            raise validation_failed("vehicle_number", vehicle_number, "invalid vehicle number format")
        if reason_code is None or not str(reason_code).strip():
            raise validation_failed("reason_code", reason_code, "reason code is required")
        vehicle_number = normalize_vehicle_number(vehicle_number)

        with company_context(self.credentials.gstin):
            self.logger.info(
                "Updating e-way bill vehicle",
                extra={"reference_number": reference_number, "vehicle_number": vehicle_number},
            )
            body = self.executor.execute(
                self.authority.document_path(reference_number, "vehicle"),
                "PUT",
                {"vehicle_no": vehicle_number, "reason_code": reason_code, "remarks": remarks or ""},
                cancellation=cancellation,
            )
            if self.authority.extract_errors(body):
                raise self._rejected_in_body(body, "a vehicle update")
            payload = unwrap(body)
            return VehicleUpdateResult(
                reference_number=reference_number,
                vehicle_number=vehicle_number,
                valid_upto=self._optional_str(first_value(payload, "validUpto", "EwbValidTill")),
                raw=body if isinstance(body, dict) else {},
            )
