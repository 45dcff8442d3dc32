"""
Unit tests for the exception system.
"""

from unittest.mock import patch

import requests

from tax_gateway_core.constants import AuthStage
from tax_gateway_core.exceptions import (
    AuthenticationError,
    BaseError,
    CancelledError,
    ClientError,
    DuplicateDocumentError,
    ErrorCode,
    PortalError,
    RequestError,
    TransportError,
    ValidationError,
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
    validation_failed,
)


class TestBaseError:
    def test_basic_error_creation(self):
        error = BaseError("Test error message")

        assert error.message == "Test error message"
        assert error.error_code == ErrorCode.INTERNAL_ERROR
        assert error.status_code == 500
        assert error.cause is None
        assert error.context["error_id"] == error.error_id

    def test_error_with_cause(self):
        original = ValueError("Original error")
        error = BaseError("Wrapped error", cause=original)

        assert error.context["cause"]["type"] == "ValueError"
        assert error.error_chain == [error, original]

    def test_correlation_id_captured(self):
        set_correlation_id("corr-123")

        error = BaseError("With correlation")

        assert error.context["correlation_id"] == "corr-123"
        assert error.to_dict()["error"]["correlation_id"] == "corr-123"

    def test_to_dict(self):
        cause = RuntimeError("boom")
        error = BaseError("Failure", cause=cause, operation="submit")

        result = error.to_dict(include_cause=True)["error"]

        assert result["code"] == "1000"
        assert result["context"] == {"operation": "submit"}
        assert result["cause"] == {"type": "RuntimeError", "message": "boom"}

    def test_logs_by_status(self):
        with patch("tax_gateway_core.utils.logger.get_logger") as mock_get_logger:
            BaseError("server side", status_code=503)
            BaseError("client side", status_code=400)

        logger = mock_get_logger.return_value
        logger.error.assert_called_once()
        logger.warning.assert_called_once()


class TestErrorTypes:
    def test_validation_error(self):
        error = ValidationError("bad document", errors=["a", "b"], warnings=["w"])

        assert error.status_code == 400
        assert error.errors == ["a", "b"]
        assert error.warnings == ["w"]

    def test_validation_failed_factory(self):
        error = validation_failed("reason", "", "cancellation reason is required")

        assert isinstance(error, ValidationError)
        assert error.error_code == ErrorCode.INVALID_FORMAT
        assert error.context["field"] == "reason"
        assert error.errors == ["reason: cancellation reason is required"]

    def test_authentication_error(self):
        details = [{"ErrorCode": "1005", "ErrorMessage": "Invalid Token"}]
        error = AuthenticationError("rejected", stage=AuthStage.DOCUMENT_AUTHORITY, details=details)

        assert error.stage is AuthStage.DOCUMENT_AUTHORITY
        assert error.details == details
        assert error.status_code == 401
        assert error.context["stage"] == "document_authority"

    def test_transport_error_is_portal_error(self):
        cause = requests.ConnectionError("refused")
        error = TransportError("network down", cause=cause)

        assert isinstance(error, PortalError)
        assert error.http_status is None
        assert error.context["service_name"] == "tax_portal"
        assert error.cause is cause
        assert error.error_code == ErrorCode.CONNECTION_ERROR

    def test_transport_error_timeout_code(self):
        error = TransportError("read timed out", cause=requests.Timeout("slow"), error_code=ErrorCode.TIMEOUT_ERROR)

        assert error.error_code == ErrorCode.TIMEOUT_ERROR
        assert error.status_code == 502

    def test_client_error_status(self):
        error = ClientError("rejected", status=404, response_body={"message": "not found"})

        assert error.status == 404
        assert error.status_code == 404
        assert error.response_body == {"message": "not found"}

    def test_duplicate_is_client_error(self):
        error = DuplicateDocumentError("dup", status=400, details=[{"ErrorCode": "2150", "ErrorMessage": "Duplicate IRN"}])

        assert isinstance(error, ClientError)
        assert error.error_code == ErrorCode.DUPLICATE

    def test_request_error_keeps_last_cause(self):
        last = TransportError("HTTP 503", http_status=503)
        error = RequestError("exhausted", last_cause=last)

        assert error.last_cause is last
        assert error.error_chain == [error, last]
        assert error.error_code == ErrorCode.RETRIES_EXHAUSTED

    def test_cancelled_error(self):
        error = CancelledError(reason="shutdown", stage="portal request")

        assert error.message == "Operation cancelled"
        assert error.error_code == ErrorCode.CANCELLED
        assert error.context["stage"] == "portal request"


class TestCorrelationId:
    def test_set_get_clear(self):
        assert get_correlation_id() is None

        set_correlation_id("abc")
        assert get_correlation_id() == "abc"

        clear_correlation_id()
        assert get_correlation_id() is None
