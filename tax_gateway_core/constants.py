"""
Constants and enums for the Tax Gateway Core.

This module centralizes magic strings, header names and token lifetimes used
when talking to the tax authority portal.
"""

from datetime import timedelta
from enum import Enum


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    LOG_LEVEL = "LOG_LEVEL"
    IRP_BASE_URL = "IRP_BASE_URL"
    EWAY_BILL_BASE_URL = "EWAY_BILL_BASE_URL"
    SANDBOX_API_KEY = "SANDBOX_API_KEY"
    SANDBOX_API_SECRET = "SANDBOX_API_SECRET"
    SANDBOX_ENVIRONMENT = "SANDBOX_ENVIRONMENT"


class TokenKind(str, Enum):
    """The two security tokens held for one company."""

    GATEWAY = "gateway"
    DOCUMENT_AUTHORITY = "document_authority"


class AuthStage(str, Enum):
    """Login stage that produced an authentication failure."""

    GATEWAY = "gateway"
    DOCUMENT_AUTHORITY = "document_authority"


class DocumentStatusValue(str, Enum):
    """Document states reported by the portal."""

    GENERATED = "generated"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class PortalHeader(str, Enum):
    """HTTP header names understood by the portal."""

    API_KEY = "x-api-key"
    API_SECRET = "x-api-secret"
    API_VERSION = "x-api-version"
    AUTHORIZATION = "authorization"
    EINVOICE_TOKEN = "x-einvoice-token"
    EWAYBILL_TOKEN = "x-ewaybill-token"
    IDEMPOTENCY_KEY = "x-idempotency-key"
    CONTENT_TYPE = "Content-Type"


API_VERSION = "1.0"
JSON_CONTENT_TYPE = "application/json"
DEFAULT_BASE_URL = "https://api.sandbox.co.in"

# Nominal token lifetimes and how early each one is refreshed
GATEWAY_TOKEN_LIFETIME = timedelta(minutes=60)
GATEWAY_TOKEN_REFRESH_MARGIN = timedelta(minutes=10)
AUTHORITY_TOKEN_LIFETIME = timedelta(hours=6)
AUTHORITY_TOKEN_REFRESH_MARGIN = timedelta(minutes=30)

# Portal error code for a document that already has a reference number
DUPLICATE_DOCUMENT_ERROR_CODE = "2150"

CANCELLATION_WINDOW = timedelta(hours=24)
