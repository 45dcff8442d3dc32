"""
Tax Gateway Core.

Client for a two-tier tax authority portal: authenticates with the gateway
and with a company's document authority, registers e-invoices and e-way
bills, and cancels or queries them, with local pre-flight validation and
bounded retries.
"""

from .config import AppConfig, AuthorityCredentials, PortalConfig, RetryConfig
from .context.cancellation import CancellationToken
from .exceptions import (
    AuthenticationError,
    CancelledError,
    ClientError,
    DuplicateDocumentError,
    RequestError,
    TransportError,
    ValidationError,
)
from .gateway import EInvoiceGateway, EWayBillGateway

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "AuthorityCredentials",
    "PortalConfig",
    "RetryConfig",
    "CancellationToken",
    "AuthenticationError",
    "CancelledError",
    "ClientError",
    "DuplicateDocumentError",
    "RequestError",
    "TransportError",
    "ValidationError",
    "EInvoiceGateway",
    "EWayBillGateway",
]
