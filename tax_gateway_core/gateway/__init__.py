"""Gateway operations and the retrying request executor."""

from .base_gateway import BaseGateway
from .e_invoice_gateway import EInvoiceGateway
from .e_way_bill_gateway import EWayBillGateway
from .request_executor import RequestExecutor

__all__ = [
    "BaseGateway",
    "EInvoiceGateway",
    "EWayBillGateway",
    "RequestExecutor",
]
