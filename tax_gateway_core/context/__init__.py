"""Context management for company isolation and cancellation."""

from .cancellation import CancellationToken
from .company_context import CompanyContext, company_context

__all__ = [
    "CancellationToken",
    "CompanyContext",
    "company_context",
]
