"""Token storage, document authority profiles and the two-stage login."""

from .authenticator import Authenticator
from .authorities import DocumentAuthority, EInvoiceAuthority, EWayBillAuthority
from .token_store import DEFAULT_TOKEN_POLICIES, TokenStore, utc_now

__all__ = [
    "Authenticator",
    "DocumentAuthority",
    "EInvoiceAuthority",
    "EWayBillAuthority",
    "DEFAULT_TOKEN_POLICIES",
    "TokenStore",
    "utc_now",
]
