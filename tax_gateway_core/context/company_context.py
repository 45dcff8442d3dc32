"""
Company context management for the Tax Gateway.

Gateway operations run inside company_context() so that every log line
emitted during the call carries the GSTIN of the company it acts for.
"""

import threading
from contextlib import contextmanager
from typing import Generator, Optional

from ..exceptions import ErrorCode, ValidationError


class CompanyContext:
    """
    Tracks the GSTIN of the company the current thread is acting for.

    Uses thread-local storage so concurrent callers sharing a process do not
    see each other's company.
    """

    _thread_local = threading.local()

    @classmethod
    def set_current_gstin(cls, gstin: str) -> None:
        """
        Set the current company GSTIN for the execution context.

        Raises:
            ValidationError: If gstin is empty
        """
        if not gstin or not isinstance(gstin, str) or not gstin.strip():
            raise ValidationError(
                "gstin must be a non-empty string",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="gstin",
            )

        cls._thread_local.gstin = gstin.strip()

    @classmethod
    def get_current_gstin(cls) -> Optional[str]:
        """Get the current company GSTIN, or None if not set."""
        return getattr(cls._thread_local, "gstin", None)

    @classmethod
    def clear_current_gstin(cls) -> None:
        if hasattr(cls._thread_local, "gstin"):
            delattr(cls._thread_local, "gstin")


@contextmanager
def company_context(gstin: str) -> Generator[None, None, None]:
    """
    Set the current company for the duration of the block.

    The previous company, if any, is restored afterwards.
    """
    previous = CompanyContext.get_current_gstin()
    CompanyContext.set_current_gstin(gstin)
    try:
        yield
    finally:
        if previous:
            CompanyContext.set_current_gstin(previous)
        else:
            CompanyContext.clear_current_gstin()
