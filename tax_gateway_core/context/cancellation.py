"""Caller-controlled cancellation of in-flight gateway operations."""

import threading
from typing import Optional

from ..exceptions import CancelledError


class CancellationToken:
    """
    Cancellation signal shared between a caller and one gateway operation.

    The executor checks it before every network call and between the short
    sleeps that make up a backoff, so cancel() takes effect at the next
    suspension point.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self.reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        """
        Raise CancelledError if cancellation was requested.

        Args:
            stage: Suspension point being entered, recorded on the error
        """
        if self._event.is_set():
            raise CancelledError(f"Operation cancelled before {stage}", reason=self.reason, stage=stage)

    def wait(self, timeout: float) -> bool:
        """Block for up to timeout seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)
