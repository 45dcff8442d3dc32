"""Utility modules for the Tax Gateway Core."""

from .backoff import BackoffPolicy, calculate_exponential_backoff
from .hash_utils import calculate_data_hash, idempotency_key
from .logger import (
    AzureQueueHandler,
    ContextAwareLogger,
    GstinContextFilter,
    configure_logging,
    get_logger,
)

__all__ = [
    "BackoffPolicy",
    "calculate_exponential_backoff",
    "calculate_data_hash",
    "idempotency_key",
    "AzureQueueHandler",
    "ContextAwareLogger",
    "GstinContextFilter",
    "configure_logging",
    "get_logger",
]
