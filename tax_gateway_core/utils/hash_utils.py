"""
Hash utilities for submission idempotency keys.

A document's idempotency key is a deterministic hash of the fields the
authority itself uses to recognise a document, so every retry of the same
submission carries the same key.
"""

import hashlib
from typing import Any, Dict, List, Optional

from .json_utils import dumps

EINVOICE_KEY_FIELDS = ["SellerGstin", "DocTyp", "DocNo", "DocDt"]
EWAY_BILL_KEY_FIELDS = ["fromGstin", "docType", "docNo", "docDate"]


def _get_nested_value(data: Dict[str, Any], field: str) -> Any:
    """
    Extract a value from a nested dictionary using dot notation.

    Args:
        data: Dictionary to extract from
        field: Field name with dot notation (e.g., "DocDtls.No")

    Returns:
        Extracted value or None if not found
    """
    value: Any = data
    for part in field.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return None
    return value


def calculate_data_hash(data: Dict[str, Any], key_fields: Optional[List[str]] = None) -> str:
    """
    Calculate a SHA-256 hash over selected fields of a payload.

    Args:
        data: Payload to hash
        key_fields: Fields (dot notation allowed) to include; all fields if omitted

    Returns:
        Hex digest
    """
    if key_fields:
        selected = {field: _get_nested_value(data, field) for field in key_fields}
    else:
        selected = data

    serialized = dumps(selected, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def idempotency_key(document: Dict[str, Any], key_fields: List[str]) -> str:
    """Stable key identifying one logical document submission."""
    return calculate_data_hash(document, key_fields)
