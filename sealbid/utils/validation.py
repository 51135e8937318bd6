"""
Input Validation - Sanitization for identifiers and bid values.

Provides validation for all external inputs to prevent:
- Key collisions in composite ledger keys
- Integer overflows in prices
- Oversized records on the shared ledger
"""

import re
from typing import Any, Optional, Tuple

# =============================================================================
# Constants
# =============================================================================

# Identifiers are embedded in composite keys ("bid:<auction>:<tx>") so the
# separator must never appear inside them.
ID_PATTERN = r"^[A-Za-z0-9_.\-]+$"

MAX_ID_LENGTH = 128
MAX_ITEM_LENGTH = 1024
MAX_HASH_SIZE = 32

MIN_PRICE = 0
MAX_PRICE = 2**63 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_PRICE,
    max_val: int = MAX_PRICE,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass; a price of True is never intended
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_price(price: Any, max_price: int = MAX_PRICE) -> Tuple[bool, str]:
    """Validate a bid price."""
    return validate_integer(price, "price", MIN_PRICE, max_price)


def validate_string(
    value: Any,
    name: str,
    max_length: int = MAX_ITEM_LENGTH,
    pattern: Optional[str] = None,
) -> Tuple[bool, str]:
    """
    Validate string input.

    Args:
        value: Value to validate
        name: Field name for errors
        max_length: Maximum string length
        pattern: Optional regex pattern

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    if not value:
        return False, f"{name} must not be empty"

    if len(value) > max_length:
        return False, f"{name} exceeds max length {max_length}"

    if pattern and not re.fullmatch(pattern, value):
        return False, f"{name} does not match required pattern"

    return True, ""


def validate_identifier(value: Any, name: str, max_length: int = MAX_ID_LENGTH) -> Tuple[bool, str]:
    """Validate an auction id, transaction id or organization name."""
    return validate_string(value, name, max_length=max_length, pattern=ID_PATTERN)


def validate_hex_string(value: Any, name: str, expected_bytes: Optional[int] = None) -> Tuple[bool, str]:
    """
    Validate a hex string (with or without 0x prefix).

    Args:
        value: Value to validate
        name: Field name
        expected_bytes: Expected byte length when decoded

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    hex_str = value[2:] if value.startswith("0x") else value

    if len(hex_str) % 2 != 0:
        return False, f"{name} has odd length, invalid hex"

    try:
        bytes.fromhex(hex_str)
    except ValueError:
        return False, f"{name} contains invalid hex characters"

    if expected_bytes is not None:
        actual_bytes = len(hex_str) // 2
        if actual_bytes != expected_bytes:
            return False, f"{name} must be {expected_bytes} bytes, got {actual_bytes}"

    return True, ""


def validate_commitment(value: Any) -> Tuple[bool, str]:
    """Validate a bid commitment (hex SHA-256 digest)."""
    return validate_hex_string(value, "commitment", MAX_HASH_SIZE)


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_integer",
    "validate_price",
    "validate_string",
    "validate_identifier",
    "validate_hex_string",
    "validate_commitment",
    "ID_PATTERN",
    "MAX_ID_LENGTH",
    "MAX_ITEM_LENGTH",
    "MAX_PRICE",
]
