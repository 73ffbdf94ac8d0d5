# src/crashrisk/shared/validators.py
"""
Input Validation Utilities - Configuration and Payload Validation

This module provides validation helpers for API keys, instrument symbols
and the loosely typed numeric strings that providers return.

Files that USE this module:
- crashrisk.config.settings (API key validators)
- crashrisk.adapters.providers.* (parse_numeric for payload fields)
- crashrisk.adapters.http.routes (validate_symbol for path parameters)

Files that this module USES:
- None (pure utility functions)
"""
import math
import re
from typing import Any, Optional

# FRED marks a missing observation with a single dot
MISSING_VALUE_SENTINEL = "."


def validate_api_key(api_key: str, min_length: int = 10) -> bool:
    """
    Validate API key format.

    Args:
        api_key: API key to validate
        min_length: Minimum length requirement

    Returns:
        True if valid, False otherwise
    """
    if not api_key:
        return False

    return len(api_key) >= min_length and not api_key.isspace() and " " not in api_key


def validate_symbol(symbol: str) -> bool:
    """
    Validate a ticker symbol (e.g. AAPL, BRK.B, BTC).

    Args:
        symbol: Symbol to validate

    Returns:
        True if valid, False otherwise
    """
    if not symbol:
        return False
    return bool(re.match(r"^[A-Za-z][A-Za-z0-9.\-]{0,9}$", symbol))


def parse_numeric(raw: Any) -> Optional[float]:
    """
    Convert a provider field to float.

    Handles numbers, numeric strings with commas or a trailing percent
    sign, and the "." missing-value sentinel.

    Args:
        raw: Value taken from a provider payload

    Returns:
        Finite float, or None when the field is missing or not numeric
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip().replace(",", "").rstrip("%")
        if not text or text == MISSING_VALUE_SENTINEL:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value
