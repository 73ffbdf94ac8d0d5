# src/crashrisk/shared/__init__.py
"""
Shared Utilities - Cross-cutting Concerns

This package contains shared utilities used across all layers:
- Validation
- Retry policy
- Logging configuration
"""

from crashrisk.shared.retry import RetryPolicy
from crashrisk.shared.validators import (
    parse_numeric,
    validate_api_key,
    validate_symbol,
)

__all__ = [
    "RetryPolicy",
    "parse_numeric",
    "validate_api_key",
    "validate_symbol",
]
