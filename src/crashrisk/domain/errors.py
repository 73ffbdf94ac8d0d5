# src/crashrisk/domain/errors.py
"""
Domain Errors - Adapter and Business Logic Exceptions

This module defines the typed error taxonomy used by provider adapters.
Every adapter failure carries a stable ErrorCode so the aggregation layer
can decide whether to retry and what to report to the consumer.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Stable failure codes reported in fallback data."""
    MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    ZERO_VALUE = "ZERO_VALUE"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNSUPPORTED_INSTRUMENT = "UNSUPPORTED_INSTRUMENT"


# Failures that another attempt cannot fix
NON_RETRYABLE_CODES = frozenset({
    ErrorCode.MISSING_CREDENTIALS,
    ErrorCode.UNSUPPORTED_INSTRUMENT,
})


class DomainError(Exception):
    """Base exception for domain errors."""
    pass


class AdapterError(DomainError):
    """
    Raised by a provider adapter when it cannot produce a normalized value.

    Attributes:
        code: Stable ErrorCode for the failure
        provider: Name of the provider that failed (e.g. "fred")
        status_code: HTTP status code when the failure came from the transport
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        provider: str = "",
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.provider = provider
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.code not in NON_RETRYABLE_CODES

    def __str__(self) -> str:
        prefix = f"{self.provider}: " if self.provider else ""
        return f"{prefix}{self.message} [{self.code.value}]"


class TransportError(AdapterError):
    """Raised on timeouts, connection failures, non-2xx or non-JSON responses."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.NETWORK_ERROR,
        provider: str = "",
        status_code: Optional[int] = None,
    ):
        super().__init__(message, code, provider, status_code)


class ProviderError(AdapterError):
    """Raised when a 200 response carries an error marker or an unusable payload."""
    pass
