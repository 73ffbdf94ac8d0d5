# src/crashrisk/shared/retry.py
"""
Retry Policy - Bounded Exponential Backoff

One policy is shared by every source so that backoff is uniform; adapters
never retry on their own.

Files that USE this module:
- crashrisk.application.aggregator (retries failed source fetches)

Files that this module USES:
- None (pure utility implementation)
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for source retries."""
    attempts: int = 2  # extra attempts after the first call
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # ceiling, seconds

    def delay(self, attempt: int) -> float:
        """
        Backoff before retry number `attempt` (0-based).

        Returns:
            min(base_delay * 2**attempt, max_delay)
        """
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    @property
    def total_calls(self) -> int:
        return self.attempts + 1
