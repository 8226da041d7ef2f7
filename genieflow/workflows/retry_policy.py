"""Retry and backoff policy helpers for workflow steps and runs."""

from dataclasses import dataclass
from datetime import datetime, timedelta

import httpx
from sqlalchemy.exc import OperationalError

from genieflow.config import settings
from genieflow.errors import TransientInfrastructureError

BACKOFF_STRATEGIES = ("none", "fixed", "exponential")

TRANSIENT_EXCEPTIONS = (TransientInfrastructureError, OperationalError, httpx.TransportError)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry/backoff configuration for workflow steps."""

    max_attempts: int
    backoff_strategy: str
    backoff_base_seconds: int

    @staticmethod
    def from_settings() -> "RetryPolicy":
        """Build a retry policy from worker settings."""
        policy = RetryPolicy(
            max_attempts=int(settings.STEP_MAX_ATTEMPTS),
            backoff_strategy=str(settings.STEP_BACKOFF_STRATEGY),
            backoff_base_seconds=int(settings.STEP_BACKOFF_BASE_SECONDS),
        )
        validate_policy(policy)
        return policy

    def should_retry(self, attempt_count: int) -> bool:
        """Return whether another attempt is permitted after attempt_count attempts."""
        return int(attempt_count) < int(self.max_attempts)

    def next_attempt_at(self, failed_at: datetime, retry_count: int) -> datetime:
        """Compute when retry number retry_count (1-based) becomes due."""
        delay_seconds = compute_backoff_delay_seconds(
            self.backoff_strategy,
            retry_count,
            self.backoff_base_seconds,
        )
        return failed_at + timedelta(seconds=delay_seconds)


def compute_backoff_delay_seconds(
    backoff_strategy: str,
    retry_count: int,
    backoff_base_seconds: int,
) -> int:
    """Compute a retry delay in seconds for a given backoff strategy."""
    if retry_count <= 0:
        raise ValueError("retry_count must be >= 1.")
    if backoff_strategy not in BACKOFF_STRATEGIES:
        raise ValueError("backoff_strategy must be valid.")
    if backoff_base_seconds < 0:
        raise ValueError("backoff_base_seconds must be >= 0.")
    if backoff_strategy == "none":
        return 0
    if backoff_strategy == "fixed":
        return backoff_base_seconds
    return backoff_base_seconds * (2 ** (retry_count - 1))


def validate_policy(policy: RetryPolicy) -> None:
    """Validate retry policy settings."""
    if policy.max_attempts < 1:
        raise ValueError("max_attempts must be >= 1.")
    if policy.backoff_strategy not in BACKOFF_STRATEGIES:
        raise ValueError("backoff_strategy must be valid.")
    if policy.backoff_base_seconds < 0:
        raise ValueError("backoff_base_seconds must be >= 0.")


def is_transient(exc: BaseException) -> bool:
    """Return whether an error is worth retrying."""
    return isinstance(exc, TRANSIENT_EXCEPTIONS)
