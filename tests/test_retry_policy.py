"""Tests for workflow retry policy helpers."""

from datetime import datetime, timedelta

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from genieflow.errors import NotFoundError, TransientInfrastructureError
from genieflow.workflows.retry_policy import (
    RetryPolicy,
    compute_backoff_delay_seconds,
    is_transient,
    validate_policy,
)


def test_should_retry_respects_max_attempts():
    """Test retry allowance honors max attempts."""
    policy = RetryPolicy(max_attempts=3, backoff_strategy="fixed", backoff_base_seconds=10)

    assert policy.should_retry(1) is True
    assert policy.should_retry(2) is True
    assert policy.should_retry(3) is False


def test_exponential_backoff_doubles():
    """Test exponential backoff scales with the retry count."""
    delays = [compute_backoff_delay_seconds("exponential", n, 30) for n in (1, 2, 3)]

    assert delays == [30, 60, 120]


def test_fixed_and_none_backoff():
    """Test fixed returns the base delay and none returns zero."""
    assert compute_backoff_delay_seconds("fixed", 4, 45) == 45
    assert compute_backoff_delay_seconds("none", 2, 45) == 0


def test_next_attempt_at_applies_delay():
    """Test the retry time includes the computed delay."""
    policy = RetryPolicy(max_attempts=3, backoff_strategy="exponential", backoff_base_seconds=30)
    failed_at = datetime(2026, 3, 2, 9, 0)

    assert policy.next_attempt_at(failed_at, 2) == failed_at + timedelta(seconds=60)


def test_invalid_inputs_are_rejected():
    """Test invalid strategies, counts and policies raise ValueError."""
    with pytest.raises(ValueError):
        compute_backoff_delay_seconds("linear", 1, 10)
    with pytest.raises(ValueError):
        compute_backoff_delay_seconds("fixed", 0, 10)
    with pytest.raises(ValueError):
        validate_policy(RetryPolicy(max_attempts=0, backoff_strategy="fixed", backoff_base_seconds=10))


def test_from_settings_uses_configured_defaults():
    """Test the policy built from settings is valid."""
    policy = RetryPolicy.from_settings()

    assert policy.max_attempts == 3
    assert policy.backoff_strategy == "exponential"
    assert policy.backoff_base_seconds == 30


def test_transient_classification():
    """Test which errors are worth retrying."""
    assert is_transient(TransientInfrastructureError("timeout"))
    assert is_transient(OperationalError("SELECT 1", {}, Exception("database is locked")))
    assert is_transient(httpx.ConnectError("refused"))
    assert not is_transient(NotFoundError("missing"))
    assert not is_transient(ValueError("bad"))
