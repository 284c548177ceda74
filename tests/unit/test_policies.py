"""
Unit tests for the slippage and retry policies.
"""

import pytest

from swap_engine.execution.retry import RetryPolicy
from swap_engine.execution.slippage import SlippagePolicy


# ============================================================================
# Slippage
# ============================================================================

@pytest.fixture
def policy():
    return SlippagePolicy(default_tolerance=0.01, escalation_factor=0.5, cap=0.20)


def test_tolerance_without_prior_failures_is_base(policy):
    assert policy.effective_tolerance(0.02, attempts=0) == pytest.approx(0.02)


def test_tolerance_escalates_with_attempts(policy):
    assert policy.effective_tolerance(0.01, attempts=1) == pytest.approx(0.015)
    assert policy.effective_tolerance(0.01, attempts=2) == pytest.approx(0.02)


def test_tolerance_is_capped(policy):
    assert policy.effective_tolerance(0.15, attempts=4) == pytest.approx(0.20)


def test_missing_tolerance_uses_default(policy):
    assert policy.effective_tolerance(None, attempts=0) == pytest.approx(0.01)


def test_check_passes_at_exact_minimum(policy):
    check = policy.check(expected=100.0, actual=99.0, tolerance=0.01)

    assert check.passed
    assert check.min_amount_out == pytest.approx(99.0)


def test_check_fails_below_minimum(policy):
    check = policy.check(expected=100.0, actual=90.0, tolerance=0.01)

    assert not check.passed
    assert check.shortfall_pct == pytest.approx(10.0)


def test_check_fails_without_amount(policy):
    check = policy.check(expected=100.0, actual=None, tolerance=0.01)

    assert not check.passed
    assert check.shortfall_pct is None


# ============================================================================
# Retry
# ============================================================================

def test_backoff_doubles_per_attempt():
    retry = RetryPolicy(base_delay_seconds=1.0)

    assert [retry.backoff_delay(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]


def test_retry_budget():
    retry = RetryPolicy(max_attempts=3)

    assert not retry.is_exhausted(1)
    assert not retry.is_exhausted(2)
    assert retry.is_exhausted(3)
