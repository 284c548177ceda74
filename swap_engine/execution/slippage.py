"""
Adaptive slippage tolerance.

Tolerance widens with every failed attempt of a job:

    effective = min(cap, base * (1 + attempts * escalation_factor))

and an execution passes when ``amount_out >= expected * (1 - effective)``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlippageCheck:
    """Outcome of comparing an actual fill against its quote."""
    passed: bool
    tolerance: float
    expected_amount_out: float
    min_amount_out: float
    actual_amount_out: Optional[float]

    @property
    def shortfall_pct(self) -> Optional[float]:
        """Shortfall vs expected output in percent (negative = better fill)."""
        if self.actual_amount_out is None or self.expected_amount_out == 0:
            return None
        return (1 - self.actual_amount_out / self.expected_amount_out) * 100


class SlippagePolicy:
    """
    Slippage enforcement with per-attempt escalation.

    Example:
        policy = SlippagePolicy(escalation_factor=0.5, cap=0.20)
        tolerance = policy.effective_tolerance(0.01, attempts=2)  # 0.02
        check = policy.check(expected=100.0, actual=98.5, tolerance=tolerance)
    """

    def __init__(
        self,
        default_tolerance: float = 0.01,
        escalation_factor: float = 0.5,
        cap: float = 0.20,
    ):
        """
        Args:
            default_tolerance: Base tolerance when the order does not set one
            escalation_factor: Fractional widening per prior failed attempt
            cap: Upper bound for the escalated tolerance
        """
        self.default_tolerance = default_tolerance
        self.escalation_factor = escalation_factor
        self.cap = cap

    def effective_tolerance(self, base: Optional[float], attempts: int) -> float:
        """Tolerance for an attempt after ``attempts`` prior failures."""
        if base is None:
            base = self.default_tolerance
        return min(self.cap, base * (1 + attempts * self.escalation_factor))

    def min_amount_out(self, expected_amount_out: float, tolerance: float) -> float:
        return expected_amount_out * (1 - tolerance)

    def check(
        self,
        expected: float,
        actual: Optional[float],
        tolerance: float,
    ) -> SlippageCheck:
        """
        Compare an actual fill with the expected output.

        A missing ``actual`` is always a violation.
        """
        minimum = self.min_amount_out(expected, tolerance)
        passed = actual is not None and actual >= minimum

        result = SlippageCheck(
            passed=passed,
            tolerance=tolerance,
            expected_amount_out=expected,
            min_amount_out=minimum,
            actual_amount_out=actual,
        )

        if not passed:
            logger.warning(
                "Slippage check failed: expected=%.6f min=%.6f actual=%s allowed=%.2f%%",
                expected,
                minimum,
                "n/a" if actual is None else f"{actual:.6f}",
                tolerance * 100,
            )

        return result
