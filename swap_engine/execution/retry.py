"""
Retry budget and exponential backoff for failed attempts.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry decision for a job after a failed attempt.

    ``attempts`` is the job's failed-attempt count *after* the failure has
    been recorded, so the first retry waits ``base_delay * 2`` seconds.
    """
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    backoff_factor: float = 2.0

    def is_exhausted(self, attempts: int) -> bool:
        """Check if the job has used its whole retry budget."""
        return attempts >= self.max_attempts

    def backoff_delay(self, attempts: int) -> float:
        """
        Delay before re-admitting the job.

        Args:
            attempts: Failed attempts so far (>= 1)

        Returns:
            Delay in seconds (2s, 4s, 8s... with the defaults)
        """
        return self.base_delay_seconds * (self.backoff_factor ** attempts)
