"""
Status events emitted on every job phase transition.

Events are transient: they only live while being handed to the
subscribers registered at publish time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class Phase(str, Enum):
    """Job lifecycle phase."""
    PENDING = "pending"
    ROUTING = "routing"
    BUILDING = "building"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    RETRYING = "retrying"

    @property
    def is_terminal(self) -> bool:
        """Check if phase ends the job."""
        return self in (Phase.CONFIRMED, Phase.FAILED)


@dataclass(frozen=True)
class StatusEvent:
    """A single phase transition for one job."""
    job_id: str
    phase: Phase
    timestamp: datetime = field(default_factory=datetime.utcnow)
    payload: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation sent to transport clients."""
        return {
            "orderId": self.job_id,
            "status": self.phase.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.payload,
        }
