"""
Order store base class and record model.

The pipeline consults and updates order records through this interface only;
it never depends on a particular backend.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from swap_engine.core.events import Phase
from swap_engine.core.models import OrderSpec, OrderType

# Columns a status update may patch
PATCH_FIELDS = frozenset({
    "selected_venue",
    "primary_price",
    "alternate_venue",
    "alternate_price",
    "executed_price",
    "amount_out",
    "tx_ref",
    "error_message",
    "retry_count",
})


@dataclass
class OrderRecord:
    """Persisted view of one order."""
    order_id: str
    order_type: str
    token_in: str
    token_out: str
    amount_in: float
    status: str = Phase.PENDING.value
    amount_out: Optional[float] = None
    selected_venue: Optional[str] = None
    primary_price: Optional[float] = None
    alternate_venue: Optional[str] = None
    alternate_price: Optional[float] = None
    executed_price: Optional[float] = None
    tx_ref: Optional[str] = None
    slippage: Optional[float] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    confirmed_at: Optional[datetime] = None

    @classmethod
    def from_spec(cls, order_id: str, spec: OrderSpec) -> "OrderRecord":
        return cls(
            order_id=order_id,
            order_type=OrderType(spec.order_type).value,
            token_in=spec.token_in,
            token_out=spec.token_out,
            amount_in=spec.amount_in,
            slippage=spec.slippage_tolerance,
        )

    def apply(self, phase: Phase, patch: Optional[Dict[str, Any]] = None) -> None:
        """Apply a status transition and its patch in place."""
        patch = validate_patch(patch)
        now = datetime.utcnow()

        self.status = phase.value
        self.updated_at = now
        for key, value in patch.items():
            setattr(self, key, value)

        if phase == Phase.CONFIRMED:
            self.confirmed_at = now

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly dictionary (datetimes as ISO strings)."""
        data = asdict(self)
        for key in ("created_at", "updated_at", "confirmed_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


def validate_patch(patch: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Drop None values and reject unknown columns.

    Raises:
        ValueError: If the patch names a column that cannot be updated
    """
    if not patch:
        return {}

    unknown = set(patch) - PATCH_FIELDS
    if unknown:
        raise ValueError(f"Unknown order fields in patch: {sorted(unknown)}")

    return {key: value for key, value in patch.items() if value is not None}


class OrderStore(ABC):
    """
    Abstract base class for order persistence.

    All methods are coroutines so backends can do I/O without blocking the
    event loop.
    """

    @abstractmethod
    async def create(self, order_id: str, spec: OrderSpec) -> OrderRecord:
        """Create a pending order record."""
        pass

    @abstractmethod
    async def update_status(
        self,
        order_id: str,
        phase: Phase,
        patch: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Set the order status and patch optional fields.

        Raises:
            OrderNotFoundError: If the order does not exist
            ValueError: If the patch names an unknown field
        """
        pass

    @abstractmethod
    async def get(self, order_id: str) -> Optional[OrderRecord]:
        """Get an order, or None if absent."""
        pass

    @abstractmethod
    async def increment_retry_count(self, order_id: str) -> int:
        """
        Increment the persisted retry counter.

        Returns:
            The new retry count
        """
        pass

    @abstractmethod
    async def list_orders(self, limit: int = 50, offset: int = 0) -> List[OrderRecord]:
        """List orders, newest first."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass
