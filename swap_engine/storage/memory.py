"""
In-memory order store for development and tests.
"""

import logging
from typing import Any, Dict, List, Optional

from swap_engine.core.errors import OrderNotFoundError
from swap_engine.core.events import Phase
from swap_engine.core.models import OrderSpec
from swap_engine.storage.base import OrderRecord, OrderStore

logger = logging.getLogger(__name__)


class InMemoryOrderStore(OrderStore):
    """Dict-backed order store. Nothing survives a restart."""

    def __init__(self):
        self._orders: Dict[str, OrderRecord] = {}
        logger.info("InMemoryOrderStore initialized")

    async def create(self, order_id: str, spec: OrderSpec) -> OrderRecord:
        record = OrderRecord.from_spec(order_id, spec)
        self._orders[order_id] = record
        return record

    async def update_status(
        self,
        order_id: str,
        phase: Phase,
        patch: Optional[Dict[str, Any]] = None
    ) -> None:
        self._require(order_id).apply(phase, patch)

    async def get(self, order_id: str) -> Optional[OrderRecord]:
        return self._orders.get(order_id)

    async def increment_retry_count(self, order_id: str) -> int:
        record = self._require(order_id)
        record.retry_count += 1
        return record.retry_count

    async def list_orders(self, limit: int = 50, offset: int = 0) -> List[OrderRecord]:
        # Newest first; ties keep reverse insertion order
        rows = sorted(reversed(list(self._orders.values())), key=lambda r: r.created_at, reverse=True)
        return rows[offset:offset + limit]

    def _require(self, order_id: str) -> OrderRecord:
        record = self._orders.get(order_id)
        if record is None:
            raise OrderNotFoundError(order_id)
        return record

    def __len__(self) -> int:
        return len(self._orders)
