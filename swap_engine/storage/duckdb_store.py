"""
DuckDB-backed order store.

One database file holds every order. DuckDB's Python API is synchronous, so
each call runs in the default executor behind a lock; the event loop never
blocks on disk I/O.

Example:
    store = DuckDBOrderStore(db_path="data/orders.duckdb")
    await store.create("ORD-1", spec)
    await store.update_status("ORD-1", Phase.ROUTING, {"selected_venue": "raydium"})
"""

import asyncio
import duckdb
import logging
import threading
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional

from swap_engine.core.errors import OrderNotFoundError, StoreError
from swap_engine.core.events import Phase
from swap_engine.core.models import OrderSpec
from swap_engine.storage.base import OrderRecord, OrderStore, validate_patch
from swap_engine.storage.schema import ORDER_COLUMNS, create_all_tables

logger = logging.getLogger(__name__)

_SELECT = f"SELECT {', '.join(ORDER_COLUMNS)} FROM orders"


class DuckDBOrderStore(OrderStore):
    """
    Order store on a single DuckDB database.

    Args:
        db_path: Database file path, or ``":memory:"``
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._lock = threading.Lock()

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn: Optional[duckdb.DuckDBPyConnection] = duckdb.connect(db_path)
            create_all_tables(self._conn)
        except duckdb.Error as e:
            logger.error(f"Error opening order database {db_path}: {e}")
            raise StoreError(f"Cannot open order database {db_path}: {e}") from e

        logger.info(f"DuckDBOrderStore initialized with db_path: {db_path}")

    # ========================================================================
    # Async API
    # ========================================================================

    async def create(self, order_id: str, spec: OrderSpec) -> OrderRecord:
        record = OrderRecord.from_spec(order_id, spec)
        await self._run(self._insert, record)
        return record

    async def update_status(
        self,
        order_id: str,
        phase: Phase,
        patch: Optional[Dict[str, Any]] = None
    ) -> None:
        patch = validate_patch(patch)
        await self._run(self._update, order_id, phase, patch)

    async def get(self, order_id: str) -> Optional[OrderRecord]:
        return await self._run(self._select_one, order_id)

    async def increment_retry_count(self, order_id: str) -> int:
        return await self._run(self._increment_retry, order_id)

    async def list_orders(self, limit: int = 50, offset: int = 0) -> List[OrderRecord]:
        return await self._run(self._select_page, limit, offset)

    async def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("Order database connection closed")

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(self._locked, func, *args))

    def _locked(self, func, *args):
        with self._lock:
            if self._conn is None:
                raise StoreError("Order database is closed")
            try:
                return func(self._conn, *args)
            except duckdb.Error as e:
                raise StoreError(f"Order database error: {e}") from e

    # ========================================================================
    # Sync helpers (called with the lock held)
    # ========================================================================

    @staticmethod
    def _insert(conn: duckdb.DuckDBPyConnection, record: OrderRecord) -> None:
        values = [getattr(record, column) for column in ORDER_COLUMNS]
        placeholders = ", ".join("?" for _ in ORDER_COLUMNS)
        conn.execute(
            f"INSERT INTO orders ({', '.join(ORDER_COLUMNS)}) VALUES ({placeholders})",
            values,
        )

    @staticmethod
    def _exists(conn: duckdb.DuckDBPyConnection, order_id: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM orders WHERE order_id = ?", [order_id]
        ).fetchone()
        return row is not None

    def _update(
        self,
        conn: duckdb.DuckDBPyConnection,
        order_id: str,
        phase: Phase,
        patch: Dict[str, Any],
    ) -> None:
        if not self._exists(conn, order_id):
            raise OrderNotFoundError(order_id)

        now = datetime.utcnow()
        assignments = ["status = ?", "updated_at = ?"]
        values: List[Any] = [phase.value, now]

        # Keys are checked against PATCH_FIELDS before they get here
        for column, value in patch.items():
            assignments.append(f"{column} = ?")
            values.append(value)

        if phase == Phase.CONFIRMED:
            assignments.append("confirmed_at = ?")
            values.append(now)

        values.append(order_id)
        conn.execute(
            f"UPDATE orders SET {', '.join(assignments)} WHERE order_id = ?",
            values,
        )

    def _increment_retry(self, conn: duckdb.DuckDBPyConnection, order_id: str) -> int:
        if not self._exists(conn, order_id):
            raise OrderNotFoundError(order_id)

        conn.execute(
            "UPDATE orders SET retry_count = retry_count + 1, updated_at = ? WHERE order_id = ?",
            [datetime.utcnow(), order_id],
        )
        row = conn.execute(
            "SELECT retry_count FROM orders WHERE order_id = ?", [order_id]
        ).fetchone()
        return int(row[0])

    @staticmethod
    def _select_one(conn: duckdb.DuckDBPyConnection, order_id: str) -> Optional[OrderRecord]:
        row = conn.execute(f"{_SELECT} WHERE order_id = ?", [order_id]).fetchone()
        return _row_to_record(row) if row else None

    @staticmethod
    def _select_page(
        conn: duckdb.DuckDBPyConnection,
        limit: int,
        offset: int,
    ) -> List[OrderRecord]:
        rows = conn.execute(
            f"{_SELECT} ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
            [limit, offset],
        ).fetchall()
        return [_row_to_record(row) for row in rows]

    def __repr__(self) -> str:
        return f"DuckDBOrderStore(db_path={self.db_path!r})"


def _row_to_record(row) -> OrderRecord:
    return OrderRecord(**dict(zip(ORDER_COLUMNS, row)))
