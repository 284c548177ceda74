"""
DuckDB schema for order persistence.
"""

import duckdb
import logging

logger = logging.getLogger(__name__)


ORDERS_TABLE = """
CREATE TABLE IF NOT EXISTS orders (
    order_id VARCHAR PRIMARY KEY,
    order_type VARCHAR NOT NULL,      -- 'market'
    token_in VARCHAR NOT NULL,
    token_out VARCHAR NOT NULL,
    amount_in DOUBLE NOT NULL,
    amount_out DOUBLE,
    status VARCHAR NOT NULL,          -- pending/routing/building/submitted/confirmed/failed/retrying
    selected_venue VARCHAR,
    primary_price DOUBLE,
    alternate_venue VARCHAR,
    alternate_price DOUBLE,
    executed_price DOUBLE,
    tx_ref VARCHAR,
    slippage DOUBLE,
    error_message VARCHAR,
    retry_count INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL,
    confirmed_at TIMESTAMP
);
"""

# Column order for INSERT and SELECT
ORDER_COLUMNS = (
    "order_id",
    "order_type",
    "token_in",
    "token_out",
    "amount_in",
    "amount_out",
    "status",
    "selected_venue",
    "primary_price",
    "alternate_venue",
    "alternate_price",
    "executed_price",
    "tx_ref",
    "slippage",
    "error_message",
    "retry_count",
    "created_at",
    "updated_at",
    "confirmed_at",
)


def create_all_tables(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the orders table if it does not exist."""
    conn.execute(ORDERS_TABLE)
    logger.debug("Order tables ensured")
