"""
Order storage module.

Backends:
- InMemoryOrderStore: development and tests
- DuckDBOrderStore: single-file DuckDB database
"""

import logging
from pathlib import Path

from swap_engine.config.settings import AppConfig, StorageBackend
from swap_engine.storage.base import OrderRecord, OrderStore, PATCH_FIELDS
from swap_engine.storage.duckdb_store import DuckDBOrderStore
from swap_engine.storage.memory import InMemoryOrderStore

logger = logging.getLogger(__name__)


def create_order_store(config: AppConfig) -> OrderStore:
    """
    Build the order store selected by ``config.storage.backend``.

    Args:
        config: Application configuration

    Returns:
        Order store instance
    """
    backend = StorageBackend(config.storage.backend)

    if backend == StorageBackend.DUCKDB:
        db_path = config.storage.duckdb_path or str(Path(config.system.data_dir) / "orders.duckdb")
        logger.info(f"Using DuckDB order store at {db_path}")
        return DuckDBOrderStore(db_path=db_path)

    logger.info("Using in-memory order store")
    return InMemoryOrderStore()


__all__ = [
    'OrderRecord',
    'OrderStore',
    'PATCH_FIELDS',
    'DuckDBOrderStore',
    'InMemoryOrderStore',
    'create_order_store',
]
