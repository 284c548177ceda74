"""
Main entry point for the swap engine.

Loads configuration, wires the order store, simulated router and engine,
and serves the HTTP/WebSocket API with uvicorn.
"""

import logging

from fastapi import FastAPI

from swap_engine.api.server import create_app
from swap_engine.config import AppConfig, get_app_config
from swap_engine.core.notifier import StatusNotifier
from swap_engine.execution.engine import SwapEngine
from swap_engine.execution.mock_router import MockDexRouter
from swap_engine.storage import create_order_store
from swap_engine.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def build_app(config: AppConfig) -> FastAPI:
    """Wire every component from configuration and return the API app."""
    order_store = create_order_store(config)
    router = MockDexRouter(config.mock_router)
    notifier = StatusNotifier()

    engine = SwapEngine.from_config(
        config,
        route_executor=router,
        order_store=order_store,
        notifier=notifier,
    )
    return create_app(engine)


def main():
    """Entry point for the application."""
    import uvicorn

    config = get_app_config()
    setup_logging(
        log_level=config.system.log_level,
        log_file=config.system.log_file,
        json_format=config.system.json_logs,
    )

    logger.info("=" * 70)
    logger.info(
        f"Starting swap engine ({config.system.environment}) on "
        f"http://{config.system.api_host}:{config.system.api_port}"
    )
    logger.info("  POST /api/orders/execute")
    logger.info("  WS   /ws?orderId=<order-id>")
    logger.info("=" * 70)

    app = build_app(config)

    uvicorn.run(
        app,
        host=config.system.api_host,
        port=config.system.api_port,
        log_level=str(config.system.log_level).lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
