"""
Swap engine orchestrator.

Wires the order store, route executor, status notifier, pipeline and
scheduler together and is the single entry point used by the transport:

- ``submit`` creates the order record and enqueues the job
- ``subscribe`` streams a job's status events
- ``start``/``stop`` manage the dispatch loop
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from swap_engine.config.settings import AppConfig, EngineConfig
from swap_engine.core.errors import StoreError
from swap_engine.core.models import OrderSpec
from swap_engine.core.notifier import StatusHandler, StatusNotifier
from swap_engine.execution.pipeline import ExecutionPipeline
from swap_engine.execution.routing import RouteExecutor
from swap_engine.execution.scheduler import JobScheduler, generate_job_id
from swap_engine.storage.base import OrderRecord, OrderStore

logger = logging.getLogger(__name__)


class SwapEngine:
    """
    Main swap engine orchestrator.

    Features:
    - Order submission with best-effort persistence
    - Bounded-concurrency scheduling with retry/backoff
    - Real-time status fan-out per order
    """

    def __init__(
        self,
        route_executor: RouteExecutor,
        order_store: OrderStore,
        notifier: Optional[StatusNotifier] = None,
        config: Optional[EngineConfig] = None,
        production_mode: bool = False,
    ):
        """
        Initialize swap engine.

        Args:
            route_executor: Venue routing and execution backend
            order_store: Order persistence
            notifier: Status notifier (created when omitted)
            config: Engine configuration
            production_mode: Make store failures fatal
        """
        self.config = config or EngineConfig()
        self.route_executor = route_executor
        self.order_store = order_store
        self.notifier = notifier or StatusNotifier()
        self.production_mode = production_mode

        self.pipeline = ExecutionPipeline(
            route_executor=route_executor,
            notifier=self.notifier,
            order_store=order_store,
            config=self.config,
            production_mode=production_mode,
        )
        self.scheduler = JobScheduler(
            pipeline=self.pipeline,
            notifier=self.notifier,
            max_concurrent_jobs=self.config.max_concurrent_jobs,
            poll_interval_seconds=self.config.poll_interval_seconds,
        )

        logger.info("Swap engine initialized")

    @classmethod
    def from_config(
        cls,
        app_config: AppConfig,
        route_executor: RouteExecutor,
        order_store: OrderStore,
        notifier: Optional[StatusNotifier] = None,
    ) -> "SwapEngine":
        """Build an engine from the application configuration."""
        return cls(
            route_executor=route_executor,
            order_store=order_store,
            notifier=notifier,
            config=app_config.engine,
            production_mode=app_config.system.is_production,
        )

    async def start(self):
        """Start the swap engine."""
        await self.scheduler.start()
        logger.info("Swap engine started")

    async def stop(self, timeout: float = 5.0):
        """Stop the swap engine and close the order store."""
        if self.scheduler.is_running:
            await self.scheduler.stop(timeout=timeout)
        await self.order_store.close()
        logger.info("Swap engine stopped")

    async def submit(self, spec: OrderSpec, order_id: Optional[str] = None) -> str:
        """
        Persist and enqueue a validated order.

        Record creation is best-effort outside production; in production a
        store failure rejects the submission before anything is enqueued.

        Args:
            spec: Validated order
            order_id: Pre-generated id, so a caller can subscribe before the
                ``pending`` event is published

        Returns:
            Order id
        """
        order_id = order_id or generate_job_id()

        try:
            await self.order_store.create(order_id, spec)
        except Exception as e:
            if self.production_mode:
                logger.error(f"[{order_id}] Order creation failed: {e}")
                raise StoreError(f"Order creation failed: {e}") from e
            logger.warning(f"[{order_id}] Order creation skipped (store unavailable): {e}")

        self.scheduler.enqueue(spec, job_id=order_id)
        return order_id

    def subscribe(self, order_id: str, handler: StatusHandler) -> Callable[[], None]:
        """Stream status events for one order; returns an unsubscribe function."""
        return self.notifier.subscribe(order_id, handler)

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        return await self.order_store.get(order_id)

    async def list_orders(self, limit: int = 50, offset: int = 0) -> List[OrderRecord]:
        return await self.order_store.list_orders(limit=limit, offset=offset)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get swap engine statistics.

        Returns:
            Statistics dictionary
        """
        return {
            "production_mode": self.production_mode,
            "route_executor": self.route_executor.__class__.__name__,
            "venues": list(self.route_executor.get_venues()),
            "order_store": self.order_store.__class__.__name__,
            "scheduler": self.scheduler.get_stats(),
            "notifier": self.notifier.get_stats(),
        }
