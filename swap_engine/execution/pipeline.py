"""
Execution pipeline - the per-job state machine.

Drives one attempt of a job through its phases:

    routing -> building -> submitted -> confirmed
                                     -> (failed attempt) -> retrying | failed

On a slippage violation the alternate venue from the same routing decision is
tried once per job lifetime before the attempt counts as failed.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from swap_engine.config.settings import EngineConfig
from swap_engine.core.errors import SlippageExceededError, StoreError
from swap_engine.core.events import Phase, StatusEvent
from swap_engine.core.models import Job
from swap_engine.core.notifier import StatusNotifier
from swap_engine.execution.retry import RetryPolicy
from swap_engine.execution.routing import (
    ExecutionError,
    ExecutionOutcome,
    ExecutorTimeoutError,
    RouteExecutor,
    RoutingDecision,
)
from swap_engine.execution.slippage import SlippagePolicy
from swap_engine.storage.base import OrderStore
from swap_engine.utils.logger import get_order_logger

logger = logging.getLogger(__name__)


class PipelineStatus(str, Enum):
    """How a pipeline run ended."""
    CONFIRMED = "confirmed"
    FAILED = "failed"
    RETRY = "retry"


@dataclass
class PipelineResult:
    """
    Result of one pipeline run.

    ``RETRY`` asks the scheduler to re-admit the job after
    ``retry_after_seconds``; the other two are terminal.
    """
    status: PipelineStatus
    job_id: str
    message: str
    outcome: Optional[ExecutionOutcome] = None
    venue: Optional[str] = None
    retry_after_seconds: Optional[float] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == PipelineStatus.CONFIRMED

    @property
    def is_failed(self) -> bool:
        return self.status == PipelineStatus.FAILED

    @property
    def should_retry(self) -> bool:
        return self.status == PipelineStatus.RETRY


class ExecutionPipeline:
    """
    Per-job state machine with slippage enforcement, fallback and retry.

    ``run`` never raises (other than cancellation): every executor or store
    failure inside an attempt is mapped to the retry-or-fail decision.
    """

    def __init__(
        self,
        route_executor: RouteExecutor,
        notifier: StatusNotifier,
        order_store: Optional[OrderStore] = None,
        config: Optional[EngineConfig] = None,
        production_mode: bool = False,
    ):
        """
        Initialize execution pipeline.

        Args:
            route_executor: Venue routing and execution backend
            notifier: Status fan-out for phase transitions
            order_store: Order persistence (None disables persistence)
            config: Engine configuration
            production_mode: Make store failures fatal to the operation
        """
        config = config or EngineConfig()

        self.route_executor = route_executor
        self.notifier = notifier
        self.order_store = order_store
        self.production_mode = production_mode

        self.slippage = SlippagePolicy(
            default_tolerance=config.base_slippage_tolerance,
            escalation_factor=config.slippage_escalation_factor,
            cap=config.slippage_tolerance_cap,
        )
        self.retry = RetryPolicy(
            max_attempts=config.max_retry_attempts,
            base_delay_seconds=config.retry_base_delay_seconds,
        )
        self.executor_timeout = config.executor_timeout_seconds

        self._order_log = get_order_logger(__name__)

        logger.info(
            f"Execution pipeline initialized: executor={route_executor.__class__.__name__}, "
            f"max_retries={self.retry.max_attempts}, production_mode={production_mode}"
        )

    # ========================================================================
    # Entry point
    # ========================================================================

    async def run(self, job: Job) -> PipelineResult:
        """
        Run one attempt of a job to confirmation or to a failure decision.

        Args:
            job: Job to execute (``attempts``/``tried_fallback`` are updated)

        Returns:
            Pipeline result (confirmed, failed, or retry with a delay)
        """
        try:
            venue, outcome = await self._attempt(job)
        except Exception as e:
            reason = str(e) or type(e).__name__
            self._order_log.order_event(
                job.id,
                "attempt_failed",
                job.spec.pair,
                level=logging.WARNING,
                attempt=job.attempts + 1,
                reason=reason,
            )
            return await self._handle_failure(job, reason)

        return await self._confirm(job, venue, outcome)

    # ========================================================================
    # Attempt
    # ========================================================================

    async def _attempt(self, job: Job) -> Tuple[str, ExecutionOutcome]:
        spec = job.spec
        store = self.order_store

        # routing
        self._emit(job, Phase.ROUTING, {"attempt": job.attempts + 1})
        decision = await self._with_deadline(
            self.route_executor.select_route(spec.token_in, spec.token_out, spec.amount_in),
            "Route selection",
        )
        self._emit(job, Phase.ROUTING, decision.to_payload())
        await self._persist(job, "routing decision", lambda: store.update_status(
            job.id,
            Phase.ROUTING,
            {
                "selected_venue": decision.primary_venue,
                "primary_price": decision.primary_quote.price,
                "alternate_venue": decision.alternate_venue,
                "alternate_price": decision.alternate_quote.price,
            },
        ))

        # building
        self._emit(job, Phase.BUILDING)
        await self._persist(job, "building", lambda: store.update_status(job.id, Phase.BUILDING))

        # submitted
        self._emit(job, Phase.SUBMITTED, {"venue": decision.primary_venue})
        await self._persist(job, "submission", lambda: store.update_status(job.id, Phase.SUBMITTED))

        tolerance = self.slippage.effective_tolerance(spec.slippage_tolerance, job.attempts)
        outcome = await self._with_deadline(
            self.route_executor.execute(decision.primary_venue, spec, decision.primary_quote),
            "Execution",
        )

        if not outcome.success:
            raise ExecutionError(outcome.error_reason or "Execution failed")

        check = self.slippage.check(
            decision.primary_quote.expected_amount_out,
            outcome.amount_out,
            tolerance,
        )
        if check.passed:
            return decision.primary_venue, outcome

        if job.tried_fallback:
            raise SlippageExceededError()

        job.tried_fallback = True
        fallback = await self._execute_fallback(job, decision, tolerance)
        if fallback is None:
            raise SlippageExceededError()

        return decision.alternate_venue, fallback

    async def _execute_fallback(
        self,
        job: Job,
        decision: RoutingDecision,
        tolerance: float,
    ) -> Optional[ExecutionOutcome]:
        """Execute once on the alternate venue; None if it cannot be accepted."""
        venue = decision.alternate_venue
        quote = decision.alternate_quote

        self._order_log.order_event(
            job.id, "fallback", job.spec.pair, venue=venue, tolerance=round(tolerance, 6)
        )
        self._emit(job, Phase.SUBMITTED, {"venue": venue, "fallback": True})

        try:
            outcome = await self._with_deadline(
                self.route_executor.execute(venue, job.spec, quote),
                "Fallback execution",
            )
        except Exception as e:
            logger.warning(f"[{job.id}] Fallback execution on {venue} raised: {e}")
            return None

        if not outcome.success:
            logger.warning(
                f"[{job.id}] Fallback execution on {venue} failed: {outcome.error_reason}"
            )
            return None

        check = self.slippage.check(quote.expected_amount_out, outcome.amount_out, tolerance)
        return outcome if check.passed else None

    # ========================================================================
    # Outcomes
    # ========================================================================

    async def _confirm(self, job: Job, venue: str, outcome: ExecutionOutcome) -> PipelineResult:
        store = self.order_store

        await self._persist(job, "confirmation", lambda: store.update_status(
            job.id,
            Phase.CONFIRMED,
            {
                "selected_venue": venue,
                "tx_ref": outcome.tx_ref,
                "executed_price": outcome.executed_price,
                "amount_out": outcome.amount_out,
            },
        ), fatal=False)

        self._emit(job, Phase.CONFIRMED, {
            "txRef": outcome.tx_ref,
            "executedPrice": outcome.executed_price,
            "amountOut": outcome.amount_out,
            "venue": venue,
        })
        self._order_log.order_event(
            job.id, "confirmed", job.spec.pair,
            venue=venue, amount_out=outcome.amount_out, tx_ref=outcome.tx_ref,
        )

        return PipelineResult(
            status=PipelineStatus.CONFIRMED,
            job_id=job.id,
            message=f"Confirmed on {venue}: {outcome.tx_ref}",
            outcome=outcome,
            venue=venue,
        )

    async def _handle_failure(self, job: Job, reason: str) -> PipelineResult:
        store = self.order_store
        job.attempts += 1

        await self._persist(
            job, "retry count", lambda: store.increment_retry_count(job.id), fatal=False
        )

        if self.retry.is_exhausted(job.attempts):
            error_message = f"Failed after {job.attempts} attempts: {reason}"
            await self._persist(job, "failure", lambda: store.update_status(
                job.id,
                Phase.FAILED,
                {"error_message": error_message, "retry_count": job.attempts},
            ), fatal=False)

            self._emit(job, Phase.FAILED, {"error": reason, "attempts": job.attempts})
            self._order_log.order_event(
                job.id, "failed", job.spec.pair, level=logging.ERROR,
                attempt=job.attempts, reason=reason,
            )
            return PipelineResult(
                status=PipelineStatus.FAILED,
                job_id=job.id,
                message=reason,
            )

        delay = self.retry.backoff_delay(job.attempts)
        await self._persist(job, "retry", lambda: store.update_status(
            job.id,
            Phase.RETRYING,
            {"error_message": reason, "retry_count": job.attempts},
        ), fatal=False)

        self._emit(job, Phase.RETRYING, {
            "attempt": job.attempts,
            "reason": reason,
            "retryInSeconds": delay,
            "fallbackTried": job.tried_fallback,
        })
        self._order_log.order_event(
            job.id, "retry_scheduled", job.spec.pair,
            attempt=job.attempts, delay_seconds=delay,
        )

        return PipelineResult(
            status=PipelineStatus.RETRY,
            job_id=job.id,
            message=reason,
            retry_after_seconds=delay,
        )

    # ========================================================================
    # Helpers
    # ========================================================================

    def _emit(self, job: Job, phase: Phase, payload: Optional[Dict[str, Any]] = None) -> None:
        self.notifier.publish(job.id, StatusEvent(job_id=job.id, phase=phase, payload=payload))

    async def _with_deadline(self, awaitable: Awaitable, what: str):
        """Await an executor call, bounded by the configured deadline."""
        if self.executor_timeout is None:
            return await awaitable

        try:
            return await asyncio.wait_for(awaitable, timeout=self.executor_timeout)
        except asyncio.TimeoutError as e:
            raise ExecutorTimeoutError(
                f"{what} timed out after {self.executor_timeout}s"
            ) from e

    async def _persist(
        self,
        job: Job,
        what: str,
        operation: Callable[[], Awaitable],
        fatal: bool = True,
    ):
        """
        Run a store operation under the persistence policy.

        Outside production a failure is logged and ignored. In production it
        raises StoreError (failing the attempt) unless ``fatal`` is False,
        which is used for terminal bookkeeping that must not re-run a swap.
        """
        if self.order_store is None:
            return None

        try:
            return await operation()
        except Exception as e:
            if self.production_mode and fatal:
                raise StoreError(f"Failed to persist {what}: {e}") from e

            level = logging.ERROR if self.production_mode else logging.WARNING
            logger.log(level, f"[{job.id}] Failed to persist {what} (continuing): {e}")
            return None
