"""
Job scheduler - bounded-concurrency admission and dispatch.

A single dispatch loop owns every scheduling structure:

- ``_pending``: FIFO of jobs waiting for a slot
- ``_in_flight``: jobs whose pipeline task is running
- ``_delayed``: jobs waiting out a retry backoff (they hold no slot)

Pipeline tasks never touch these. They push their result onto a completion
queue and the loop applies it on its next iteration, so the structures have a
single writer and need no locks.
"""

import asyncio
import heapq
import itertools
import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Tuple

from swap_engine.core.events import Phase, StatusEvent
from swap_engine.core.models import Job, OrderSpec
from swap_engine.core.notifier import StatusNotifier
from swap_engine.execution.pipeline import ExecutionPipeline, PipelineResult

logger = logging.getLogger(__name__)


def generate_job_id() -> str:
    """Unique order id, e.g. ``ORD-1718000000000-3f9a1c2b7``."""
    return f"ORD-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


@dataclass
class SchedulerStats:
    """Statistics for scheduler monitoring."""
    jobs_enqueued: int = 0
    jobs_dispatched: int = 0
    jobs_confirmed: int = 0
    jobs_failed: int = 0
    retries_scheduled: int = 0
    max_in_flight_observed: int = 0
    started_at: Optional[datetime] = None

    def get_stats_dict(self) -> Dict[str, Any]:
        return {
            "jobs_enqueued": self.jobs_enqueued,
            "jobs_dispatched": self.jobs_dispatched,
            "jobs_confirmed": self.jobs_confirmed,
            "jobs_failed": self.jobs_failed,
            "retries_scheduled": self.retries_scheduled,
            "max_in_flight_observed": self.max_in_flight_observed,
            "uptime_seconds": (
                (datetime.utcnow() - self.started_at).total_seconds()
                if self.started_at
                else 0
            ),
        }


class JobScheduler:
    """
    Admits jobs in arrival order under a fixed concurrency ceiling.

    Usage:
        scheduler = JobScheduler(pipeline, notifier, max_concurrent_jobs=10)
        await scheduler.start()

        job_id = scheduler.enqueue(spec)

        await scheduler.stop()
    """

    def __init__(
        self,
        pipeline: ExecutionPipeline,
        notifier: Optional[StatusNotifier] = None,
        max_concurrent_jobs: int = 10,
        poll_interval_seconds: float = 0.2,
    ):
        """
        Initialize scheduler.

        Args:
            pipeline: Pipeline each admitted job runs through
            notifier: Status notifier (``pending`` is published on enqueue)
            max_concurrent_jobs: Concurrency ceiling
            poll_interval_seconds: Idle wait between dispatch checks
        """
        if max_concurrent_jobs < 1:
            raise ValueError("max_concurrent_jobs must be >= 1")

        self.pipeline = pipeline
        self.notifier = notifier or pipeline.notifier
        self.max_concurrent_jobs = max_concurrent_jobs
        self.poll_interval_seconds = poll_interval_seconds

        self._pending: Deque[Job] = deque()
        self._in_flight: Dict[str, Job] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        # (ready_at monotonic, seq, job)
        self._delayed: List[Tuple[float, int, Job]] = []
        self._delay_seq = itertools.count()
        self._completions: Deque[Tuple[Job, Optional[PipelineResult]]] = deque()

        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._stats = SchedulerStats()

        logger.info(
            "JobScheduler initialized (max concurrent: %d, poll interval: %.3fs)",
            max_concurrent_jobs,
            poll_interval_seconds,
        )

    # ========================================================================
    # Admission
    # ========================================================================

    def enqueue(self, spec: OrderSpec, job_id: Optional[str] = None) -> str:
        """
        Append a new job to the tail of the pending queue.

        Never blocks and always succeeds; the queue is unbounded.

        Args:
            spec: Validated order spec
            job_id: Explicit id (generated when omitted)

        Returns:
            Job id
        """
        job = Job(id=job_id or generate_job_id(), spec=spec)
        self._pending.append(job)
        self._stats.jobs_enqueued += 1

        self.notifier.publish(job.id, StatusEvent(
            job_id=job.id,
            phase=Phase.PENDING,
            payload={"message": "Order received and queued for execution"},
        ))
        logger.info(
            f"[{job.id}] Enqueued {spec.amount_in} {spec.token_in} -> {spec.token_out} "
            f"(pending: {len(self._pending)})"
        )
        return job.id

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def start(self) -> None:
        """Start the dispatch loop as a background task."""
        if self._running:
            logger.warning("JobScheduler already running")
            return

        self._running = True
        self._stats.started_at = datetime.utcnow()
        self._loop_task = asyncio.create_task(self._dispatch_loop(), name="job_dispatch_loop")
        logger.info("JobScheduler started")

    async def stop(self, timeout: float = 5.0) -> None:
        """
        Stop dispatching and wait for in-flight pipelines.

        Jobs still pending or delayed are left in place. In-flight pipelines
        that outlive ``timeout`` are cancelled.
        """
        if not self._running:
            logger.warning("JobScheduler not running")
            return

        logger.info(
            "Stopping JobScheduler (in flight: %d, pending: %d, delayed: %d)...",
            len(self._in_flight),
            len(self._pending),
            len(self._delayed),
        )
        self._running = False

        if self._loop_task:
            await self._loop_task
            self._loop_task = None

        tasks = list(self._tasks.values())
        if tasks:
            done, still_running = await asyncio.wait(tasks, timeout=timeout)
            if still_running:
                logger.warning(
                    "JobScheduler shutdown timeout - cancelling %d pipelines", len(still_running)
                )
                for task in still_running:
                    task.cancel()
                await asyncio.gather(*still_running, return_exceptions=True)

        self._drain_completions()
        logger.info("JobScheduler stopped")

    # ========================================================================
    # Dispatch Loop
    # ========================================================================

    async def _dispatch_loop(self) -> None:
        """
        Poll for free slots and admit pending jobs in FIFO order.

        This is the only writer of the pending, in-flight and delayed
        structures.
        """
        logger.info("Dispatch loop started")

        while self._running:
            try:
                self._drain_completions()
                self._release_delayed()

                if len(self._in_flight) < self.max_concurrent_jobs and self._pending:
                    self._dispatch(self._pending.popleft())
                    # Let the new task start before re-checking
                    await asyncio.sleep(0)
                else:
                    await asyncio.sleep(self.poll_interval_seconds)

            except Exception as e:
                logger.exception("Error in dispatch loop: %s", e)
                await asyncio.sleep(self.poll_interval_seconds)

        logger.info("Dispatch loop stopped")

    def _dispatch(self, job: Job) -> None:
        self._in_flight[job.id] = job
        self._stats.jobs_dispatched += 1
        self._stats.max_in_flight_observed = max(
            self._stats.max_in_flight_observed, len(self._in_flight)
        )

        task = asyncio.create_task(self._run_pipeline(job), name=f"pipeline_{job.id}")
        self._tasks[job.id] = task
        logger.debug(
            "[%s] Dispatched (attempt %d, in flight: %d)",
            job.id,
            job.attempts + 1,
            len(self._in_flight),
        )

    async def _run_pipeline(self, job: Job) -> None:
        result: Optional[PipelineResult] = None
        try:
            result = await self.pipeline.run(job)
        except asyncio.CancelledError:
            logger.warning(f"[{job.id}] Pipeline cancelled")
            raise
        except Exception as e:
            logger.exception(f"[{job.id}] Pipeline raised unexpectedly, dropping job: {e}")
        finally:
            self._completions.append((job, result))

    def _drain_completions(self) -> None:
        while self._completions:
            job, result = self._completions.popleft()
            self._in_flight.pop(job.id, None)
            self._tasks.pop(job.id, None)

            if result is not None and result.should_retry:
                ready_at = time.monotonic() + (result.retry_after_seconds or 0.0)
                heapq.heappush(self._delayed, (ready_at, next(self._delay_seq), job))
                self._stats.retries_scheduled += 1
                logger.info(
                    f"[{job.id}] Retry in {result.retry_after_seconds}s (attempt {job.attempts})"
                )
            elif result is not None and result.is_confirmed:
                self._stats.jobs_confirmed += 1
            else:
                self._stats.jobs_failed += 1

    def _release_delayed(self) -> None:
        now = time.monotonic()
        while self._delayed and self._delayed[0][0] <= now:
            _, _, job = heapq.heappop(self._delayed)
            self._pending.append(job)
            logger.debug("[%s] Backoff elapsed, re-queued", job.id)

    # ========================================================================
    # Introspection
    # ========================================================================

    def job_state(self, job_id: str) -> Optional[str]:
        """
        Where a job currently lives.

        Returns:
            ``"pending"``, ``"in_flight"``, ``"delayed"``, or None once the
            job reached a terminal outcome (or never existed)
        """
        if job_id in self._in_flight:
            return "in_flight"
        if any(job.id == job_id for job in self._pending):
            return "pending"
        if any(job.id == job_id for _, _, job in self._delayed):
            return "delayed"
        return None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    @property
    def delayed_count(self) -> int:
        return len(self._delayed)

    @property
    def is_idle(self) -> bool:
        """No job pending, running, delayed or awaiting completion handling."""
        return not (self._pending or self._in_flight or self._delayed or self._completions)

    @property
    def is_running(self) -> bool:
        return self._running

    async def wait_until_idle(self, timeout: float = 30.0) -> bool:
        """
        Wait until every known job reached a terminal outcome.

        Returns:
            True if idle before the timeout
        """
        deadline = time.monotonic() + timeout
        while not self.is_idle:
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(min(self.poll_interval_seconds, 0.05))
        return True

    def get_stats(self) -> Dict[str, Any]:
        stats = self._stats.get_stats_dict()
        stats.update({
            "running": self._running,
            "pending": len(self._pending),
            "in_flight": len(self._in_flight),
            "delayed": len(self._delayed),
            "max_concurrent_jobs": self.max_concurrent_jobs,
        })
        return stats

    def __repr__(self) -> str:
        return (
            f"JobScheduler(running={self._running}, pending={len(self._pending)}, "
            f"in_flight={len(self._in_flight)}, delayed={len(self._delayed)})"
        )
