"""
Status notifier - per-job publish/subscribe for phase transitions.

Unlike a queued event bus, delivery here is synchronous and unbuffered:
``publish`` calls every handler registered for the job *right now*, in
registration order, and nothing is kept for late subscribers. A subscriber
only ever sees the suffix of events published after it subscribed.

Usage:
    notifier = StatusNotifier()

    def on_status(event: StatusEvent):
        print(event.phase, event.payload)

    unsubscribe = notifier.subscribe("ORD-1", on_status)
    notifier.publish("ORD-1", StatusEvent(job_id="ORD-1", phase=Phase.ROUTING))
    unsubscribe()
"""

import itertools
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from swap_engine.core.events import StatusEvent

logger = logging.getLogger(__name__)

StatusHandler = Callable[[StatusEvent], Any]


@dataclass
class NotifierStats:
    """Statistics for notifier monitoring."""
    events_published: int = 0
    deliveries: int = 0
    handler_errors: int = 0
    events_without_subscribers: int = 0

    def get_stats_dict(self) -> Dict[str, Any]:
        """Return stats as dictionary."""
        return {
            "events_published": self.events_published,
            "deliveries": self.deliveries,
            "handler_errors": self.handler_errors,
            "events_without_subscribers": self.events_without_subscribers,
        }


class StatusNotifier:
    """
    Fan-out of StatusEvents keyed by job id.

    Instances are created explicitly and shared by handle between the
    scheduler, the pipeline and the transport layer.
    """

    def __init__(self):
        # {job_id: [(token, handler), ...]} in registration order
        self._subscribers: Dict[str, List[Tuple[int, StatusHandler]]] = defaultdict(list)
        self._tokens = itertools.count(1)
        self._stats = NotifierStats()

    # ========================================================================
    # Subscription Management
    # ========================================================================

    def subscribe(self, job_id: str, handler: StatusHandler) -> Callable[[], None]:
        """
        Register a handler for one job's events.

        Args:
            job_id: Job to listen to
            handler: Sync callable that accepts a StatusEvent

        Returns:
            Function that removes this registration (safe to call repeatedly)
        """
        token = next(self._tokens)
        self._subscribers[job_id].append((token, handler))
        logger.debug(
            "Subscribed %s to %s (total: %d handlers)",
            getattr(handler, "__name__", repr(handler)),
            job_id,
            len(self._subscribers[job_id]),
        )

        def unsubscribe() -> None:
            self._remove(job_id, token)

        return unsubscribe

    def _remove(self, job_id: str, token: int) -> None:
        handlers = self._subscribers.get(job_id)
        if not handlers:
            return

        remaining = [entry for entry in handlers if entry[0] != token]
        if len(remaining) == len(handlers):
            return

        if remaining:
            self._subscribers[job_id] = remaining
        else:
            del self._subscribers[job_id]
        logger.debug("Unsubscribed handler from %s", job_id)

    def get_subscriber_count(self, job_id: Optional[str] = None) -> int:
        """
        Get number of registered handlers.

        Args:
            job_id: Specific job, or None for all jobs
        """
        if job_id is not None:
            return len(self._subscribers.get(job_id, ()))
        return sum(len(handlers) for handlers in self._subscribers.values())

    # ========================================================================
    # Publishing
    # ========================================================================

    def publish(self, job_id: str, event: StatusEvent) -> int:
        """
        Deliver an event to every handler currently registered for the job.

        Handler errors are isolated: a failing handler is logged and the
        remaining handlers still run.

        Returns:
            Number of handlers that received the event without error
        """
        self._stats.events_published += 1

        # Snapshot so handlers may (un)subscribe while we iterate
        handlers = list(self._subscribers.get(job_id, ()))
        if not handlers:
            self._stats.events_without_subscribers += 1
            return 0

        delivered = 0
        for _, handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                self._stats.handler_errors += 1
                logger.exception(
                    "Error in status handler %s for %s (%s): %s",
                    getattr(handler, "__name__", repr(handler)),
                    job_id,
                    event.phase.value,
                    e,
                )

        self._stats.deliveries += delivered
        return delivered

    # ========================================================================
    # Statistics & Monitoring
    # ========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Get current notifier statistics."""
        stats = self._stats.get_stats_dict()
        stats["subscribers"] = self.get_subscriber_count()
        stats["jobs_with_subscribers"] = len(self._subscribers)
        return stats

    def __repr__(self) -> str:
        return (
            f"StatusNotifier(jobs={len(self._subscribers)}, "
            f"subscribers={self.get_subscriber_count()}, "
            f"events_published={self._stats.events_published})"
        )
