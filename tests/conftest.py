"""
Shared fixtures and deterministic stubs for swap engine tests.
"""

import asyncio
from typing import Any, List, Optional

import pytest

from swap_engine.config.settings import EngineConfig
from swap_engine.core.events import StatusEvent
from swap_engine.core.models import OrderSpec
from swap_engine.core.notifier import StatusNotifier
from swap_engine.execution.routing import (
    ExecutionOutcome,
    RouteExecutor,
    RoutingDecision,
    RoutingError,
    VenueQuote,
)


class StubRouteExecutor(RouteExecutor):
    """
    Scripted route executor.

    ``fills`` is consumed one entry per ``execute`` call:
    - float: successful fill with that amount_out
    - ExecutionOutcome: returned as is
    - Exception: raised
    When the script runs out every fill matches the quote exactly.
    """

    def __init__(
        self,
        fills: Optional[List[Any]] = None,
        route_failures: int = 0,
        primary_expected: float = 100.0,
        alternate_expected: float = 99.0,
        execute_delay: float = 0.0,
    ):
        self.fills = list(fills or [])
        self.route_failures = route_failures
        self.primary_expected = primary_expected
        self.alternate_expected = alternate_expected
        self.execute_delay = execute_delay

        self.route_calls = 0
        self.executed_venues: List[str] = []
        self.active = 0
        self.max_active = 0

    def get_venues(self) -> tuple:
        return ("venue_x", "venue_y")

    async def select_route(self, token_in, token_out, amount_in) -> RoutingDecision:
        self.route_calls += 1
        if self.route_failures > 0:
            self.route_failures -= 1
            raise RoutingError("No route available")

        primary = VenueQuote("venue_x", self.primary_expected, self.primary_expected, 0.003)
        alternate = VenueQuote("venue_y", self.alternate_expected, self.alternate_expected, 0.002)
        return RoutingDecision(
            primary_venue="venue_x",
            primary_quote=primary,
            alternate_venue="venue_y",
            alternate_quote=alternate,
            reason="stub",
        )

    async def execute(self, venue, spec, quote) -> ExecutionOutcome:
        self.executed_venues.append(venue)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.execute_delay:
                await asyncio.sleep(self.execute_delay)

            fill = self.fills.pop(0) if self.fills else quote.expected_amount_out
            if isinstance(fill, Exception):
                raise fill
            if isinstance(fill, ExecutionOutcome):
                return fill
            return ExecutionOutcome(
                success=True,
                tx_ref=f"0x{venue}",
                executed_price=quote.price,
                amount_out=fill,
            )
        finally:
            self.active -= 1


class EventRecorder:
    """Collects every StatusEvent delivered to it."""

    def __init__(self):
        self.events: List[StatusEvent] = []

    def __call__(self, event: StatusEvent) -> None:
        self.events.append(event)

    @property
    def phases(self) -> List[str]:
        return [event.phase.value for event in self.events]


@pytest.fixture
def spec():
    return OrderSpec(token_in="SOL", token_out="USDC", amount_in=1.0, slippage_tolerance=0.01)


@pytest.fixture
def notifier():
    return StatusNotifier()


@pytest.fixture
def fast_config():
    """Engine config with near-zero delays."""
    return EngineConfig(
        max_concurrent_jobs=10,
        max_retry_attempts=3,
        poll_interval_seconds=0.01,
        retry_base_delay_seconds=0.01,
    )
