"""
Simulated two-venue DEX router.

Quotes Raydium and Meteora around a reference price, routes to the venue with
the better expected output, and simulates execution latency, venue failures
and fill slippage. All randomness comes from one ``random.Random`` so runs are
reproducible with a seed.
"""

import asyncio
import logging
import random
from typing import Dict, Optional

from swap_engine.config.settings import MockRouterConfig
from swap_engine.core.models import OrderSpec
from swap_engine.execution.routing import (
    ExecutionError,
    ExecutionOutcome,
    RouteExecutor,
    RoutingDecision,
    RoutingError,
    VenueQuote,
)

logger = logging.getLogger(__name__)

RAYDIUM = "raydium"
METEORA = "meteora"

# Venue fee rates
VENUE_FEES: Dict[str, float] = {
    RAYDIUM: 0.003,
    METEORA: 0.002,
}

FAILURE_REASONS = (
    "Insufficient liquidity",
    "Network timeout",
    "Transaction simulation failed",
)


class MockDexRouter(RouteExecutor):
    """
    Route executor over two simulated Solana venues.

    Example:
        router = MockDexRouter(MockRouterConfig(seed=7, execution_latency_seconds=0))
        decision = await router.select_route("SOL", "USDC", 1.5)
        outcome = await router.execute(decision.primary_venue, spec, decision.primary_quote)
    """

    def __init__(
        self,
        config: Optional[MockRouterConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            config: Simulation parameters
            rng: Random source (defaults to ``random.Random(config.seed)``)
        """
        self.config = config or MockRouterConfig()
        self._rng = rng or random.Random(self.config.seed)
        logger.info(
            f"MockDexRouter initialized (base_price={self.config.base_price}, "
            f"failure_rate={self.config.failure_rate}, seed={self.config.seed})"
        )

    def get_venues(self) -> tuple:
        return (RAYDIUM, METEORA)

    # ========================================================================
    # Quotes
    # ========================================================================

    def _quote(self, venue: str, amount_in: float) -> VenueQuote:
        variance = self.config.price_variance
        price = self.config.base_price * (1 - variance + self._rng.random() * 2 * variance)
        fee_rate = VENUE_FEES[venue]
        return VenueQuote(
            venue=venue,
            price=price,
            expected_amount_out=amount_in * price * (1 - fee_rate),
            fee_rate=fee_rate,
        )

    async def select_route(
        self,
        token_in: str,
        token_out: str,
        amount_in: float
    ) -> RoutingDecision:
        if amount_in <= 0:
            raise RoutingError(f"Invalid amount for {token_in}/{token_out}: {amount_in}")

        await self._sleep(self.config.quote_latency_seconds)

        raydium = self._quote(RAYDIUM, amount_in)
        meteora = self._quote(METEORA, amount_in)

        if raydium.expected_amount_out >= meteora.expected_amount_out:
            best, other = raydium, meteora
        else:
            best, other = meteora, raydium

        edge_pct = (
            (best.expected_amount_out - other.expected_amount_out)
            / other.expected_amount_out * 100
            if other.expected_amount_out
            else 0.0
        )

        decision = RoutingDecision(
            primary_venue=best.venue,
            primary_quote=best,
            alternate_venue=other.venue,
            alternate_quote=other,
            reason=f"{best.venue} returns {edge_pct:.3f}% more {token_out} than {other.venue}",
        )
        logger.debug(
            f"Routed {amount_in} {token_in}->{token_out}: {best.venue} @ {best.price:.4f} "
            f"vs {other.venue} @ {other.price:.4f}"
        )
        return decision

    # ========================================================================
    # Execution
    # ========================================================================

    async def execute(
        self,
        venue: str,
        spec: OrderSpec,
        quote: VenueQuote
    ) -> ExecutionOutcome:
        if venue not in VENUE_FEES:
            raise ExecutionError(f"Unknown venue: {venue}")

        await self._sleep(self.config.execution_latency_seconds)

        if self._rng.random() < self.config.failure_rate:
            reason = self._rng.choice(FAILURE_REASONS)
            logger.info(f"Simulated {venue} failure for {spec.pair}: {reason}")
            return ExecutionOutcome(success=False, error_reason=reason)

        shortfall = self._rng.random() * self.config.max_execution_slippage
        executed_price = quote.price * (1 - shortfall)

        return ExecutionOutcome(
            success=True,
            tx_ref=self._tx_ref(),
            executed_price=executed_price,
            amount_out=quote.expected_amount_out * (1 - shortfall),
        )

    def _tx_ref(self) -> str:
        return f"0x{self._rng.getrandbits(256):064x}"

    @staticmethod
    async def _sleep(seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
