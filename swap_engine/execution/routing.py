"""
Route executor base class.

Defines the interface the execution pipeline uses to price and execute a
swap against one of two interchangeable venues (adapter pattern).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from swap_engine.core.errors import SwapEngineError
from swap_engine.core.models import OrderSpec


@dataclass(frozen=True)
class VenueQuote:
    """Price quote from a single venue."""
    venue: str
    price: float
    expected_amount_out: float
    fee_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "venue": self.venue,
            "price": self.price,
            "expectedAmountOut": self.expected_amount_out,
            "feeRate": self.fee_rate,
        }


@dataclass(frozen=True)
class RoutingDecision:
    """
    Routing choice between two venues.

    Produced fresh for every attempt; the alternate quote is what a
    slippage fallback executes against.
    """
    primary_venue: str
    primary_quote: VenueQuote
    alternate_venue: str
    alternate_quote: VenueQuote
    reason: str = ""

    def to_payload(self) -> Dict[str, Any]:
        """Status payload describing the decision."""
        return {
            "selectedVenue": self.primary_venue,
            "prices": {
                self.primary_venue: self.primary_quote.price,
                self.alternate_venue: self.alternate_quote.price,
            },
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of one execution against one venue."""
    success: bool
    tx_ref: Optional[str] = None
    executed_price: Optional[float] = None
    amount_out: Optional[float] = None
    error_reason: Optional[str] = None


# ============================================================================
# Errors
# ============================================================================

class RouteExecutorError(SwapEngineError):
    """Base exception for route executor errors."""
    pass


class RoutingError(RouteExecutorError):
    """Route selection failed."""
    pass


class ExecutionError(RouteExecutorError):
    """Swap execution failed."""
    pass


class ExecutorTimeoutError(RouteExecutorError):
    """Executor call exceeded its deadline."""
    pass


# ============================================================================
# Route Executor
# ============================================================================

class RouteExecutor(ABC):
    """
    Abstract base class for route executors.

    Implementations may raise from either method; the pipeline maps any
    exception onto its retry path.
    """

    @abstractmethod
    async def select_route(
        self,
        token_in: str,
        token_out: str,
        amount_in: float
    ) -> RoutingDecision:
        """
        Quote both venues and pick one.

        Args:
            token_in: Token sold
            token_out: Token bought
            amount_in: Size of the swap in token_in units

        Returns:
            Routing decision with quotes for both venues

        Raises:
            RoutingError: If quoting fails
        """
        pass

    @abstractmethod
    async def execute(
        self,
        venue: str,
        spec: OrderSpec,
        quote: VenueQuote
    ) -> ExecutionOutcome:
        """
        Execute the swap against one venue.

        Args:
            venue: Venue name from the routing decision
            spec: Order being executed
            quote: Quote the execution is based on

        Returns:
            Execution outcome (``success=False`` for venue-reported failures)

        Raises:
            ExecutionError: If the venue call itself fails
        """
        pass

    def get_venues(self) -> tuple:
        """Venue names this executor routes between."""
        return ()
