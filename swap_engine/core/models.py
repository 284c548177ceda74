"""
Domain models for swap orders.

OrderSpec is the validated, immutable request a caller submits. Job is the
scheduler's mutable wrapper around it: only the execution pipeline touches
``attempts`` and ``tried_fallback``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class OrderType(str, Enum):
    """Supported order types (immediate execution only)."""
    MARKET = "market"


class OrderSpec(BaseModel):
    """
    Swap request as submitted by a caller.

    Accepts both python field names and the camelCase wire names used by the
    HTTP API (``tokenIn``, ``amountIn``, ``slippage``...).
    """

    order_type: OrderType = Field(
        default=OrderType.MARKET,
        alias="orderType",
        description="Order type"
    )

    token_in: str = Field(
        alias="tokenIn",
        min_length=1,
        description="Token sold"
    )

    token_out: str = Field(
        alias="tokenOut",
        min_length=1,
        description="Token bought"
    )

    amount_in: float = Field(
        alias="amountIn",
        gt=0.0,
        allow_inf_nan=False,
        description="Amount of token_in to swap"
    )

    slippage_tolerance: Optional[float] = Field(
        default=None,
        alias="slippage",
        validation_alias=AliasChoices("slippage", "slippageTolerance", "slippage_tolerance"),
        ge=0.0,
        le=1.0,
        allow_inf_nan=False,
        description="Max fractional shortfall vs expected output (None = engine default)"
    )

    class Config:
        frozen = True
        populate_by_name = True
        use_enum_values = True
        validate_default = True

    @property
    def pair(self) -> str:
        """Trading pair label, e.g. ``SOL/USDC``."""
        return f"{self.token_in}/{self.token_out}"


@dataclass
class Job:
    """
    Unit of work tracked by the scheduler.

    ``tried_fallback`` is sticky for the lifetime of the job: a retry never
    resets it, so a job gets at most one fallback execution.
    """
    id: str
    spec: OrderSpec
    attempts: int = 0
    tried_fallback: bool = False
    created_at: datetime = field(default_factory=datetime.utcnow)
