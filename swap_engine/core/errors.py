"""
Exception hierarchy for the swap engine.

Validation problems surface as pydantic ValidationError before a job exists;
everything raised inside the pipeline derives from SwapEngineError.
"""


class SwapEngineError(Exception):
    """Base exception for swap engine errors."""
    pass


class SlippageExceededError(SwapEngineError):
    """Execution filled below the minimum acceptable output."""

    def __init__(self, message: str = "Slippage tolerance exceeded"):
        super().__init__(message)


class StoreError(SwapEngineError):
    """Order store operation failed."""
    pass


class OrderNotFoundError(StoreError):
    """Order record does not exist."""

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id
