"""
Swap engine.

Queued market-order execution across two DEX venues with slippage
protection, one-time venue fallback, retry with backoff and live status
streaming.
"""

__version__ = "0.1.0"
