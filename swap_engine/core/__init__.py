"""Core domain types, status events and the status notifier."""

from swap_engine.core.errors import (
    SwapEngineError,
    SlippageExceededError,
    StoreError,
    OrderNotFoundError,
)
from swap_engine.core.events import Phase, StatusEvent
from swap_engine.core.models import Job, OrderSpec, OrderType
from swap_engine.core.notifier import StatusNotifier

__all__ = [
    'SwapEngineError',
    'SlippageExceededError',
    'StoreError',
    'OrderNotFoundError',
    'Phase',
    'StatusEvent',
    'Job',
    'OrderSpec',
    'OrderType',
    'StatusNotifier',
]
