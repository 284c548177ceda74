"""
Execution module.

Provides the swap execution infrastructure with:
- Route executor interface and a simulated two-venue router
- Per-job state machine with slippage enforcement and fallback
- Bounded-concurrency scheduler with exponential backoff
"""

from swap_engine.execution.engine import SwapEngine
from swap_engine.execution.mock_router import MockDexRouter
from swap_engine.execution.pipeline import ExecutionPipeline, PipelineResult, PipelineStatus
from swap_engine.execution.retry import RetryPolicy
from swap_engine.execution.routing import (
    ExecutionError,
    ExecutionOutcome,
    ExecutorTimeoutError,
    RouteExecutor,
    RouteExecutorError,
    RoutingDecision,
    RoutingError,
    VenueQuote,
)
from swap_engine.execution.scheduler import JobScheduler, generate_job_id
from swap_engine.execution.slippage import SlippageCheck, SlippagePolicy

__all__ = [
    # Engine
    'SwapEngine',
    'ExecutionPipeline',
    'PipelineResult',
    'PipelineStatus',
    'JobScheduler',
    'generate_job_id',

    # Policies
    'RetryPolicy',
    'SlippageCheck',
    'SlippagePolicy',

    # Routing
    'RouteExecutor',
    'RoutingDecision',
    'VenueQuote',
    'ExecutionOutcome',
    'RouteExecutorError',
    'RoutingError',
    'ExecutionError',
    'ExecutorTimeoutError',
    'MockDexRouter',
]
