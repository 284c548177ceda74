"""
Unit tests for the simulated two-venue router.
"""

import pytest

from swap_engine.config.settings import MockRouterConfig
from swap_engine.core.models import OrderSpec
from swap_engine.execution.mock_router import METEORA, RAYDIUM, VENUE_FEES, MockDexRouter
from swap_engine.execution.routing import ExecutionError, RoutingError


def _router(**overrides) -> MockDexRouter:
    settings = dict(
        seed=42,
        quote_latency_seconds=0,
        execution_latency_seconds=0,
    )
    settings.update(overrides)
    return MockDexRouter(MockRouterConfig(**settings))


@pytest.fixture
def spec():
    return OrderSpec(token_in="SOL", token_out="USDC", amount_in=2.0)


@pytest.mark.asyncio
async def test_select_route_picks_better_output():
    router = _router()

    decision = await router.select_route("SOL", "USDC", 2.0)

    assert {decision.primary_venue, decision.alternate_venue} == {RAYDIUM, METEORA}
    assert decision.primary_quote.expected_amount_out >= decision.alternate_quote.expected_amount_out
    assert decision.primary_quote.fee_rate == VENUE_FEES[decision.primary_venue]
    assert decision.reason


@pytest.mark.asyncio
async def test_quotes_stay_within_variance():
    router = _router(price_variance=0.02)

    for _ in range(20):
        decision = await router.select_route("SOL", "USDC", 1.0)
        for quote in (decision.primary_quote, decision.alternate_quote):
            assert 98.0 <= quote.price <= 102.0
            assert quote.expected_amount_out == pytest.approx(quote.price * (1 - quote.fee_rate))


@pytest.mark.asyncio
async def test_same_seed_is_reproducible():
    first = await _router(seed=7).select_route("SOL", "USDC", 1.0)
    second = await _router(seed=7).select_route("SOL", "USDC", 1.0)

    assert first == second


@pytest.mark.asyncio
async def test_invalid_amount_raises_routing_error():
    with pytest.raises(RoutingError):
        await _router().select_route("SOL", "USDC", 0)


@pytest.mark.asyncio
async def test_execute_success_within_max_slippage(spec):
    router = _router(failure_rate=0.0, max_execution_slippage=0.01)
    decision = await router.select_route("SOL", "USDC", spec.amount_in)

    outcome = await router.execute(decision.primary_venue, spec, decision.primary_quote)

    assert outcome.success
    assert outcome.tx_ref.startswith("0x")
    assert len(outcome.tx_ref) == 66
    expected = decision.primary_quote.expected_amount_out
    assert expected * 0.99 <= outcome.amount_out <= expected


@pytest.mark.asyncio
async def test_execute_reports_simulated_failure(spec):
    router = _router(failure_rate=1.0)
    decision = await router.select_route("SOL", "USDC", spec.amount_in)

    outcome = await router.execute(decision.primary_venue, spec, decision.primary_quote)

    assert not outcome.success
    assert outcome.error_reason
    assert outcome.tx_ref is None


@pytest.mark.asyncio
async def test_execute_unknown_venue(spec):
    router = _router()
    decision = await router.select_route("SOL", "USDC", spec.amount_in)

    with pytest.raises(ExecutionError):
        await router.execute("orca", spec, decision.primary_quote)


def test_venues():
    assert _router().get_venues() == (RAYDIUM, METEORA)
