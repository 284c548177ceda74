"""
Tests for the HTTP/WebSocket transport.
"""

import time

import pytest
from fastapi.testclient import TestClient

from swap_engine.api.server import create_app
from swap_engine.config.settings import EngineConfig, MockRouterConfig
from swap_engine.execution.engine import SwapEngine
from swap_engine.execution.mock_router import MockDexRouter
from swap_engine.storage.memory import InMemoryOrderStore

ORDER = {"tokenIn": "SOL", "tokenOut": "USDC", "amountIn": 1.5, "slippage": 0.01}


def _engine(execution_latency: float = 0.0) -> SwapEngine:
    router = MockDexRouter(MockRouterConfig(
        seed=1,
        failure_rate=0.0,
        max_execution_slippage=0.0,
        quote_latency_seconds=0.0,
        execution_latency_seconds=execution_latency,
    ))
    config = EngineConfig(poll_interval_seconds=0.01, retry_base_delay_seconds=0.01)
    return SwapEngine(router, InMemoryOrderStore(), config=config)


@pytest.fixture
def client():
    with TestClient(create_app(_engine())) as test_client:
        yield test_client


def _wait_for_status(client, order_id, status, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        response = client.get(f"/api/orders/{order_id}")
        if response.status_code == 200 and response.json()["status"] == status:
            return response.json()
        time.sleep(0.02)
    raise AssertionError(f"Order {order_id} never reached {status}")


# ============================================================================
# REST
# ============================================================================

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_execute_order_returns_pending(client):
    response = client.post("/api/orders/execute", json=ORDER)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["status"] == "pending"
    assert data["orderId"].startswith("ORD-")
    assert "timestamp" in data


def test_order_is_executed_and_stored(client):
    order_id = client.post("/api/orders/execute", json=ORDER).json()["orderId"]

    record = _wait_for_status(client, order_id, "confirmed")

    assert record["order_id"] == order_id
    assert record["selected_venue"] in ("raydium", "meteora")
    assert record["tx_ref"].startswith("0x")
    assert record["amount_out"] > 0


@pytest.mark.parametrize("body", [
    {"tokenIn": "SOL", "tokenOut": "USDC"},
    {"tokenIn": "SOL", "tokenOut": "USDC", "amountIn": -1},
    {"tokenIn": "", "tokenOut": "USDC", "amountIn": 1},
    {"tokenIn": "SOL", "tokenOut": "USDC", "amountIn": 1, "orderType": "limit"},
])
def test_invalid_order_rejected(client, body):
    response = client.post("/api/orders/execute", json=body)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"]


def test_malformed_json_rejected(client):
    response = client.post(
        "/api/orders/execute",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400


@pytest.mark.parametrize("raw_body", [
    b'{"tokenIn": "SOL", "tokenOut": "USDC", "amountIn": Infinity}',
    b'{"tokenIn": "SOL", "tokenOut": "USDC", "amountIn": NaN}',
    b'{"tokenIn": "SOL", "tokenOut": "USDC", "amountIn": 1, "slippage": Infinity}',
])
def test_non_finite_numbers_rejected(client, raw_body):
    response = client.post(
        "/api/orders/execute",
        content=raw_body,
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert client.get("/api/orders").json()["count"] == 0


def test_unknown_order_returns_404(client):
    response = client.get("/api/orders/ORD-UNKNOWN")

    assert response.status_code == 404
    assert response.json() == {"error": "Order not found"}


def test_list_orders(client):
    first = client.post("/api/orders/execute", json=ORDER).json()["orderId"]
    second = client.post("/api/orders/execute", json=ORDER).json()["orderId"]

    data = client.get("/api/orders", params={"limit": 10}).json()

    assert data["count"] == 2
    assert [o["order_id"] for o in data["orders"]] == [second, first]
    assert data["limit"] == 10
    assert data["offset"] == 0


def test_stats(client):
    data = client.get("/stats").json()

    assert data["venues"] == ["raydium", "meteora"]
    assert data["scheduler"]["running"] is True
    assert "notifier" in data


# ============================================================================
# WebSocket
# ============================================================================

def test_websocket_requires_order_id(client):
    with client.websocket_connect("/ws") as websocket:
        message = websocket.receive_json()

    assert "orderId" in message["error"]


def test_websocket_streams_order_status():
    with TestClient(create_app(_engine(execution_latency=0.5))) as client:
        order_id = client.post("/api/orders/execute", json=ORDER).json()["orderId"]

        with client.websocket_connect(f"/ws?orderId={order_id}") as websocket:
            ack = websocket.receive_json()
            assert ack["success"] is True
            assert order_id in ack["message"]

            statuses = []
            while not statuses or statuses[-1] not in ("confirmed", "failed"):
                message = websocket.receive_json()
                assert message["orderId"] == order_id
                statuses.append(message["status"])

    assert statuses[-1] == "confirmed"
    confirmed_data = message["data"]
    assert confirmed_data["txRef"].startswith("0x")


def test_websocket_execute_streams_from_pending():
    with TestClient(create_app(_engine())) as client:
        with client.websocket_connect("/api/orders/execute") as websocket:
            websocket.send_json(ORDER)

            ack = websocket.receive_json()
            assert ack["success"] is True
            order_id = ack["orderId"]
            assert order_id.startswith("ORD-")

            statuses = []
            while not statuses or statuses[-1] not in ("confirmed", "failed"):
                message = websocket.receive_json()
                assert message["orderId"] == order_id
                statuses.append(message["status"])

        assert client.get(f"/api/orders/{order_id}").json()["status"] == "confirmed"

    assert statuses[0] == "pending"
    assert statuses[-1] == "confirmed"
    assert "routing" in statuses


@pytest.mark.parametrize("body", [
    {"tokenIn": "SOL", "tokenOut": "USDC"},
    {"tokenIn": "SOL", "tokenOut": "USDC", "amountIn": 1, "orderType": "limit"},
])
def test_websocket_execute_rejects_invalid_order(client, body):
    with client.websocket_connect("/api/orders/execute") as websocket:
        websocket.send_json(body)
        message = websocket.receive_json()

    assert message["success"] is False
    assert message["error"]
    assert client.get("/api/orders").json()["count"] == 0
