"""
HTTP and WebSocket transport for the swap engine.

Endpoints:
- POST /api/orders/execute  - submit a market order
- GET  /api/orders/{id}     - stored order record
- GET  /api/orders          - paginated order list
- GET  /health              - health check
- GET  /stats               - engine statistics
- WS   /api/orders/execute  - submit an order and stream its status
- WS   /ws?orderId=...      - live status events for one order
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from swap_engine import __version__
from swap_engine.core.errors import StoreError
from swap_engine.core.events import StatusEvent
from swap_engine.core.models import OrderSpec
from swap_engine.execution.engine import SwapEngine
from swap_engine.execution.scheduler import generate_job_id

logger = logging.getLogger(__name__)


def create_app(engine: SwapEngine) -> FastAPI:
    """
    Build the FastAPI application around an engine.

    The engine's dispatch loop runs for the lifetime of the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting swap engine API")
        await engine.start()
        yield
        logger.info("Shutting down swap engine API")
        await engine.stop()

    app = FastAPI(title="Swap Engine API", version=__version__, lifespan=lifespan)
    app.state.engine = engine

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}

    @app.get("/stats")
    async def get_stats():
        stats = engine.get_stats()
        stats["timestamp"] = datetime.utcnow().isoformat()
        return stats

    @app.post("/api/orders/execute")
    async def execute_order(request: Request):
        """Validate and enqueue a market order."""
        try:
            body = await request.json()
            spec = OrderSpec.model_validate(body)
        except ValueError as e:
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": str(e) or "Invalid order data"},
            )

        try:
            order_id = await engine.submit(spec)
        except StoreError as e:
            return JSONResponse(status_code=503, content={"success": False, "error": str(e)})

        return {
            "success": True,
            "orderId": order_id,
            "status": "pending",
            "message": "Order received and queued for execution",
            "timestamp": datetime.utcnow().isoformat(),
        }

    @app.get("/api/orders/{order_id}")
    async def get_order(order_id: str):
        record = await engine.get_order(order_id)
        if record is None:
            return JSONResponse(status_code=404, content={"error": "Order not found"})
        return record.to_dict()

    @app.get("/api/orders")
    async def list_orders(
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ):
        records = await engine.list_orders(limit=limit, offset=offset)
        return {
            "orders": [record.to_dict() for record in records],
            "count": len(records),
            "limit": limit,
            "offset": offset,
        }

    @app.websocket("/api/orders/execute")
    async def execute_order_stream(websocket: WebSocket):
        """
        Submit an order and stream its status on one connection.

        The first client message is the order JSON. The subscription exists
        before the order is enqueued, so the stream starts at ``pending``.
        """
        await websocket.accept()

        try:
            spec = OrderSpec.model_validate(await websocket.receive_json())
        except WebSocketDisconnect:
            return
        except ValueError as e:
            await websocket.send_json({"success": False, "error": str(e) or "Invalid order data"})
            await websocket.close(code=1003)
            return

        order_id = generate_job_id()
        queue: "asyncio.Queue[StatusEvent]" = asyncio.Queue()
        unsubscribe = engine.subscribe(order_id, queue.put_nowait)

        try:
            await engine.submit(spec, order_id=order_id)
        except StoreError as e:
            unsubscribe()
            await websocket.send_json({"success": False, "error": str(e)})
            await websocket.close(code=1011)
            return

        logger.info(f"WebSocket client submitted order {order_id}")
        await _stream_events(websocket, order_id, queue, unsubscribe, {
            "success": True,
            "orderId": order_id,
            "message": f"Subscribed to order {order_id}",
        })

    @app.websocket("/ws")
    async def order_stream(websocket: WebSocket, orderId: Optional[str] = None):
        """
        Stream status events for an already submitted order.

        Events published before the client subscribes are not replayed.
        """
        await websocket.accept()

        if not orderId:
            await websocket.send_json({"error": "orderId query parameter is required"})
            await websocket.close()
            return

        queue: "asyncio.Queue[StatusEvent]" = asyncio.Queue()
        unsubscribe = engine.subscribe(orderId, queue.put_nowait)
        logger.info(f"WebSocket client connected for order {orderId}")

        await _stream_events(websocket, orderId, queue, unsubscribe, {
            "success": True,
            "message": f"Subscribed to order {orderId}",
        })

    return app


async def _stream_events(
    websocket: WebSocket,
    order_id: str,
    queue: "asyncio.Queue[StatusEvent]",
    unsubscribe: Callable[[], None],
    ack: Dict[str, Any],
) -> None:
    """Send the ack, then forward queued events until the client disconnects."""

    async def forward_events():
        while True:
            event = await queue.get()
            await websocket.send_json(event.to_dict())

    sender: Optional[asyncio.Task] = None
    try:
        await websocket.send_json(ack)
        sender = asyncio.create_task(forward_events())

        # Inbound messages are ignored; receiving detects the disconnect
        while True:
            await websocket.receive_text()

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error for order {order_id}: {e}")
    finally:
        unsubscribe()
        if sender is not None:
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)
        logger.info(f"WebSocket client disconnected for order {order_id}")
