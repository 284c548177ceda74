"""HTTP/WebSocket transport."""

from swap_engine.api.server import create_app

__all__ = ['create_app']
