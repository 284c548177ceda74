"""Shared utilities."""

from swap_engine.utils.logger import JSONFormatter, OrderLogger, get_order_logger, setup_logging

__all__ = ['JSONFormatter', 'OrderLogger', 'get_order_logger', 'setup_logging']
