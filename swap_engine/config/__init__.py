"""
Configuration management module.

Loads configuration from YAML files and environment variables.
"""

from .loader import ConfigLoader, get_app_config
from .settings import (
    AppConfig,
    EngineConfig,
    Environment,
    LogLevel,
    MockRouterConfig,
    StorageBackend,
    StorageConfig,
    SystemConfig,
)

__all__ = [
    'ConfigLoader',
    'get_app_config',
    'AppConfig',
    'EngineConfig',
    'Environment',
    'LogLevel',
    'MockRouterConfig',
    'StorageBackend',
    'StorageConfig',
    'SystemConfig',
]
