"""
Configuration models using Pydantic for type-safe validation.

This module defines all configuration models for the swap engine:
- SystemConfig: Environment, logging, API server
- EngineConfig: Concurrency, retry and slippage policy
- StorageConfig: Order store backend
- MockRouterConfig: Simulated venue behaviour
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


# ============================================================================
# Enums for Configuration
# ============================================================================

class Environment(str, Enum):
    """Deployment environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging level."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StorageBackend(str, Enum):
    """Order store backend."""
    MEMORY = "memory"
    DUCKDB = "duckdb"


# ============================================================================
# System Configuration
# ============================================================================

class SystemConfig(BaseModel):
    """System-wide settings."""

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment"
    )

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level"
    )

    json_logs: bool = Field(
        default=False,
        description="Emit JSON log lines"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path"
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Data storage directory"
    )

    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )

    api_port: int = Field(
        default=3000,
        ge=1024,
        le=65535,
        description="API server port"
    )

    class Config:
        use_enum_values = True
        validate_default = True

    @property
    def is_production(self) -> bool:
        """Store failures are fatal in production."""
        return self.environment == Environment.PRODUCTION.value


# ============================================================================
# Engine Configuration
# ============================================================================

class EngineConfig(BaseModel):
    """Job scheduling, retry and slippage policy."""

    max_concurrent_jobs: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum jobs executing at once"
    )

    max_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Failed attempts before a job is marked failed"
    )

    base_slippage_tolerance: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description="Slippage tolerance for orders that do not set one"
    )

    slippage_escalation_factor: float = Field(
        default=0.5,
        ge=0.0,
        description="Tolerance widening per prior failed attempt"
    )

    slippage_tolerance_cap: float = Field(
        default=0.20,
        ge=0.0,
        le=1.0,
        description="Upper bound for escalated tolerance"
    )

    poll_interval_seconds: float = Field(
        default=0.2,
        gt=0.0,
        le=10.0,
        description="Dispatch loop idle interval"
    )

    retry_base_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Backoff base: delay = base * 2^attempts"
    )

    executor_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Deadline for each route executor call (None = no deadline)"
    )


# ============================================================================
# Storage Configuration
# ============================================================================

class StorageConfig(BaseModel):
    """Order store configuration."""

    backend: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Order store backend"
    )

    duckdb_path: Optional[str] = Field(
        default=None,
        description="DuckDB file (defaults to <data_dir>/orders.duckdb)"
    )

    class Config:
        use_enum_values = True
        validate_default = True


# ============================================================================
# Mock Router Configuration
# ============================================================================

class MockRouterConfig(BaseModel):
    """Simulated venue behaviour."""

    base_price: float = Field(
        default=100.0,
        gt=0.0,
        description="Reference price of token_in in token_out"
    )

    price_variance: float = Field(
        default=0.02,
        ge=0.0,
        le=0.5,
        description="Max per-venue deviation from the base price"
    )

    failure_rate: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Probability an execution reports failure"
    )

    max_execution_slippage: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description="Max fill shortfall vs quote"
    )

    quote_latency_seconds: float = Field(
        default=0.2,
        ge=0.0,
        description="Simulated quote latency"
    )

    execution_latency_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Simulated execution latency"
    )

    seed: Optional[int] = Field(
        default=None,
        description="Random seed for reproducible runs"
    )


# ============================================================================
# Complete Application Configuration
# ============================================================================

class AppConfig(BaseModel):
    """Complete application configuration."""

    system: SystemConfig = Field(
        default_factory=SystemConfig,
        description="System configuration"
    )

    engine: EngineConfig = Field(
        default_factory=EngineConfig,
        description="Engine configuration"
    )

    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Storage configuration"
    )

    mock_router: MockRouterConfig = Field(
        default_factory=MockRouterConfig,
        description="Simulated router configuration"
    )
