"""
Unit tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from swap_engine.config import (
    AppConfig,
    ConfigLoader,
    EngineConfig,
    StorageBackend,
    SystemConfig,
)
from swap_engine.config.loader import collect_env_overrides, expand_placeholders

CONFIG_YAML = """
system:
  environment: ${SWAP_TEST_ENVIRONMENT:staging}
  api_port: 4000

engine:
  max_concurrent_jobs: 4
  retry_base_delay_seconds: 0.5

storage:
  backend: duckdb
  duckdb_path: ${SWAP_TEST_DB_PATH}
"""


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "config.yaml").write_text(CONFIG_YAML)
    return tmp_path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "ENVIRONMENT",
        "LOG_LEVEL",
        "API_PORT",
        "PORT",
        "MAX_CONCURRENT_ORDERS",
        "STORAGE_BACKEND",
        "SWAP_TEST_ENVIRONMENT",
        "SWAP_TEST_DB_PATH",
        "SWAP_TEST_DATA_DIR",
        "SWAP_TEST_MISSING",
        "API_HOST",
        "DATA_DIR",
        "MAX_RETRY_ATTEMPTS",
        "DUCKDB_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = AppConfig()

    assert config.system.environment == "development"
    assert not config.system.is_production
    assert config.engine.max_concurrent_jobs == 10
    assert config.engine.max_retry_attempts == 3
    assert config.engine.poll_interval_seconds == pytest.approx(0.2)
    assert config.engine.executor_timeout_seconds is None
    assert config.storage.backend == StorageBackend.MEMORY.value


def test_load_yaml_with_placeholders(config_dir, monkeypatch):
    monkeypatch.setenv("SWAP_TEST_DB_PATH", "/tmp/orders.duckdb")

    config = ConfigLoader(config_dir=config_dir).load_app_config(use_cache=False)

    assert config.system.environment == "staging"
    assert config.system.api_port == 4000
    assert config.engine.max_concurrent_jobs == 4
    assert config.engine.retry_base_delay_seconds == pytest.approx(0.5)
    assert config.storage.backend == "duckdb"
    assert config.storage.duckdb_path == "/tmp/orders.duckdb"


def test_env_overrides_win_over_yaml(config_dir, monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("MAX_CONCURRENT_ORDERS", "2")
    monkeypatch.setenv("PORT", "5050")

    config = ConfigLoader(config_dir=config_dir).load_app_config(use_cache=False)

    assert config.system.is_production
    assert config.engine.max_concurrent_jobs == 2
    assert config.system.api_port == 5050


def test_missing_config_file_uses_defaults(tmp_path):
    config = ConfigLoader(config_dir=tmp_path).load_app_config(use_cache=False)

    assert config == AppConfig()


def test_config_is_cached_until_reload(config_dir):
    loader = ConfigLoader(config_dir=config_dir)

    first = loader.load_app_config()
    assert loader.load_app_config() is first
    assert loader.reload() is not first


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        EngineConfig(max_concurrent_jobs=0)

    with pytest.raises(ValidationError):
        EngineConfig(executor_timeout_seconds=0)

    with pytest.raises(ValidationError):
        SystemConfig(environment="moon")


def test_placeholders_expand_inside_strings(monkeypatch):
    monkeypatch.setenv("SWAP_TEST_DATA_DIR", "/var/swap")

    tree = expand_placeholders({
        "storage": {"duckdb_path": "${SWAP_TEST_DATA_DIR}/orders.duckdb"},
        "hosts": ["${SWAP_TEST_MISSING:localhost}:${SWAP_TEST_MISSING:3000}"],
        "port": 4000,
    })

    assert tree["storage"]["duckdb_path"] == "/var/swap/orders.duckdb"
    assert tree["hosts"] == ["localhost:3000"]
    assert tree["port"] == 4000


def test_port_override_wins_over_api_port(monkeypatch):
    monkeypatch.setenv("API_PORT", "4100")
    monkeypatch.setenv("PORT", "4200")
    monkeypatch.setenv("STORAGE_BACKEND", "duckdb")

    assert collect_env_overrides() == {
        "system": {"api_port": 4200},
        "storage": {"backend": "duckdb"},
    }
