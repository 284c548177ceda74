"""
Application configuration loading.

``config/config.yaml`` is read (when present), ``${VAR}`` and
``${VAR:default}`` placeholders are expanded, environment overrides are
layered on top and the result is validated into ``AppConfig``.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .settings import AppConfig

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_FILE = "config.yaml"

load_dotenv(PROJECT_ROOT / ".env")

PLACEHOLDER = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")

# section -> {env var: (key, cast)}; later variables win within a section
ENV_OVERRIDES = {
    "system": {
        "ENVIRONMENT": ("environment", str),
        "LOG_LEVEL": ("log_level", str),
        "DATA_DIR": ("data_dir", str),
        "API_HOST": ("api_host", str),
        "API_PORT": ("api_port", int),
        "PORT": ("api_port", int),
    },
    "engine": {
        "MAX_CONCURRENT_ORDERS": ("max_concurrent_jobs", int),
        "MAX_RETRY_ATTEMPTS": ("max_retry_attempts", int),
    },
    "storage": {
        "STORAGE_BACKEND": ("backend", str),
        "DUCKDB_PATH": ("duckdb_path", str),
    },
}


def _expand(match: "re.Match") -> str:
    name, default = match.group(1).strip(), match.group(2)
    value = os.getenv(name)
    if value is not None:
        return value
    if default is not None:
        return default.strip()
    logger.warning(f"Environment variable {name} not set, using empty string")
    return ""


def expand_placeholders(node: Any) -> Any:
    """Expand environment placeholders in every string of a parsed YAML tree."""
    if isinstance(node, dict):
        return {key: expand_placeholders(value) for key, value in node.items()}
    if isinstance(node, list):
        return [expand_placeholders(item) for item in node]
    if isinstance(node, str) and "${" in node:
        return PLACEHOLDER.sub(_expand, node)
    return node


def collect_env_overrides() -> Dict[str, Dict[str, Any]]:
    """Section patches taken from the process environment."""
    patches: Dict[str, Dict[str, Any]] = {}
    for section, variables in ENV_OVERRIDES.items():
        for env_name, (key, cast) in variables.items():
            raw = os.getenv(env_name)
            if raw:
                patches.setdefault(section, {})[key] = cast(raw)
    return patches


class ConfigLoader:
    """
    Reads ``AppConfig`` from a config directory.

    The validated config is cached per loader until ``reload``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else PROJECT_ROOT / "config"
        self._app_config: Optional[AppConfig] = None

    def _read_file(self) -> Dict[str, Any]:
        path = self.config_dir / CONFIG_FILE
        if not path.exists():
            logger.warning(f"{path} not found, using defaults")
            return {}

        logger.debug(f"Loading config from {path}")
        with open(path, "r") as f:
            return expand_placeholders(yaml.safe_load(f) or {})

    def load_app_config(self, use_cache: bool = True) -> AppConfig:
        """
        Load and validate the application configuration.

        Args:
            use_cache: Return the previously loaded config when there is one

        Returns:
            Validated AppConfig
        """
        if use_cache and self._app_config is not None:
            return self._app_config

        data = self._read_file()
        for section, patch in collect_env_overrides().items():
            data[section] = {**(data.get(section) or {}), **patch}

        try:
            app_config = AppConfig(**data)
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        logger.info(f"Configuration loaded (environment={app_config.system.environment})")
        if use_cache:
            self._app_config = app_config
        return app_config

    def reload(self) -> AppConfig:
        """Drop the cached config and read it again."""
        self._app_config = None
        return self.load_app_config()


_default_loader: Optional[ConfigLoader] = None


def get_app_config(use_cache: bool = True) -> AppConfig:
    """Load the configuration through the process-wide loader."""
    global _default_loader
    if _default_loader is None:
        _default_loader = ConfigLoader()
    return _default_loader.load_app_config(use_cache=use_cache)
