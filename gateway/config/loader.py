"""
Configuration loader for gateway.yml.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from gateway.config.models import GatewaySettings
from gateway.config.settings import get_env

logger = logging.getLogger("whatsapp-gateway")

# Configuration paths
CONFIG_PATH = Path(get_env("config_path", "/data/config") or "/data/config")
GATEWAY_CONFIG_FILE = CONFIG_PATH / "gateway.yml"

DEFAULTS: dict = {
    "containers": {
        "images": {"whatsmeow": "jelipro/whatsapp-gateway-whatsmeow:latest"},
        "connector_port": 8080,
        "stop_timeout": 10,
        "default_cpu": "0.5",
        "default_memory": "512m",
        "restart_policy": "unless-stopped",
        "managed_by": "whatsapp-gateway",
    },
    "engine": {"api_version": "1.41", "timeout": 60},
    "ingress": {
        "enabled": True,
        "entrypoint": "websecure",
        "tls": True,
        "cert_resolver": "",
    },
    "proxy": {
        "scheme": "https",
        "timeout": 15,
        "circuit_breaker": {"failure_threshold": 5, "recovery_timeout": 30.0},
    },
    "monitor": {"enabled": True, "interval": 30},
    "security": {
        "rate_limiting": {
            "enabled": True,
            "default_limit": "200/minute",
            "write_limit": "30/minute",
        }
    },
    "logging": {"level": "INFO"},
}


class GatewayConfig:
    """Manages gateway configuration from YAML file."""

    _lock = threading.Lock()
    _config: dict = {}
    _typed_config: GatewaySettings | None = None
    _last_load: float = 0
    _cache_duration: int = 60

    @classmethod
    def load(cls) -> dict:
        """Load gateway configuration from YAML file."""
        now = time.time()
        if cls._config and (now - cls._last_load) < cls._cache_duration:
            return cls._config

        with cls._lock:
            # Double-check after acquiring the lock
            now = time.time()
            if cls._config and (now - cls._last_load) < cls._cache_duration:
                return cls._config
            return cls._load_locked(now)

    @classmethod
    def _load_locked(cls, now: float) -> dict:
        """Load config while holding ``_lock``. Called from :meth:`load`."""
        if not GATEWAY_CONFIG_FILE.exists():
            logger.info(f"Gateway config not found, using defaults: {GATEWAY_CONFIG_FILE}")
            cls._config = DEFAULTS
            cls._typed_config = GatewaySettings.model_validate(cls._config)
            cls._last_load = now
            return cls._config

        try:
            with open(GATEWAY_CONFIG_FILE, "r") as f:
                file_config = yaml.safe_load(f) or {}
            merged = cls._deep_merge(DEFAULTS, file_config)
            typed = GatewaySettings.model_validate(merged)
        except (OSError, yaml.YAMLError, PydanticValidationError) as e:
            # Keep the last good config; fall back to defaults on first load
            logger.error(f"Error loading gateway config: {e}")
            if not cls._config:
                cls._config = DEFAULTS
                cls._typed_config = GatewaySettings.model_validate(DEFAULTS)
            cls._last_load = now
            return cls._config

        cls._config = merged
        cls._typed_config = typed
        cls._last_load = now
        logger.info(f"Loaded gateway config from {GATEWAY_CONFIG_FILE}")
        return cls._config

    @classmethod
    def _deep_merge(cls, base: dict, override: dict) -> dict:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    @classmethod
    def get(cls, *keys: str, default: object = None) -> object:
        """Get a nested config value using multiple keys."""
        config = cls.load()
        for key in keys:
            if isinstance(config, dict) and key in config:
                config = config[key]
            else:
                return default
        return config

    @classmethod
    def settings(cls) -> GatewaySettings:
        """Get typed configuration as a GatewaySettings instance."""
        cls.load()
        assert cls._typed_config is not None
        return cls._typed_config

    @classmethod
    def reload(cls) -> None:
        """Force reload on next access."""
        with cls._lock:
            cls._last_load = 0
            cls._config = {}
