"""Configuration module for the WhatsApp Gateway."""

from gateway.config.settings import (
    INSTANCE_ID_LABEL,
    SNAPSHOT_KEY,
    PROVIDERS,
    get_env,
)
from gateway.config.secrets import secrets_provider, SecretsProvider
from gateway.config.loader import (
    GatewayConfig,
    CONFIG_PATH,
    GATEWAY_CONFIG_FILE,
)

__all__ = [
    "INSTANCE_ID_LABEL",
    "SNAPSHOT_KEY",
    "PROVIDERS",
    "get_env",
    "secrets_provider",
    "SecretsProvider",
    "GatewayConfig",
    "CONFIG_PATH",
    "GATEWAY_CONFIG_FILE",
]
