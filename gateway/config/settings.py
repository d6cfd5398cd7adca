"""
Constants and settings for the WhatsApp Gateway.
"""

import re

# =============================================================================
# Constants
# =============================================================================

INSTANCE_ID_LABEL = "instance-id"
SNAPSHOT_KEY = "session_snapshot"
API_KEY_LENGTH = 32

PROVIDERS = ("whatsmeow", "baileys", "wawebjs", "waba")

# Phone numbers are stored as given (digits, optional leading +)
PHONE_PATTERN = re.compile(r'^\+?[0-9]{5,19}$')
MAX_PHONE_LENGTH = 20

MAX_NAME_LENGTH = 256
MAX_STATE_KEY_LENGTH = 255

# Node names (alphanumeric, dash, underscore, dot)
NODE_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9._-]+$')

# Resource strings as accepted on the API ("0.5", "512m", "2G", "1048576")
CPU_PATTERN = re.compile(r'^[0-9]+(\.[0-9]+)?$')
MEMORY_PATTERN = re.compile(r'^[0-9]+[kKmMgG]?$')

# Tenant accounts
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MAX_EMAIL_LENGTH = 256

# URL validation (basic)
URL_PATTERN = re.compile(r'^https?://')


def get_env(key: str, default: str = None, required: bool = False) -> str:
    """
    Retrieve an environment variable with Vault support.

    Args:
        key: Configuration key
        default: Default value
        required: Whether the value is required

    Returns:
        Configuration value

    Raises:
        ConfigurationError: If required value is missing
    """
    # Import here to avoid circular imports
    from gateway.config.secrets import secrets_provider
    from gateway.domain.errors import ConfigurationError

    value = secrets_provider.get(key, default)
    if required and not value:
        raise ConfigurationError(f"Required configuration missing: {key}")
    return value
