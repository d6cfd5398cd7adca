"""API module for Flask blueprints and helpers."""

from gateway.api.validators import (
    ValidationError,
    validate_instance_request,
    validate_node_payload,
    validate_tenant_payload,
)
from gateway.api.responses import api_json, api_error, api_no_content
from gateway.api.auth import (
    require_tenant,
    require_internal_secret,
    require_admin_secret,
)

__all__ = [
    "ValidationError",
    "validate_instance_request",
    "validate_node_payload",
    "validate_tenant_payload",
    "api_json",
    "api_error",
    "api_no_content",
    "require_tenant",
    "require_internal_secret",
    "require_admin_secret",
]
