"""
Authentication hooks for the three API surfaces.

- Tenant API (/api): ``Authorization: Bearer <api key>`` resolved to a
  tenant, stored in ``flask.g.tenant``.
- Internal API (/internal): ``X-Internal-Secret`` shared with connectors.
- Admin API (/admin): ``X-Admin-API-Secret``.

Each is a before_request hook, so a request without valid credentials is
answered before any handler runs. Shared secrets fail closed: if one is
not configured its surface returns 503.
"""

from __future__ import annotations

import hmac
import logging

from flask import Response, g, request

from gateway.api.responses import api_error
from gateway.config.settings import get_env
from gateway.domain.registry import TenantStore

logger = logging.getLogger("whatsapp-gateway")

INTERNAL_SECRET_HEADER = "X-Internal-Secret"
ADMIN_SECRET_HEADER = "X-Admin-API-Secret"


def _extract_bearer() -> str | None:
    """
    Extract the bearer token from the Authorization header.

    Returns:
        The token string, or None if not provided.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def require_tenant() -> tuple[Response, int] | None:
    """
    Flask before_request hook for the tenant API.

    - Returns 401 if the bearer key is missing or unknown.
    - Sets ``g.tenant`` and returns None (allows request) otherwise.
    """
    api_key = _extract_bearer()
    if api_key is None:
        return api_error("API key required. Use Authorization: Bearer <key>.", 401)

    tenant = TenantStore.get_by_api_key(api_key)
    if tenant is None:
        logger.warning(f"Invalid API key from {request.remote_addr} on {request.path}")
        return api_error("Invalid API key.", 401)

    g.tenant = tenant
    return None


def _require_secret(header: str, env_key: str, surface: str) -> tuple[Response, int] | None:
    configured = get_env(env_key)
    if not configured:
        logger.warning(f"{surface} secret not configured, rejecting request (fail-closed)")
        return api_error("Service unavailable.", 503)

    provided = request.headers.get(header)
    if not provided:
        return api_error("Unauthorized", 401)

    # Constant-time comparison to prevent timing attacks
    if not hmac.compare_digest(provided.encode(), configured.encode()):
        logger.warning(f"Invalid {surface} secret from {request.remote_addr} on {request.path}")
        return api_error("Unauthorized", 401)

    return None


def require_internal_secret() -> tuple[Response, int] | None:
    """before_request hook for the connector-facing internal API."""
    return _require_secret(INTERNAL_SECRET_HEADER, "internal_api_secret", "Internal API")


def require_admin_secret() -> tuple[Response, int] | None:
    """before_request hook for the admin API."""
    return _require_secret(ADMIN_SECRET_HEADER, "admin_api_secret", "Admin API")
