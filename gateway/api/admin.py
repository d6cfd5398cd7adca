"""
Operator API for worker nodes and tenant accounts.

Guarded by ``X-Admin-API-Secret``.
"""

from __future__ import annotations

from flask import Blueprint, Response, request

from gateway.api.audit import audit_log_response
from gateway.api.auth import require_admin_secret
from gateway.api.rate_limit import get_write_limit, limiter
from gateway.api.responses import api_json, api_no_content
from gateway.api.validators import validate_node_payload, validate_tenant_payload
from gateway.config.secrets import secrets_provider
from gateway.domain.errors import NodeNotFoundError, TenantNotFoundError
from gateway.domain.registry import InstanceStore, NodeStore, TenantStore
from gateway.services.provisioning import delete_instance

RouteResponse = tuple[Response, int]

admin = Blueprint("admin", __name__, url_prefix="/admin")
admin.before_request(require_admin_secret)
admin.after_request(audit_log_response)


# =============================================================================
# Nodes
# =============================================================================

@admin.route("/nodes", methods=["GET"])
def list_nodes() -> RouteResponse:
    return api_json([n.to_dict() for n in NodeStore.list()])


@admin.route("/nodes", methods=["POST"])
@limiter.limit(get_write_limit)
def create_node() -> RouteResponse:
    fields = validate_node_payload(request.get_json(silent=True))
    node = NodeStore.create(**fields)
    return api_json(node.to_dict())


@admin.route("/nodes/<int:node_id>", methods=["GET"])
def get_node(node_id: int) -> RouteResponse:
    node = NodeStore.get(node_id)
    if node is None:
        raise NodeNotFoundError()
    return api_json(node.to_dict())


@admin.route("/nodes/<int:node_id>", methods=["PUT"])
@limiter.limit(get_write_limit)
def update_node(node_id: int) -> RouteResponse:
    fields = validate_node_payload(request.get_json(silent=True), partial=True)
    node = NodeStore.update(node_id, fields)
    if node is None:
        raise NodeNotFoundError()
    return api_json(node.to_dict())


@admin.route("/nodes/<int:node_id>", methods=["DELETE"])
@limiter.limit(get_write_limit)
def delete_node(node_id: int) -> tuple[str, int]:
    """Refused with 409 while any instance is placed on the node."""
    NodeStore.delete(node_id)
    return api_no_content()


# =============================================================================
# Tenants
# =============================================================================

@admin.route("/tenants", methods=["GET"])
def list_tenants() -> RouteResponse:
    return api_json([t.to_dict() for t in TenantStore.list()])


@admin.route("/tenants", methods=["POST"])
@limiter.limit(get_write_limit)
def create_tenant() -> RouteResponse:
    """Create a tenant. The API key is only ever returned here."""
    tenant = TenantStore.create(validate_tenant_payload(request.get_json(silent=True)))
    return api_json(tenant.to_dict(include_key=True))


@admin.route("/tenants/<int:tenant_id>", methods=["DELETE"])
@limiter.limit(get_write_limit)
def delete_tenant(tenant_id: int) -> tuple[str, int]:
    """Tear down every instance of a tenant, then delete the tenant."""
    tenant = TenantStore.get(tenant_id)
    if tenant is None:
        raise TenantNotFoundError()
    for instance in InstanceStore.list_for_tenant(tenant.id):
        delete_instance(instance.id, tenant)
    TenantStore.delete(tenant.id)
    return api_no_content()


# =============================================================================
# Secrets
# =============================================================================

@admin.route("/secrets/status", methods=["GET"])
def secrets_status() -> RouteResponse:
    """Where secrets are read from. Never returns secret values."""
    return api_json(secrets_provider.get_status())
