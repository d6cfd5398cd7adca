"""
Tenant-facing Flask API routes.

Every route runs behind ``require_tenant``; ``g.tenant`` is the caller and
instances of other tenants behave as if they did not exist.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, g, request

from gateway.api.audit import audit_log_response
from gateway.api.auth import require_tenant
from gateway.api.rate_limit import get_write_limit, limiter
from gateway.api.responses import api_json, api_no_content
from gateway.api.validators import (
    validate_instance_request,
    validate_migrate_payload,
    validate_send_payload,
)
from gateway.container import get_services
from gateway.domain.errors import InstanceNotFoundError, NodeNotFoundError
from gateway.domain.registry import InstanceStore, NodeStore
from gateway.domain.types import Instance, Node
from gateway.services.provisioning import (
    create_instance,
    delete_instance,
    migrate_instance,
)
from gateway.services.proxy import ProxyResponse

logger = logging.getLogger("whatsapp-gateway")

# Type alias for Flask route returns
RouteResponse = tuple[Response, int]

api = Blueprint("api", __name__, url_prefix="/api")
api.before_request(require_tenant)
api.after_request(audit_log_response)


def _owned_instance(instance_id: int) -> Instance:
    instance = InstanceStore.get_owned(instance_id, g.tenant.id)
    if instance is None:
        raise InstanceNotFoundError()
    return instance


def _hosting_node(instance: Instance) -> Node:
    node = NodeStore.get(instance.node_id) if instance.node_id is not None else None
    if node is None:
        raise NodeNotFoundError()
    return node


def _relay(upstream: ProxyResponse) -> Response:
    """Pass a connector response through unchanged."""
    return Response(
        upstream.content,
        status=upstream.status_code,
        content_type=upstream.content_type,
    )


# =============================================================================
# Instances
# =============================================================================

@api.route("/instances", methods=["POST"])
@limiter.limit(get_write_limit)
def create() -> RouteResponse:
    """Create an instance and start its connector."""
    instance_request = validate_instance_request(request.get_json(silent=True))
    instance = create_instance(g.tenant, instance_request)
    return api_json(instance.to_dict())


@api.route("/instances", methods=["GET"])
def list_instances() -> RouteResponse:
    instances = InstanceStore.list_for_tenant(g.tenant.id)
    return api_json([i.to_dict() for i in instances])


@api.route("/instances/<int:instance_id>", methods=["GET"])
def get_instance(instance_id: int) -> RouteResponse:
    return api_json(_owned_instance(instance_id).to_dict())


@api.route("/instances/<int:instance_id>", methods=["DELETE"])
@limiter.limit(get_write_limit)
def delete(instance_id: int) -> tuple[str, int]:
    """Stop the connector and delete the instance with its state."""
    delete_instance(instance_id, g.tenant)
    return api_no_content()


@api.route("/instances/<int:instance_id>/migrate", methods=["POST"])
@limiter.limit(get_write_limit)
def migrate(instance_id: int) -> RouteResponse:
    """Move the instance to another node."""
    target_node = validate_migrate_payload(request.get_json(silent=True))
    instance = migrate_instance(instance_id, g.tenant, target_node=target_node)
    return api_json({"status": "ok", "instance": instance.to_dict()})


# =============================================================================
# Connector passthrough
# =============================================================================

@api.route("/instances/<int:instance_id>/qr", methods=["GET"])
def get_qr(instance_id: int) -> Response:
    """Pairing code image, or the connector's own error while it is not ready."""
    instance = _owned_instance(instance_id)
    node = _hosting_node(instance)
    return _relay(get_services().proxy.get_qr(instance, node))


@api.route("/instances/<int:instance_id>/send", methods=["POST"])
def send(instance_id: int) -> Response:
    payload = validate_send_payload(request.get_json(silent=True))
    instance = _owned_instance(instance_id)
    node = _hosting_node(instance)
    return _relay(get_services().proxy.send_message(instance, node, payload))
