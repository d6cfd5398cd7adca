"""
Connector-facing internal API: durable key/value state per instance.

Connectors persist their session here so a migrated container can resume
without re-pairing. Guarded by ``X-Internal-Secret``, never by tenant keys.
"""

from __future__ import annotations

import base64

from flask import Blueprint, Response, request

from gateway.api.auth import require_internal_secret
from gateway.api.responses import api_error, api_json, api_no_content
from gateway.api.validators import ValidationError, require_object, validate_state_key
from gateway.domain.registry import StateStore

OCTET_STREAM = "application/octet-stream"

internal = Blueprint("internal", __name__, url_prefix="/internal")
internal.before_request(require_internal_secret)


def _binary(value: bytes) -> Response:
    return Response(value, status=200, content_type=OCTET_STREAM)


# =============================================================================
# Snapshot (binary session blob)
# =============================================================================

@internal.route("/state/<int:instance_id>/snapshot", methods=["GET"])
def get_snapshot(instance_id: int):
    """404 means the connector has no session yet and must start fresh."""
    value = StateStore.get_snapshot(instance_id)
    if value is None:
        return api_error("Snapshot not found", 404)
    return _binary(value)


@internal.route("/state/<int:instance_id>/snapshot", methods=["POST"])
def put_snapshot(instance_id: int):
    StateStore.put_snapshot(instance_id, request.get_data())
    return api_no_content()


@internal.route("/state/<int:instance_id>/snapshot", methods=["DELETE"])
def delete_snapshot(instance_id: int):
    if not StateStore.delete_snapshot(instance_id):
        return api_error("Snapshot not found", 404)
    return api_no_content()


# =============================================================================
# Key/value entries
# =============================================================================

@internal.route("/state/<int:instance_id>", methods=["GET"])
def list_state(instance_id: int):
    """All entries of an instance; values are base64 encoded."""
    entries = StateStore.list(instance_id)
    return api_json([
        {"key": key, "value": base64.b64encode(value).decode("ascii")}
        for key, value in entries
    ])


@internal.route("/state/<int:instance_id>", methods=["POST"])
def put_state_json(instance_id: int):
    """Upsert from a JSON body ``{key, value}``; value is stored as UTF-8."""
    body = require_object(request.get_json(silent=True))
    key = body.get("key")
    value = body.get("value")
    if not isinstance(key, str) or not isinstance(value, str):
        raise ValidationError("key and value must be strings")
    StateStore.put(instance_id, validate_state_key(key), value.encode("utf-8"))
    return api_no_content()


@internal.route("/state/<int:instance_id>/<key>", methods=["GET"])
def get_state(instance_id: int, key: str):
    value = StateStore.get(instance_id, validate_state_key(key))
    if value is None:
        return api_error("State key not found", 404)
    return _binary(value)


@internal.route("/state/<int:instance_id>/<key>", methods=["POST"])
def put_state(instance_id: int, key: str):
    StateStore.put(instance_id, validate_state_key(key), request.get_data())
    return api_no_content()


@internal.route("/state/<int:instance_id>/<key>", methods=["DELETE"])
def delete_state(instance_id: int, key: str):
    if not StateStore.delete(instance_id, validate_state_key(key)):
        return api_error("State key not found", 404)
    return api_no_content()
