"""
Audit logging for write actions on the tenant and admin APIs.

Logs all write operations (POST, PUT, DELETE) as structured JSON to stdout
via a dedicated 'audit' logger. GET requests are not audited, and neither
is the internal API (connectors write state continuously).
"""

import logging
import re
import sys

from flask import g, request, Response
from pythonjsonlogger.json import JsonFormatter

# Dedicated audit logger
audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)
audit_logger.propagate = False

_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(JsonFormatter(
    fmt="%(timestamp)s %(message)s",
    timestamp=True,
))
audit_logger.addHandler(_handler)

# Only audit write methods
AUDIT_METHODS = frozenset({"POST", "PUT", "DELETE"})

# Resource ids from paths like /api/instances/<id>/... or /admin/nodes/<id>
_INSTANCE_RE = re.compile(r"/api/instances/(\d+)")
_NODE_RE = re.compile(r"/admin/nodes/(\d+)")
_TENANT_RE = re.compile(r"/admin/tenants/(\d+)")


def audit_log_response(response: Response) -> Response:
    """
    after_request hook that logs write actions (POST/PUT/DELETE).

    Attach to a Blueprint via: blueprint.after_request(audit_log_response)
    """
    if request.method not in AUDIT_METHODS:
        return response

    entry = {
        "event": "api_write_action",
        "method": request.method,
        "path": request.path,
        "endpoint": request.endpoint,
        "status_code": response.status_code,
        "remote_addr": request.remote_addr,
    }

    tenant = g.get("tenant")
    if tenant is not None:
        entry["tenant_id"] = tenant.id

    for field, pattern in (
        ("instance_id", _INSTANCE_RE),
        ("node_id", _NODE_RE),
        ("target_tenant_id", _TENANT_RE),
    ):
        match = pattern.search(request.path)
        if match:
            entry[field] = int(match.group(1))

    audit_logger.info("api_write_action", extra=entry)
    return response
