"""
Forward tenant requests to the connector container of an instance.

Connectors are reached through the node's public host under
``/instances/<id>/``, the prefix the ingress labels route and strip.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from gateway.config.loader import GatewayConfig
from gateway.domain.errors import UpstreamUnavailableError
from gateway.domain.types import Instance, Node
from gateway.resilience import CircuitOpenError, get_node_breaker

logger = logging.getLogger("whatsapp-gateway")

# Transport failures; HTTP error statuses are passed through, not counted
_TRANSPORT_ERRORS = (requests.ConnectionError, requests.Timeout)


@dataclass
class ProxyResponse:
    """Connector answer, relayed as-is to the tenant."""

    status_code: int
    content: bytes
    content_type: str


class InstanceProxy:
    """Client for connector containers."""

    def url_for(self, instance: Instance, node: Node, path: str) -> str:
        scheme = GatewayConfig.settings().proxy.scheme
        return f"{scheme}://{node.public_host}/instances/{instance.id}/{path.lstrip('/')}"

    def forward(
        self,
        instance: Instance,
        node: Node,
        path: str,
        method: str = "GET",
        json: Any = None,
        default_content_type: str = "application/json",
    ) -> ProxyResponse:
        """
        Send a request to the instance's connector.

        Args:
            instance: Target instance
            node: Node currently hosting the instance
            path: Connector path, relative to the instance prefix
            method: HTTP method
            json: Optional JSON body
            default_content_type: Used when the connector sends none

        Returns:
            ProxyResponse with the connector's status, body and content type

        Raises:
            UpstreamUnavailableError: Connector unreachable or node circuit open
        """
        cfg = GatewayConfig.settings().proxy
        breaker = get_node_breaker(
            node.name,
            failure_threshold=cfg.circuit_breaker.failure_threshold,
            recovery_timeout=cfg.circuit_breaker.recovery_timeout,
            failure_types=_TRANSPORT_ERRORS,
        )
        url = self.url_for(instance, node, path)

        try:
            resp = breaker.call(requests.request, method, url, json=json, timeout=cfg.timeout)
        except CircuitOpenError as e:
            logger.warning(f"Proxy to instance {instance.id} rejected: {e}")
            raise UpstreamUnavailableError() from e
        except _TRANSPORT_ERRORS as e:
            logger.warning(f"Instance {instance.id} on node {node.id} unreachable: {e}")
            raise UpstreamUnavailableError() from e

        return ProxyResponse(
            status_code=resp.status_code,
            content=resp.content,
            content_type=resp.headers.get("Content-Type") or default_content_type,
        )

    def get_qr(self, instance: Instance, node: Node) -> ProxyResponse:
        """Fetch the pairing code image."""
        return self.forward(instance, node, "qr", default_content_type="image/png")

    def send_message(self, instance: Instance, node: Node, payload: dict[str, Any]) -> ProxyResponse:
        return self.forward(instance, node, "send", method="POST", json=payload)
