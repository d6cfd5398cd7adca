"""
Factory for per-node container engine clients.
"""

from __future__ import annotations

import logging
import threading

from gateway.domain.engine.base import ContainerEngine
from gateway.domain.engine.docker_engine import DockerEngineClient, normalize_docker_host
from gateway.domain.types import Node

logger = logging.getLogger("whatsapp-gateway")

# One client per engine address
_lock = threading.Lock()
_clients: dict[str, ContainerEngine] = {}


def get_engine_client(node: Node) -> ContainerEngine:
    """
    Get the engine client for a node.

    Clients are keyed by normalized address, so two node records pointing
    at the same engine share one client. Uses double-checked locking so
    concurrent requests never build two clients for one address.

    Args:
        node: Node whose engine should be addressed

    Returns:
        ContainerEngine for the node
    """
    address = normalize_docker_host(node.docker_host)
    client = _clients.get(address)
    if client is not None:
        return client

    with _lock:
        client = _clients.get(address)
        if client is None:
            logger.info(f"Initializing engine client for node {node.name} ({address})")
            client = DockerEngineClient(address)
            _clients[address] = client
    return client


def reset_engine_clients() -> None:
    """
    Drop all cached clients.

    Useful for testing or after a node's address changes.
    """
    with _lock:
        _clients.clear()
