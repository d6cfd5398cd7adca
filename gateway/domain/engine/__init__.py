"""
Container engine access, one client per worker node.
"""

from gateway.domain.engine.base import ContainerEngine, ResourceLimits
from gateway.domain.engine.factory import get_engine_client, reset_engine_clients

__all__ = ["ContainerEngine", "ResourceLimits", "get_engine_client", "reset_engine_clients"]
