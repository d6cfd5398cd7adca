"""Domain module: types, errors, registry and container lifecycle.

Only dependency-free modules are re-exported here; the configuration
loader imports ``gateway.domain.errors`` while it is itself importing.
"""

from gateway.domain.errors import GatewayError
from gateway.domain.types import (
    Instance,
    InstanceRequest,
    InstanceStatus,
    Node,
    Provider,
    Tenant,
)

__all__ = [
    "GatewayError",
    "Instance",
    "InstanceRequest",
    "InstanceStatus",
    "Node",
    "Provider",
    "Tenant",
]
