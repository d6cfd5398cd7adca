"""Services module: orchestration, proxying and background monitoring."""

from gateway.services.provisioning import (
    create_instance,
    migrate_instance,
    delete_instance,
)
from gateway.services.proxy import InstanceProxy, ProxyResponse
from gateway.services.monitor import StatusMonitor

__all__ = [
    "create_instance",
    "migrate_instance",
    "delete_instance",
    "InstanceProxy",
    "ProxyResponse",
    "StatusMonitor",
]
