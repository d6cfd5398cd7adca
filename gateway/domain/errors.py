"""
Exception taxonomy for the gateway.

Each error carries the HTTP status the API layer answers with, so route
handlers can translate any ``GatewayError`` with a single handler.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway errors."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class ConfigurationError(GatewayError):
    """Unknown provider, missing secret. Never retried."""

    public_message = "Gateway configuration error"


# -----------------------------------------------------------------------------
# Lookups
# -----------------------------------------------------------------------------

class InstanceNotFoundError(GatewayError):
    status_code = 404
    public_message = "Instance not found"


class NodeNotFoundError(GatewayError):
    status_code = 404
    public_message = "Node not found"


class TenantNotFoundError(GatewayError):
    status_code = 404
    public_message = "Tenant not found"


# -----------------------------------------------------------------------------
# Conflicts
# -----------------------------------------------------------------------------

class DuplicateInstanceError(GatewayError):
    status_code = 409
    public_message = "An instance for this phone number already exists"


class DuplicateNodeError(GatewayError):
    status_code = 409
    public_message = "A node with this name already exists"


class DuplicateTenantError(GatewayError):
    status_code = 409
    public_message = "A tenant with this email already exists"


class NodeInUseError(GatewayError):
    status_code = 409
    public_message = "Cannot delete node because it has instances assigned to it."


# -----------------------------------------------------------------------------
# Capacity and upstreams
# -----------------------------------------------------------------------------

class NoCapacityError(GatewayError):
    status_code = 503
    public_message = "No available worker nodes to schedule instance."


class NoDestinationError(GatewayError):
    status_code = 503
    public_message = "No available node to migrate to."


class EngineUnavailableError(GatewayError):
    """The container engine of a node could not be reached."""

    status_code = 503
    public_message = "Container engine unavailable"

    def __init__(self, address: str, reason: str = "") -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"Container engine at {address} unreachable: {reason}")


class UpstreamUnavailableError(GatewayError):
    """The connector container behind the proxy could not be reached."""

    status_code = 503
    public_message = "Failed to connect to instance container."


# -----------------------------------------------------------------------------
# Multi-step orchestration
# -----------------------------------------------------------------------------

class OrchestrationError(GatewayError):
    """A lifecycle step failed; the instance status has been set to ``error``.

    The root cause is chained as ``__cause__``. When it is an
    ``EngineUnavailableError`` the failure is reported as 503.
    """

    def __init__(self, instance_id: int, message: str | None = None) -> None:
        self.instance_id = instance_id
        super().__init__(message)

    @property
    def http_status(self) -> int:
        if isinstance(self.__cause__, EngineUnavailableError):
            return EngineUnavailableError.status_code
        return self.status_code


class ProvisioningError(OrchestrationError):
    public_message = "Failed to start container for instance"


class MigrationError(OrchestrationError):
    public_message = "Migration failed"


class TeardownError(OrchestrationError):
    public_message = "Failed to delete instance"
