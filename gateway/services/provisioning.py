"""
Instance provisioning, migration and teardown.

Status transitions:

    creating  -> running | error
    running   -> migrating -> running | error

Each status write happens before the container operation it brackets, so
an instance whose container work fails midway is left in ``error`` rather
than in a stale ``running``.
"""

import logging
import time

from gateway.config.loader import GatewayConfig
from gateway.domain.container import (
    create_and_start,
    get_image_for_provider,
    stop_and_remove,
)
from gateway.domain.errors import (
    InstanceNotFoundError,
    MigrationError,
    ProvisioningError,
    TeardownError,
)
from gateway.domain.registry import InstanceStore, NodeStore
from gateway.domain.types import Instance, InstanceRequest, InstanceStatus, Node, Tenant
from gateway.observability import MIGRATION_DURATION, PROVISIONING_DURATION
from gateway.services.placement import select_destination, select_node

logger = logging.getLogger("whatsapp-gateway")


def _mark_error(instance_id: int) -> None:
    """Best-effort move to ``error``; the original failure is what gets raised."""
    try:
        InstanceStore.set_status(instance_id, InstanceStatus.ERROR)
    except Exception as e:
        logger.error(f"Could not mark instance {instance_id} as error: {e}")


def _get_owned(instance_id: int, tenant: Tenant) -> Instance:
    instance = InstanceStore.get_owned(instance_id, tenant.id)
    if instance is None:
        raise InstanceNotFoundError()
    return instance


def _discard_started(instance_id: int, node: Node) -> None:
    """The row was deleted while its container was starting; remove the container."""
    logger.warning(f"Instance {instance_id} deleted during container start on node {node.id}")
    stop_and_remove(instance_id, node)
    raise InstanceNotFoundError()


def create_instance(tenant: Tenant, request: InstanceRequest) -> Instance:
    """
    Place, register and start a new instance.

    Args:
        tenant: Owner of the instance
        request: Validated creation request

    Returns:
        The instance in status ``running``

    Raises:
        NoCapacityError: No node registered (nothing is written)
        ConfigurationError: Provider has no image configured (nothing is written)
        DuplicateInstanceError: Tenant already has this phone number
        ProvisioningError: Container start failed; the row stays in ``error``
    """
    started = time.monotonic()
    node = select_node()
    get_image_for_provider(request.provider)

    containers = GatewayConfig.settings().containers
    instance = InstanceStore.create(
        tenant.id,
        node.id,
        request,
        cpu_limit=request.cpu or containers.default_cpu,
        memory_limit=request.memory or containers.default_memory,
    )
    logger.info(f"Instance {instance.id} registered for tenant {tenant.id} on node {node.id}")

    try:
        create_and_start(instance, node)
    except Exception as e:
        logger.error(f"Failed to start container for instance {instance.id} on node {node.id}: {e}")
        _mark_error(instance.id)
        raise ProvisioningError(instance.id) from e

    running = InstanceStore.set_status(instance.id, InstanceStatus.RUNNING)
    if running is None:
        _discard_started(instance.id, node)
    instance = running
    PROVISIONING_DURATION.observe(time.monotonic() - started)
    logger.info(f"Instance {instance.id} running on node {node.id}")
    return instance


def migrate_instance(
    instance_id: int, tenant: Tenant, target_node: str | None = None
) -> Instance:
    """
    Move an instance's container to another node.

    The connector on the destination restores its session from the
    snapshot it uploaded, so no re-pairing is needed.

    Args:
        instance_id: Instance to move
        tenant: Caller; must own the instance
        target_node: Requested destination. Recorded in the log only, the
            placement policy picks the destination.

    Raises:
        InstanceNotFoundError: Unknown or not owned
        NoDestinationError: No node other than the current one
        MigrationError: Container work failed; status is ``error``
    """
    started = time.monotonic()
    instance = _get_owned(instance_id, tenant)
    if target_node is not None:
        logger.info(f"Migration of instance {instance.id} requested to node {target_node}")

    destination = select_destination(instance.node_id)
    source = NodeStore.get(instance.node_id) if instance.node_id is not None else None

    InstanceStore.set_status(instance.id, InstanceStatus.MIGRATING)
    logger.info(
        f"Migrating instance {instance.id} from node {instance.node_id} to node {destination.id}"
    )

    try:
        if source is not None:
            stop_and_remove(instance.id, source)
        create_and_start(instance, destination)
        moved = InstanceStore.set_node_and_status(
            instance.id, destination.id, InstanceStatus.RUNNING
        )
    except Exception as e:
        logger.error(
            f"Migration of instance {instance.id} to node {destination.id} failed: {e}"
        )
        _mark_error(instance.id)
        raise MigrationError(instance.id) from e

    if moved is None:
        _discard_started(instance.id, destination)
    instance = moved
    MIGRATION_DURATION.observe(time.monotonic() - started)
    logger.info(f"Instance {instance.id} migrated to node {destination.id}")
    return instance


def delete_instance(instance_id: int, tenant: Tenant) -> None:
    """
    Stop and remove an instance's container, then delete its row.

    Connector state goes with the row (cascade).

    Raises:
        InstanceNotFoundError: Unknown or not owned
        TeardownError: Container or database work failed
    """
    instance = _get_owned(instance_id, tenant)

    try:
        node = NodeStore.get(instance.node_id) if instance.node_id is not None else None
        if node is not None:
            stop_and_remove(instance.id, node)
        InstanceStore.delete(instance.id)
    except Exception as e:
        logger.error(f"Failed to delete instance {instance.id} on node {instance.node_id}: {e}")
        raise TeardownError(instance.id) from e

    logger.info(f"Instance {instance.id} deleted")
