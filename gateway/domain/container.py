"""
Connector container lifecycle on worker nodes.

Builds the container definition for an instance (image, environment, labels,
resource limits) and sequences create/start and stop/remove through the
node's engine client. Every lookup goes through the ``instance-id`` label.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any

from gateway.config.loader import GatewayConfig
from gateway.config.settings import INSTANCE_ID_LABEL, get_env
from gateway.domain.engine import ContainerEngine, ResourceLimits, get_engine_client
from gateway.domain.errors import ConfigurationError
from gateway.domain.types import ContainerSummary, Instance, Node, Provider

logger = logging.getLogger("whatsapp-gateway")

DEFAULT_GATEWAY_URL = "http://host.docker.internal:3000"

_MEMORY_RE = re.compile(r"^(\d+)([kmg]?)$", re.IGNORECASE)
_MEMORY_UNITS = {"": 1, "k": 1024, "m": 1024 ** 2, "g": 1024 ** 3}

_NAME_INVALID_RE = re.compile(r"[^a-z0-9_.-]+")
_NAME_DASHES_RE = re.compile(r"-{2,}")


# =============================================================================
# Pure helpers
# =============================================================================

def parse_memory(value: str | None) -> int:
    """
    Parse a memory limit into bytes.

    ``k``, ``m`` and ``g`` suffixes (any case) are powers of 1024; a bare
    integer is taken as bytes. Empty or unparsable input returns 0, which
    the engine treats as "no limit".

    >>> parse_memory("512m")
    536870912
    """
    if not value:
        return 0
    match = _MEMORY_RE.match(value.strip())
    if not match:
        return 0
    number, unit = match.groups()
    return int(number) * _MEMORY_UNITS[unit.lower()]


def parse_cpu(value: str | None) -> int:
    """
    Convert a fractional core count ("0.5") into nano-CPUs.

    Empty, unparsable, negative or non-finite input returns 0 (no limit).
    """
    if not value:
        return 0
    try:
        cores = float(value)
    except ValueError:
        return 0
    if not math.isfinite(cores) or cores <= 0:
        return 0
    return int(cores * 1e9)


def sanitize_for_container_name(value: str) -> str:
    """
    Reduce a display name to ``[a-z0-9_.-]``.

    Each run of other characters becomes a single ``-``, repeated dashes
    collapse and leading/trailing dashes are dropped. Idempotent.
    """
    value = _NAME_INVALID_RE.sub("-", value.lower())
    value = _NAME_DASHES_RE.sub("-", value)
    return value.strip("-")


def container_name_for(instance: Instance) -> str:
    """Deterministic container name: ``instance-<id>[-<display name>]``."""
    base = f"instance-{instance.id}"
    suffix = sanitize_for_container_name(instance.name or "")
    return f"{base}-{suffix}" if suffix else base


def instance_label(instance_id: int) -> str:
    """Label filter selecting the containers of one instance."""
    return f"{INSTANCE_ID_LABEL}={instance_id}"


def get_image_for_provider(provider: Provider | str) -> str:
    """
    Resolve the connector image for a provider.

    Raises:
        ConfigurationError: Provider unknown or has no image configured
    """
    try:
        provider = Provider(provider)
    except ValueError:
        raise ConfigurationError(f"Unsupported provider: {provider}") from None

    image = GatewayConfig.settings().containers.images.get(provider.value)
    if not image:
        raise ConfigurationError(f"Unsupported provider: {provider.value}")
    return image


def cpu_concurrency_hint(cpu_limit: str | None) -> int:
    """Whole-core hint for the connector runtime (at least 1)."""
    nano = parse_cpu(cpu_limit)
    if nano == 0:
        return 1
    return max(1, math.ceil(nano / 1e9))


def build_environment(instance: Instance) -> list[str]:
    """
    Environment the connector needs to reach the control plane.

    Raises:
        ConfigurationError: The internal API secret is not configured
    """
    containers_cfg = GatewayConfig.settings().containers
    gateway_url = get_env("gateway_url", DEFAULT_GATEWAY_URL)
    internal_secret = get_env("internal_api_secret", required=True)

    return [
        f"INSTANCE_ID={instance.id}",
        f"GATEWAY_URL={gateway_url}",
        f"INTERNAL_API_SECRET={internal_secret}",
        f"WEBHOOK_URL={instance.webhook_url or ''}",
        f"PORT={containers_cfg.connector_port}",
        f"GOMAXPROCS={cpu_concurrency_hint(instance.cpu_limit)}",
    ]


def build_labels(instance: Instance, node: Node) -> dict[str, str]:
    """
    Ownership and routing labels.

    With ingress enabled, Traefik routes ``<public_host>/instances/<id>/*``
    to this container and strips the prefix before forwarding.
    """
    settings = GatewayConfig.settings()
    labels = {
        INSTANCE_ID_LABEL: str(instance.id),
        "managed-by": settings.containers.managed_by,
    }

    ingress = settings.ingress
    if not ingress.enabled:
        return labels

    router = f"instance-{instance.id}"
    middleware = f"{router}-strip"
    prefix = f"/instances/{instance.id}"
    labels.update({
        "traefik.enable": "true",
        f"traefik.http.routers.{router}.rule": (
            f"Host(`{node.public_host}`) && PathPrefix(`{prefix}`)"
        ),
        f"traefik.http.routers.{router}.entrypoints": ingress.entrypoint,
        f"traefik.http.routers.{router}.middlewares": middleware,
        f"traefik.http.middlewares.{middleware}.stripprefix.prefixes": prefix,
        f"traefik.http.services.{router}.loadbalancer.server.port": str(
            settings.containers.connector_port
        ),
    })
    if ingress.tls:
        labels[f"traefik.http.routers.{router}.tls"] = "true"
        if ingress.cert_resolver:
            labels[f"traefik.http.routers.{router}.tls.certresolver"] = ingress.cert_resolver
    return labels


def build_resources(instance: Instance) -> ResourceLimits:
    containers_cfg = GatewayConfig.settings().containers
    return ResourceLimits(
        nano_cpus=parse_cpu(instance.cpu_limit or containers_cfg.default_cpu),
        memory=parse_memory(instance.memory_limit or containers_cfg.default_memory),
        restart_policy=containers_cfg.restart_policy,
    )


# =============================================================================
# Engine operations
# =============================================================================

def ensure_image(engine: ContainerEngine, image: str) -> None:
    """Pull ``image`` on the node unless it is already present."""
    if engine.list_images(image):
        logger.debug(f"Image {image} already present on {engine.address}")
        return
    engine.pull_image(image)


def find_container(instance_id: int, node: Node) -> ContainerSummary | None:
    """
    Find the container of an instance on a node, running or not.

    More than one match is an anomaly (a half-finished cleanup); it is
    logged and the first match is used so lifecycle calls can progress.
    """
    engine = get_engine_client(node)
    matches = engine.list_containers(label=instance_label(instance_id), all=True)
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            f"Instance {instance_id} has {len(matches)} containers on node "
            f"{node.name}; using {matches[0].id[:12]}"
        )
    return matches[0]


def create_and_start(instance: Instance, node: Node) -> dict[str, Any]:
    """
    Create and start the connector container for an instance on a node.

    Args:
        instance: Instance to run
        node: Target node

    Returns:
        Inspected container detail

    Raises:
        ConfigurationError: Unknown provider or missing internal secret
    """
    image = get_image_for_provider(instance.provider)
    env = build_environment(instance)
    labels = build_labels(instance, node)
    resources = build_resources(instance)
    name = container_name_for(instance)

    engine = get_engine_client(node)
    ensure_image(engine, image)

    logger.info(f"Creating container {name} for instance {instance.id} on node {node.name}")
    container_id = engine.create_container(image, name, env, labels, resources)

    logger.info(f"Starting container {container_id[:12]} for instance {instance.id}")
    engine.start_container(container_id)
    return engine.inspect_container(container_id)


def stop_and_remove(instance_id: int, node: Node, timeout: int | None = None) -> bool:
    """
    Stop and remove the container of an instance on a node.

    The grace period lets the connector upload its session snapshot
    before the engine kills it.

    Args:
        instance_id: Instance identifier
        node: Node hosting the container
        timeout: Stop grace period in seconds (config default when None)

    Returns:
        True if a container was removed, False if none existed
    """
    container = find_container(instance_id, node)
    if container is None:
        logger.info(f"No container for instance {instance_id} on node {node.name}, nothing to do")
        return False

    if timeout is None:
        timeout = GatewayConfig.settings().containers.stop_timeout

    engine = get_engine_client(node)
    logger.info(f"Stopping container {container.id[:12]} for instance {instance_id} (grace {timeout}s)")
    engine.stop_container(container.id, timeout=timeout)
    engine.remove_container(container.id)
    logger.info(f"Container {container.id[:12]} removed from node {node.name}")
    return True
