"""
Docker Engine API client bound to a single worker node.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import docker
import docker.errors
import docker.utils
import requests

from gateway.config.loader import GatewayConfig
from gateway.domain.engine.base import ResourceLimits
from gateway.domain.errors import EngineUnavailableError
from gateway.domain.types import ContainerSummary

logger = logging.getLogger("whatsapp-gateway")

# Engine status codes that mean "nothing left to do" for teardown calls
NOT_MODIFIED = 304
NOT_FOUND = 404


def normalize_docker_host(docker_host: str) -> str:
    """
    Turn a node's engine address into a Docker base URL.

    Accepts ``unix:///var/run/docker.sock``, a bare socket path,
    ``tcp://host:port`` or ``host:port``.
    """
    docker_host = docker_host.strip()
    if docker_host.startswith("unix://"):
        return docker_host
    if docker_host.startswith("/"):
        return f"unix://{docker_host}"
    if docker_host.startswith(("tcp://", "http://", "https://")):
        return docker_host
    return f"tcp://{docker_host}"


class DockerEngineClient:
    """Docker-based container engine for one node."""

    def __init__(self, docker_host: str) -> None:
        """
        Initialize the low-level Docker API client.

        The API version is pinned from config so construction does not
        contact the node.

        Args:
            docker_host: Node engine address
        """
        self.address = normalize_docker_host(docker_host)
        engine_cfg = GatewayConfig.settings().engine
        self._api = docker.APIClient(
            base_url=self.address,
            version=engine_cfg.api_version,
            timeout=engine_cfg.timeout,
        )

    @property
    def api(self) -> docker.APIClient:
        """Get the Docker API client."""
        return self._api

    def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run an engine call, translating transport failures."""
        try:
            return func(*args, **kwargs)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise EngineUnavailableError(self.address, str(e)) from e

    # -------------------------------------------------------------------------
    # Containers
    # -------------------------------------------------------------------------

    def list_containers(
        self, label: str | None = None, all: bool = False
    ) -> list[ContainerSummary]:
        filters = {"label": [label]} if label else None
        raw = self._call(self._api.containers, all=all, filters=filters)
        return [ContainerSummary.from_api(c) for c in raw]

    def create_container(
        self,
        image: str,
        name: str,
        env: list[str],
        labels: dict[str, str],
        resources: ResourceLimits,
    ) -> str:
        host_config = self._api.create_host_config(
            nano_cpus=resources.nano_cpus or None,
            mem_limit=resources.memory or None,
            restart_policy={"Name": resources.restart_policy},
        )
        result = self._call(
            self._api.create_container,
            image,
            name=name,
            environment=env,
            labels=labels,
            host_config=host_config,
        )
        for warning in result.get("Warnings") or []:
            logger.warning(f"Engine {self.address} warning creating {name}: {warning}")
        return result["Id"]

    def start_container(self, container_id: str) -> None:
        self._call(self._api.start, container_id)

    def stop_container(self, container_id: str, timeout: int = 10) -> None:
        try:
            self._call(self._api.stop, container_id, timeout=timeout)
        except docker.errors.APIError as e:
            if e.status_code in (NOT_MODIFIED, NOT_FOUND):
                logger.debug(f"Container {container_id[:12]} already stopped or gone")
                return
            raise

    def remove_container(self, container_id: str) -> None:
        try:
            self._call(self._api.remove_container, container_id)
        except docker.errors.NotFound:
            logger.debug(f"Container {container_id[:12]} already removed")

    def inspect_container(self, container_id: str) -> dict[str, Any]:
        return self._call(self._api.inspect_container, container_id)

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def list_images(self, reference: str) -> list[dict[str, Any]]:
        return self._call(self._api.images, filters={"reference": reference})

    def pull_image(self, name: str) -> None:
        repository, tag = docker.utils.parse_repository_tag(name)
        logger.info(f"Pulling image {name} on {self.address}")
        stream = self._call(
            self._api.pull, repository, tag=tag or "latest", stream=True, decode=True
        )
        # The engine reports failures in-band; stop reading at the first one
        try:
            for event in stream:
                if "error" in event:
                    raise docker.errors.APIError(
                        f"Pull of {name} failed", explanation=event["error"]
                    )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise EngineUnavailableError(self.address, str(e)) from e
        logger.info(f"Image {name} pulled on {self.address}")
