"""
Protocol for a node's container engine.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from gateway.domain.types import ContainerSummary


@dataclass
class ResourceLimits:
    """Host-level limits applied at container creation (0 = unlimited)."""

    nano_cpus: int = 0
    memory: int = 0
    restart_policy: str = "unless-stopped"


class ContainerEngine(Protocol):
    """Operations the lifecycle manager needs from one node's engine."""

    address: str

    def list_containers(
        self, label: str | None = None, all: bool = False
    ) -> list[ContainerSummary]:
        """
        List containers, optionally filtered by a ``key=value`` label.

        Args:
            label: Label filter (``instance-id=42``)
            all: Include stopped containers

        Returns:
            Container summaries
        """
        ...

    def create_container(
        self,
        image: str,
        name: str,
        env: list[str],
        labels: dict[str, str],
        resources: ResourceLimits,
    ) -> str:
        """Create (but do not start) a container and return its id."""
        ...

    def start_container(self, container_id: str) -> None:
        ...

    def stop_container(self, container_id: str, timeout: int = 10) -> None:
        """Stop a container; already stopped or missing counts as done."""
        ...

    def remove_container(self, container_id: str) -> None:
        """Remove a container; missing counts as done."""
        ...

    def inspect_container(self, container_id: str) -> dict[str, Any]:
        ...

    def list_images(self, reference: str) -> list[dict[str, Any]]:
        ...

    def pull_image(self, name: str) -> None:
        """Pull an image, returning once the progress stream has completed."""
        ...
