"""
Typed data structures for the gateway domain.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


class Provider(str, enum.Enum):
    """Connector implementations an instance can run."""

    WHATSMEOW = "whatsmeow"
    BAILEYS = "baileys"
    WAWEBJS = "wawebjs"
    WABA = "waba"


class InstanceStatus(str, enum.Enum):
    CREATING = "creating"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"
    MIGRATING = "migrating"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class Tenant:
    """A customer account. ``api_key`` is the tenant's bearer credential."""

    id: int
    email: str
    api_key: str
    created_at: datetime | None = None

    def to_dict(self, include_key: bool = False) -> dict[str, Any]:
        d = {"id": self.id, "email": self.email, "created_at": _iso(self.created_at)}
        if include_key:
            d["api_key"] = self.api_key
        return d


@dataclass
class Node:
    """A worker machine reachable through its container engine."""

    id: int
    name: str
    docker_host: str
    public_host: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Instance:
    """One tenant's connector for one phone number."""

    id: int
    user_id: int
    node_id: int | None
    phone_number: str
    provider: Provider
    status: InstanceStatus = InstanceStatus.CREATING
    name: str | None = None
    webhook_url: str | None = None
    cpu_limit: str | None = "0.5"
    memory_limit: str | None = "512m"
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "node_id": self.node_id,
            "name": self.name,
            "phone_number": self.phone_number,
            "provider": self.provider.value,
            "webhook_url": self.webhook_url,
            "status": self.status.value,
            "cpu_limit": self.cpu_limit,
            "memory_limit": self.memory_limit,
            "created_at": _iso(self.created_at),
        }


@dataclass
class InstanceRequest:
    """Validated body of a create-instance request."""

    phone: str
    provider: Provider
    name: str | None = None
    webhook: str | None = None
    cpu: str | None = None
    memory: str | None = None


@dataclass
class ContainerSummary:
    """Subset of the engine's container listing used by the gateway."""

    id: str
    state: str
    labels: dict[str, str] = field(default_factory=dict)
    names: list[str] = field(default_factory=list)

    @property
    def running(self) -> bool:
        return self.state == "running"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ContainerSummary:
        return cls(
            id=data["Id"],
            state=data.get("State", ""),
            labels=data.get("Labels") or {},
            names=data.get("Names") or [],
        )
