"""
Instance registry: tenants, nodes, instances and connector state in PostgreSQL.

This is the only module that queries the registry tables. Callers get
dataclasses back, never raw rows.
"""

from __future__ import annotations

import secrets
from typing import Any

import psycopg2
import psycopg2.errors
from psycopg2.extras import RealDictCursor

from gateway.config.settings import API_KEY_LENGTH, SNAPSHOT_KEY
from gateway.domain.errors import (
    DuplicateInstanceError,
    DuplicateNodeError,
    DuplicateTenantError,
    InstanceNotFoundError,
    NodeInUseError,
    NodeNotFoundError,
)
from gateway.domain.types import (
    Instance,
    InstanceRequest,
    InstanceStatus,
    Node,
    Provider,
    Tenant,
)
from gateway.persistence.database import get_db_connection

_INSTANCE_COLUMNS = (
    "id, user_id, node_id, name, phone_number, provider, webhook_url, "
    "status, cpu_limit, memory_limit, created_at"
)
_NODE_COLUMNS = "id, name, docker_host, public_host"
_NODE_UPDATABLE = ("name", "docker_host", "public_host")


def _row_to_tenant(row: dict[str, Any] | None) -> Tenant | None:
    if not row:
        return None
    return Tenant(
        id=row["id"],
        email=row["email"],
        api_key=row["api_key"],
        created_at=row["created_at"],
    )


def _row_to_node(row: dict[str, Any] | None) -> Node | None:
    if not row:
        return None
    return Node(
        id=row["id"],
        name=row["name"],
        docker_host=row["docker_host"],
        public_host=row["public_host"],
    )


def _row_to_instance(row: dict[str, Any] | None) -> Instance | None:
    if not row:
        return None
    return Instance(
        id=row["id"],
        user_id=row["user_id"],
        node_id=row["node_id"],
        name=row["name"],
        phone_number=row["phone_number"],
        provider=Provider(row["provider"]),
        webhook_url=row["webhook_url"],
        status=InstanceStatus(row["status"]),
        cpu_limit=row["cpu_limit"],
        memory_limit=row["memory_limit"],
        created_at=row["created_at"],
    )


# =============================================================================
# Tenants
# =============================================================================

class TenantStore:
    """Tenant accounts and their bearer credentials."""

    @staticmethod
    def create(email: str) -> Tenant:
        """
        Create a tenant with a freshly generated API key.

        Raises:
            DuplicateTenantError: Email already registered
        """
        api_key = secrets.token_urlsafe(API_KEY_LENGTH)
        try:
            with get_db_connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(
                        "INSERT INTO users (email, api_key) VALUES (%s, %s) "
                        "RETURNING id, email, api_key, created_at",
                        (email, api_key),
                    )
                    return _row_to_tenant(cur.fetchone())
        except psycopg2.errors.UniqueViolation as e:
            raise DuplicateTenantError() from e

    @staticmethod
    def get(tenant_id: int) -> Tenant | None:
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("SELECT * FROM users WHERE id = %s", (tenant_id,))
                return _row_to_tenant(cur.fetchone())

    @staticmethod
    def get_by_api_key(api_key: str) -> Tenant | None:
        """Resolve a bearer credential to its tenant."""
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("SELECT * FROM users WHERE api_key = %s", (api_key,))
                return _row_to_tenant(cur.fetchone())

    @staticmethod
    def list() -> list[Tenant]:
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("SELECT * FROM users ORDER BY id")
                return [_row_to_tenant(r) for r in cur.fetchall()]

    @staticmethod
    def delete(tenant_id: int) -> bool:
        """Delete a tenant; its instances and their state go with it."""
        with get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM users WHERE id = %s", (tenant_id,))
                return cur.rowcount > 0


# =============================================================================
# Nodes
# =============================================================================

class NodeStore:
    """Worker node records."""

    @staticmethod
    def create(name: str, docker_host: str, public_host: str) -> Node:
        """
        Register a node.

        Raises:
            DuplicateNodeError: Name already in use
        """
        try:
            with get_db_connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(
                        "INSERT INTO nodes (name, docker_host, public_host) "
                        f"VALUES (%s, %s, %s) RETURNING {_NODE_COLUMNS}",
                        (name, docker_host, public_host),
                    )
                    return _row_to_node(cur.fetchone())
        except psycopg2.errors.UniqueViolation as e:
            raise DuplicateNodeError() from e

    @staticmethod
    def get(node_id: int) -> Node | None:
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(f"SELECT {_NODE_COLUMNS} FROM nodes WHERE id = %s", (node_id,))
                return _row_to_node(cur.fetchone())

    @staticmethod
    def list() -> list[Node]:
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(f"SELECT {_NODE_COLUMNS} FROM nodes ORDER BY id")
                return [_row_to_node(r) for r in cur.fetchall()]

    @staticmethod
    def first() -> Node | None:
        """First node by id, or None when no node is registered."""
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(f"SELECT {_NODE_COLUMNS} FROM nodes ORDER BY id LIMIT 1")
                return _row_to_node(cur.fetchone())

    @staticmethod
    def first_except(node_id: int) -> Node | None:
        """First node by id other than ``node_id``."""
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"SELECT {_NODE_COLUMNS} FROM nodes WHERE id <> %s ORDER BY id LIMIT 1",
                    (node_id,),
                )
                return _row_to_node(cur.fetchone())

    @staticmethod
    def update(node_id: int, fields: dict[str, str]) -> Node | None:
        """
        Partially update a node.

        Args:
            node_id: Node identifier
            fields: Subset of name, docker_host, public_host

        Returns:
            Updated node, or None if it does not exist
        """
        changes = {k: v for k, v in fields.items() if k in _NODE_UPDATABLE}
        if not changes:
            return NodeStore.get(node_id)

        assignments = ", ".join(f"{column} = %s" for column in changes)
        try:
            with get_db_connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(
                        f"UPDATE nodes SET {assignments} WHERE id = %s RETURNING {_NODE_COLUMNS}",
                        (*changes.values(), node_id),
                    )
                    return _row_to_node(cur.fetchone())
        except psycopg2.errors.UniqueViolation as e:
            raise DuplicateNodeError() from e

    @staticmethod
    def count_instances(node_id: int) -> int:
        with get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM instances WHERE node_id = %s", (node_id,))
                return cur.fetchone()[0]

    @staticmethod
    def delete(node_id: int) -> None:
        """
        Delete a node that hosts no instances.

        Raises:
            NodeInUseError: Instances still reference the node
            NodeNotFoundError: No such node
        """
        try:
            with get_db_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT COUNT(*) FROM instances WHERE node_id = %s", (node_id,))
                    if cur.fetchone()[0] > 0:
                        raise NodeInUseError()
                    cur.execute("DELETE FROM nodes WHERE id = %s", (node_id,))
                    if cur.rowcount == 0:
                        raise NodeNotFoundError()
        except psycopg2.errors.ForeignKeyViolation as e:
            # An instance was placed between the count and the delete
            raise NodeInUseError() from e


# =============================================================================
# Instances
# =============================================================================

class InstanceStore:
    """Instance metadata and lifecycle status."""

    @staticmethod
    def create(
        tenant_id: int,
        node_id: int,
        request: InstanceRequest,
        cpu_limit: str,
        memory_limit: str,
    ) -> Instance:
        """
        Insert an instance in status ``creating``.

        Raises:
            DuplicateInstanceError: The tenant already has this phone number
        """
        try:
            with get_db_connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(f"""
                        INSERT INTO instances
                        (node_id, user_id, name, phone_number, provider, webhook_url, status, cpu_limit, memory_limit)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_INSTANCE_COLUMNS}
                    """, (
                        node_id,
                        tenant_id,
                        request.name,
                        request.phone,
                        request.provider.value,
                        request.webhook,
                        InstanceStatus.CREATING.value,
                        cpu_limit,
                        memory_limit,
                    ))
                    return _row_to_instance(cur.fetchone())
        except psycopg2.errors.UniqueViolation as e:
            raise DuplicateInstanceError() from e

    @staticmethod
    def get(instance_id: int) -> Instance | None:
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"SELECT {_INSTANCE_COLUMNS} FROM instances WHERE id = %s",
                    (instance_id,),
                )
                return _row_to_instance(cur.fetchone())

    @staticmethod
    def get_owned(instance_id: int, tenant_id: int) -> Instance | None:
        """Fetch an instance only if it belongs to the tenant."""
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"SELECT {_INSTANCE_COLUMNS} FROM instances WHERE id = %s AND user_id = %s",
                    (instance_id, tenant_id),
                )
                return _row_to_instance(cur.fetchone())

    @staticmethod
    def list_for_tenant(tenant_id: int) -> list[Instance]:
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"SELECT {_INSTANCE_COLUMNS} FROM instances WHERE user_id = %s ORDER BY id",
                    (tenant_id,),
                )
                return [_row_to_instance(r) for r in cur.fetchall()]

    @staticmethod
    def set_status(instance_id: int, status: InstanceStatus) -> Instance | None:
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"UPDATE instances SET status = %s WHERE id = %s RETURNING {_INSTANCE_COLUMNS}",
                    (status.value, instance_id),
                )
                return _row_to_instance(cur.fetchone())

    @staticmethod
    def set_node_and_status(
        instance_id: int, node_id: int, status: InstanceStatus
    ) -> Instance | None:
        """Move an instance to another node and set its status in one write."""
        with get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"UPDATE instances SET node_id = %s, status = %s WHERE id = %s "
                    f"RETURNING {_INSTANCE_COLUMNS}",
                    (node_id, status.value, instance_id),
                )
                return _row_to_instance(cur.fetchone())

    @staticmethod
    def delete(instance_id: int) -> bool:
        """Delete an instance row; its state entries are removed by cascade."""
        with get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM instances WHERE id = %s", (instance_id,))
                return cur.rowcount > 0

    @staticmethod
    def count_by_status() -> dict[str, int]:
        with get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT status, COUNT(*) FROM instances GROUP BY status")
                return {status: count for status, count in cur.fetchall()}


# =============================================================================
# Connector state
# =============================================================================

class StateStore:
    """Opaque per-instance values written by the connector process."""

    @staticmethod
    def get(instance_id: int, key: str) -> bytes | None:
        with get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT value FROM instance_state WHERE instance_id = %s AND key = %s",
                    (instance_id, key),
                )
                row = cur.fetchone()
                return bytes(row[0]) if row else None

    @staticmethod
    def put(instance_id: int, key: str, value: bytes) -> None:
        """
        Insert or replace a value.

        Raises:
            InstanceNotFoundError: No such instance
        """
        try:
            with get_db_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("""
                        INSERT INTO instance_state (instance_id, key, value)
                        VALUES (%s, %s, %s)
                        ON CONFLICT (instance_id, key) DO UPDATE SET value = EXCLUDED.value
                    """, (instance_id, key, psycopg2.Binary(value)))
        except psycopg2.errors.ForeignKeyViolation as e:
            raise InstanceNotFoundError() from e

    @staticmethod
    def delete(instance_id: int, key: str) -> bool:
        with get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM instance_state WHERE instance_id = %s AND key = %s",
                    (instance_id, key),
                )
                return cur.rowcount > 0

    @staticmethod
    def list(instance_id: int) -> list[tuple[str, bytes]]:
        with get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT key, value FROM instance_state WHERE instance_id = %s ORDER BY key",
                    (instance_id,),
                )
                return [(key, bytes(value)) for key, value in cur.fetchall()]

    @staticmethod
    def get_snapshot(instance_id: int) -> bytes | None:
        """The connector's serialized session, or None if never uploaded."""
        return StateStore.get(instance_id, SNAPSHOT_KEY)

    @staticmethod
    def put_snapshot(instance_id: int, value: bytes) -> None:
        StateStore.put(instance_id, SNAPSHOT_KEY, value)

    @staticmethod
    def delete_snapshot(instance_id: int) -> bool:
        return StateStore.delete(instance_id, SNAPSHOT_KEY)
