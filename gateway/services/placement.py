"""
Node placement policy.

The gateway does not balance load: new instances go to the first node by
id and migrations move to the first node that is not the current one.
Swap these functions to change the policy.
"""

from __future__ import annotations

from gateway.domain.errors import NoCapacityError, NoDestinationError
from gateway.domain.registry import NodeStore
from gateway.domain.types import Node


def select_node() -> Node:
    """Pick the node for a new instance.

    Raises:
        NoCapacityError: No node is registered
    """
    node = NodeStore.first()
    if node is None:
        raise NoCapacityError()
    return node


def select_destination(current_node_id: int | None) -> Node:
    """Pick a migration destination different from ``current_node_id``.

    Raises:
        NoDestinationError: No other node is registered
    """
    if current_node_id is None:
        node = NodeStore.first()
    else:
        node = NodeStore.first_except(current_node_id)
    if node is None:
        raise NoDestinationError()
    return node
