"""
Hierarchy aggregator: expand a hierarchy node into its device set.

A node's effective device set is the union of its own members and the members
of all its descendants. The company's nodes and memberships are loaded in two
queries and the tree is walked in memory, breadth-first with a visited set so
a corrupted (cyclic) parent chain cannot loop forever.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-026)

TODO:
- None
"""

import logging
from collections import defaultdict, deque
from collections.abc import Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import HierarchyMember, HierarchyNode
from src.errors import DataSourceError, HierarchyNotFoundError

logger = logging.getLogger(__name__)


def collect_device_ids(
    root_id: str,
    parents: Mapping[str, str | None],
    members: Iterable[tuple[str, str]],
) -> frozenset[str]:
    """Collect the devices of a node and all its descendants.

    Args:
        root_id: Node to expand.
        parents: Mapping of node_id -> parent_id for every known node.
        members: (node_id, device_id) membership pairs.

    Returns:
        frozenset[str]: Deduplicated device identifiers.

    Raises:
        HierarchyNotFoundError: If root_id is not a known node.
    """
    if root_id not in parents:
        raise HierarchyNotFoundError(root_id)

    children: dict[str, list[str]] = defaultdict(list)
    for node_id, parent_id in parents.items():
        if parent_id is not None:
            children[parent_id].append(node_id)

    devices_by_node: dict[str, set[str]] = defaultdict(set)
    for node_id, device_id in members:
        devices_by_node[node_id].add(device_id)

    device_ids: set[str] = set()
    visited: set[str] = set()
    queue = deque([root_id])
    while queue:
        node_id = queue.popleft()
        if node_id in visited:
            continue
        visited.add(node_id)
        device_ids.update(devices_by_node.get(node_id, ()))
        queue.extend(children.get(node_id, ()))

    return frozenset(device_ids)


async def expand_hierarchy(
    db: AsyncSession,
    hierarchy_id: str,
    company_id: str,
) -> frozenset[str]:
    """Resolve a hierarchy selector into a concrete device filter.

    Only nodes of ``company_id`` are visible, so another company's node
    reports as not found.

    Args:
        db: Async database session.
        hierarchy_id: Root node of the expansion.
        company_id: Authenticated company.

    Returns:
        frozenset[str]: Device identifiers under the node.

    Raises:
        HierarchyNotFoundError: If the node does not exist for the company.
        DataSourceError: If the hierarchy tables cannot be read.
    """
    node_stmt = select(HierarchyNode.id, HierarchyNode.parent_id).where(
        HierarchyNode.company_id == company_id
    )
    member_stmt = (
        select(HierarchyMember.node_id, HierarchyMember.device_id)
        .join(HierarchyNode, HierarchyNode.id == HierarchyMember.node_id)
        .where(HierarchyNode.company_id == company_id)
    )

    try:
        node_rows = (await db.execute(node_stmt)).all()
        if not any(row[0] == hierarchy_id for row in node_rows):
            raise HierarchyNotFoundError(hierarchy_id)
        member_rows = (await db.execute(member_stmt)).all()
    except SQLAlchemyError as exc:
        raise DataSourceError(f"Failed to load hierarchy '{hierarchy_id}': {exc}") from exc

    parents = {row[0]: row[1] for row in node_rows}
    device_ids = collect_device_ids(
        hierarchy_id, parents, ((row[0], row[1]) for row in member_rows)
    )
    logger.debug(
        "Expanded hierarchy %s for company %s into %d device(s)",
        hierarchy_id,
        company_id,
        len(device_ids),
    )
    return device_ids
