"""Detect which nodes changed between two snapshots of a document."""

from collections.abc import Iterable, Mapping, Sequence

from loguru import logger

from figma_sync.models.node import Node, ServerRenderWorkItem


def changed_nodes(candidates: Iterable[Node], previous: Mapping[str, Node]) -> set[Node]:
    """Return the candidates that are new or differ from the previous snapshot.

    Args:
        candidates: Nodes of the current snapshot to check.
        previous: Node lookup of the previous snapshot.

    Returns:
        The subset of candidates that need re-processing. Comparison is exact;
        see Node.describe_change() for which fields are compared.
    """
    changed: set[Node] = set()
    for node in candidates:
        old = previous.get(node.id)
        if old is None:
            logger.debug("Node {} ({!r}) is new", node.id, node.name)
            changed.add(node)
            continue
        reason = node.describe_change(old)
        if reason is not None:
            logger.debug("Node {} ({!r}) changed: {}", node.id, node.name, reason)
            changed.add(node)
    return changed


def _subtree_ids(node_id: str, lookup: Mapping[str, Node]) -> list[str]:
    ids: list[str] = []
    todo = [node_id]
    while todo:
        node = lookup[todo.pop()]
        ids.append(node.id)
        todo.extend(node.children)
    return ids


def filter_changed_work(
    items: Sequence[ServerRenderWorkItem],
    lookup: Mapping[str, Node],
    previous: Mapping[str, Node],
) -> list[ServerRenderWorkItem]:
    """Keep only render work for nodes that changed since the previous snapshot.

    A rendered node's image includes its whole subtree, and its descendants are
    never work items of their own, so an item is kept when any node under it
    changed. Order of the remaining items is preserved.
    """
    subtrees = {item.node_id: _subtree_ids(item.node_id, lookup) for item in items}
    candidates = (lookup[i] for ids in subtrees.values() for i in ids)
    changed_ids = {node.id for node in changed_nodes(candidates, previous)}
    result = [
        item for item in items if any(i in changed_ids for i in subtrees[item.node_id])
    ]
    logger.info(
        "Filtered {} server render nodes to {} changed nodes for incremental update",
        len(items),
        len(result),
    )
    return result
