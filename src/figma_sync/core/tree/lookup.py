"""Flat node-ID index over a document tree."""

from figma_sync.errors import StructuralError
from figma_sync.models.node import Document, Node


def build_node_lookup(document: Document) -> dict[str, Node]:
    """Map every node reachable from the document's pages to its ID.

    All pages are walked regardless of any page selection, so the index can be
    used for existence checks across the whole file.

    Raises:
        StructuralError: A page or child ID is not declared, a node is declared
            twice or reachable through two parents, or a declared node is not
            reachable from any page.
    """
    declared: dict[str, Node] = {}
    for node in document.nodes:
        if node.id in declared:
            msg = f"Node {node.id!r} is declared more than once"
            raise StructuralError(msg)
        declared[node.id] = node

    lookup: dict[str, Node] = {}
    # (node_id, parent_id) pairs, next one last.
    todo: list[tuple[str, str | None]] = [(page_id, None) for page_id in reversed(document.pages)]
    while todo:
        node_id, parent_id = todo.pop()
        node = declared.get(node_id)
        if node is None:
            where = f"child of {parent_id!r}" if parent_id else "page"
            msg = f"Node {node_id!r} ({where}) is not declared in document {document.file_id!r}"
            raise StructuralError(msg)
        if node_id in lookup:
            msg = f"Node {node_id!r} is reachable more than once (second parent {parent_id!r})"
            raise StructuralError(msg)
        lookup[node_id] = node
        todo.extend((child_id, node_id) for child_id in reversed(node.children))

    if len(lookup) != len(declared):
        orphans = sorted(declared.keys() - lookup.keys())
        msg = f"Orphaned nodes: {orphans[:10]!r}"
        raise StructuralError(msg)

    return lookup


def get_page_nodes(document: Document, lookup: dict[str, Node]) -> list[Node]:
    """Return the page nodes of a document, in document order."""
    return [lookup[page_id] for page_id in document.pages]
