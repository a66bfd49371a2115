"""Work out which nodes the server must render and which image fills are in use."""

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass

from loguru import logger

from figma_sync.core.tree.lookup import build_node_lookup
from figma_sync.models.node import (
    Document,
    InstanceNode,
    Node,
    NodeType,
    PaintKind,
    ServerRenderWorkItem,
)

# Shapes the local generator cannot draw; the server rasterizes them.
VECTOR_NODE_TYPES = frozenset(
    {
        NodeType.VECTOR,
        NodeType.BOOLEAN_OPERATION,
        NodeType.STAR,
        NodeType.LINE,
        NodeType.REGULAR_POLYGON,
    }
)

UNSUPPORTED_FILL_KINDS = frozenset({PaintKind.GRADIENT_ANGULAR, PaintKind.GRADIENT_DIAMOND})

BOOSTED_EFFECT_KINDS = frozenset({"LAYER_BLUR", "BACKGROUND_BLUR"})


@dataclass(frozen=True)
class ResolvedWork:
    """Server render work items and the image fill references in use."""

    render_items: tuple[ServerRenderWorkItem, ...]
    image_fill_refs: frozenset[str]


def find_missing_component_ids(document: Document, lookup: Mapping[str, Node]) -> frozenset[str]:
    """Find components referenced by the file but not defined in it.

    These come from external libraries; instances of them are rendered on the
    server since the generator has no definition to build them from.
    """
    referenced = set(document.components)
    referenced.update(
        node.component_id
        for node in lookup.values()
        if isinstance(node, InstanceNode) and node.component_id
    )
    defined = {node.id for node in lookup.values() if node.type == NodeType.COMPONENT}
    missing = frozenset(referenced - defined)
    if missing:
        logger.info("Found {} component definitions missing from the document", len(missing))
    return missing


def requires_server_render(node: Node, missing_component_ids: Collection[str]) -> bool:
    """Whether a node needs rasterization the local generator cannot reproduce."""
    if node.type in VECTOR_NODE_TYPES:
        return True
    if any(f.visible and f.kind in UNSUPPORTED_FILL_KINDS for f in node.fills):
        return True
    if any(e.visible and e.kind in BOOSTED_EFFECT_KINDS for e in node.effects):
        return True
    return isinstance(node, InstanceNode) and node.component_id in missing_component_ids


def _selected_pages(document: Document, page_ids: Iterable[str] | None) -> list[str]:
    if page_ids is None:
        return list(document.pages)
    wanted = set(page_ids)
    return [page_id for page_id in document.pages if page_id in wanted]


def find_server_render_nodes(
    document: Document,
    missing_component_ids: Collection[str],
    page_ids: Iterable[str] | None = None,
    *,
    lookup: Mapping[str, Node] | None = None,
) -> list[ServerRenderWorkItem]:
    """List the nodes in the selected pages that must be rendered on the server.

    Invisible subtrees are skipped, and so are the descendants of a node that is
    itself rendered (the server image covers them).

    Args:
        document: Current snapshot.
        missing_component_ids: Result of find_missing_component_ids().
        page_ids: Pages to import; None means all pages.
        lookup: Node lookup of document, built if not given.

    Returns:
        Work items in document pre-order.
    """
    if lookup is None:
        lookup = build_node_lookup(document)

    items: list[ServerRenderWorkItem] = []
    for page_id in _selected_pages(document, page_ids):
        todo = list(reversed(lookup[page_id].children))
        while todo:
            node = lookup[todo.pop()]
            if not node.visible:
                continue
            if requires_server_render(node, missing_component_ids):
                items.append(ServerRenderWorkItem(node_id=node.id, page_id=page_id))
                continue
            todo.extend(reversed(node.children))
    return items


def find_image_fill_refs(
    document: Document,
    page_ids: Iterable[str] | None = None,
    *,
    lookup: Mapping[str, Node] | None = None,
) -> frozenset[str]:
    """Collect image references of IMAGE fills on visible nodes in the selected pages.

    The remote image catalog lists every image ever uploaded to the file; only
    the references returned here are worth downloading.
    """
    if lookup is None:
        lookup = build_node_lookup(document)

    refs: set[str] = set()
    for page_id in _selected_pages(document, page_ids):
        todo = [page_id]
        while todo:
            node = lookup[todo.pop()]
            if not node.visible:
                continue
            refs.update(
                f.image_ref for f in node.fills if f.kind == PaintKind.IMAGE and f.image_ref
            )
            todo.extend(node.children)
    return frozenset(refs)


def resolve(
    document: Document,
    missing_component_ids: Collection[str],
    page_ids: Iterable[str] | None = None,
    *,
    lookup: Mapping[str, Node] | None = None,
) -> ResolvedWork:
    """Resolve both server render work and used image fills for the selected pages."""
    if lookup is None:
        lookup = build_node_lookup(document)
    selected = None if page_ids is None else list(page_ids)
    work = ResolvedWork(
        render_items=tuple(
            find_server_render_nodes(document, missing_component_ids, selected, lookup=lookup)
        ),
        image_fill_refs=find_image_fill_refs(document, selected, lookup=lookup),
    )
    logger.debug(
        "Resolved {} server render nodes, {} image fills",
        len(work.render_items),
        len(work.image_fill_refs),
    )
    return work
