"""Tests for the node lookup index."""

from dataclasses import replace

import pytest

from figma_sync.core.tree.lookup import build_node_lookup, get_page_nodes
from figma_sync.errors import StructuralError
from figma_sync.models.node import Document, Node


def _doc(nodes: list[Node], pages: tuple[str, ...] = ("p",)) -> Document:
    return Document(file_id="f", name="Doc", pages=pages, nodes=tuple(nodes))


def test_lookup_contains_every_node_exactly_once(sample_document: Document) -> None:
    lookup = build_node_lookup(sample_document)

    assert set(lookup) == {n.id for n in sample_document.nodes}
    assert len(lookup) == len({n.id for n in sample_document.nodes})
    assert lookup["1:3"].name == "Logo"


def test_lookup_walks_all_pages_regardless_of_selection(sample_document: Document) -> None:
    lookup = build_node_lookup(sample_document)

    assert "2:2" in lookup


def test_lookup_raises_on_undeclared_child() -> None:
    doc = _doc(
        [
            Node(id="p", name="Page", type="PAGE", children=("a", "missing")),
            Node(id="a", name="A", type="FRAME"),
        ]
    )

    with pytest.raises(StructuralError, match="'missing'.*child of 'p'"):
        build_node_lookup(doc)


def test_lookup_raises_on_undeclared_page() -> None:
    doc = _doc([], pages=("p",))

    with pytest.raises(StructuralError, match="page"):
        build_node_lookup(doc)


def test_lookup_raises_on_duplicate_declaration() -> None:
    doc = _doc(
        [
            Node(id="p", name="Page", type="PAGE", children=("a",)),
            Node(id="a", name="A", type="FRAME"),
            Node(id="a", name="A again", type="FRAME"),
        ]
    )

    with pytest.raises(StructuralError, match="declared more than once"):
        build_node_lookup(doc)


def test_lookup_raises_on_node_with_two_parents() -> None:
    doc = _doc(
        [
            Node(id="p", name="Page", type="PAGE", children=("a", "b")),
            Node(id="a", name="A", type="FRAME", children=("c",)),
            Node(id="b", name="B", type="FRAME", children=("c",)),
            Node(id="c", name="C", type="VECTOR"),
        ]
    )

    with pytest.raises(StructuralError, match="reachable more than once"):
        build_node_lookup(doc)


def test_lookup_raises_on_orphaned_nodes() -> None:
    doc = _doc(
        [
            Node(id="p", name="Page", type="PAGE"),
            Node(id="lost", name="Lost", type="FRAME"),
        ]
    )

    with pytest.raises(StructuralError, match="Orphaned nodes"):
        build_node_lookup(doc)


def test_get_page_nodes_returns_pages_in_order(sample_document: Document) -> None:
    doc = replace(sample_document, pages=("2:0", "1:0"))

    pages = get_page_nodes(doc, build_node_lookup(doc))

    assert [p.name for p in pages] == ["Other", "Main"]
