"""Tests for server render and image fill resolution."""

from figma_sync.core.importer.json_reader import parse_figma_file
from figma_sync.core.tree.lookup import build_node_lookup
from figma_sync.core.tree.resolver import (
    find_image_fill_refs,
    find_missing_component_ids,
    find_server_render_nodes,
    requires_server_render,
    resolve,
)
from figma_sync.models.node import Document, Effect, Fill, InstanceNode, Node, ServerRenderWorkItem
from tests.unit.fakes import figma_file, figma_node, figma_page, figma_text, image_fill


def _render_doc() -> Document:
    return parse_figma_file(
        figma_file(
            figma_page(
                "p1",
                figma_node(
                    "frame",
                    "FRAME",
                    children=[
                        figma_node("vec", "VECTOR"),
                        figma_node("hidden-vec", "VECTOR", visible=False),
                        figma_node(
                            "bool",
                            "BOOLEAN_OPERATION",
                            children=[figma_node("inner-star", "STAR")],
                        ),
                        figma_node("ext", "INSTANCE", componentId="ext-comp"),
                        figma_node("local", "INSTANCE", componentId="comp"),
                        figma_node("comp", "COMPONENT", children=[figma_text("t", "Hi")]),
                    ],
                ),
                figma_node(
                    "hidden-frame", "FRAME", visible=False, children=[figma_node("v2", "LINE")]
                ),
            ),
            figma_page("p2", figma_node("other-vec", "REGULAR_POLYGON")),
            components={"comp": {"name": "Local"}, "ext-comp": {"name": "From library"}},
        ),
        file_id="f",
    )


def test_missing_components_are_referenced_but_undefined() -> None:
    doc = _render_doc()

    assert find_missing_component_ids(doc, build_node_lookup(doc)) == frozenset({"ext-comp"})


def test_server_render_nodes_for_all_pages() -> None:
    doc = _render_doc()

    items = find_server_render_nodes(doc, {"ext-comp"})

    assert items == [
        ServerRenderWorkItem("vec", "p1"),
        ServerRenderWorkItem("bool", "p1"),
        ServerRenderWorkItem("ext", "p1"),
        ServerRenderWorkItem("other-vec", "p2"),
    ]


def test_server_render_nodes_respect_page_selection() -> None:
    doc = _render_doc()

    items = find_server_render_nodes(doc, {"ext-comp"}, ["p2"])

    assert items == [ServerRenderWorkItem("other-vec", "p2")]


def test_descendants_of_rendered_nodes_are_not_listed() -> None:
    doc = _render_doc()

    ids = {i.node_id for i in find_server_render_nodes(doc, set())}

    assert "inner-star" not in ids
    assert "hidden-vec" not in ids
    assert "v2" not in ids


def test_unsupported_fills_and_blur_effects_need_server_render() -> None:
    gradient = Node(id="g", name="G", type="RECTANGLE", fills=(Fill(kind="GRADIENT_ANGULAR"),))
    hidden_gradient = Node(
        id="h", name="H", type="RECTANGLE", fills=(Fill(kind="GRADIENT_DIAMOND", visible=False),)
    )
    blurred = Node(id="b", name="B", type="FRAME", effects=(Effect(kind="LAYER_BLUR"),))
    shadow = Node(id="s", name="S", type="FRAME", effects=(Effect(kind="DROP_SHADOW"),))

    assert requires_server_render(gradient, set())
    assert not requires_server_render(hidden_gradient, set())
    assert requires_server_render(blurred, set())
    assert not requires_server_render(shadow, set())


def test_instance_needs_render_only_when_component_is_missing() -> None:
    instance = InstanceNode(id="i", name="I", type="INSTANCE", component_id="c")

    assert requires_server_render(instance, {"c"})
    assert not requires_server_render(instance, {"other"})


def _fill_doc() -> Document:
    return parse_figma_file(
        figma_file(
            figma_page(
                "p1",
                figma_node("r1", "RECTANGLE", fills=[image_fill("img1")]),
                figma_node(
                    "f1",
                    "FRAME",
                    fills=[image_fill("img2")],
                    children=[
                        figma_node(
                            "g1",
                            "GROUP",
                            children=[figma_node("r2", "RECTANGLE", fills=[image_fill("img3")])],
                        ),
                        figma_node("r3", "RECTANGLE", fills=[image_fill("img1")]),
                    ],
                ),
                figma_node("hidden", "RECTANGLE", visible=False, fills=[image_fill("img5")]),
            ),
            figma_page("p2", figma_node("r4", "RECTANGLE", fills=[image_fill("img4")])),
        ),
        file_id="f",
    )


def test_image_fills_only_from_visible_nodes_in_selected_pages() -> None:
    doc = _fill_doc()

    refs = find_image_fill_refs(doc, ["p1"])

    assert refs == frozenset({"img1", "img2", "img3"})


def test_image_fills_for_all_pages() -> None:
    doc = _fill_doc()

    assert find_image_fill_refs(doc) == frozenset({"img1", "img2", "img3", "img4"})


def test_resolve_returns_both_sets() -> None:
    doc = _render_doc()
    lookup = build_node_lookup(doc)

    work = resolve(doc, find_missing_component_ids(doc, lookup), ["p1"], lookup=lookup)

    assert [i.node_id for i in work.render_items] == ["vec", "bool", "ext"]
    assert work.image_fill_refs == frozenset()
