"""Convert Figma file JSON into domain models, and the models to/from cache JSON."""

import dataclasses
from typing import Any

from figma_sync.errors import StructuralError
from figma_sync.models.node import (
    BoundingBox,
    Color,
    Document,
    Effect,
    Fill,
    InstanceNode,
    Node,
    NodeType,
    TextNode,
    TypeStyle,
)

# Bumped whenever the cached layout changes; older cache files are then ignored.
CACHE_FORMAT_VERSION = 1


def _node_class(node_type: str) -> type[Node]:
    if node_type == NodeType.TEXT:
        return TextNode
    if node_type == NodeType.INSTANCE:
        return InstanceNode
    return Node


def _parse_paint(raw: dict[str, Any]) -> Fill:
    color = raw.get("color")
    return Fill(
        kind=raw["type"],
        visible=raw.get("visible", True),
        opacity=raw.get("opacity", 1.0),
        color=Color(color["r"], color["g"], color["b"], color.get("a", 1.0)) if color else None,
        image_ref=raw.get("imageRef"),
    )


def _parse_node(raw: dict[str, Any]) -> Node:
    node_type = raw["type"]
    if node_type == "CANVAS":
        node_type = NodeType.PAGE.value
    bbox = raw.get("absoluteBoundingBox")
    common: dict[str, Any] = {
        "id": raw["id"],
        "name": raw.get("name", ""),
        "type": node_type,
        "visible": raw.get("visible", True),
        "bounding_box": (
            BoundingBox(bbox["x"], bbox["y"], bbox["width"], bbox["height"]) if bbox else None
        ),
        "children": tuple(child["id"] for child in raw.get("children", ())),
        "fills": tuple(_parse_paint(p) for p in raw.get("fills", ())),
        "strokes": tuple(_parse_paint(p) for p in raw.get("strokes", ())),
        "effects": tuple(
            Effect(kind=e["type"], visible=e.get("visible", True)) for e in raw.get("effects", ())
        ),
    }

    cls = _node_class(node_type)
    if cls is TextNode:
        style = raw.get("style") or {}
        return TextNode(
            **common,
            characters=raw.get("characters", ""),
            style=TypeStyle(
                font_family=style.get("fontFamily", ""),
                font_size=style.get("fontSize", 0.0),
                font_weight=style.get("fontWeight", 400.0),
            ),
        )
    if cls is InstanceNode:
        return InstanceNode(**common, component_id=raw.get("componentId"))
    return Node(**common)


def parse_figma_file(data: dict[str, Any], *, file_id: str) -> Document:
    """Parse a Figma ``GET /v1/files/:key`` response into a Document.

    The nested node tree is flattened: each node keeps the IDs of its
    children, and the Document lists every node in pre-order.

    Args:
        data: Raw file JSON.
        file_id: The file key the JSON was fetched for (not part of the payload).

    Raises:
        StructuralError: The payload has no document root, or a node lacks id/type.
    """
    root = data.get("document")
    if not isinstance(root, dict):
        msg = f"Figma file {file_id!r} has no document root"
        raise StructuralError(msg)

    nodes: list[Node] = []
    page_data: list[dict[str, Any]] = list(root.get("children", ()))
    # Stack of raw nodes still to visit, next one last, so nodes come out in pre-order.
    todo = page_data[::-1]
    while todo:
        raw = todo.pop()
        try:
            nodes.append(_parse_node(raw))
        except KeyError as e:
            msg = f"Figma file {file_id!r}: node is missing field {e}"
            raise StructuralError(msg) from e
        todo.extend(reversed(raw.get("children", ())))

    return Document(
        file_id=file_id,
        name=data.get("name", ""),
        pages=tuple(p["id"] for p in page_data),
        nodes=tuple(nodes),
        version=data.get("version"),
        last_modified=data.get("lastModified"),
        components={cid: meta.get("name", "") for cid, meta in data.get("components", {}).items()},
    )


def document_to_data(document: Document) -> dict[str, Any]:
    """Serialize a Document for the snapshot cache."""
    data = dataclasses.asdict(document)
    data["format"] = CACHE_FORMAT_VERSION
    return data


def _fill_from_data(raw: dict[str, Any]) -> Fill:
    color = raw["color"]
    return Fill(
        kind=raw["kind"],
        visible=raw["visible"],
        opacity=raw["opacity"],
        color=Color(**color) if color is not None else None,
        image_ref=raw["image_ref"],
    )


def _node_from_data(raw: dict[str, Any]) -> Node:
    bbox = raw["bounding_box"]
    common: dict[str, Any] = {
        "id": raw["id"],
        "name": raw["name"],
        "type": raw["type"],
        "visible": raw["visible"],
        "bounding_box": BoundingBox(**bbox) if bbox is not None else None,
        "children": tuple(raw["children"]),
        "fills": tuple(_fill_from_data(f) for f in raw["fills"]),
        "strokes": tuple(_fill_from_data(f) for f in raw["strokes"]),
        "effects": tuple(Effect(**e) for e in raw["effects"]),
    }
    cls = _node_class(raw["type"])
    if cls is TextNode:
        return TextNode(**common, characters=raw["characters"], style=TypeStyle(**raw["style"]))
    if cls is InstanceNode:
        return InstanceNode(**common, component_id=raw["component_id"])
    return Node(**common)


def document_from_data(data: dict[str, Any]) -> Document:
    """Rebuild a Document written by document_to_data().

    Raises:
        ValueError: Unknown cache format.
        KeyError, TypeError: The data does not have the expected shape.
    """
    if data.get("format") != CACHE_FORMAT_VERSION:
        msg = f"unsupported cache format: {data.get('format')!r}"
        raise ValueError(msg)
    return Document(
        file_id=data["file_id"],
        name=data["name"],
        pages=tuple(data["pages"]),
        nodes=tuple(_node_from_data(n) for n in data["nodes"]),
        version=data["version"],
        last_modified=data["last_modified"],
        components=dict(data["components"]),
    )
