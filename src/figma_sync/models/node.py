"""Domain models for a synced Figma document."""

from dataclasses import dataclass, field
from enum import StrEnum


class NodeType(StrEnum):
    """Node types the sync engine treats specially.

    Node.type stays a plain string so kinds added by the remote source survive a
    round trip through the cache; these members compare equal to those strings.
    """

    PAGE = "PAGE"
    FRAME = "FRAME"
    GROUP = "GROUP"
    SECTION = "SECTION"
    COMPONENT = "COMPONENT"
    COMPONENT_SET = "COMPONENT_SET"
    INSTANCE = "INSTANCE"
    TEXT = "TEXT"
    RECTANGLE = "RECTANGLE"
    ELLIPSE = "ELLIPSE"
    VECTOR = "VECTOR"
    BOOLEAN_OPERATION = "BOOLEAN_OPERATION"
    STAR = "STAR"
    LINE = "LINE"
    REGULAR_POLYGON = "REGULAR_POLYGON"


class PaintKind(StrEnum):
    SOLID = "SOLID"
    IMAGE = "IMAGE"
    GRADIENT_LINEAR = "GRADIENT_LINEAR"
    GRADIENT_RADIAL = "GRADIENT_RADIAL"
    GRADIENT_ANGULAR = "GRADIENT_ANGULAR"
    GRADIENT_DIAMOND = "GRADIENT_DIAMOND"


@dataclass(frozen=True)
class BoundingBox:
    """Absolute bounding box of a node, in document coordinates."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Color:
    """RGBA colour, each channel in 0..1."""

    r: float
    g: float
    b: float
    a: float = 1.0


@dataclass(frozen=True)
class Fill:
    """A paint applied to a node's interior (or, for strokes, its outline)."""

    kind: str
    visible: bool = True
    opacity: float = 1.0
    color: Color | None = None
    image_ref: str | None = None

    def describe_change(self, previous: "Fill") -> str | None:
        if self.kind != previous.kind:
            return "kind"
        if self.visible != previous.visible:
            return "visibility"
        if self.opacity != previous.opacity:
            return "opacity"
        if self.kind == PaintKind.SOLID and self.color != previous.color:
            return "color"
        if self.kind == PaintKind.IMAGE and self.image_ref != previous.image_ref:
            return "image reference"
        return None


@dataclass(frozen=True)
class Effect:
    """A visual effect (shadow, blur) applied to a node."""

    kind: str
    visible: bool = True


@dataclass(frozen=True)
class TypeStyle:
    """Font settings of a text node."""

    font_family: str = ""
    font_size: float = 0.0
    font_weight: float = 400.0


@dataclass(frozen=True)
class Node:
    """A single node in a Figma document tree.

    Children are referenced by ID; the owning Document holds every node.
    """

    id: str
    name: str
    type: str
    visible: bool = True
    bounding_box: BoundingBox | None = None
    children: tuple[str, ...] = ()
    fills: tuple[Fill, ...] = ()
    strokes: tuple[Fill, ...] = ()
    effects: tuple[Effect, ...] = ()

    def describe_change(self, previous: "Node") -> str | None:
        """Compare against the same node in an older snapshot.

        Returns:
            A short description of the first difference found, or None if the
            node is unchanged. Stroke paints are compared by count only, and
            children by count only (each child is compared on its own).
        """
        if self.name != previous.name:
            return "name"
        if self.visible != previous.visible:
            return "visibility"
        if self.type != previous.type:
            return "type"
        if self.bounding_box != previous.bounding_box:
            return "bounding box"
        if len(self.fills) != len(previous.fills):
            return "fill count"
        for i, (fill, previous_fill) in enumerate(zip(self.fills, previous.fills, strict=True)):
            reason = fill.describe_change(previous_fill)
            if reason is not None:
                return f"fill {i} {reason}"
        if len(self.strokes) != len(previous.strokes):
            return "stroke count"
        if len(self.children) != len(previous.children):
            return "child count"
        if type(self) is not type(previous):
            return "node variant"
        return None


@dataclass(frozen=True)
class TextNode(Node):
    """A TEXT node, carrying its characters and font style."""

    characters: str = ""
    style: TypeStyle = field(default_factory=TypeStyle)

    def describe_change(self, previous: Node) -> str | None:
        reason = super().describe_change(previous)
        if reason is not None:
            return reason
        if not isinstance(previous, TextNode):
            return "node variant"
        if self.characters != previous.characters:
            return "characters"
        if self.style.font_size != previous.style.font_size:
            return "font size"
        if self.style.font_family != previous.style.font_family:
            return "font family"
        if self.style.font_weight != previous.style.font_weight:
            return "font weight"
        return None


@dataclass(frozen=True)
class InstanceNode(Node):
    """An INSTANCE node, pointing at its main component."""

    component_id: str | None = None

    def describe_change(self, previous: Node) -> str | None:
        reason = super().describe_change(previous)
        if reason is not None:
            return reason
        if not isinstance(previous, InstanceNode):
            return "node variant"
        if self.component_id != previous.component_id:
            return "component"
        return None


@dataclass(frozen=True)
class Document:
    """A snapshot of a Figma file.

    nodes holds every declared node (pages included) in declaration order;
    pages lists the page node IDs in document order.
    """

    file_id: str
    name: str
    pages: tuple[str, ...]
    nodes: tuple[Node, ...]
    version: str | None = None
    last_modified: str | None = None
    # Component ID -> component name, from the file's component metadata.
    components: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PageData:
    """A page as listed in the sync settings."""

    node_id: str
    name: str
    selected: bool = True


@dataclass(frozen=True)
class ServerRenderWorkItem:
    """A node to rasterize on the Figma server."""

    node_id: str
    page_id: str
