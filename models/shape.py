"""
Whiteboard shape models.

Every diagram primitive shares a geometry/style base (Shape). Each
variant only carries the fields meaningful to it:

- BasicShape: rect, circle, triangle, diamond, hexagon, star
- TextShape: free text box
- ConnectorShape: line, arrow, elbow, curve (two endpoints, end markers)
- AssetShape: palette asset or linked inventory/equipment entity
- ProtocolNodeShape: one protocol step carrying a UnitOperation

Geometry is stored raw: width/height may be negative while a shape is
being drawn up/left. Use Shape.bounds() for the normalized rectangle.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional
import copy
import uuid

from .geometry import Bounds, Point, distance_to_segment
from .unit_operation import UnitOperation


def generate_id() -> str:
    """Generate a short unique shape ID."""
    return uuid.uuid4().hex[:9]


# =============================================================================
# Enumerations
# =============================================================================

class ShapeType(Enum):
    """Discriminator for shape variants."""
    RECT = "rect"
    CIRCLE = "circle"
    TRIANGLE = "triangle"
    DIAMOND = "diamond"
    HEXAGON = "hexagon"
    STAR = "star"
    TEXT = "text"
    LINE = "line"
    ARROW = "arrow"
    ELBOW = "elbow"
    CURVE = "curve"
    ASSET = "asset"
    PROTOCOL_NODE = "protocol_node"

    @property
    def is_connector(self) -> bool:
        return self in CONNECTOR_TYPES


class LineStyle(Enum):
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"


class MarkerType(Enum):
    """Decoration drawn at a connector endpoint."""
    NONE = "none"
    CIRCLE = "circle"
    ARROW = "arrow"


class TextAlign(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VerticalAlign(Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


BASIC_TYPES: FrozenSet[ShapeType] = frozenset({
    ShapeType.RECT, ShapeType.CIRCLE, ShapeType.TRIANGLE,
    ShapeType.DIAMOND, ShapeType.HEXAGON, ShapeType.STAR,
})

CONNECTOR_TYPES: FrozenSet[ShapeType] = frozenset({
    ShapeType.LINE, ShapeType.ARROW, ShapeType.ELBOW, ShapeType.CURVE,
})

# Segments used to approximate a curve connector when hit testing
CURVE_SAMPLES = 16


# =============================================================================
# Style
# =============================================================================

@dataclass
class ShapeStyle:
    """Visual attributes shared by every shape."""
    fill: str = "#ffffff"
    stroke: str = "#1e293b"
    stroke_width: float = 2.0
    line_style: LineStyle = LineStyle.SOLID
    text_align: TextAlign = TextAlign.CENTER
    text_align_vertical: VerticalAlign = VerticalAlign.MIDDLE
    font_size: int = 16
    bold: bool = False
    italic: bool = False
    underline: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fill": self.fill,
            "stroke": self.stroke,
            "strokeWidth": self.stroke_width,
            "lineStyle": self.line_style.value,
            "textAlign": self.text_align.value,
            "textAlignVertical": self.text_align_vertical.value,
            "fontSize": self.font_size,
            "textBold": self.bold,
            "textItalic": self.italic,
            "textUnderline": self.underline,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShapeStyle":
        return cls(
            fill=data.get("fill", "#ffffff"),
            stroke=data.get("stroke", "#1e293b"),
            stroke_width=float(data.get("strokeWidth", 2.0)),
            line_style=LineStyle(data.get("lineStyle") or "solid"),
            text_align=TextAlign(data.get("textAlign") or "center"),
            text_align_vertical=VerticalAlign(data.get("textAlignVertical") or "middle"),
            font_size=int(data.get("fontSize") or 16),
            bold=bool(data.get("textBold", False)),
            italic=bool(data.get("textItalic", False)),
            underline=bool(data.get("textUnderline", False)),
        )


# =============================================================================
# Shapes
# =============================================================================

@dataclass
class Shape:
    """
    Base diagram primitive.

    Attributes:
        id: Unique identifier within a store
        shape_type: Variant discriminator
        x, y: Anchor corner in canvas space
        width, height: Extent from the anchor (may be negative)
        style: Visual attributes
        text: Label text
        locked: Locked shapes ignore move/resize/delete/style changes
        group_id: Shapes sharing a group move and select together
    """
    ALLOWED_TYPES: ClassVar[FrozenSet[ShapeType]] = frozenset()

    id: str = field(default_factory=generate_id)
    shape_type: ShapeType = ShapeType.RECT
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    style: ShapeStyle = field(default_factory=ShapeStyle)
    text: str = ""
    locked: bool = False
    group_id: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.shape_type, str):
            self.shape_type = ShapeType(self.shape_type)
        if self.ALLOWED_TYPES and self.shape_type not in self.ALLOWED_TYPES:
            raise ValueError(
                f"{type(self).__name__} cannot have type '{self.shape_type.value}'"
            )

    @property
    def is_connector(self) -> bool:
        return self.shape_type.is_connector

    @property
    def is_protocol_node(self) -> bool:
        return self.shape_type == ShapeType.PROTOCOL_NODE

    def bounds(self) -> Bounds:
        """Normalized bounds (non-negative width/height)."""
        return Bounds.from_raw(self.x, self.y, self.width, self.height)

    @property
    def center(self) -> Point:
        return self.bounds().center

    def translate(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy

    def set_geometry(self, x: float, y: float, width: float, height: float) -> None:
        self.x = x
        self.y = y
        self.width = width
        self.height = height

    def hit_test(self, point: Point, tolerance: float = 0.0) -> bool:
        """True when point lies on the shape's area."""
        return self.bounds().contains(point)

    def clone(self, new_id: Optional[str] = None, dx: float = 0.0, dy: float = 0.0) -> "Shape":
        """Deep copy under a new id, offset by (dx, dy) and ungrouped."""
        duplicate = copy.deepcopy(self)
        duplicate.id = new_id or generate_id()
        duplicate.group_id = None
        duplicate.translate(dx, dy)
        return duplicate

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "type": self.shape_type.value,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "text": self.text,
            "locked": self.locked,
        }
        data.update(self.style.to_dict())
        if self.group_id:
            data["groupId"] = self.group_id
        return data

    @classmethod
    def _base_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": data.get("id") or generate_id(),
            "shape_type": ShapeType(data["type"]),
            "x": float(data.get("x", 0.0)),
            "y": float(data.get("y", 0.0)),
            "width": float(data.get("width", 0.0)),
            "height": float(data.get("height", 0.0)),
            "style": ShapeStyle.from_dict(data),
            "text": data.get("text") or "",
            "locked": bool(data.get("locked", False)),
            "group_id": data.get("groupId"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Shape":
        return cls(**cls._base_kwargs(data))


@dataclass
class BasicShape(Shape):
    """Closed geometric figure."""
    ALLOWED_TYPES: ClassVar[FrozenSet[ShapeType]] = BASIC_TYPES


@dataclass
class TextShape(Shape):
    """Free-standing text box."""
    ALLOWED_TYPES: ClassVar[FrozenSet[ShapeType]] = frozenset({ShapeType.TEXT})
    shape_type: ShapeType = ShapeType.TEXT


@dataclass
class ConnectorShape(Shape):
    """
    Line-like shape running from (x, y) to (x + width, y + height).

    from_node_id/to_node_id optionally bind the endpoints to protocol
    nodes explicitly (set on import); otherwise the endpoints are
    resolved against node bounds.
    """
    ALLOWED_TYPES: ClassVar[FrozenSet[ShapeType]] = CONNECTOR_TYPES
    shape_type: ShapeType = ShapeType.ARROW
    start_marker: MarkerType = MarkerType.NONE
    end_marker: MarkerType = MarkerType.ARROW
    from_node_id: Optional[str] = None
    to_node_id: Optional[str] = None
    auto_connected: bool = False

    @property
    def start_point(self) -> Point:
        return Point(self.x, self.y)

    @property
    def end_point(self) -> Point:
        return Point(self.x + self.width, self.y + self.height)

    @property
    def is_bound(self) -> bool:
        return bool(self.from_node_id and self.to_node_id)

    def set_endpoints(self, start: Point, end: Point) -> None:
        self.set_geometry(start.x, start.y, end.x - start.x, end.y - start.y)

    def detach(self) -> None:
        """Drop explicit node bindings; endpoints are then resolved geometrically."""
        self.from_node_id = None
        self.to_node_id = None
        self.auto_connected = False

    def path_points(self) -> List[Point]:
        """Polyline traced by the connector, start to end."""
        start, end = self.start_point, self.end_point
        mid_x = (start.x + end.x) / 2
        if self.shape_type == ShapeType.ELBOW:
            return [start, Point(mid_x, start.y), Point(mid_x, end.y), end]
        if self.shape_type == ShapeType.CURVE:
            c1, c2 = Point(mid_x, start.y), Point(mid_x, end.y)
            points = []
            for i in range(CURVE_SAMPLES + 1):
                t = i / CURVE_SAMPLES
                u = 1 - t
                points.append(Point(
                    u ** 3 * start.x + 3 * u * u * t * c1.x + 3 * u * t * t * c2.x + t ** 3 * end.x,
                    u ** 3 * start.y + 3 * u * u * t * c1.y + 3 * u * t * t * c2.y + t ** 3 * end.y,
                ))
            return points
        return [start, end]

    def hit_test(self, point: Point, tolerance: float = 0.0) -> bool:
        """True when point is within tolerance of the drawn line."""
        points = self.path_points()
        return any(
            distance_to_segment(point, a, b) <= tolerance
            for a, b in zip(points, points[1:])
        )

    def clone(self, new_id: Optional[str] = None, dx: float = 0.0, dy: float = 0.0) -> "ConnectorShape":
        duplicate = super().clone(new_id, dx, dy)
        duplicate.detach()
        return duplicate

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["lineStartMarker"] = self.start_marker.value
        data["lineEndMarker"] = self.end_marker.value
        if self.from_node_id:
            data["fromNodeId"] = self.from_node_id
        if self.to_node_id:
            data["toNodeId"] = self.to_node_id
        if self.auto_connected:
            data["isAutoConnected"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectorShape":
        return cls(
            **cls._base_kwargs(data),
            start_marker=MarkerType(data.get("lineStartMarker") or "none"),
            end_marker=MarkerType(data.get("lineEndMarker") or "none"),
            from_node_id=data.get("fromNodeId"),
            to_node_id=data.get("toNodeId"),
            auto_connected=bool(data.get("isAutoConnected", False)),
        )


@dataclass
class AssetShape(Shape):
    """Placed palette asset, optionally linked to an inventory/equipment entity."""
    ALLOWED_TYPES: ClassVar[FrozenSet[ShapeType]] = frozenset({ShapeType.ASSET})
    shape_type: ShapeType = ShapeType.ASSET
    asset_type: Optional[str] = None
    linked_entity_type: Optional[str] = None  # inventory, equipment
    linked_entity_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.asset_type:
            data["assetType"] = self.asset_type
        if self.linked_entity_type:
            data["linkedEntityType"] = self.linked_entity_type
            data["linkedEntityId"] = self.linked_entity_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssetShape":
        return cls(
            **cls._base_kwargs(data),
            asset_type=data.get("assetType"),
            linked_entity_type=data.get("linkedEntityType"),
            linked_entity_id=data.get("linkedEntityId"),
        )


@dataclass
class ProtocolNodeShape(Shape):
    """A protocol step. Always carries its UnitOperation."""
    ALLOWED_TYPES: ClassVar[FrozenSet[ShapeType]] = frozenset({ShapeType.PROTOCOL_NODE})
    shape_type: ShapeType = ShapeType.PROTOCOL_NODE
    operation: Optional[UnitOperation] = None
    parallel_group_id: Optional[str] = None

    def __post_init__(self):
        super().__post_init__()
        if self.operation is None:
            raise ValueError(f"Protocol node '{self.id}' requires a unit operation")

    def clone(self, new_id: Optional[str] = None, dx: float = 0.0, dy: float = 0.0) -> "ProtocolNodeShape":
        duplicate = super().clone(new_id, dx, dy)
        # Operation ids must stay unique across exported nodes
        if duplicate.operation.id:
            duplicate.operation.id = f"op-{duplicate.id}"
        return duplicate

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["protocolData"] = self.operation.to_dict()
        if self.parallel_group_id:
            data["parallelGroupId"] = self.parallel_group_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProtocolNodeShape":
        if not data.get("protocolData"):
            raise ValueError(f"Protocol node '{data.get('id')}' is missing protocolData")
        return cls(
            **cls._base_kwargs(data),
            operation=UnitOperation.from_dict(data["protocolData"]),
            parallel_group_id=data.get("parallelGroupId"),
        )


SHAPE_CLASSES: Dict[ShapeType, type] = {
    **{t: BasicShape for t in BASIC_TYPES},
    **{t: ConnectorShape for t in CONNECTOR_TYPES},
    ShapeType.TEXT: TextShape,
    ShapeType.ASSET: AssetShape,
    ShapeType.PROTOCOL_NODE: ProtocolNodeShape,
}


def shape_class_for(shape_type: ShapeType) -> type:
    return SHAPE_CLASSES[shape_type]


def shape_from_dict(data: Dict[str, Any]) -> Shape:
    """Build the right Shape variant from its serialized form."""
    type_value = data.get("type")
    try:
        shape_type = ShapeType(type_value)
    except ValueError:
        raise ValueError(f"Unknown shape type: {type_value!r}") from None
    return shape_class_for(shape_type).from_dict(data)


def node_at(shapes, point: Point) -> Optional[ProtocolNodeShape]:
    """
    First protocol node, in list order, whose normalized bounds contain point.

    Used for connector endpoint resolution and for drop targeting.
    """
    for shape in shapes:
        if shape.is_protocol_node and shape.bounds().contains(point):
            return shape
    return None
