"""
Unit tests for whiteboard shape models.

Tests:
- Shape variant construction and type validation
- Normalized bounds of raw geometry
- Cloning (new ids, detached connectors, fresh operation ids)
- Serialization of each variant
- Hit testing of closed shapes and connectors
- node_at lookup
"""

import pytest
from models import (
    AssetShape, BasicShape, ConnectorShape, LineStyle, MarkerType, Point,
    ProtocolNodeShape, Shape, ShapeStyle, ShapeType, TextShape, UnitOperation,
    build_operation, node_at, shape_from_dict,
)


class TestShapeConstruction:
    """Tests for building shape variants."""

    def test_default_ids_are_unique(self):
        ids = {BasicShape().id for _ in range(50)}
        assert len(ids) == 50

    def test_basic_shape_accepts_basic_types(self):
        shape = BasicShape(shape_type=ShapeType.STAR)
        assert shape.shape_type == ShapeType.STAR
        assert not shape.is_connector
        assert not shape.is_protocol_node

    def test_basic_shape_rejects_connector_type(self):
        with pytest.raises(ValueError):
            BasicShape(shape_type=ShapeType.ARROW)

    def test_shape_type_from_string(self):
        shape = BasicShape(shape_type="hexagon")
        assert shape.shape_type == ShapeType.HEXAGON

    def test_connector_defaults(self):
        arrow = ConnectorShape()
        assert arrow.shape_type == ShapeType.ARROW
        assert arrow.is_connector
        assert arrow.start_marker == MarkerType.NONE
        assert arrow.end_marker == MarkerType.ARROW
        assert not arrow.is_bound

    def test_text_shape_type(self):
        assert TextShape().shape_type == ShapeType.TEXT

    def test_protocol_node_requires_operation(self):
        """A protocol node without a unit operation cannot exist."""
        with pytest.raises(ValueError):
            ProtocolNodeShape()

    def test_default_style(self):
        style = ShapeStyle()
        assert style.fill == "#ffffff"
        assert style.stroke == "#1e293b"
        assert style.stroke_width == 2.0
        assert style.line_style == LineStyle.SOLID
        assert style.font_size == 16


class TestShapeGeometry:
    """Tests for raw vs normalized geometry."""

    def test_bounds_normalize_negative_size(self):
        """A rect drawn up-left from (10, 10) to (-5, -5)."""
        shape = BasicShape(x=10, y=10, width=-15, height=-15)
        b = shape.bounds()
        assert (b.x, b.y, b.width, b.height) == (-5, -5, 15, 15)
        # Raw geometry is kept as drawn
        assert (shape.width, shape.height) == (-15, -15)

    def test_center(self):
        assert BasicShape(x=0, y=0, width=100, height=50).center == Point(50, 25)

    def test_translate(self):
        shape = BasicShape(x=5, y=5, width=10, height=10)
        shape.translate(3, -2)
        assert (shape.x, shape.y) == (8, 3)

    def test_connector_endpoints(self):
        arrow = ConnectorShape()
        arrow.set_endpoints(Point(10, 20), Point(0, 50))
        assert arrow.start_point == Point(10, 20)
        assert arrow.end_point == Point(0, 50)
        assert (arrow.width, arrow.height) == (-10, 30)


class TestHitTest:
    """Tests for picking shapes by point."""

    def test_closed_shape_hit_anywhere_inside(self):
        shape = BasicShape(x=0, y=0, width=100, height=100)
        assert shape.hit_test(Point(90, 10))
        assert not shape.hit_test(Point(101, 10))

    def test_arrow_hit_near_line_only(self):
        arrow = ConnectorShape()
        arrow.set_endpoints(Point(0, 0), Point(100, 100))
        assert arrow.hit_test(Point(52, 50), tolerance=3)
        # Inside the bounding box but far from the line
        assert not arrow.hit_test(Point(90, 10), tolerance=3)

    def test_elbow_follows_its_bends(self):
        elbow = ConnectorShape(shape_type=ShapeType.ELBOW)
        elbow.set_endpoints(Point(0, 0), Point(100, 100))
        assert elbow.path_points() == [Point(0, 0), Point(50, 0), Point(50, 100), Point(100, 100)]
        assert elbow.hit_test(Point(50, 50), tolerance=1)
        assert not elbow.hit_test(Point(25, 75), tolerance=1)

    def test_curve_passes_through_midpoint(self):
        curve = ConnectorShape(shape_type=ShapeType.CURVE)
        curve.set_endpoints(Point(0, 0), Point(100, 100))
        points = curve.path_points()
        assert points[0] == Point(0, 0)
        assert points[-1] == Point(100, 100)
        assert curve.hit_test(Point(50, 50), tolerance=1)
        assert not curve.hit_test(Point(10, 90), tolerance=3)


class TestShapeClone:
    """Tests for duplicating shapes."""

    def test_clone_gets_new_id_and_offset(self):
        shape = BasicShape(x=10, y=10, width=20, height=20, group_id="g1", text="hi")
        dup = shape.clone(dx=20, dy=20)
        assert dup.id != shape.id
        assert (dup.x, dup.y) == (30, 30)
        assert dup.group_id is None
        assert dup.text == "hi"

    def test_clone_copies_style_independently(self):
        shape = BasicShape()
        dup = shape.clone()
        dup.style.fill = "#000000"
        assert shape.style.fill == "#ffffff"

    def test_connector_clone_is_detached(self):
        arrow = ConnectorShape(from_node_id="a", to_node_id="b", auto_connected=True)
        dup = arrow.clone()
        assert dup.from_node_id is None
        assert dup.to_node_id is None
        assert not dup.auto_connected
        # Original keeps its bindings
        assert arrow.is_bound

    def test_protocol_node_clone_gets_fresh_operation_id(self):
        node = ProtocolNodeShape(id="n1", operation=build_operation("heat", op_id="op-n1"))
        dup = node.clone()
        assert dup.operation.id == f"op-{dup.id}"
        assert node.operation.id == "op-n1"

    def test_protocol_node_clone_keeps_empty_operation_id(self):
        node = ProtocolNodeShape(operation=UnitOperation(type="mix"))
        assert node.clone().operation.id == ""


class TestShapeSerialization:
    """Tests for to_dict/shape_from_dict."""

    def test_basic_shape_round_trip(self):
        shape = BasicShape(shape_type=ShapeType.DIAMOND, x=1, y=2, width=3, height=4,
                           text="label", locked=True, group_id="g")
        shape.style.line_style = LineStyle.DASHED
        restored = shape_from_dict(shape.to_dict())
        assert isinstance(restored, BasicShape)
        assert restored == shape

    def test_dict_keys(self):
        data = BasicShape(id="s1", group_id="g").to_dict()
        assert data["id"] == "s1"
        assert data["type"] == "rect"
        assert data["groupId"] == "g"
        assert data["strokeWidth"] == 2.0

    def test_connector_round_trip(self):
        arrow = ConnectorShape(from_node_id="a", to_node_id="b", auto_connected=True,
                               start_marker=MarkerType.CIRCLE)
        data = arrow.to_dict()
        assert data["fromNodeId"] == "a"
        assert data["isAutoConnected"] is True
        restored = shape_from_dict(data)
        assert isinstance(restored, ConnectorShape)
        assert restored == arrow

    def test_asset_round_trip(self):
        asset = AssetShape(asset_type="tube", linked_entity_type="inventory", linked_entity_id="inv-1")
        restored = shape_from_dict(asset.to_dict())
        assert isinstance(restored, AssetShape)
        assert restored.linked_entity_id == "inv-1"

    def test_protocol_node_round_trip(self):
        node = ProtocolNodeShape(operation=build_operation("heat", op_id="op-1"),
                                 parallel_group_id="p1")
        data = node.to_dict()
        assert data["protocolData"]["type"] == "heat"
        assert data["parallelGroupId"] == "p1"
        restored = shape_from_dict(data)
        assert isinstance(restored, ProtocolNodeShape)
        assert restored.operation == node.operation

    def test_protocol_node_without_data_rejected(self):
        data = ProtocolNodeShape(operation=UnitOperation()).to_dict()
        del data["protocolData"]
        with pytest.raises(ValueError):
            shape_from_dict(data)

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError, match="Unknown shape type"):
            shape_from_dict({"type": "blob"})


class TestNodeAt:
    """Tests for node_at."""

    def test_finds_containing_node(self):
        node = ProtocolNodeShape(x=0, y=0, width=100, height=100, operation=UnitOperation())
        assert node_at([node], Point(50, 50)) is node
        assert node_at([node], Point(100, 100)) is node
        assert node_at([node], Point(150, 50)) is None

    def test_ignores_other_shapes(self):
        rect = BasicShape(x=0, y=0, width=100, height=100)
        assert node_at([rect], Point(50, 50)) is None

    def test_first_in_list_order_wins(self):
        first = ProtocolNodeShape(x=0, y=0, width=100, height=100, operation=UnitOperation())
        second = ProtocolNodeShape(x=50, y=50, width=100, height=100, operation=UnitOperation())
        assert node_at([first, second], Point(75, 75)) is first
        assert node_at([second, first], Point(75, 75)) is second
