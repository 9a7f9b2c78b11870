"""
Models package.

This package contains all data models for the protocol whiteboard.

- Geometry primitives (Point, Bounds)
- Shapes (Shape and its variants, style enums)
- Unit operations and the operation catalog
- Protocol interchange document
"""

from .geometry import (
    Point,
    Bounds,
    snap_value,
    union_bounds,
    distance_to_segment,
)
from .unit_operation import (
    UnitOperation,
    ParameterField,
    OperationDefinition,
    OPERATION_DEFINITIONS,
    get_operation_definition,
    build_operation,
    operation_summary,
)
from .shape import (
    ShapeType,
    LineStyle,
    MarkerType,
    TextAlign,
    VerticalAlign,
    ShapeStyle,
    Shape,
    BasicShape,
    TextShape,
    ConnectorShape,
    AssetShape,
    ProtocolNodeShape,
    BASIC_TYPES,
    CONNECTOR_TYPES,
    SHAPE_CLASSES,
    generate_id,
    shape_class_for,
    shape_from_dict,
    node_at,
)
from .protocol import (
    SCHEMA_VERSION,
    ProtocolMetadata,
    ProtocolNode,
    ProtocolConnection,
    ProtocolDocument,
)


__all__ = [
    # Geometry
    "Point",
    "Bounds",
    "snap_value",
    "union_bounds",
    "distance_to_segment",
    # Unit operations
    "UnitOperation",
    "ParameterField",
    "OperationDefinition",
    "OPERATION_DEFINITIONS",
    "get_operation_definition",
    "build_operation",
    "operation_summary",
    # Shapes
    "ShapeType",
    "LineStyle",
    "MarkerType",
    "TextAlign",
    "VerticalAlign",
    "ShapeStyle",
    "Shape",
    "BasicShape",
    "TextShape",
    "ConnectorShape",
    "AssetShape",
    "ProtocolNodeShape",
    "BASIC_TYPES",
    "CONNECTOR_TYPES",
    "SHAPE_CLASSES",
    "generate_id",
    "shape_class_for",
    "shape_from_dict",
    "node_at",
    # Protocol document
    "SCHEMA_VERSION",
    "ProtocolMetadata",
    "ProtocolNode",
    "ProtocolConnection",
    "ProtocolDocument",
]
