"""
Protocol serializer.

Converts between whiteboard shapes and the protocol interchange
document. Only protocol nodes and connectors take part; decorative
shapes are ignored on export and never produced on import.

Export resolves connections geometrically: a connector links A to B
when its start point lies inside A and its end point inside B.
Import lays nodes out at their stored geometry and draws one arrow per
connection between node centres.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from models import (
    SCHEMA_VERSION, ConnectorShape, MarkerType, ProtocolConnection,
    ProtocolDocument, ProtocolMetadata, ProtocolNode, ProtocolNodeShape, Shape,
    ShapeStyle, generate_id, node_at,
)


logger = logging.getLogger(__name__)


DEFAULT_NODE_WIDTH = 220
DEFAULT_NODE_HEIGHT = 130

NODE_STYLE = {"fill": "#ffffff", "stroke": "#cbd5e1", "stroke_width": 1.5}
CONNECTION_STYLE = {"fill": "none", "stroke": "#94a3b8", "stroke_width": 2.0}


class ProtocolError(Exception):
    """Base class for protocol export/import failures."""


class ProtocolExportError(ProtocolError):
    """The canvas cannot be exported as a protocol."""


class ProtocolImportError(ProtocolError):
    """A protocol document could not be loaded onto the canvas."""


# Collaborator that turns a source (file, document, ...) plus free-text
# context into a candidate protocol document.
ProtocolImporter = Callable[[Any, str], ProtocolDocument]


def export_node_id(shape: ProtocolNodeShape) -> str:
    return shape.operation.id or f"op-{shape.id}"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# =============================================================================
# Export
# =============================================================================

def export_protocol(shapes: Iterable[Shape], name: Optional[str] = None,
                    exported_at: Optional[str] = None) -> ProtocolDocument:
    """
    Build a protocol document from the shapes on a canvas.

    Raises:
        ProtocolExportError: if there are no protocol nodes
    """
    shapes = list(shapes)
    node_shapes = [s for s in shapes if s.is_protocol_node]
    if not node_shapes:
        raise ProtocolExportError("Add at least one protocol node before exporting")

    nodes = []
    for shape in node_shapes:
        bounds = shape.bounds()
        operation = shape.operation.copy()
        operation.id = export_node_id(shape)
        nodes.append(ProtocolNode(
            operation=operation,
            x=bounds.x,
            y=bounds.y,
            width=bounds.width,
            height=bounds.height,
        ))

    connections = []
    for connector in (s for s in shapes if s.is_connector):
        source = node_at(node_shapes, connector.start_point)
        target = node_at(node_shapes, connector.end_point)
        if source is None or target is None or source.id == target.id:
            continue
        connections.append(ProtocolConnection(export_node_id(source), export_node_id(target)))

    document = ProtocolDocument(
        metadata=ProtocolMetadata(
            schema_version=SCHEMA_VERSION,
            exported_at=exported_at or _timestamp(),
            name=name or "Protocol",
        ),
        nodes=nodes,
        connections=connections,
    )
    logger.info(f"Exported protocol '{document.metadata.name}': "
                f"{len(nodes)} node(s), {len(connections)} connection(s)")
    return document


# =============================================================================
# Import
# =============================================================================

def import_protocol(document: Union[ProtocolDocument, Dict[str, Any]]) -> List[Shape]:
    """
    Build the shapes for a protocol document: nodes first, then arrows.

    Connections naming unknown nodes are skipped. Nothing is applied to
    a canvas here; callers replace their store with the returned list.

    Raises:
        ProtocolImportError: if the document has no nodes or repeats a node id
    """
    if isinstance(document, dict):
        document = _document_from_dict(document)

    if not document.nodes:
        raise ProtocolImportError("Protocol file is missing nodes")

    node_shapes: Dict[str, ProtocolNodeShape] = {}
    for node in document.nodes:
        node_id = node.id or f"op-{generate_id()}"
        if node_id in node_shapes:
            raise ProtocolImportError(f"Duplicate protocol node id: {node_id}")
        operation = node.operation.copy()
        operation.id = node_id
        node_shapes[node_id] = ProtocolNodeShape(
            id=node_id,
            x=node.x if node.x is not None else 0.0,
            y=node.y if node.y is not None else 0.0,
            width=node.width if node.width is not None else DEFAULT_NODE_WIDTH,
            height=node.height if node.height is not None else DEFAULT_NODE_HEIGHT,
            style=ShapeStyle(**NODE_STYLE),
            operation=operation,
        )

    arrows: List[Shape] = []
    for connection in document.connections:
        source = node_shapes.get(connection.source)
        target = node_shapes.get(connection.target)
        if source is None or target is None:
            logger.debug(f"Skipping connection {connection.source} -> {connection.target}: unknown node")
            continue
        arrow = ConnectorShape(
            style=ShapeStyle(**CONNECTION_STYLE),
            start_marker=MarkerType.NONE,
            end_marker=MarkerType.ARROW,
            from_node_id=source.id,
            to_node_id=target.id,
            auto_connected=True,
        )
        arrow.set_endpoints(source.center, target.center)
        arrows.append(arrow)

    return list(node_shapes.values()) + arrows


def _document_from_dict(data: Dict[str, Any]) -> ProtocolDocument:
    try:
        return ProtocolDocument.from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        raise ProtocolImportError("Failed to import protocol") from e


def parse_protocol_json(text: Union[str, bytes]) -> ProtocolDocument:
    """
    Parse protocol JSON, accepting a bare document or one wrapped as
    {"protocol": {...}}.

    Raises:
        ProtocolImportError: if the text is not a protocol document
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ProtocolImportError("Failed to import protocol") from e

    if not isinstance(data, dict):
        raise ProtocolImportError("Failed to import protocol")
    if isinstance(data.get("protocol"), dict):
        data = data["protocol"]
    return _document_from_dict(data)


# =============================================================================
# Files
# =============================================================================

def protocol_filename(name: Optional[str], timestamp_ms: Optional[int] = None) -> str:
    """Default export file name, e.g. "dna-extraction-1700000000000.json"."""
    slug = re.sub(r"\s+", "-", (name or "protocol").strip()).lower() or "protocol"
    if timestamp_ms is None:
        timestamp_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"{slug}-{timestamp_ms}.json"


def save_protocol_file(document: ProtocolDocument, filepath: Union[str, Path]) -> Path:
    filepath = Path(filepath)
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(document.to_dict(), f, indent=2, ensure_ascii=False)
    logger.info(f"Protocol written to {filepath}")
    return filepath


def load_protocol_file(filepath: Union[str, Path], context: str = "") -> ProtocolDocument:
    """
    Read a protocol document from disk.

    Matches the ProtocolImporter signature; context is unused for
    plain JSON files.

    Raises:
        FileNotFoundError: if the file does not exist
        ProtocolImportError: if the file is not a protocol document
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Protocol file not found: {filepath}")
    with open(filepath, 'r', encoding='utf-8') as f:
        text = f.read()
    return parse_protocol_json(text)
