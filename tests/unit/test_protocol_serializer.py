"""
Unit tests for the protocol serializer.

Tests:
- Exporting canvas shapes to a protocol document
- Importing documents back into shapes
- Error handling for invalid documents
- JSON parsing and file helpers
"""

import json

import pytest
from models import (
    ConnectorShape, ProtocolConnection, ProtocolDocument, ProtocolMetadata,
    ProtocolNode, SCHEMA_VERSION, UnitOperation,
)
from services.protocol_graph import build_graph
from services.protocol_serializer import (
    DEFAULT_NODE_HEIGHT, DEFAULT_NODE_WIDTH, ProtocolExportError, ProtocolImportError,
    export_protocol, import_protocol, load_protocol_file, parse_protocol_json,
    protocol_filename, save_protocol_file,
)

from conftest import connect, make_node, make_rect


class TestExport:
    """Tests for export_protocol."""

    def test_requires_protocol_nodes(self):
        with pytest.raises(ProtocolExportError, match="Add at least one protocol node"):
            export_protocol([make_rect("r")])

    def test_metadata(self, linear_protocol):
        document = export_protocol(linear_protocol, "DNA extraction", "2024-01-01T00:00:00.000Z")
        assert document.metadata.name == "DNA extraction"
        assert document.metadata.schema_version == SCHEMA_VERSION
        assert document.metadata.exported_at == "2024-01-01T00:00:00.000Z"

    def test_default_name_and_timestamp(self, linear_protocol):
        document = export_protocol(linear_protocol)
        assert document.metadata.name == "Protocol"
        assert document.metadata.exported_at.endswith("Z")

    def test_nodes_and_connections(self, linear_protocol):
        document = export_protocol(linear_protocol, "P")
        assert [n.id for n in document.nodes] == ["op-a", "op-b", "op-c"]
        assert document.connections == [
            ProtocolConnection("op-a", "op-b"),
            ProtocolConnection("op-b", "op-c"),
        ]

    def test_node_geometry_is_normalized(self):
        node = make_node("a", 100, 100, -50, -40)
        document = export_protocol([node])
        exported = document.nodes[0]
        assert (exported.x, exported.y, exported.width, exported.height) == (50, 60, 50, 40)

    def test_missing_operation_id_uses_shape_id(self):
        node = make_node("a")
        node.operation.id = ""
        assert export_protocol([node]).nodes[0].id == "op-a"

    def test_export_does_not_mutate_shapes(self):
        node = make_node("a")
        node.operation.id = ""
        export_protocol([node])
        assert node.operation.id == ""

    def test_decorative_shapes_and_dangling_connectors_skipped(self):
        a = make_node("a", 0, 0)
        dangling = ConnectorShape()
        dangling.set_geometry(50, 30, 1000, 1000)
        document = export_protocol([a, make_rect("r", 500, 500), dangling])
        assert len(document.nodes) == 1
        assert document.connections == []

    def test_export_is_geometric(self):
        """Bindings are ignored on export; only endpoint positions count."""
        a = make_node("a", 0, 0)
        b = make_node("b", 200, 0)
        arrow = connect(a, b)
        arrow.from_node_id = "b"
        arrow.to_node_id = "a"
        document = export_protocol([a, b, arrow])
        assert document.connections == [ProtocolConnection("op-a", "op-b")]

    def test_to_dict_wire_format(self, linear_protocol):
        data = export_protocol(linear_protocol, "P", "t").to_dict()
        assert set(data) == {"metadata", "nodes", "connections"}
        assert data["metadata"] == {"schemaVersion": "1.0", "exportedAt": "t", "name": "P"}
        assert data["connections"][0] == {"from": "op-a", "to": "op-b"}
        node = data["nodes"][0]
        for key in ("id", "type", "label", "parameters", "objects", "inputs",
                    "outputs", "metadata", "x", "y", "width", "height"):
            assert key in node


class TestImport:
    """Tests for import_protocol."""

    def _document(self):
        return ProtocolDocument(
            metadata=ProtocolMetadata(name="Imported"),
            nodes=[
                ProtocolNode(UnitOperation(id="n1", type="heat"), x=0, y=0, width=100, height=50),
                ProtocolNode(UnitOperation(id="n2", type="cool"), x=300, y=0),
            ],
            connections=[ProtocolConnection("n1", "n2"), ProtocolConnection("n1", "ghost")],
        )

    def test_nodes_then_arrows(self):
        shapes = import_protocol(self._document())
        assert [s.is_protocol_node for s in shapes] == [True, True, False]

    def test_node_geometry_defaults(self):
        shapes = import_protocol(self._document())
        second = shapes[1]
        assert (second.x, second.y) == (300, 0)
        assert second.width == DEFAULT_NODE_WIDTH
        assert second.height == DEFAULT_NODE_HEIGHT
        assert second.id == "n2"
        assert second.operation.id == "n2"

    def test_node_style(self):
        node = import_protocol(self._document())[0]
        assert node.style.fill == "#ffffff"
        assert node.style.stroke == "#cbd5e1"
        assert node.style.stroke_width == 1.5

    def test_arrows_bound_between_centres(self):
        shapes = import_protocol(self._document())
        n1, n2, arrow = shapes
        assert arrow.from_node_id == "n1"
        assert arrow.to_node_id == "n2"
        assert arrow.auto_connected
        assert arrow.start_point == n1.center
        assert arrow.end_point == n2.center
        assert arrow.style.stroke == "#94a3b8"
        assert arrow.end_marker.value == "arrow"

    def test_unknown_connection_skipped(self):
        shapes = import_protocol(self._document())
        assert len([s for s in shapes if s.is_connector]) == 1

    def test_missing_ids_generated(self):
        document = ProtocolDocument(nodes=[ProtocolNode(UnitOperation()), ProtocolNode(UnitOperation())])
        shapes = import_protocol(document)
        assert shapes[0].id.startswith("op-")
        assert shapes[0].id != shapes[1].id

    def test_no_nodes(self):
        with pytest.raises(ProtocolImportError, match="missing nodes"):
            import_protocol(ProtocolDocument())

    def test_duplicate_node_ids(self):
        document = ProtocolDocument(nodes=[
            ProtocolNode(UnitOperation(id="same")),
            ProtocolNode(UnitOperation(id="same")),
        ])
        with pytest.raises(ProtocolImportError, match="Duplicate"):
            import_protocol(document)

    def test_from_dict(self):
        shapes = import_protocol({
            "nodes": [{"id": "x", "type": "mix", "x": 10, "y": 20}],
            "connections": [],
        })
        assert shapes[0].operation.type == "mix"
        assert (shapes[0].x, shapes[0].y) == (10, 20)

    def test_numeric_ids_keep_connections(self):
        """Ids written as JSON numbers still match their connections."""
        shapes = import_protocol(parse_protocol_json(json.dumps({
            "nodes": [{"id": 1, "type": "mix"}, {"id": 2, "type": "heat"}],
            "connections": [{"from": 1, "to": 2}],
        })))
        first, second, arrow = shapes
        assert (first.id, second.id) == ("1", "2")
        assert (arrow.from_node_id, arrow.to_node_id) == ("1", "2")
        assert build_graph(shapes).edges == [("1", "2")]

    def test_malformed_dict(self):
        with pytest.raises(ProtocolImportError, match="Failed to import protocol"):
            import_protocol({"nodes": ["not a node"]})

    def test_round_trip_preserves_graph(self, branching_protocol):
        """Export then import keeps nodes, operations and edges."""
        document = export_protocol(branching_protocol, "P", "t")
        shapes = import_protocol(document)

        nodes = [s for s in shapes if s.is_protocol_node]
        assert [n.id for n in nodes] == ["op-a", "op-b", "op-c"]
        original = {f"op-{s.id}": s.operation.to_dict() for s in branching_protocol if s.is_protocol_node}
        for node in nodes:
            assert node.operation.to_dict() == original[node.id]
        assert set(build_graph(shapes).edges) == {("op-a", "op-b"), ("op-a", "op-c")}

        again = export_protocol(shapes, "P", "t")
        assert again.to_dict() == document.to_dict()


class TestParsing:
    """Tests for JSON parsing and files."""

    def test_parse_bare_document(self):
        text = json.dumps({"metadata": {"name": "X"}, "nodes": [{"id": "a"}], "connections": []})
        document = parse_protocol_json(text)
        assert document.metadata.name == "X"
        assert document.nodes[0].id == "a"

    def test_parse_wrapped_document(self):
        text = json.dumps({"protocol": {"nodes": [{"id": "a"}], "connections": [{"from": "a", "to": "b"}]}})
        document = parse_protocol_json(text)
        assert document.connections == [ProtocolConnection("a", "b")]

    @pytest.mark.parametrize("text", ["", "{oops", "[1, 2]", "42"])
    def test_parse_invalid(self, text):
        with pytest.raises(ProtocolImportError, match="Failed to import protocol"):
            parse_protocol_json(text)

    def test_metadata_extra_keys_kept(self):
        document = parse_protocol_json(json.dumps({"metadata": {"name": "X", "author": "lab"}, "nodes": []}))
        assert document.metadata.to_dict()["author"] == "lab"

    def test_filename(self):
        assert protocol_filename("DNA  Extraction Run", 1700000000000) == "dna-extraction-run-1700000000000.json"
        assert protocol_filename(None, 5) == "protocol-5.json"
        assert protocol_filename("   ", 5) == "protocol-5.json"

    def test_save_and_load_file(self, temp_dir, linear_protocol):
        document = export_protocol(linear_protocol, "Saved", "t")
        path = save_protocol_file(document, temp_dir / "p.json")
        loaded = load_protocol_file(path)
        assert loaded.to_dict() == document.to_dict()

    def test_load_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_protocol_file(temp_dir / "nope.json")

    def test_load_invalid_file(self, temp_dir):
        path = temp_dir / "bad.json"
        path.write_text("not json", encoding="utf-8")
        with pytest.raises(ProtocolImportError):
            load_protocol_file(path)
