"""
Unit tests for the editor session.

Tests:
- Saving through the repository collaborator
- Busy state while a save is in flight
- Protocol export and all-or-nothing import
- Properties panel helpers
"""

import pytest
from models import Point, ProtocolDocument, ProtocolNode, UnitOperation
from services import (
    Drop, DropKind, DropPayload, EditorSession, Key, KeyPress,
    ProtocolExportError, ProtocolImportError, Wheel,
)
from services.whiteboard_repository import WhiteboardRepository

from conftest import connect, make_node, make_rect


class RecordingRepository(WhiteboardRepository):
    """Repository stub that records calls and can poke the session mid-save."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []
        self.session = None
        self.events_during_save = []

    def save(self, existing_id, shapes, name=None):
        self.calls.append((existing_id, [s.id for s in shapes], name))
        if self.session is not None:
            self.events_during_save.append(self.session.handle(KeyPress(Key.DELETE)))
            self.events_during_save.append(self.session.handle(Wheel(0, 10)))
            self.events_during_save.append(self.session.is_saving)
        if self.fail:
            raise OSError("disk full")
        return existing_id or "wb-1"

    def load(self, whiteboard_id):
        raise FileNotFoundError(whiteboard_id)

    def list(self):
        return []

    def delete(self, whiteboard_id):
        return False


class TestSave:
    """Tests for EditorSession.save."""

    def test_save_without_repository(self):
        result = EditorSession().save()
        assert not result.ok
        assert result.error

    def test_create_then_update(self):
        repo = RecordingRepository()
        session = EditorSession([make_rect("r")], repository=repo, name="Board")

        first = session.save()
        assert first.ok
        assert first.whiteboard_id == "wb-1"
        assert session.whiteboard_id == "wb-1"

        session.save()
        assert repo.calls == [(None, ["r"], "Board"), ("wb-1", ["r"], "Board")]

    def test_busy_during_save(self):
        """Editing events are rejected while saving; wheel still works."""
        repo = RecordingRepository()
        session = EditorSession([make_rect("r")], repository=repo)
        session.selection.set(["r"])
        repo.session = session

        session.save()
        assert repo.events_during_save == [False, True, True]
        assert "r" in session.store
        assert not session.is_saving
        assert not session.controller.busy

    def test_failed_save_reports_error(self):
        repo = RecordingRepository(fail=True)
        session = EditorSession([make_rect("r")], repository=repo)
        result = session.save()

        assert not result.ok
        assert "disk full" in result.error
        assert session.whiteboard_id is None
        assert session.store.ids == ["r"]
        assert not session.controller.busy

    def test_load_shapes_resets_state(self, session):
        session.store.add(make_rect("old"))
        session.selection.set(["old"])
        session.load_shapes([make_rect("new")])
        assert session.store.ids == ["new"]
        assert session.selection.is_empty


class TestProtocol:
    """Tests for protocol export and import through the session."""

    def test_export_uses_session_name(self, session, linear_protocol):
        session.load_shapes(linear_protocol)
        document = session.export_protocol("t")
        assert document.metadata.name == "Test Protocol"
        assert len(document.connections) == 2

    def test_export_default_name(self):
        session = EditorSession([make_node("a")])
        assert session.export_protocol().metadata.name == "Protocol"

    def test_export_empty_canvas(self, session):
        with pytest.raises(ProtocolExportError):
            session.export_protocol()

    def test_failed_export_writes_nothing(self, session, temp_dir):
        path = temp_dir / "out.json"
        with pytest.raises(ProtocolExportError):
            session.export_protocol_file(path)
        assert not path.exists()

    def test_import_replaces_canvas(self, session):
        session.store.add(make_rect("old"))
        session.selection.set(["old"])
        document = ProtocolDocument(nodes=[ProtocolNode(UnitOperation(id="n1"))])

        shapes = session.import_protocol(document)
        assert [s.id for s in shapes] == ["n1"]
        assert session.store.ids == ["n1"]
        assert session.selection.is_empty

    def test_failed_import_leaves_canvas(self, session):
        """Import is all-or-nothing."""
        session.store.add(make_rect("keep"))
        session.selection.set(["keep"])
        with pytest.raises(ProtocolImportError):
            session.import_protocol_json('{"nodes": []}')
        assert session.store.ids == ["keep"]
        assert session.selection.ids == ["keep"]

    def test_import_from_collaborator(self, session):
        seen = []

        def importer(source, context):
            seen.append((source, context))
            return ProtocolDocument(nodes=[ProtocolNode(UnitOperation(id="x"))])

        session.import_from(importer, "notes.pdf", "PCR cleanup")
        assert seen == [("notes.pdf", "PCR cleanup")]
        assert session.store.ids == ["x"]

    def test_export_file_round_trip(self, session, temp_dir, branching_protocol):
        session.load_shapes(branching_protocol)
        path = session.export_protocol_file(temp_dir / "p.json")

        other = EditorSession()
        other.import_protocol_file(path)
        assert len(other.store.protocol_nodes) == 3
        assert other.step_numbers() == {"op-a": 1, "op-b": 2, "op-c": 2}


class TestPropertiesHelpers:
    """Tests for the helpers used by the properties panel."""

    def test_selected_protocol_node(self, session):
        session.store.add(make_rect("r"))
        node = session.store.add(make_node("n", 200, 0))
        session.selection.set(["r", "n"])
        assert session.selected_protocol_node() is node

    def test_update_operation(self, session):
        session.store.add(make_node("n"))
        operation = UnitOperation(id="op-n", type="mix", label="Vortex")
        assert session.update_protocol_operation("n", operation)
        assert session.store.get("n").operation.label == "Vortex"

    def test_update_operation_locked(self, session):
        session.store.add(make_node("n", locked=True))
        assert not session.update_protocol_operation("n", UnitOperation())

    def test_update_operation_not_a_node(self, session):
        session.store.add(make_rect("r"))
        assert not session.update_protocol_operation("r", UnitOperation())

    def test_set_parallel_group(self, session):
        a = session.store.add(make_node("a"))
        b = session.store.add(make_node("b", 200, 0, locked=True))
        session.store.add(make_rect("r", 400, 0))
        session.selection.set(["a", "b", "r"])
        assert session.set_parallel_group("p1") == ["a"]
        assert a.parallel_group_id == "p1"
        assert b.parallel_group_id is None

    def test_step_numbers_follow_edits(self, session):
        a = session.store.add(make_node("a", 0, 0))
        b = session.store.add(make_node("b", 200, 0))
        assert session.step_numbers() == {"a": 1, "b": 1}
        session.store.add(connect(a, b))
        assert session.step_numbers() == {"a": 1, "b": 2}

    def test_update_selected_style(self, session):
        session.store.add(make_rect("r"))
        session.selection.set(["r"])
        assert session.update_selected_style(stroke="#ff0000") == ["r"]
        assert session.store.get("r").style.stroke == "#ff0000"

    def test_drop_targets_node_in_canvas_space(self, session):
        """Drops are converted from screen to canvas space before targeting."""
        node = session.store.add(make_node("n", 0, 0))
        session.viewport.pan_by(100, 100)
        payload = DropPayload(kind=DropKind.EQUIPMENT, id="eq", name="Shaker")
        session.handle(Drop(Point(110, 110), payload.to_json()))
        assert node.operation.metadata["equipment"] == "Shaker"
