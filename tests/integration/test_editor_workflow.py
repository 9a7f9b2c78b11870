"""
Integration tests for the complete editing workflow.

Tests:
- Building a protocol with palette drops and drawn arrows
- Exporting to a file and importing it into a fresh session
- Saving and reopening a whiteboard through the repository
- Recent files bookkeeping around export
"""

from models import Point
from services import (
    Drop, DropKind, DropPayload, EditorSession, JsonWhiteboardRepository,
    PointerDown, PointerMove, PointerUp, Tool, protocol_filename,
)


def drop_operation(session, op_type, pos):
    payload = DropPayload(kind=DropKind.PROTOCOL, id=op_type, operation_type=op_type)
    session.handle(Drop(Point(*pos), payload.to_json()))
    return session.selection.single


def draw_arrow(session, start, end):
    session.set_tool(Tool.ARROW)
    session.handle(PointerDown(start))
    session.handle(PointerMove(end))
    session.handle(PointerUp(end))


def build_pcr_protocol(session):
    """Mix -> (heat, cool in parallel) drawn entirely through events."""
    mix = drop_operation(session, "mix", (200, 200))
    heat = drop_operation(session, "heat", (600, 100))
    cool = drop_operation(session, "cool", (600, 400))

    draw_arrow(session, mix.center, heat.center)
    draw_arrow(session, mix.center, cool.center)

    session.selection.set([heat.id, cool.id])
    session.set_parallel_group("pg-1")
    session.selection.clear()
    return mix, heat, cool


class TestProtocolWorkflow:
    """End-to-end protocol editing."""

    def test_build_export_import(self, session, temp_workspace):
        mix, heat, cool = build_pcr_protocol(session)
        assert session.step_numbers() == {mix.id: 1, heat.id: 2, cool.id: 2}

        filename = protocol_filename(session.protocol_name, 1700000000000)
        assert filename == "test-protocol-1700000000000.json"
        path = session.export_protocol_file(temp_workspace / "protocols" / filename)
        assert path.exists()

        fresh = EditorSession()
        fresh.import_protocol_file(path)
        nodes = fresh.store.protocol_nodes
        assert [n.operation.type for n in nodes] == ["mix", "heat", "cool"]
        assert len(fresh.store.connectors) == 2
        steps = fresh.step_numbers()
        assert steps[f"op-{mix.id}"] == 1
        assert steps[f"op-{heat.id}"] == 2
        assert steps[f"op-{cool.id}"] == 2

    def test_imported_arrows_follow_moved_nodes(self, session, temp_dir):
        build_pcr_protocol(session)
        path = session.export_protocol_file(temp_dir / "p.json")

        fresh = EditorSession()
        fresh.import_protocol_file(path)
        first = fresh.store.protocol_nodes[0]
        # Grab the node near its top-left corner, clear of the arrows
        start = Point(first.x + 20, first.y + 20)

        fresh.handle(PointerDown(start))
        fresh.handle(PointerMove(Point(start.x, start.y + 50)))
        fresh.handle(PointerUp(Point(start.x, start.y + 50)))

        for arrow in fresh.store.connectors:
            assert arrow.start_point == first.center
        assert len(fresh.export_protocol().connections) == 2

    def test_export_records_recent_file(self, session, settings_manager, temp_dir):
        build_pcr_protocol(session)
        path = session.export_protocol_file(temp_dir / "recent.json")
        settings_manager.set_export_directory(str(path))
        settings_manager.add_recent_file(str(path))
        assert settings_manager.get_recent_files() == [str(path)]
        assert settings_manager.get_export_directory() == str(temp_dir)


class TestWhiteboardPersistence:
    """Saving and reopening whiteboards."""

    def test_save_and_reopen(self, session, repository):
        mix, heat, cool = build_pcr_protocol(session)
        result = session.save()
        assert result.ok

        record = repository.load(result.whiteboard_id)
        reopened = EditorSession(
            record.shapes, repository=repository,
            whiteboard_id=record.id, name=record.name,
        )
        assert reopened.name == "Test Protocol"
        assert reopened.store.ids == session.store.ids
        assert reopened.step_numbers() == session.step_numbers()
        assert reopened.store.get(heat.id).parallel_group_id == "pg-1"

    def test_second_save_updates_in_place(self, session, repository):
        drop_operation(session, "mix", (0, 0))
        first = session.save()
        drop_operation(session, "heat", (400, 0))
        second = session.save()

        assert first.whiteboard_id == second.whiteboard_id
        assert len(repository.list()) == 1
        assert len(repository.load(first.whiteboard_id).shapes) == 2

    def test_new_repository_sees_saved_boards(self, session, temp_workspace):
        drop_operation(session, "centrifuge", (0, 0))
        result = session.save()

        other = JsonWhiteboardRepository(temp_workspace / "whiteboards")
        assert [r.id for r in other.list()] == [result.whiteboard_id]
