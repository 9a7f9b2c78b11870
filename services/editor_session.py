"""
Editor session.

One open whiteboard: its shape store, selection, viewport and
interaction controller, plus the save/export/import entry points the
views call. The session is owned by the caller (the main window or a
test) and is the only place where the store is replaced wholesale.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from models import ProtocolDocument, ProtocolNodeShape, Shape, UnitOperation

from .interaction import Event, InteractionController, Tool
from .protocol_graph import StepNumbering, compute_step_numbers
from .protocol_serializer import (
    ProtocolImporter, export_protocol, import_protocol, load_protocol_file,
    parse_protocol_json, save_protocol_file,
)
from .selection import SelectionManager
from .settings_manager import EditorSettings
from .shape_store import ShapeStore
from .viewport import GridSnapper, Viewport
from .whiteboard_repository import WhiteboardRepository


logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    ok: bool
    whiteboard_id: Optional[str] = None
    error: Optional[str] = None


class EditorSession:
    """
    State of one whiteboard being edited.

    Args:
        shapes: Initial shapes, in paint order
        repository: Persistence collaborator used by save()
        settings: Editor behaviour; defaults to EditorSettings()
        whiteboard_id: Id of the stored whiteboard being edited, if any
        name: Display name, also used as the exported protocol name
    """

    def __init__(
        self,
        shapes: Optional[Iterable[Shape]] = None,
        repository: Optional[WhiteboardRepository] = None,
        settings: Optional[EditorSettings] = None,
        whiteboard_id: Optional[str] = None,
        name: Optional[str] = None,
    ):
        self.settings = settings or EditorSettings()
        self.repository = repository
        self.whiteboard_id = whiteboard_id
        self.name = name

        self.store = ShapeStore(shapes)
        self.selection = SelectionManager(self.store)
        self.viewport = Viewport(
            min_zoom=self.settings.min_zoom,
            max_zoom=self.settings.max_zoom,
            zoom_step=self.settings.zoom_step,
        )
        self.snapper = GridSnapper(
            enabled=self.settings.snap_to_grid,
            grid_size=self.settings.grid_size,
        )
        self.controller = InteractionController(
            self.store, self.selection, self.viewport, self.snapper, self.settings,
        )
        self._saving = False

    # -------------------------------------------------------------------------
    # Events and tools
    # -------------------------------------------------------------------------

    def handle(self, event: Event) -> bool:
        return self.controller.handle(event)

    @property
    def tool(self) -> Tool:
        return self.controller.tool

    def set_tool(self, tool: Tool):
        self.controller.set_tool(tool)

    @property
    def shapes(self) -> List[Shape]:
        return self.store.shapes

    @property
    def protocol_name(self) -> str:
        return self.name or self.settings.default_protocol_name

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    @property
    def is_saving(self) -> bool:
        return self._saving

    def save(self) -> SaveResult:
        """
        Hand the current shapes to the repository.

        Editing events are rejected while the save is in flight. A
        failure is reported in the result; the store is never modified.
        """
        if self.repository is None:
            return SaveResult(ok=False, error="No whiteboard repository configured")
        if self._saving:
            return SaveResult(ok=False, whiteboard_id=self.whiteboard_id, error="Save already in progress")

        self._saving = True
        self.controller.busy = True
        try:
            whiteboard_id = self.repository.save(self.whiteboard_id, self.store.shapes, self.name)
        except Exception as e:
            logger.exception("Failed to save whiteboard")
            return SaveResult(ok=False, whiteboard_id=self.whiteboard_id, error=str(e))
        finally:
            self._saving = False
            self.controller.busy = False

        self.whiteboard_id = whiteboard_id
        return SaveResult(ok=True, whiteboard_id=whiteboard_id)

    def load_shapes(self, shapes: Iterable[Shape]):
        """Replace the canvas with stored shapes."""
        self.store.replace_all(shapes)
        self.selection.clear()
        self.controller.reset()

    # -------------------------------------------------------------------------
    # Protocol
    # -------------------------------------------------------------------------

    def step_numbering(self) -> StepNumbering:
        return compute_step_numbers(self.store.shapes)

    def step_numbers(self) -> dict:
        return self.step_numbering().steps

    def export_protocol(self, exported_at: Optional[str] = None) -> ProtocolDocument:
        """Raises ProtocolExportError when the canvas has no protocol nodes."""
        return export_protocol(self.store.shapes, self.protocol_name, exported_at)

    def export_protocol_file(self, filepath: Union[str, Path]) -> Path:
        # Build first: a failed export must not leave a file behind
        document = self.export_protocol()
        return save_protocol_file(document, filepath)

    def import_protocol(self, document: Union[ProtocolDocument, dict]) -> List[Shape]:
        """
        Replace the canvas with a protocol document.

        All-or-nothing: on ProtocolImportError the store and selection are
        left exactly as they were.
        """
        shapes = import_protocol(document)
        self.store.replace_all(shapes)
        self.selection.clear()
        self.controller.reset()
        logger.info(f"Imported protocol with {len(self.store.protocol_nodes)} node(s)")
        return shapes

    def import_protocol_json(self, text: Union[str, bytes]) -> List[Shape]:
        return self.import_protocol(parse_protocol_json(text))

    def import_protocol_file(self, filepath: Union[str, Path]) -> List[Shape]:
        return self.import_protocol(load_protocol_file(filepath))

    def import_from(self, importer: ProtocolImporter, source: Any, context: str = "") -> List[Shape]:
        """Run an import collaborator and apply the document it returns."""
        return self.import_protocol(importer(source, context))

    # -------------------------------------------------------------------------
    # Editing extras
    # -------------------------------------------------------------------------

    def update_selected_style(self, **changes) -> List[str]:
        """Apply style changes to every unlocked selected shape."""
        return [sid for sid in self.selection.ids if self.store.update_style(sid, **changes)]

    def toggle_lock(self) -> bool:
        return self.controller.toggle_lock()

    def select_all(self):
        self.controller.select_all()

    def selected_protocol_node(self) -> Optional[ProtocolNodeShape]:
        for shape in self.selection.shapes():
            if shape.is_protocol_node:
                return shape
        return None

    def update_protocol_operation(self, shape_id: str, operation: UnitOperation) -> bool:
        """Replace the unit operation of an unlocked protocol node."""
        shape = self.store.get(shape_id)
        if shape is None or not shape.is_protocol_node or shape.locked:
            return False
        shape.operation = operation
        return True

    def set_parallel_group(self, group_id: Optional[str]) -> List[str]:
        """Tag (or untag, with None) the selected unlocked protocol nodes."""
        changed = []
        for shape in self.selection.shapes():
            if shape.is_protocol_node and not shape.locked:
                shape.parallel_group_id = group_id
                changed.append(shape.id)
        return changed
