"""
Main application window.

Assembles all UI components and manages the application layout.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QHBoxLayout, QVBoxLayout,
    QToolBar, QPushButton, QLabel, QSplitter,
    QStatusBar, QMessageBox, QFileDialog, QButtonGroup,
    QDialog, QDialogButtonBox, QListWidget, QListWidgetItem, QInputDialog,
    QSizePolicy,
)

from services import (
    EditorSession, JsonWhiteboardRepository, Tool,
    ProtocolExportError, ProtocolImportError,
    protocol_filename, save_protocol_file, get_settings,
)
from .whiteboard_canvas import WhiteboardCanvas
from .operation_palette import OperationPalette
from .protocol_properties_panel import ProtocolPropertiesPanel
from .import_protocol_dialog import ImportProtocolDialog


logger = logging.getLogger(__name__)


TOOL_LABELS = {
    Tool.SELECT: ("Select", "Select and move shapes (drag on empty canvas to marquee)"),
    Tool.HAND: ("Hand", "Pan the canvas"),
    Tool.RECT: ("Rect", "Draw a rectangle"),
    Tool.CIRCLE: ("Circle", "Draw an ellipse"),
    Tool.TRIANGLE: ("Triangle", "Draw a triangle"),
    Tool.DIAMOND: ("Diamond", "Draw a diamond"),
    Tool.HEXAGON: ("Hexagon", "Draw a hexagon"),
    Tool.STAR: ("Star", "Draw a star"),
    Tool.TEXT: ("Text", "Add a text box"),
    Tool.LINE: ("Line", "Draw a line"),
    Tool.ARROW: ("Arrow", "Draw an arrow (connect two steps to order them)"),
    Tool.ELBOW: ("Elbow", "Draw an elbow connector"),
    Tool.CURVE: ("Curve", "Draw a curved connector"),
}


class EditorToolbar(QToolBar):
    """Toolbar with drawing tools and view controls."""

    toolSelected = pyqtSignal(object)  # Tool

    def __init__(self, parent=None):
        super().__init__("Tools", parent)
        self.setMovable(False)
        self._tool_buttons: Dict[Tool, QPushButton] = {}
        self._setup_ui()

    def _setup_ui(self):
        self.setStyleSheet("""
            QToolBar {
                background: #F9FAFB;
                border-bottom: 1px solid #E5E7EB;
                padding: 6px 12px;
                spacing: 4px;
            }
            QPushButton {
                padding: 6px 10px;
                border-radius: 6px;
                font-size: 12px;
                background: white;
                color: #374151;
                border: 1px solid #D1D5DB;
            }
            QPushButton:hover {
                background: #F3F4F6;
            }
            QPushButton:checked {
                background: #DBEAFE;
                border-color: #3B82F6;
                color: #1D4ED8;
            }
        """)

        group = QButtonGroup(self)
        group.setExclusive(True)
        for tool, (label, tip) in TOOL_LABELS.items():
            btn = QPushButton(label)
            btn.setCheckable(True)
            btn.setToolTip(tip)
            btn.clicked.connect(lambda _, t=tool: self.toolSelected.emit(t))
            group.addButton(btn)
            self._tool_buttons[tool] = btn
            self.addWidget(btn)
            if tool == Tool.HAND or tool == Tool.TEXT:
                self.addSeparator()
        self._tool_buttons[Tool.SELECT].setChecked(True)

        self.addSeparator()

        self.snap_btn = QPushButton("Snap")
        self.snap_btn.setCheckable(True)
        self.snap_btn.setToolTip("Snap to grid")
        self.addWidget(self.snap_btn)

        self.addSeparator()

        self.zoom_out_btn = QPushButton("−")
        self.zoom_out_btn.setToolTip("Zoom out")
        self.addWidget(self.zoom_out_btn)

        self.zoom_label = QLabel("100%")
        self.zoom_label.setMinimumWidth(48)
        self.zoom_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.zoom_label.setStyleSheet("color: #374151; font-size: 12px;")
        self.addWidget(self.zoom_label)

        self.zoom_in_btn = QPushButton("+")
        self.zoom_in_btn.setToolTip("Zoom in")
        self.addWidget(self.zoom_in_btn)

        # Spacer
        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self.addWidget(spacer)

        self.export_btn = QPushButton("Export Protocol")
        self.export_btn.setStyleSheet("""
            QPushButton {
                background: #2563EB;
                color: white;
                border: none;
            }
            QPushButton:hover {
                background: #1D4ED8;
            }
            QPushButton:disabled {
                background: #9CA3AF;
            }
        """)
        self.addWidget(self.export_btn)

    def set_active_tool(self, tool: Tool):
        btn = self._tool_buttons.get(tool)
        if btn is not None and not btn.isChecked():
            btn.setChecked(True)

    def set_zoom(self, percent: int):
        self.zoom_label.setText(f"{percent}%")


class OpenWhiteboardDialog(QDialog):
    """Pick a stored whiteboard from the workspace."""

    def __init__(self, repository: JsonWhiteboardRepository, parent=None):
        super().__init__(parent)
        self.repository = repository
        self.selected_id: Optional[str] = None
        self._setup_ui()

    def _setup_ui(self):
        self.setWindowTitle("Open Whiteboard")
        self.setMinimumSize(420, 360)

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(f"Whiteboards in {self.repository.directory}:"))

        self._list = QListWidget()
        self._list.itemDoubleClicked.connect(lambda _: self._on_accept())
        for record in self.repository.list():
            modified = record.modified.replace("T", " ")[:16]
            item = QListWidgetItem(f"{record.name}    ({modified})")
            item.setData(Qt.ItemDataRole.UserRole, record.id)
            self._list.addItem(item)
        layout.addWidget(self._list)

        if self._list.count() == 0:
            empty = QLabel("No saved whiteboards yet")
            empty.setStyleSheet("color: #9CA3AF;")
            layout.addWidget(empty)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Open | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _on_accept(self):
        item = self._list.currentItem()
        if item is None:
            return
        self.selected_id = item.data(Qt.ItemDataRole.UserRole)
        self.accept()


class MainWindow(QMainWindow):
    """
    Main application window.

    Layout:
    ┌─────────────────────────────────────────────────────┐
    │  Menu Bar                                           │
    ├─────────────────────────────────────────────────────┤
    │  Toolbar (tools, snap, zoom, export)                │
    ├─────────────┬───────────────────────┬───────────────┤
    │             │                       │               │
    │  Operation  │    Whiteboard         │  Properties   │
    │  Palette    │    Canvas             │  Panel        │
    │             │                       │               │
    ├─────────────┴───────────────────────┴───────────────┤
    │  Status Bar                                         │
    └─────────────────────────────────────────────────────┘
    """

    def __init__(self):
        super().__init__()

        # Settings manager (JSON file based)
        self.settings_manager = get_settings()

        self.repository = JsonWhiteboardRepository(self.settings_manager.get_whiteboards_dir())
        self.session = EditorSession(
            repository=self.repository,
            settings=self.settings_manager.editor,
        )

        # Setup
        self._setup_window()
        self._setup_menu()
        self._setup_toolbar()
        self._setup_central_widget()
        self._setup_status_bar()
        self._connect_signals()

        self._apply_ui_settings()
        self.canvas.refresh()

        # Restore window geometry
        self._load_window_settings()

    def _load_window_settings(self):
        """Restore window geometry and state."""
        geometry, state = self.settings_manager.get_window_geometry()
        if geometry:
            self.restoreGeometry(geometry)
        if state:
            self.restoreState(state)

    def _save_window_settings(self):
        """Save window geometry and state."""
        self.settings_manager.save_window_geometry(
            bytes(self.saveGeometry()),
            bytes(self.saveState())
        )

    def closeEvent(self, event):
        """Handle window close - save settings."""
        self._save_window_settings()
        super().closeEvent(event)

    def _setup_window(self):
        """Configure window properties."""
        self._update_window_title()
        self.setMinimumSize(1100, 720)
        self.resize(1400, 900)

        self.setStyleSheet("""
            QMainWindow {
                background: #F3F4F6;
            }
            QSplitter::handle {
                background: #E5E7EB;
            }
            QSplitter::handle:horizontal {
                width: 1px;
            }
        """)

    def _update_window_title(self):
        """Update window title with current whiteboard name."""
        base_title = "Protocol Whiteboard"
        name = self.session.name or "Untitled"
        self.setWindowTitle(f"{name} - {base_title}")

    def _setup_menu(self):
        """Create menu bar."""
        menubar = self.menuBar()

        # File menu
        file_menu = menubar.addMenu("&File")

        new_action = QAction("&New Whiteboard", self)
        new_action.setShortcut(QKeySequence.StandardKey.New)
        new_action.triggered.connect(self._on_new_whiteboard)
        file_menu.addAction(new_action)

        open_action = QAction("&Open Whiteboard...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._on_open_whiteboard)
        file_menu.addAction(open_action)

        save_action = QAction("&Save", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.triggered.connect(self._on_save_whiteboard)
        file_menu.addAction(save_action)

        rename_action = QAction("&Rename...", self)
        rename_action.triggered.connect(self._on_rename_whiteboard)
        file_menu.addAction(rename_action)

        file_menu.addSeparator()

        import_action = QAction("&Import Protocol...", self)
        import_action.setShortcut("Ctrl+I")
        import_action.triggered.connect(self._on_import_protocol)
        file_menu.addAction(import_action)

        self._recent_menu = file_menu.addMenu("Import &Recent")
        self._recent_menu.aboutToShow.connect(self._populate_recent_menu)

        export_action = QAction("&Export Protocol...", self)
        export_action.setShortcut("Ctrl+E")
        export_action.triggered.connect(self._on_export_protocol)
        file_menu.addAction(export_action)

        file_menu.addSeparator()

        exit_action = QAction("E&xit", self)
        exit_action.setShortcut(QKeySequence.StandardKey.Quit)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        # Edit menu (canvas-handled keys are shown but not bound)
        edit_menu = menubar.addMenu("&Edit")

        for label, handler in [
            ("&Delete Selected\tDel", self._on_delete_selected),
            ("Select &All\tCtrl+A", self._on_select_all),
            ("D&uplicate\tCtrl+D", self._on_duplicate),
        ]:
            action = QAction(label, self)
            action.triggered.connect(handler)
            edit_menu.addAction(action)

        edit_menu.addSeparator()

        for label, handler in [
            ("&Group\tCtrl+G", self._on_group),
            ("U&ngroup\tCtrl+Shift+G", self._on_ungroup),
            ("&Lock / Unlock\tCtrl+L", self._on_toggle_lock),
            ("Bring to &Front\t]", self._on_bring_to_front),
            ("Send to &Back\t[", self._on_send_to_back),
        ]:
            action = QAction(label, self)
            action.triggered.connect(handler)
            edit_menu.addAction(action)

        # View menu
        view_menu = menubar.addMenu("&View")

        zoom_in_action = QAction("Zoom &In", self)
        zoom_in_action.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in_action.triggered.connect(lambda: self.canvas.zoom_in())
        view_menu.addAction(zoom_in_action)

        zoom_out_action = QAction("Zoom &Out", self)
        zoom_out_action.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out_action.triggered.connect(lambda: self.canvas.zoom_out())
        view_menu.addAction(zoom_out_action)

        reset_view_action = QAction("&Reset View", self)
        reset_view_action.setShortcut("Ctrl+0")
        reset_view_action.triggered.connect(lambda: self.canvas.reset_view())
        view_menu.addAction(reset_view_action)

        view_menu.addSeparator()

        self._snap_action = QAction("&Snap to Grid", self)
        self._snap_action.setCheckable(True)
        self._snap_action.triggered.connect(self._on_toggle_snap)
        view_menu.addAction(self._snap_action)

        self._grid_action = QAction("Show &Grid", self)
        self._grid_action.setCheckable(True)
        self._grid_action.triggered.connect(self._on_toggle_grid)
        view_menu.addAction(self._grid_action)

        self._steps_action = QAction("Show Step &Numbers", self)
        self._steps_action.setCheckable(True)
        self._steps_action.triggered.connect(self._on_toggle_step_numbers)
        view_menu.addAction(self._steps_action)

        # Help menu
        help_menu = menubar.addMenu("&Help")

        about_action = QAction("&About", self)
        about_action.triggered.connect(self._on_about)
        help_menu.addAction(about_action)

    def _setup_toolbar(self):
        """Create and add toolbar."""
        self.toolbar = EditorToolbar()
        self.addToolBar(self.toolbar)

    def _setup_central_widget(self):
        """Create the main layout with all panels."""
        central = QWidget()
        self.setCentralWidget(central)

        layout = QHBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        splitter = QSplitter(Qt.Orientation.Horizontal)

        # Left panel - Operation palette
        self.palette = OperationPalette()
        self.palette.setStyleSheet("""
            QWidget {
                background: white;
            }
        """)
        splitter.addWidget(self.palette)

        # Center - Whiteboard canvas
        self.canvas = WhiteboardCanvas(self.session)
        splitter.addWidget(self.canvas)

        # Right panel - Properties
        self.properties_panel = ProtocolPropertiesPanel()
        self.properties_panel.setStyleSheet("""
            QWidget {
                background: white;
            }
        """)
        self.properties_panel.set_session(self.session)
        splitter.addWidget(self.properties_panel)

        splitter.setSizes([260, 840, 300])
        splitter.setStretchFactor(0, 0)
        splitter.setStretchFactor(1, 1)
        splitter.setStretchFactor(2, 0)

        layout.addWidget(splitter)

    def _setup_status_bar(self):
        """Create status bar."""
        status = QStatusBar()
        status.setStyleSheet("""
            QStatusBar {
                background: #F9FAFB;
                border-top: 1px solid #E5E7EB;
                padding: 4px 8px;
                color: #6B7280;
                font-size: 12px;
            }
        """)
        self.setStatusBar(status)

        self._count_label = QLabel("Steps: 0  Shapes: 0")
        status.addWidget(self._count_label)

        self._cycle_label = QLabel("")
        self._cycle_label.setStyleSheet("color: #B45309;")
        status.addWidget(self._cycle_label)

        status.addWidget(QWidget(), 1)

        self._instruction_label = QLabel(
            "Double-click to edit text • Shift-click to multi-select • Ctrl+scroll to zoom"
        )
        status.addWidget(self._instruction_label)

    def _connect_signals(self):
        """Connect all signals."""
        # Toolbar -> Canvas
        self.toolbar.toolSelected.connect(self.canvas.set_tool)
        self.toolbar.snap_btn.clicked.connect(self._on_toggle_snap)
        self.toolbar.zoom_in_btn.clicked.connect(self.canvas.zoom_in)
        self.toolbar.zoom_out_btn.clicked.connect(self.canvas.zoom_out)
        self.toolbar.export_btn.clicked.connect(self._on_export_protocol)

        # Palette -> Canvas
        self.palette.operationSelected.connect(self._on_operation_selected)

        # Canvas -> Panels and status bar
        self.canvas.shapesChanged.connect(self._on_shapes_changed)
        self.canvas.selectionChanged.connect(self.properties_panel.refresh)
        self.canvas.zoomChanged.connect(self.toolbar.set_zoom)

        # Property changes -> Canvas repaint
        self.properties_panel.operationChanged.connect(lambda _: self.canvas.update())
        self.properties_panel.styleChanged.connect(self.canvas.update)

    def _apply_ui_settings(self):
        ui = self.settings_manager.settings.ui
        self.canvas.show_grid = ui.show_grid
        self.canvas.show_step_numbers = ui.show_step_numbers
        self._grid_action.setChecked(ui.show_grid)
        self._steps_action.setChecked(ui.show_step_numbers)
        self._snap_action.setChecked(self.session.snapper.enabled)
        self.toolbar.snap_btn.setChecked(self.session.snapper.enabled)

    # -------------------------------------------------------------------------
    # Canvas feedback
    # -------------------------------------------------------------------------

    def _on_shapes_changed(self):
        self.toolbar.set_active_tool(self.session.tool)
        self._update_counts()

    def _update_counts(self):
        store = self.session.store
        self._count_label.setText(f"Steps: {len(store.protocol_nodes)}  Shapes: {len(store)}")
        numbering = self.session.step_numbering()
        if numbering.has_cycle:
            self._cycle_label.setText(f"  ⚠ Cycle between {len(numbering.cyclic_node_ids)} step(s)")
        else:
            self._cycle_label.setText("")

    def _on_operation_selected(self, op_type: str):
        self.canvas.add_operation_at_center(op_type)
        self.canvas.setFocus()

    def _run_command(self, command) -> bool:
        """Run a controller command and repaint."""
        changed = bool(command())
        if changed:
            self.canvas.refresh()
        return changed

    def _on_delete_selected(self):
        self._run_command(self.session.controller.delete_selected)

    def _on_select_all(self):
        self.session.select_all()
        self.canvas.refresh()

    def _on_duplicate(self):
        self._run_command(self.session.controller.duplicate_selected)

    def _on_group(self):
        if not self._run_command(self.session.controller.group_selected):
            self.statusBar().showMessage("Select at least two unlocked shapes to group", 2000)

    def _on_ungroup(self):
        self._run_command(self.session.controller.ungroup_selected)

    def _on_toggle_lock(self):
        self._run_command(self.session.toggle_lock)

    def _on_bring_to_front(self):
        self._run_command(self.session.controller.bring_to_front)

    def _on_send_to_back(self):
        self._run_command(self.session.controller.send_to_back)

    def _on_toggle_snap(self):
        enabled = self.session.snapper.toggle()
        self.settings_manager.snap_to_grid = enabled
        self._snap_action.setChecked(enabled)
        self.toolbar.snap_btn.setChecked(enabled)
        self.statusBar().showMessage(f"Snap to grid {'on' if enabled else 'off'}", 2000)

    def _on_toggle_grid(self, checked: bool):
        self.settings_manager.settings.ui.show_grid = checked
        self.settings_manager.save()
        self.canvas.show_grid = checked
        self.canvas.update()

    def _on_toggle_step_numbers(self, checked: bool):
        self.settings_manager.settings.ui.show_step_numbers = checked
        self.settings_manager.save()
        self.canvas.show_step_numbers = checked
        self.canvas.update()

    # -------------------------------------------------------------------------
    # Whiteboard persistence
    # -------------------------------------------------------------------------

    def _on_new_whiteboard(self):
        """Start an empty whiteboard."""
        if len(self.session.store) > 0:
            reply = QMessageBox.question(
                self,
                "New Whiteboard",
                "Discard the current whiteboard and start a new one?",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No
            )
            if reply != QMessageBox.StandardButton.Yes:
                return

        self.session.load_shapes([])
        self.session.whiteboard_id = None
        self.session.name = None
        self.canvas.refresh()
        self._update_window_title()
        self.statusBar().showMessage("New whiteboard created", 2000)

    def _on_open_whiteboard(self):
        dialog = OpenWhiteboardDialog(self.repository, self)
        if not dialog.exec() or dialog.selected_id is None:
            return

        try:
            record = self.repository.load(dialog.selected_id)
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Failed to open whiteboard {dialog.selected_id}: {e}")
            QMessageBox.critical(self, "Error", f"Failed to open whiteboard:\n{e}")
            return

        self.session.load_shapes(record.shapes)
        self.session.whiteboard_id = record.id
        self.session.name = record.name
        self.canvas.refresh()
        self._update_window_title()
        self.statusBar().showMessage(f"Opened {record.name}", 2000)

    def _on_save_whiteboard(self):
        if self.session.name is None and not self._prompt_for_name():
            return

        result = self.session.save()
        if result.ok:
            self._update_window_title()
            self.statusBar().showMessage(f"Saved {self.session.name}", 2000)
        else:
            QMessageBox.critical(self, "Error", f"Failed to save whiteboard:\n{result.error}")

    def _on_rename_whiteboard(self):
        if self._prompt_for_name():
            self._update_window_title()

    def _prompt_for_name(self) -> bool:
        name, ok = QInputDialog.getText(
            self, "Whiteboard Name", "Name:", text=self.session.name or "Untitled whiteboard"
        )
        name = name.strip()
        if not ok or not name:
            return False
        self.session.name = name
        return True

    # -------------------------------------------------------------------------
    # Protocol import / export
    # -------------------------------------------------------------------------

    def _on_export_protocol(self):
        """Export protocol steps and their connections as JSON."""
        try:
            document = self.session.export_protocol()
        except ProtocolExportError as e:
            QMessageBox.warning(self, "Cannot Export", str(e))
            return

        default_dir = self.settings_manager.get_export_directory()
        default_name = protocol_filename(document.metadata.name)
        filepath, _ = QFileDialog.getSaveFileName(
            self,
            "Export Protocol",
            str(Path(default_dir) / default_name) if default_dir else default_name,
            "Protocol Files (*.json);;All Files (*)"
        )
        if not filepath:
            return
        if not filepath.endswith('.json'):
            filepath += '.json'

        try:
            save_protocol_file(document, filepath)
        except OSError as e:
            QMessageBox.critical(self, "Error", f"Failed to write protocol:\n{e}")
            return

        self.settings_manager.set_export_directory(filepath)
        self.settings_manager.add_recent_file(filepath)
        self.statusBar().showMessage(f"Exported to {Path(filepath).name}", 2000)

    def _on_import_protocol(self):
        dialog = ImportProtocolDialog(self.settings_manager, parent=self)
        if not dialog.exec() or dialog.document is None:
            return
        if self._apply_import(lambda: self.session.import_protocol(dialog.document)):
            self.settings_manager.add_recent_file(dialog.filepath)

    def _populate_recent_menu(self):
        self._recent_menu.clear()
        recent = self.settings_manager.get_recent_files()
        if not recent:
            empty = self._recent_menu.addAction("(none)")
            empty.setEnabled(False)
            return
        for filepath in recent:
            action = self._recent_menu.addAction(Path(filepath).name)
            action.setToolTip(filepath)
            action.triggered.connect(lambda _, p=filepath: self._import_recent(p))

    def _import_recent(self, filepath: str):
        reply = QMessageBox.question(
            self,
            "Import Protocol",
            f"Replace the canvas with {Path(filepath).name}?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No
        )
        if reply == QMessageBox.StandardButton.Yes:
            self.open_protocol(filepath)

    def open_protocol(self, filepath: str) -> bool:
        """Replace the canvas with a protocol file and remember it."""
        if not self._apply_import(lambda: self.session.import_protocol_file(filepath)):
            return False
        self.settings_manager.add_recent_file(filepath)
        return True

    def _apply_import(self, do_import) -> bool:
        try:
            do_import()
        except (ProtocolImportError, OSError) as e:
            QMessageBox.warning(self, "Import Failed", str(e))
            return False
        self.canvas.refresh()
        self.statusBar().showMessage(
            f"Imported {len(self.session.store.protocol_nodes)} protocol step(s)", 2000
        )
        return True

    def _on_about(self):
        """Show about dialog."""
        QMessageBox.about(
            self,
            "About Protocol Whiteboard",
            "<h3>Protocol Whiteboard</h3>"
            "<p>An interactive whiteboard for designing lab protocols.</p>"
            "<p><b>Features:</b></p>"
            "<ul>"
            "<li>Free-form shapes, text and connectors</li>"
            "<li>Unit operation steps with parameters</li>"
            "<li>Automatic step numbering with parallel steps</li>"
            "<li>Protocol JSON export and import</li>"
            "</ul>"
            f"<p><b>Workspace:</b> {self.repository.directory}</p>"
        )
