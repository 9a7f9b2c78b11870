"""
Protocol Import Dialog.

Lets the user pick a protocol file and optional free-text context, runs
the import collaborator and previews the result before the canvas is
replaced.
"""

from pathlib import Path
from typing import Optional

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QFormLayout,
    QLabel, QLineEdit, QPushButton, QFileDialog,
    QGroupBox, QPlainTextEdit, QDialogButtonBox, QMessageBox,
)

from models import ProtocolDocument
from services import ProtocolImportError, load_protocol_file
from services.protocol_serializer import ProtocolImporter
from services.settings_manager import SettingsManager


class ImportProtocolDialog(QDialog):
    """
    Dialog for importing a protocol document.

    Allows user to:
    1. Select a protocol file
    2. Add context for the importer
    3. Preview the node and connection counts before importing
    """

    def __init__(self, settings_manager: SettingsManager,
                 importer: ProtocolImporter = load_protocol_file, parent=None):
        super().__init__(parent)
        self.settings = settings_manager
        self.importer = importer
        self.document: Optional[ProtocolDocument] = None
        self._setup_ui()

    def _setup_ui(self):
        """Set up the dialog UI."""
        self.setWindowTitle("Import Protocol")
        self.setMinimumSize(520, 420)

        layout = QVBoxLayout(self)

        # File selection
        file_group = QGroupBox("Protocol File")
        file_layout = QHBoxLayout(file_group)

        self._file_edit = QLineEdit()
        self._file_edit.setPlaceholderText("Select a protocol JSON file...")
        self._file_edit.textChanged.connect(self._on_file_changed)
        file_layout.addWidget(self._file_edit)

        browse_btn = QPushButton("Browse...")
        browse_btn.clicked.connect(self._on_browse)
        file_layout.addWidget(browse_btn)

        layout.addWidget(file_group)

        # Context for the importer
        context_group = QGroupBox("Context (optional)")
        context_layout = QVBoxLayout(context_group)
        self._context_edit = QPlainTextEdit()
        self._context_edit.setPlaceholderText("Notes passed along with the file, e.g. lab or instrument details")
        self._context_edit.setMaximumHeight(100)
        self._context_edit.textChanged.connect(self._on_context_changed)
        context_layout.addWidget(self._context_edit)
        layout.addWidget(context_group)

        # Preview
        preview_group = QGroupBox("Preview")
        preview_layout = QFormLayout(preview_group)
        self._name_label = QLabel("-")
        preview_layout.addRow("Name:", self._name_label)
        self._nodes_label = QLabel("-")
        preview_layout.addRow("Steps:", self._nodes_label)
        self._connections_label = QLabel("-")
        preview_layout.addRow("Connections:", self._connections_label)

        self._preview_btn = QPushButton("Preview")
        self._preview_btn.setEnabled(False)
        self._preview_btn.clicked.connect(self._on_preview)
        preview_layout.addRow("", self._preview_btn)
        layout.addWidget(preview_group)

        warning = QLabel("Importing replaces everything currently on the canvas.")
        warning.setStyleSheet("color: #B45309; font-size: 12px;")
        layout.addWidget(warning)

        layout.addStretch()

        self._buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        self._buttons.button(QDialogButtonBox.StandardButton.Ok).setText("Import")
        self._buttons.button(QDialogButtonBox.StandardButton.Ok).setEnabled(False)
        self._buttons.accepted.connect(self._on_accept)
        self._buttons.rejected.connect(self.reject)
        layout.addWidget(self._buttons)

    @property
    def filepath(self) -> str:
        return self._file_edit.text().strip()

    @property
    def context(self) -> str:
        return self._context_edit.toPlainText().strip()

    def _on_browse(self):
        filepath, _ = QFileDialog.getOpenFileName(
            self,
            "Open Protocol",
            self.settings.get_open_directory(),
            "Protocol Files (*.json);;All Files (*)"
        )
        if filepath:
            self.settings.set_open_directory(str(Path(filepath).parent))
            self._file_edit.setText(filepath)

    def _on_file_changed(self, text: str):
        has_file = bool(text.strip())
        self.document = None
        self._preview_btn.setEnabled(has_file)
        self._buttons.button(QDialogButtonBox.StandardButton.Ok).setEnabled(has_file)
        self._name_label.setText("-")
        self._nodes_label.setText("-")
        self._connections_label.setText("-")

    def _on_context_changed(self):
        self.document = None

    def _run_importer(self) -> bool:
        try:
            self.document = self.importer(self.filepath, self.context)
        except (ProtocolImportError, OSError) as e:
            self.document = None
            QMessageBox.warning(self, "Import Failed", str(e))
            return False

        metadata = self.document.metadata
        self._name_label.setText(metadata.name or "-")
        self._nodes_label.setText(str(len(self.document.nodes)))
        self._connections_label.setText(str(len(self.document.connections)))
        return True

    def _on_preview(self):
        self._run_importer()

    def _on_accept(self):
        if self.document is None and not self._run_importer():
            return
        self.accept()
