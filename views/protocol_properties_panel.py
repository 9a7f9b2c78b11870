"""
Properties panel for the whiteboard selection.

Shows a unit operation editor when a protocol node is selected and a
style editor for every other selection.
"""

from typing import Dict, Optional, Union

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QFont, QColor
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit, QPlainTextEdit,
    QFormLayout, QScrollArea, QFrame, QPushButton, QComboBox, QSpinBox,
    QDoubleSpinBox, QCheckBox, QColorDialog,
)

from models import LineStyle, MarkerType, ProtocolNodeShape, get_operation_definition
from services import EditorSession


def input_style() -> str:
    """Common input widget styling."""
    return """
        QLineEdit, QComboBox, QSpinBox, QDoubleSpinBox, QPlainTextEdit {
            border: 1px solid #D1D5DB;
            border-radius: 6px;
            padding: 2px 4px;
            background: white;
            color: #374151;
            min-height: 20px;
        }
        QLineEdit:focus, QComboBox:focus, QSpinBox:focus, QDoubleSpinBox:focus, QPlainTextEdit:focus {
            border-color: #3B82F6;
            outline: none;
        }
        QCheckBox {
            color: #374151;
            spacing: 8px;
        }
    """


class SectionHeader(QLabel):
    """Styled section header."""

    def __init__(self, text: str, parent=None):
        super().__init__(text, parent)
        font = QFont("SF Pro Display", 11)
        font.setWeight(QFont.Weight.DemiBold)
        self.setFont(font)
        self.setStyleSheet("""
            QLabel {
                color: #374151;
                padding: 2px 0 4px 0;
                border-bottom: 1px solid #E5E7EB;
                margin-top: 8px;
            }
        """)


def parse_parameter(text: str, input_type: str) -> Union[str, int, float, None]:
    """Convert a parameter field's text to the stored value."""
    text = text.strip()
    if not text:
        return None
    if input_type != "number":
        return text
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


class OperationEditor(QWidget):
    """Editor for the unit operation of one protocol node."""

    operationEdited = pyqtSignal()
    parallelGroupEdited = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._shape: Optional[ProtocolNodeShape] = None
        self._updating = False
        self._param_inputs: Dict[str, Union[QLineEdit, QPlainTextEdit]] = {}
        self._setup_ui()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self._type_label = QLabel()
        self._type_label.setStyleSheet("color: #6B7280; font-size: 11px; font-weight: 600;")
        layout.addWidget(self._type_label)

        # === Step ===
        layout.addWidget(SectionHeader("Step"))
        form = QFormLayout()
        form.setContentsMargins(0, 8, 0, 12)
        form.setSpacing(4)
        form.setLabelAlignment(Qt.AlignmentFlag.AlignRight)

        self._label_edit = QLineEdit()
        self._label_edit.setPlaceholderText("Step name")
        self._label_edit.setStyleSheet(input_style())
        self._label_edit.editingFinished.connect(self._on_edited)
        form.addRow("Label:", self._label_edit)

        self._objects_edit = QLineEdit()
        self._objects_edit.setPlaceholderText("Comma separated")
        self._objects_edit.setStyleSheet(input_style())
        self._objects_edit.editingFinished.connect(self._on_edited)
        form.addRow("Objects:", self._objects_edit)

        self._parallel_edit = QLineEdit()
        self._parallel_edit.setPlaceholderText("Group id shared by parallel steps")
        self._parallel_edit.setStyleSheet(input_style())
        self._parallel_edit.editingFinished.connect(self._on_parallel_edited)
        form.addRow("Parallel:", self._parallel_edit)
        layout.addLayout(form)

        # === Parameters (rebuilt per operation type) ===
        layout.addWidget(SectionHeader("Parameters"))
        self._params_form = QFormLayout()
        self._params_form.setContentsMargins(0, 8, 0, 12)
        self._params_form.setSpacing(4)
        self._params_form.setLabelAlignment(Qt.AlignmentFlag.AlignRight)
        layout.addLayout(self._params_form)

        # === Notes ===
        layout.addWidget(SectionHeader("Notes"))
        self._notes_edit = QPlainTextEdit()
        self._notes_edit.setFixedHeight(80)
        self._notes_edit.setStyleSheet(input_style())
        self._notes_edit.textChanged.connect(self._on_edited)
        layout.addWidget(self._notes_edit)

    def set_shape(self, shape: Optional[ProtocolNodeShape]):
        self._shape = shape
        if shape is None:
            return
        self._updating = True
        operation = shape.operation
        definition = get_operation_definition(operation.type)

        self._type_label.setText(definition.label.upper())
        self._label_edit.setText(operation.label)
        self._objects_edit.setText(", ".join(operation.objects))
        self._parallel_edit.setText(shape.parallel_group_id or "")
        self._notes_edit.setPlainText(str(operation.metadata.get("notes", "")))
        self._rebuild_parameter_inputs(definition)

        locked = shape.locked
        for widget in [self._label_edit, self._objects_edit, self._parallel_edit, self._notes_edit,
                       *self._param_inputs.values()]:
            widget.setEnabled(not locked)
        self._updating = False

    def _rebuild_parameter_inputs(self, definition):
        while self._params_form.rowCount():
            self._params_form.removeRow(0)
        self._param_inputs.clear()

        params = self._shape.operation.parameters
        for param in definition.parameter_fields:
            value = params.get(param.key)
            text = "" if value is None else str(value)
            if param.input_type == "textarea":
                widget = QPlainTextEdit(text)
                widget.setFixedHeight(60)
                widget.textChanged.connect(self._on_edited)
            else:
                widget = QLineEdit(text)
                widget.editingFinished.connect(self._on_edited)
            widget.setPlaceholderText(param.placeholder)
            widget.setStyleSheet(input_style())
            self._params_form.addRow(f"{param.label}:", widget)
            self._param_inputs[param.key] = widget

    def build_operation(self):
        """The edited operation, or None when no node is shown."""
        if self._shape is None:
            return None
        operation = self._shape.operation.copy()
        operation.label = self._label_edit.text().strip()
        operation.objects = [o.strip() for o in self._objects_edit.text().split(",") if o.strip()]

        definition = get_operation_definition(operation.type)
        for param in definition.parameter_fields:
            widget = self._param_inputs.get(param.key)
            if widget is None:
                continue
            text = widget.toPlainText() if isinstance(widget, QPlainTextEdit) else widget.text()
            value = parse_parameter(text, param.input_type)
            if value is None:
                operation.parameters.pop(param.key, None)
            else:
                operation.parameters[param.key] = value

        notes = self._notes_edit.toPlainText().strip()
        if notes:
            operation.metadata["notes"] = notes
        else:
            operation.metadata.pop("notes", None)
        return operation

    def _on_edited(self):
        if not self._updating and self._shape is not None:
            self.operationEdited.emit()

    def _on_parallel_edited(self):
        if not self._updating and self._shape is not None:
            self.parallelGroupEdited.emit(self._parallel_edit.text().strip())


class ColorButton(QPushButton):
    """Swatch button that opens a colour picker."""

    colorChanged = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._color = "#ffffff"
        self.setFixedSize(48, 24)
        self.clicked.connect(self._pick)

    def set_color(self, color: str):
        self._color = color
        shown = "transparent" if color in ("none", "transparent") else color
        self.setStyleSheet(f"""
            QPushButton {{
                background: {shown};
                border: 1px solid #D1D5DB;
                border-radius: 4px;
            }}
        """)

    def _pick(self):
        initial = QColor(self._color) if self._color not in ("none", "transparent") else QColor("white")
        color = QColorDialog.getColor(initial, self, "Choose colour")
        if color.isValid():
            self.set_color(color.name())
            self.colorChanged.emit(color.name())


class StyleEditor(QWidget):
    """Style controls applied to every unlocked selected shape."""

    styleEdited = pyqtSignal(dict)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._updating = False
        self._setup_ui()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(SectionHeader("Style"))

        form = QFormLayout()
        form.setContentsMargins(0, 8, 0, 12)
        form.setSpacing(4)
        form.setLabelAlignment(Qt.AlignmentFlag.AlignRight)

        self._fill_btn = ColorButton()
        self._fill_btn.colorChanged.connect(lambda c: self._emit(fill=c))
        form.addRow("Fill:", self._fill_btn)

        self._stroke_btn = ColorButton()
        self._stroke_btn.colorChanged.connect(lambda c: self._emit(stroke=c))
        form.addRow("Stroke:", self._stroke_btn)

        self._width_spin = QDoubleSpinBox()
        self._width_spin.setRange(0.0, 20.0)
        self._width_spin.setSingleStep(0.5)
        self._width_spin.setStyleSheet(input_style())
        self._width_spin.valueChanged.connect(lambda v: self._emit(stroke_width=v))
        form.addRow("Width:", self._width_spin)

        self._line_combo = QComboBox()
        for line_style in LineStyle:
            self._line_combo.addItem(line_style.value.title(), line_style)
        self._line_combo.setStyleSheet(input_style())
        self._line_combo.currentIndexChanged.connect(
            lambda _: self._emit(line_style=self._line_combo.currentData()))
        form.addRow("Line:", self._line_combo)

        self._font_spin = QSpinBox()
        self._font_spin.setRange(6, 96)
        self._font_spin.setStyleSheet(input_style())
        self._font_spin.valueChanged.connect(lambda v: self._emit(font_size=v))
        form.addRow("Font size:", self._font_spin)

        flags = QHBoxLayout()
        self._bold_check = QCheckBox("Bold")
        self._bold_check.toggled.connect(lambda v: self._emit(bold=v))
        self._italic_check = QCheckBox("Italic")
        self._italic_check.toggled.connect(lambda v: self._emit(italic=v))
        self._underline_check = QCheckBox("Underline")
        self._underline_check.toggled.connect(lambda v: self._emit(underline=v))
        for check in (self._bold_check, self._italic_check, self._underline_check):
            check.setStyleSheet(input_style())
            flags.addWidget(check)
        form.addRow("Text:", flags)

        self._end_marker_combo = QComboBox()
        for marker in MarkerType:
            self._end_marker_combo.addItem(marker.value.title(), marker)
        self._end_marker_combo.setStyleSheet(input_style())
        self._end_marker_combo.currentIndexChanged.connect(
            lambda _: self._emit(end_marker=self._end_marker_combo.currentData()))
        form.addRow("End marker:", self._end_marker_combo)

        layout.addLayout(form)

    def set_shape(self, shape):
        """Show the style of the lead selected shape."""
        self._updating = True
        style = shape.style
        self._fill_btn.set_color(style.fill)
        self._stroke_btn.set_color(style.stroke)
        self._width_spin.setValue(style.stroke_width)
        self._line_combo.setCurrentIndex(self._line_combo.findData(style.line_style))
        self._font_spin.setValue(style.font_size)
        self._bold_check.setChecked(style.bold)
        self._italic_check.setChecked(style.italic)
        self._underline_check.setChecked(style.underline)
        self._end_marker_combo.setEnabled(shape.is_connector)
        if shape.is_connector:
            self._end_marker_combo.setCurrentIndex(self._end_marker_combo.findData(shape.end_marker))
        self.setEnabled(not shape.locked)
        self._updating = False

    def _emit(self, **changes):
        if not self._updating:
            self.styleEdited.emit(changes)


class ProtocolPropertiesPanel(QWidget):
    """Right-hand panel that follows the session selection."""

    operationChanged = pyqtSignal(str)  # shape id
    styleChanged = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._session: Optional[EditorSession] = None
        self._setup_ui()

    def _setup_ui(self):
        self.setMinimumWidth(280)
        self.setMaximumWidth(380)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(2, 2, 2, 2)
        layout.setSpacing(0)

        title = QLabel("Properties")
        title_font = QFont("SF Pro Display", 14)
        title_font.setWeight(QFont.Weight.Bold)
        title.setFont(title_font)
        title.setStyleSheet("color: #111827; padding-bottom: 12px;")
        layout.addWidget(title)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.Shape.NoFrame)

        content = QWidget()
        content_layout = QVBoxLayout(content)
        content_layout.setContentsMargins(0, 0, 0, 0)

        self._operation_editor = OperationEditor()
        self._operation_editor.operationEdited.connect(self._on_operation_edited)
        self._operation_editor.parallelGroupEdited.connect(self._on_parallel_group_edited)
        self._operation_editor.hide()
        content_layout.addWidget(self._operation_editor)

        self._style_editor = StyleEditor()
        self._style_editor.styleEdited.connect(self._on_style_edited)
        self._style_editor.hide()
        content_layout.addWidget(self._style_editor)

        self._empty_label = QLabel("Select a shape or protocol step\nto view and edit properties")
        self._empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._empty_label.setStyleSheet("color: #9CA3AF; font-size: 13px; padding: 4px 2px;")
        content_layout.addWidget(self._empty_label)

        content_layout.addStretch()
        scroll.setWidget(content)
        layout.addWidget(scroll)

    def set_session(self, session: EditorSession):
        self._session = session
        self.refresh()

    def refresh(self):
        """Re-read the session selection."""
        self._operation_editor.hide()
        self._style_editor.hide()
        self._empty_label.hide()

        session = self._session
        shapes = session.selection.shapes() if session is not None else []
        if not shapes:
            self._operation_editor.set_shape(None)
            self._empty_label.show()
            return

        node = session.selected_protocol_node()
        if node is not None and len(shapes) == 1:
            self._operation_editor.set_shape(node)
            self._operation_editor.show()
        else:
            self._operation_editor.set_shape(None)
        self._style_editor.set_shape(shapes[0])
        self._style_editor.show()

    def _on_operation_edited(self):
        node = self._session.selected_protocol_node() if self._session else None
        operation = self._operation_editor.build_operation()
        if node is None or operation is None:
            return
        if self._session.update_protocol_operation(node.id, operation):
            self.operationChanged.emit(node.id)

    def _on_parallel_group_edited(self, group_id: str):
        if self._session is None:
            return
        changed = self._session.set_parallel_group(group_id or None)
        for shape_id in changed:
            self.operationChanged.emit(shape_id)

    def _on_style_edited(self, changes: dict):
        if self._session is None:
            return
        if self._session.update_selected_style(**changes):
            self.styleChanged.emit()
