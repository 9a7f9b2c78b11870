"""
Operation palette for adding protocol steps and lab assets to the canvas.

Operations can be clicked to add at the canvas centre; every item can
be dragged onto the canvas.
"""

from PyQt6.QtCore import Qt, pyqtSignal, QMimeData, QPoint
from PyQt6.QtGui import QFont, QColor, QDrag, QPainter, QPixmap
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel,
    QPushButton, QFrame, QScrollArea,
)

from models import OPERATION_DEFINITIONS, OperationDefinition
from services import DROP_MIME_TYPE, DropKind, DropPayload


class DragPayloadButton(QPushButton):
    """A button that starts a whiteboard drag carrying a DropPayload."""

    DRAG_DISTANCE = 10

    def __init__(self, payload: DropPayload, color: str, parent=None):
        super().__init__(parent)
        self.payload = payload
        self.color = color
        self._drag_start_pos = None

    def mousePressEvent(self, event):
        """Start drag on mouse press."""
        if event.button() == Qt.MouseButton.LeftButton:
            self._drag_start_pos = event.pos()
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if not (event.buttons() & Qt.MouseButton.LeftButton) or self._drag_start_pos is None:
            return
        if (event.pos() - self._drag_start_pos).manhattanLength() < self.DRAG_DISTANCE:
            return

        drag = QDrag(self)
        mime_data = QMimeData()
        mime_data.setData(DROP_MIME_TYPE, self.payload.to_json().encode("utf-8"))
        mime_data.setText(self.payload.display_name)
        drag.setMimeData(mime_data)

        pixmap = self._create_drag_pixmap()
        drag.setPixmap(pixmap)
        drag.setHotSpot(QPoint(pixmap.width() // 2, pixmap.height() // 2))

        self._drag_start_pos = None
        drag.exec(Qt.DropAction.CopyAction)

    def _create_drag_pixmap(self) -> QPixmap:
        """Small card preview for the drag."""
        pixmap = QPixmap(120, 48)
        pixmap.fill(Qt.GlobalColor.transparent)

        painter = QPainter(pixmap)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setBrush(QColor("white"))
        painter.setPen(QColor(self.color))
        painter.drawRoundedRect(1, 1, 118, 46, 8, 8)

        painter.setPen(QColor("#0F172A"))
        font = QFont("SF Pro Display", 10)
        font.setWeight(QFont.Weight.Bold)
        painter.setFont(font)
        painter.drawText(pixmap.rect(), Qt.AlignmentFlag.AlignCenter, self.payload.display_name)

        painter.end()
        return pixmap


class OperationButton(DragPayloadButton):
    """
    A button representing one unit operation type.

    Can be clicked to add or dragged onto canvas.
    """

    clicked_with_type = pyqtSignal(str)

    def __init__(self, definition: OperationDefinition, parent=None):
        payload = DropPayload(
            kind=DropKind.PROTOCOL,
            id=definition.type,
            name=definition.label,
            operation_type=definition.type,
        )
        super().__init__(payload, definition.color, parent)
        self.definition = definition
        self._setup_ui()

        self.clicked.connect(lambda: self.clicked_with_type.emit(self.definition.type))

    def _setup_ui(self):
        self.setFixedHeight(56)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setToolTip(self.definition.description)

        self.setStyleSheet(f"""
            QPushButton {{
                background: white;
                border: 2px solid #E5E7EB;
                border-radius: 10px;
                text-align: left;
                padding: 8px 12px;
            }}
            QPushButton:hover {{
                border-color: {self.color};
                background: #F9FAFB;
            }}
            QPushButton:pressed {{
                background: #F3F4F6;
            }}
        """)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 4, 8, 4)
        layout.setSpacing(12)

        # Colour swatch
        swatch = QFrame()
        swatch.setFixedSize(8, 36)
        swatch.setStyleSheet(f"""
            QFrame {{
                background: {self.color};
                border-radius: 4px;
            }}
        """)
        layout.addWidget(swatch)

        text_layout = QVBoxLayout()
        text_layout.setSpacing(2)

        name_label = QLabel(self.definition.label)
        name_label.setStyleSheet("""
            color: #374151;
            font-size: 13px;
            font-weight: 600;
        """)
        text_layout.addWidget(name_label)

        desc_label = QLabel(self.definition.description)
        desc_label.setStyleSheet("""
            color: #9CA3AF;
            font-size: 11px;
        """)
        text_layout.addWidget(desc_label)

        layout.addLayout(text_layout)
        layout.addStretch()


class AssetButton(DragPayloadButton):
    """Drag-only chip for labware and reagent assets."""

    def __init__(self, payload: DropPayload, parent=None):
        super().__init__(payload, "#64748B", parent)
        self.setText(payload.display_name)
        self.setFixedHeight(32)
        self.setCursor(Qt.CursorShape.OpenHandCursor)
        self.setStyleSheet("""
            QPushButton {
                background: #F8FAFC;
                border: 1px solid #E2E8F0;
                border-radius: 6px;
                color: #334155;
                font-size: 12px;
            }
            QPushButton:hover {
                border-color: #94A3B8;
            }
        """)


LAB_ASSETS = [
    DropPayload(kind=DropKind.ASSET, id="tube", name="Tube"),
    DropPayload(kind=DropKind.ASSET, id="plate", name="Well plate"),
    DropPayload(kind=DropKind.ASSET, id="flask", name="Flask"),
    DropPayload(kind=DropKind.ASSET, id="tip-rack", name="Tip rack"),
]


class OperationPalette(QWidget):
    """
    Palette panel containing the unit operation catalog.
    """

    operationSelected = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self):
        self.setMinimumWidth(250)

        outer = QVBoxLayout(self)
        outer.setContentsMargins(0, 0, 0, 0)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.Shape.NoFrame)
        outer.addWidget(scroll)

        content = QWidget()
        scroll.setWidget(content)
        layout = QVBoxLayout(content)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(10)

        title = QLabel("Unit Operations")
        title_font = QFont("SF Pro Display", 14)
        title_font.setWeight(QFont.Weight.Bold)
        title.setFont(title_font)
        title.setStyleSheet("color: #111827;")
        layout.addWidget(title)

        subtitle = QLabel("Click to add or drag onto canvas")
        subtitle.setStyleSheet("color: #6B7280; font-size: 12px; margin-bottom: 8px;")
        layout.addWidget(subtitle)

        for definition in OPERATION_DEFINITIONS:
            btn = OperationButton(definition)
            btn.clicked_with_type.connect(self.operationSelected)
            layout.addWidget(btn)

        assets_title = QLabel("Lab Assets")
        assets_title.setStyleSheet("color: #111827; font-size: 13px; font-weight: 600; margin-top: 12px;")
        layout.addWidget(assets_title)

        for payload in LAB_ASSETS:
            layout.addWidget(AssetButton(payload))

        layout.addStretch()

        help_text = QLabel("Draw arrows between steps\nto set their order")
        help_text.setAlignment(Qt.AlignmentFlag.AlignCenter)
        help_text.setStyleSheet("""
            color: #9CA3AF;
            font-size: 11px;
            padding: 12px;
            background: #F9FAFB;
            border-radius: 6px;
        """)
        layout.addWidget(help_text)
