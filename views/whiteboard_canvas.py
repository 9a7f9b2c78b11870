"""
Whiteboard canvas widget.

Translates Qt input into interaction events for the editor session and
paints the session's shapes. The widget holds no editing state of its
own beyond the inline text editor.
"""

from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import (
    QPainter, QColor, QPen, QMouseEvent, QWheelEvent, QKeyEvent,
    QDragEnterEvent, QDropEvent,
)
from PyQt6.QtWidgets import QWidget, QPlainTextEdit

from models import Point
from services import (
    DROP_MIME_TYPE, DropKind, DropPayload, EditorSession, InteractionMode, Key, MouseButton, Tool,
    PointerDown, PointerMove, PointerUp, DoubleClick, KeyPress, TextCommit,
    Wheel, Drop,
)
from .shape_renderer import ShapeRenderer, to_qrect


# Colors
COLORS = {
    "background": QColor("#F8FAFC"),
    "grid": QColor("#E2E8F0"),
    "marquee_fill": QColor(59, 130, 246, 30),
    "marquee_border": QColor("#3B82F6"),
}

QT_KEYS = {
    Qt.Key.Key_Left.value: Key.LEFT,
    Qt.Key.Key_Right.value: Key.RIGHT,
    Qt.Key.Key_Up.value: Key.UP,
    Qt.Key.Key_Down.value: Key.DOWN,
    Qt.Key.Key_Delete.value: Key.DELETE,
    Qt.Key.Key_Backspace.value: Key.BACKSPACE,
    Qt.Key.Key_Return.value: Key.ENTER,
    Qt.Key.Key_Enter.value: Key.ENTER,
    Qt.Key.Key_Escape.value: Key.ESCAPE,
    Qt.Key.Key_BracketRight.value: Key.BRACKET_RIGHT,
    Qt.Key.Key_BracketLeft.value: Key.BRACKET_LEFT,
}

QT_BUTTONS = {
    Qt.MouseButton.LeftButton: MouseButton.LEFT,
    Qt.MouseButton.MiddleButton: MouseButton.MIDDLE,
    Qt.MouseButton.RightButton: MouseButton.RIGHT,
}


def _point(pos) -> Point:
    return Point(pos.x(), pos.y())


def _key_name(event: QKeyEvent) -> Optional[str]:
    key = event.key()
    if key in QT_KEYS:
        return QT_KEYS[key]
    if Qt.Key.Key_A.value <= key <= Qt.Key.Key_Z.value:
        return chr(key).lower()
    return None


def _has_ctrl(modifiers) -> bool:
    return bool(modifiers & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier))


class InlineTextEditor(QPlainTextEdit):
    """Multi-line editor placed over the shape being edited."""

    commitRequested = pyqtSignal()
    cancelRequested = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFrameStyle(0)
        self.setStyleSheet("""
            QPlainTextEdit {
                background: rgba(255, 255, 255, 230);
                border: 1px solid #3B82F6;
                border-radius: 4px;
                color: #1E293B;
                font-size: 13px;
            }
        """)

    def keyPressEvent(self, event: QKeyEvent):
        if event.key() in (Qt.Key.Key_Return.value, Qt.Key.Key_Enter.value):
            if event.modifiers() & Qt.KeyboardModifier.ShiftModifier:
                super().keyPressEvent(event)
            else:
                self.commitRequested.emit()
            return
        if event.key() == Qt.Key.Key_Escape.value:
            self.cancelRequested.emit()
            return
        super().keyPressEvent(event)

    def focusOutEvent(self, event):
        super().focusOutEvent(event)
        if self.isVisible():
            self.commitRequested.emit()


class WhiteboardCanvas(QWidget):
    """
    Infinite whiteboard surface for one EditorSession.

    Emits shapesChanged after any event that modified the canvas,
    selectionChanged when the selected ids change and zoomChanged with
    the new zoom percentage.
    """

    shapesChanged = pyqtSignal()
    selectionChanged = pyqtSignal()
    zoomChanged = pyqtSignal(int)

    def __init__(self, session: EditorSession, parent=None):
        super().__init__(parent)
        self.session = session
        self.show_grid = True
        self.show_step_numbers = True

        self.setAcceptDrops(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(400, 300)

        self._editor = InlineTextEditor(self)
        self._editor.hide()
        self._editor.textChanged.connect(self._on_editor_text_changed)
        self._editor.commitRequested.connect(lambda: self._dispatch(TextCommit()))
        self._editor.cancelRequested.connect(lambda: self._dispatch(KeyPress(Key.ESCAPE)))

        self._update_cursor()

    def set_session(self, session: EditorSession):
        self._editor.hide()
        self.session = session
        self._update_cursor()
        self.refresh()

    def refresh(self):
        """Repaint after the session was changed from outside the canvas."""
        self._sync_editor()
        self.update()
        self.shapesChanged.emit()
        self.selectionChanged.emit()
        self.zoomChanged.emit(self.session.viewport.zoom_percent)

    # -------------------------------------------------------------------------
    # Event dispatch
    # -------------------------------------------------------------------------

    def _dispatch(self, event) -> bool:
        selected_before = self.session.selection.ids
        zoom_before = self.session.viewport.scale

        changed = self.session.handle(event)
        if changed:
            self._sync_editor()
            self.update()
            self.shapesChanged.emit()
        if self.session.selection.ids != selected_before:
            self.selectionChanged.emit()
        if self.session.viewport.scale != zoom_before:
            self.zoomChanged.emit(self.session.viewport.zoom_percent)
        if not isinstance(event, (PointerMove, Wheel)):
            self._update_cursor()
        return changed

    def set_tool(self, tool: Tool):
        self.session.set_tool(tool)
        self._update_cursor()

    def zoom_in(self):
        self.session.viewport.zoom_in()
        self._after_view_change()

    def zoom_out(self):
        self.session.viewport.zoom_out()
        self._after_view_change()

    def reset_view(self):
        self.session.viewport.reset()
        self._after_view_change()

    def _after_view_change(self):
        self._sync_editor()
        self.update()
        self.zoomChanged.emit(self.session.viewport.zoom_percent)

    def _update_cursor(self):
        controller = self.session.controller
        if controller.mode == InteractionMode.PANNING:
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
        elif controller.tool == Tool.HAND:
            self.setCursor(Qt.CursorShape.OpenHandCursor)
        elif controller.tool.is_drawing:
            self.setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.setCursor(Qt.CursorShape.ArrowCursor)

    # -------------------------------------------------------------------------
    # Qt input
    # -------------------------------------------------------------------------

    def mousePressEvent(self, event: QMouseEvent):
        button = QT_BUTTONS.get(event.button())
        if button is None:
            super().mousePressEvent(event)
            return
        self.setFocus()
        shift = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
        self._dispatch(PointerDown(_point(event.position()), button, shift))
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent):
        self._dispatch(PointerMove(_point(event.position())))
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent):
        self._dispatch(PointerUp(_point(event.position())))
        event.accept()

    def mouseDoubleClickEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self._dispatch(DoubleClick(_point(event.position())))
        event.accept()

    def wheelEvent(self, event: QWheelEvent):
        # Qt reports wheel-up as positive; the controller expects scroll-down positive
        delta = event.pixelDelta()
        if delta.isNull():
            delta = event.angleDelta()
        self._dispatch(Wheel(-delta.x(), -delta.y(), _has_ctrl(event.modifiers())))
        event.accept()

    def keyPressEvent(self, event: QKeyEvent):
        key = _key_name(event)
        if key is None:
            super().keyPressEvent(event)
            return
        modifiers = event.modifiers()
        handled = self._dispatch(KeyPress(
            key,
            shift=bool(modifiers & Qt.KeyboardModifier.ShiftModifier),
            ctrl=_has_ctrl(modifiers),
        ))
        if handled:
            event.accept()
        else:
            super().keyPressEvent(event)

    def dragEnterEvent(self, event: QDragEnterEvent):
        if event.mimeData().hasFormat(DROP_MIME_TYPE):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if event.mimeData().hasFormat(DROP_MIME_TYPE):
            event.acceptProposedAction()

    def dropEvent(self, event: QDropEvent):
        data = bytes(event.mimeData().data(DROP_MIME_TYPE))
        if self._dispatch(Drop(_point(event.position()), data)):
            event.acceptProposedAction()
        else:
            event.ignore()

    # -------------------------------------------------------------------------
    # Inline text editing
    # -------------------------------------------------------------------------

    def _sync_editor(self):
        editing = self.session.controller.editing
        if editing is None:
            if self._editor.isVisible():
                self._editor.hide()
                self.setFocus()
            return

        shape = self.session.store.get(editing.shape_id)
        if shape is None:
            self.session.controller.cancel_text_edit()
            self._editor.hide()
            return

        viewport = self.session.viewport
        bounds = shape.bounds()
        top_left = viewport.canvas_to_screen(Point(bounds.x, bounds.y))
        self._editor.setGeometry(
            int(top_left.x), int(top_left.y),
            max(80, int(bounds.width * viewport.scale)),
            max(32, int(bounds.height * viewport.scale)),
        )
        if not self._editor.isVisible():
            self._editor.blockSignals(True)
            self._editor.setPlainText(editing.text)
            self._editor.blockSignals(False)
            self._editor.show()
            self._editor.setFocus()
            self._editor.selectAll()

    def _on_editor_text_changed(self):
        self.session.controller.set_edit_text(self._editor.toPlainText())

    # -------------------------------------------------------------------------
    # Painting
    # -------------------------------------------------------------------------

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), COLORS["background"])

        viewport = self.session.viewport
        if self.show_grid:
            self._draw_grid(painter)

        painter.translate(viewport.pan.x, viewport.pan.y)
        painter.scale(viewport.scale, viewport.scale)

        steps = self.session.step_numbers() if self.show_step_numbers else {}
        for shape in self.session.shapes:
            ShapeRenderer.render(painter, shape, steps.get(shape.id))

        selected = self.session.selection.shapes()
        for shape in selected:
            ShapeRenderer.render_selection(painter, shape, len(selected) == 1, viewport.scale)

        marquee = self.session.controller.marquee
        if marquee is not None:
            pen = QPen(COLORS["marquee_border"], 1.0 / viewport.scale)
            pen.setStyle(Qt.PenStyle.DashLine)
            painter.setPen(pen)
            painter.setBrush(COLORS["marquee_fill"])
            painter.drawRect(to_qrect(marquee))

        painter.end()

    def _draw_grid(self, painter: QPainter):
        """Dot grid in screen space, following pan and zoom."""
        viewport = self.session.viewport
        step = self.session.snapper.grid_size * viewport.scale
        if step < 6:
            return

        painter.save()
        painter.setPen(QPen(COLORS["grid"], 2))
        x = viewport.pan.x % step
        while x < self.width():
            y = viewport.pan.y % step
            while y < self.height():
                painter.drawPoint(int(x), int(y))
                y += step
            x += step
        painter.restore()

    def add_operation_at_center(self, op_type: str) -> bool:
        """Place a protocol node in the middle of the visible area."""
        payload = DropPayload(kind=DropKind.PROTOCOL, id=op_type, operation_type=op_type)
        center = self.rect().center()
        return self._dispatch(Drop(Point(center.x(), center.y()), payload.to_json()))
