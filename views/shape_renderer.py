"""
Shape Renderer.

Paints whiteboard shapes with QPainter. Used by the canvas and by the
operation palette drag previews.

All coordinates passed in are canvas coordinates; the caller sets up
the pan/zoom transform on the painter.
"""

import math
from typing import List, Optional

from PyQt6.QtCore import Qt, QRectF, QPointF
from PyQt6.QtGui import (
    QPainter, QColor, QPen, QBrush, QFont, QPainterPath, QPolygonF,
)

from models import (
    Bounds, LineStyle, MarkerType, Point, Shape, ShapeType,
    TextAlign, VerticalAlign, get_operation_definition, operation_summary,
)
from services.interaction import handle_positions


PEN_STYLES = {
    LineStyle.SOLID: Qt.PenStyle.SolidLine,
    LineStyle.DASHED: Qt.PenStyle.DashLine,
    LineStyle.DOTTED: Qt.PenStyle.DotLine,
}

H_ALIGN = {
    TextAlign.LEFT: Qt.AlignmentFlag.AlignLeft,
    TextAlign.CENTER: Qt.AlignmentFlag.AlignHCenter,
    TextAlign.RIGHT: Qt.AlignmentFlag.AlignRight,
}

V_ALIGN = {
    VerticalAlign.TOP: Qt.AlignmentFlag.AlignTop,
    VerticalAlign.MIDDLE: Qt.AlignmentFlag.AlignVCenter,
    VerticalAlign.BOTTOM: Qt.AlignmentFlag.AlignBottom,
}


def _text_flags(*flags) -> int:
    # AlignmentFlag and TextFlag are separate enums; drawText takes their int union
    value = 0
    for flag in flags:
        value |= flag.value
    return value


def _color(value: str) -> QColor:
    if value in ("none", "transparent", ""):
        return QColor(0, 0, 0, 0)
    return QColor(value)


def to_qrect(bounds: Bounds) -> QRectF:
    return QRectF(bounds.x, bounds.y, bounds.width, bounds.height)


def to_qpoint(point: Point) -> QPointF:
    return QPointF(point.x, point.y)


class ShapeRenderer:
    """Static helpers for painting Shape objects."""

    SELECTION_COLOR = QColor("#3B82F6")
    LOCKED_COLOR = QColor("#9CA3AF")
    HANDLE_SIZE = 8

    @staticmethod
    def render(painter: QPainter, shape: Shape, step: Optional[int] = None):
        painter.save()

        style = shape.style
        pen = QPen(_color(style.stroke), style.stroke_width)
        pen.setStyle(PEN_STYLES[style.line_style])
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        painter.setPen(pen)
        painter.setBrush(QBrush(_color(style.fill)))

        if shape.is_connector:
            ShapeRenderer._render_connector(painter, shape)
        elif shape.is_protocol_node:
            ShapeRenderer._render_protocol_node(painter, shape, step)
        else:
            rect = to_qrect(shape.bounds())
            path = ShapeRenderer.outline_path(shape.shape_type, rect)
            painter.drawPath(path)
            if shape.text:
                ShapeRenderer._draw_text(painter, shape, rect.adjusted(6, 4, -6, -4))

        painter.restore()

    @staticmethod
    def outline_path(shape_type: ShapeType, rect: QRectF) -> QPainterPath:
        """Closed outline for basic shapes, text boxes and assets."""
        path = QPainterPath()
        cx, cy = rect.center().x(), rect.center().y()
        w, h = rect.width(), rect.height()

        if shape_type == ShapeType.CIRCLE:
            path.addEllipse(rect)
        elif shape_type == ShapeType.TRIANGLE:
            path.addPolygon(QPolygonF([
                QPointF(cx, rect.top()), rect.bottomRight(), rect.bottomLeft(),
            ]))
            path.closeSubpath()
        elif shape_type == ShapeType.DIAMOND:
            path.addPolygon(QPolygonF([
                QPointF(cx, rect.top()), QPointF(rect.right(), cy),
                QPointF(cx, rect.bottom()), QPointF(rect.left(), cy),
            ]))
            path.closeSubpath()
        elif shape_type == ShapeType.HEXAGON:
            inset = w * 0.25
            path.addPolygon(QPolygonF([
                QPointF(rect.left() + inset, rect.top()), QPointF(rect.right() - inset, rect.top()),
                QPointF(rect.right(), cy), QPointF(rect.right() - inset, rect.bottom()),
                QPointF(rect.left() + inset, rect.bottom()), QPointF(rect.left(), cy),
            ]))
            path.closeSubpath()
        elif shape_type == ShapeType.STAR:
            points: List[QPointF] = []
            for i in range(10):
                angle = -math.pi / 2 + i * math.pi / 5
                scale = 1.0 if i % 2 == 0 else 0.45
                points.append(QPointF(cx + math.cos(angle) * w / 2 * scale,
                                      cy + math.sin(angle) * h / 2 * scale))
            path.addPolygon(QPolygonF(points))
            path.closeSubpath()
        elif shape_type == ShapeType.ASSET:
            path.addRoundedRect(rect, 8, 8)
        else:
            path.addRect(rect)
        return path

    @staticmethod
    def _render_connector(painter: QPainter, shape: Shape):
        start, end = to_qpoint(shape.start_point), to_qpoint(shape.end_point)
        painter.setBrush(Qt.BrushStyle.NoBrush)

        path = QPainterPath(start)
        if shape.shape_type == ShapeType.ELBOW:
            mid_x = (start.x() + end.x()) / 2
            path.lineTo(mid_x, start.y())
            path.lineTo(mid_x, end.y())
            path.lineTo(end)
            tail_from = QPointF(mid_x, end.y())
            head_from = QPointF(mid_x, start.y())
        elif shape.shape_type == ShapeType.CURVE:
            mid_x = (start.x() + end.x()) / 2
            path.cubicTo(QPointF(mid_x, start.y()), QPointF(mid_x, end.y()), end)
            tail_from = QPointF(mid_x, end.y())
            head_from = QPointF(mid_x, start.y())
        else:
            path.lineTo(end)
            tail_from, head_from = start, end
        painter.drawPath(path)

        ShapeRenderer._draw_marker(painter, shape.end_marker, end, tail_from, shape.style.stroke)
        ShapeRenderer._draw_marker(painter, shape.start_marker, start, head_from, shape.style.stroke)

    @staticmethod
    def _draw_marker(painter: QPainter, marker: MarkerType, tip: QPointF, source: QPointF, color: str):
        if marker == MarkerType.NONE:
            return
        painter.save()
        painter.setBrush(QBrush(_color(color)))
        if marker == MarkerType.CIRCLE:
            painter.drawEllipse(tip, 4, 4)
        else:
            angle = math.atan2(tip.y() - source.y(), tip.x() - source.x())
            size = 10
            left = QPointF(tip.x() - size * math.cos(angle - math.pi / 7),
                           tip.y() - size * math.sin(angle - math.pi / 7))
            right = QPointF(tip.x() - size * math.cos(angle + math.pi / 7),
                            tip.y() - size * math.sin(angle + math.pi / 7))
            painter.drawPolygon(QPolygonF([tip, left, right]))
        painter.restore()

    @staticmethod
    def _render_protocol_node(painter: QPainter, shape: Shape, step: Optional[int]):
        rect = to_qrect(shape.bounds())
        operation = shape.operation
        definition = get_operation_definition(operation.type)
        accent = QColor(definition.color)

        painter.drawRoundedRect(rect, 10, 10)

        # Accent bar along the left edge
        painter.save()
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(accent)
        painter.drawRoundedRect(QRectF(rect.left(), rect.top(), 6, rect.height()), 3, 3)
        painter.restore()

        inner = rect.adjusted(16, 10, -10, -10)
        painter.setPen(QColor("#64748B"))
        small = QFont("SF Pro Display", 8)
        painter.setFont(small)
        header = definition.label.upper()
        if step is not None:
            header = f"STEP {step} · {header}"
        painter.drawText(inner, Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop, header)

        title = QFont("SF Pro Display", 11)
        title.setWeight(QFont.Weight.Bold)
        painter.setFont(title)
        painter.setPen(QColor("#0F172A"))
        painter.drawText(inner.adjusted(0, 18, 0, 0),
                         Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop,
                         operation.label or definition.label)

        summary = operation_summary(operation)
        details = [summary] if summary else []
        if operation.objects:
            details.append(", ".join(operation.objects))
        if operation.metadata.get("equipment"):
            details.append(f"Equipment: {operation.metadata['equipment']}")
        if details:
            painter.setFont(small)
            painter.setPen(QColor("#475569"))
            painter.drawText(inner.adjusted(0, 42, 0, 0),
                             _text_flags(Qt.AlignmentFlag.AlignLeft, Qt.AlignmentFlag.AlignTop, Qt.TextFlag.TextWordWrap),
                             "\n".join(details))

    @staticmethod
    def _draw_text(painter: QPainter, shape: Shape, rect: QRectF):
        style = shape.style
        font = QFont("SF Pro Display")
        font.setPixelSize(max(1, style.font_size))
        font.setBold(style.bold)
        font.setItalic(style.italic)
        font.setUnderline(style.underline)
        painter.setFont(font)
        text_color = style.stroke if style.stroke not in ("none", "transparent") else "#1e293b"
        painter.setPen(QColor(text_color))
        flags = _text_flags(H_ALIGN[style.text_align], V_ALIGN[style.text_align_vertical], Qt.TextFlag.TextWordWrap)
        painter.drawText(rect, flags, shape.text)

    @staticmethod
    def render_selection(painter: QPainter, shape: Shape, show_handles: bool, scale: float):
        """Selection outline, plus corner handles for a single selected shape."""
        painter.save()
        color = ShapeRenderer.LOCKED_COLOR if shape.locked else ShapeRenderer.SELECTION_COLOR
        pen = QPen(color, 1.0 / scale)
        pen.setStyle(Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(to_qrect(shape.bounds().expanded(4)))

        if show_handles and not shape.locked:
            size = ShapeRenderer.HANDLE_SIZE / scale
            painter.setPen(QPen(color, 1.0 / scale))
            painter.setBrush(QColor("white"))
            for corner in handle_positions(shape).values():
                painter.drawRect(QRectF(corner.x - size / 2, corner.y - size / 2, size, size))
        painter.restore()
