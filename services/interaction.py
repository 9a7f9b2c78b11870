"""
Interaction controller.

Finite state machine turning pointer, keyboard, wheel and drop events
into mutations of a ShapeStore and SelectionManager. It has no
dependency on Qt: the canvas widget translates its native events into
the small event dataclasses below and calls handle().

Modes:
    NONE -> DRAWING | MOVING | RESIZING | PANNING | SELECTING_AREA -> NONE

Every mode returns to NONE on pointer-up.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Union

from models import (
    BasicShape, Bounds, ConnectorShape, MarkerType, Point, Shape, ShapeStyle,
    ShapeType, TextShape, generate_id,
)

from .drop_handler import apply_drop, parse_drop_payload
from .selection import SelectionManager
from .settings_manager import EditorSettings
from .shape_store import ShapeStore
from .viewport import GridSnapper, Viewport


logger = logging.getLogger(__name__)


# Canvas-space distance from a corner that still grabs the resize handle
HANDLE_HIT_RADIUS = 6.0

TEXT_PLACEHOLDER = "Double click to edit"


class InteractionMode(Enum):
    NONE = auto()
    DRAWING = auto()
    MOVING = auto()
    RESIZING = auto()
    PANNING = auto()
    SELECTING_AREA = auto()


class Tool(Enum):
    """Active toolbar tool. Drawing tools share their ShapeType value."""
    SELECT = "select"
    HAND = "hand"
    RECT = "rect"
    CIRCLE = "circle"
    TRIANGLE = "triangle"
    DIAMOND = "diamond"
    HEXAGON = "hexagon"
    STAR = "star"
    TEXT = "text"
    LINE = "line"
    ARROW = "arrow"
    ELBOW = "elbow"
    CURVE = "curve"

    @property
    def is_drawing(self) -> bool:
        return self not in (Tool.SELECT, Tool.HAND)

    @property
    def shape_type(self) -> Optional[ShapeType]:
        return ShapeType(self.value) if self.is_drawing else None


class ResizeHandle(Enum):
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"


class MouseButton(Enum):
    LEFT = auto()
    MIDDLE = auto()
    RIGHT = auto()


class Key:
    """Key names understood by the controller."""
    LEFT = "ArrowLeft"
    RIGHT = "ArrowRight"
    UP = "ArrowUp"
    DOWN = "ArrowDown"
    DELETE = "Delete"
    BACKSPACE = "Backspace"
    ENTER = "Enter"
    ESCAPE = "Escape"
    BRACKET_RIGHT = "]"
    BRACKET_LEFT = "["


ARROW_KEYS = {
    Key.LEFT: (-1, 0),
    Key.RIGHT: (1, 0),
    Key.UP: (0, -1),
    Key.DOWN: (0, 1),
}


# =============================================================================
# Events (positions are screen coordinates)
# =============================================================================

@dataclass(frozen=True)
class PointerDown:
    position: Point
    button: MouseButton = MouseButton.LEFT
    shift: bool = False


@dataclass(frozen=True)
class PointerMove:
    position: Point


@dataclass(frozen=True)
class PointerUp:
    position: Optional[Point] = None


@dataclass(frozen=True)
class DoubleClick:
    position: Point


@dataclass(frozen=True)
class KeyPress:
    key: str
    shift: bool = False
    ctrl: bool = False  # ctrl or meta


@dataclass(frozen=True)
class TextCommit:
    """Commit the open text edit (blur or Enter); None keeps the edit buffer."""
    text: Optional[str] = None


@dataclass(frozen=True)
class Wheel:
    delta_x: float
    delta_y: float
    ctrl: bool = False


@dataclass(frozen=True)
class Drop:
    position: Point
    data: Union[str, bytes, None]


Event = Union[PointerDown, PointerMove, PointerUp, DoubleClick, KeyPress, TextCommit, Wheel, Drop]


@dataclass
class TextEdit:
    shape_id: str
    text: str


def new_drawn_shape(tool: Tool, pos: Point) -> Shape:
    """Zero-size shape for a drawing tool, anchored at pos."""
    shape_type = tool.shape_type
    if shape_type is None:
        raise ValueError(f"Tool '{tool.value}' does not draw shapes")

    if shape_type == ShapeType.TEXT:
        return TextShape(
            x=pos.x, y=pos.y, width=160, height=40,
            style=ShapeStyle(fill="transparent", stroke="transparent"),
            text=TEXT_PLACEHOLDER,
        )
    if shape_type.is_connector:
        return ConnectorShape(
            shape_type=shape_type,
            x=pos.x, y=pos.y,
            style=ShapeStyle(fill="none"),
            end_marker=MarkerType.NONE if shape_type == ShapeType.LINE else MarkerType.ARROW,
        )
    return BasicShape(shape_type=shape_type, x=pos.x, y=pos.y)


def resize_geometry(shape: Shape, handle: ResizeHandle, pos: Point):
    """New (x, y, width, height) with the corner at handle following pos."""
    x, y, w, h = shape.x, shape.y, shape.width, shape.height
    if handle == ResizeHandle.SE:
        w, h = pos.x - x, pos.y - y
    elif handle == ResizeHandle.SW:
        w, x, h = (x + w) - pos.x, pos.x, pos.y - y
    elif handle == ResizeHandle.NE:
        h, y, w = (y + h) - pos.y, pos.y, pos.x - x
    elif handle == ResizeHandle.NW:
        right, bottom = x + w, y + h
        x, y = pos.x, pos.y
        w, h = right - x, bottom - y
    return x, y, w, h


def handle_positions(shape: Shape) -> Dict[ResizeHandle, Point]:
    """
    Corner handle positions.

    Connectors use their raw corners so NW/SE are the start/end points;
    other shapes use their normalized bounds.
    """
    if shape.is_connector:
        x, y, w, h = shape.x, shape.y, shape.width, shape.height
    else:
        b = shape.bounds()
        x, y, w, h = b.x, b.y, b.width, b.height
    return {
        ResizeHandle.NW: Point(x, y),
        ResizeHandle.NE: Point(x + w, y),
        ResizeHandle.SW: Point(x, y + h),
        ResizeHandle.SE: Point(x + w, y + h),
    }


class InteractionController:
    """
    Pointer/keyboard state machine for one whiteboard.

    The controller owns no shapes: it mutates the store and selection it
    is given. handle() returns True when the event changed anything a
    view should repaint.
    """

    def __init__(
        self,
        store: ShapeStore,
        selection: SelectionManager,
        viewport: Optional[Viewport] = None,
        snapper: Optional[GridSnapper] = None,
        settings: Optional[EditorSettings] = None,
    ):
        self.store = store
        self.selection = selection
        self.settings = settings or EditorSettings()
        self.viewport = viewport or Viewport(
            min_zoom=self.settings.min_zoom,
            max_zoom=self.settings.max_zoom,
            zoom_step=self.settings.zoom_step,
        )
        self.snapper = snapper or GridSnapper(
            enabled=self.settings.snap_to_grid,
            grid_size=self.settings.grid_size,
        )

        self.tool = Tool.SELECT
        self.mode = InteractionMode.NONE
        self.editing: Optional[TextEdit] = None
        self.busy = False

        self._anchor: Optional[Point] = None       # canvas space
        self._last_pos: Optional[Point] = None     # canvas (screen while panning)
        self._drawing_id: Optional[str] = None
        self._resize_handle: Optional[ResizeHandle] = None
        self._lead_start: Optional[Point] = None
        self._marquee_additive = False

        self._handlers: Dict[type, Callable[[Event], bool]] = {
            PointerDown: self._on_pointer_down,
            PointerMove: self._on_pointer_move,
            PointerUp: self._on_pointer_up,
            DoubleClick: self._on_double_click,
            KeyPress: self._on_key_press,
            TextCommit: self._on_text_commit,
            Wheel: self._on_wheel,
            Drop: self._on_drop,
        }

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def handle(self, event: Event) -> bool:
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported event: {event!r}")
        if self.busy and not isinstance(event, Wheel):
            return False
        return handler(event)

    def set_tool(self, tool: Tool):
        if self.mode != InteractionMode.NONE:
            return
        self.tool = tool
        logger.debug(f"Tool: {tool.value}")

    def _to_canvas(self, screen_pos: Point) -> Point:
        return self.viewport.screen_to_canvas(screen_pos)

    @property
    def _hit_tolerance(self) -> float:
        """Pick radius in canvas units; constant on screen at any zoom."""
        return HANDLE_HIT_RADIUS / self.viewport.scale

    @property
    def marquee(self):
        """Current selection rectangle (canvas space) while SELECTING_AREA."""
        if self.mode != InteractionMode.SELECTING_AREA or self._anchor is None:
            return None
        return Bounds.from_points(self._anchor, self._last_pos or self._anchor)

    # -------------------------------------------------------------------------
    # Pointer
    # -------------------------------------------------------------------------

    def _on_pointer_down(self, event: PointerDown) -> bool:
        if self.editing is not None:
            return False

        if self.tool == Tool.HAND or event.button == MouseButton.MIDDLE:
            self.mode = InteractionMode.PANNING
            self._last_pos = event.position
            return False

        if self.mode == InteractionMode.RESIZING:
            return False

        raw = self._to_canvas(event.position)

        if self.tool == Tool.SELECT:
            return self._select_pointer_down(raw, event.shift)

        pos = self.snapper.snap_point(raw)
        shape = self.store.add(new_drawn_shape(self.tool, pos))
        self.selection.set([shape.id])
        self.mode = InteractionMode.DRAWING
        self._anchor = pos
        self._drawing_id = shape.id
        return True

    def _select_pointer_down(self, pos: Point, shift: bool) -> bool:
        handle = self.handle_at(pos)
        if handle is not None:
            single = self.selection.single
            if single.is_connector:
                single.detach()
            else:
                # Resize math assumes the anchor corner is top-left
                b = single.bounds()
                single.set_geometry(b.x, b.y, b.width, b.height)
            self.mode = InteractionMode.RESIZING
            self._resize_handle = handle
            return True

        shape = self.store.shape_at(pos, self._hit_tolerance)
        if shape is None:
            if not shift:
                self.selection.clear()
            self.mode = InteractionMode.SELECTING_AREA
            self._marquee_additive = shift
            self._anchor = pos
            self._last_pos = pos
            return True

        if shape.locked:
            self.selection.click_locked(shape, shift)
            return True

        self.selection.click(shape, shift)
        self.mode = InteractionMode.MOVING
        self._anchor = pos
        self._last_pos = pos
        lead = self._lead_shape()
        self._lead_start = Point(lead.x, lead.y) if lead else None
        return True

    def handle_at(self, pos: Point) -> Optional[ResizeHandle]:
        """Resize handle under pos, when exactly one unlocked shape is selected."""
        shape = self.selection.single
        if shape is None or shape.locked:
            return None
        radius = self._hit_tolerance
        for handle, corner in handle_positions(shape).items():
            if abs(pos.x - corner.x) <= radius and abs(pos.y - corner.y) <= radius:
                return handle
        return None

    def _lead_shape(self) -> Optional[Shape]:
        for shape in self.selection.shapes():
            if not shape.locked:
                return shape
        return None

    def _on_pointer_move(self, event: PointerMove) -> bool:
        if self.mode == InteractionMode.NONE:
            return False

        if self.mode == InteractionMode.PANNING:
            last = self._last_pos or event.position
            self.viewport.pan_by(event.position.x - last.x, event.position.y - last.y)
            self._last_pos = event.position
            return True

        raw = self._to_canvas(event.position)

        if self.mode == InteractionMode.MOVING:
            return self._move_selection(raw)

        if self.mode == InteractionMode.SELECTING_AREA:
            self._last_pos = raw
            return True

        pos = self.snapper.snap_point(raw)

        if self.mode == InteractionMode.RESIZING:
            shape = self.selection.single
            if shape is None or self._resize_handle is None:
                return False
            changed = self.store.resize(shape.id, *resize_geometry(shape, self._resize_handle, pos))
            if changed and shape.is_protocol_node:
                self.store.reanchor_connectors([shape.id])
            return changed

        if self.mode == InteractionMode.DRAWING:
            shape = self.store.get(self._drawing_id) if self._drawing_id else None
            if shape is None:
                return False
            shape.width = pos.x - self._anchor.x
            shape.height = pos.y - self._anchor.y
            return True

        return False

    def _move_selection(self, raw: Point) -> bool:
        dx = raw.x - self._last_pos.x
        dy = raw.y - self._last_pos.y
        self._last_pos = raw

        lead = self._lead_shape()
        if self.snapper.enabled and lead is not None and self._lead_start is not None:
            # Snap the lead's target and move everything by the same amount
            target_x = self.snapper.snap(self._lead_start.x + raw.x - self._anchor.x)
            target_y = self.snapper.snap(self._lead_start.y + raw.y - self._anchor.y)
            dx = target_x - lead.x
            dy = target_y - lead.y

        if dx == 0 and dy == 0:
            return False
        return bool(self._translate_selection(dx, dy))

    def _translate_selection(self, dx: float, dy: float) -> List[str]:
        moved = self.store.move_many(self.selection.ids, dx, dy)
        moved_nodes = []
        for sid in moved:
            shape = self.store.get(sid)
            if shape.is_connector:
                shape.detach()
            elif shape.is_protocol_node:
                moved_nodes.append(sid)
        if moved_nodes:
            self.store.reanchor_connectors(moved_nodes)
        return moved

    def _on_pointer_up(self, event: PointerUp) -> bool:
        changed = False
        if self.mode == InteractionMode.SELECTING_AREA and self._anchor is not None:
            release = self._to_canvas(event.position) if event.position else self._last_pos
            previous = self.selection.ids if self._marquee_additive else []
            self.selection.select_area(self._anchor, release)
            if previous:
                selected = self.selection.ids
                self.selection.set(previous)
                self.selection.add(selected)
            changed = True

        self.mode = InteractionMode.NONE
        self._anchor = None
        self._last_pos = None
        self._drawing_id = None
        self._resize_handle = None
        self._lead_start = None
        self._marquee_additive = False
        if self.tool.is_drawing:
            self.tool = Tool.SELECT
            changed = True
        return changed

    def _on_wheel(self, event: Wheel) -> bool:
        self.viewport.handle_wheel(event.delta_x, event.delta_y, event.ctrl)
        return True

    def _on_drop(self, event: Drop) -> bool:
        payload = parse_drop_payload(event.data)
        if payload is None:
            return False
        shape = apply_drop(self.store, payload, self._to_canvas(event.position))
        if shape is not None and shape.is_protocol_node:
            self.selection.set([shape.id])
        return True

    # -------------------------------------------------------------------------
    # Text editing
    # -------------------------------------------------------------------------

    def _on_double_click(self, event: DoubleClick) -> bool:
        if self.editing is not None:
            return False
        shape = self.store.shape_at(self._to_canvas(event.position), self._hit_tolerance)
        if shape is None or shape.locked:
            return False
        self.editing = TextEdit(shape.id, shape.text)
        self.selection.set([shape.id])
        return True

    def set_edit_text(self, text: str):
        if self.editing is not None:
            self.editing.text = text

    def _on_text_commit(self, event: TextCommit) -> bool:
        if self.editing is None:
            return False
        text = self.editing.text if event.text is None else event.text
        self.store.set_text(self.editing.shape_id, text)
        self.editing = None
        return True

    def cancel_text_edit(self) -> bool:
        if self.editing is None:
            return False
        self.editing = None
        return True

    def _edit_key(self, event: KeyPress) -> bool:
        if event.key == Key.ENTER:
            if event.shift:
                self.editing.text += "\n"
                return True
            return self._on_text_commit(TextCommit())
        if event.key == Key.ESCAPE:
            return self.cancel_text_edit()
        return False

    # -------------------------------------------------------------------------
    # Keyboard
    # -------------------------------------------------------------------------

    def _on_key_press(self, event: KeyPress) -> bool:
        if self.editing is not None:
            return self._edit_key(event)

        if event.key in ARROW_KEYS:
            if self.selection.is_empty:
                return False
            step = self.settings.nudge_step_large if event.shift else self.settings.nudge_step
            ux, uy = ARROW_KEYS[event.key]
            return bool(self._translate_selection(ux * step, uy * step))

        if event.key in (Key.DELETE, Key.BACKSPACE):
            return self.delete_selected()

        if event.key == Key.ESCAPE:
            if self.selection.is_empty:
                return False
            self.selection.clear()
            return True

        if event.key == Key.BRACKET_RIGHT:
            return self.bring_to_front()
        if event.key == Key.BRACKET_LEFT:
            return self.send_to_back()

        if event.ctrl:
            key = event.key.lower()
            if key == "g":
                if event.shift:
                    return self.ungroup_selected()
                return self.group_selected() is not None
            if key == "d":
                return bool(self.duplicate_selected())
            if key == "a":
                self.select_all()
                return True
            if key == "l":
                return self.toggle_lock()
        return False

    # -------------------------------------------------------------------------
    # Commands (also used by toolbar actions)
    # -------------------------------------------------------------------------

    def delete_selected(self) -> bool:
        if self.selection.is_empty:
            return False
        removed = self.store.remove_many(self.selection.ids)
        self.selection.clear()
        logger.debug(f"Deleted {len(removed)} shape(s)")
        return True

    def group_selected(self) -> Optional[str]:
        members = self.selection.unlocked_ids()
        if len(members) < 2:
            return None
        group_id = generate_id()
        self.store.set_group(members, group_id)
        logger.debug(f"Grouped {len(members)} shape(s) as {group_id}")
        return group_id

    def ungroup_selected(self) -> bool:
        return bool(self.store.set_group(self.selection.ids, None))

    def duplicate_selected(self) -> List[str]:
        offset = self.settings.duplicate_offset
        clones = [s.clone(dx=offset, dy=offset) for s in self.selection.shapes()]
        if not clones:
            return []
        self.store.extend(clones)
        new_ids = [c.id for c in clones]
        self.selection.set(new_ids)
        return new_ids

    def bring_to_front(self) -> bool:
        if self.selection.is_empty:
            return False
        self.store.raise_to_front(self.selection.ids)
        return True

    def send_to_back(self) -> bool:
        if self.selection.is_empty:
            return False
        self.store.lower_to_back(self.selection.ids)
        return True

    def toggle_lock(self) -> bool:
        shapes = self.selection.shapes()
        for shape in shapes:
            self.store.set_locked(shape.id, not shape.locked)
        return bool(shapes)

    def select_all(self):
        self.selection.select_all()

    def reset(self):
        """Drop any in-progress interaction (used when the store is replaced)."""
        self.mode = InteractionMode.NONE
        self.editing = None
        self._anchor = None
        self._last_pos = None
        self._drawing_id = None
        self._resize_handle = None
        self._lead_start = None
