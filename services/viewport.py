"""
Canvas viewport and grid snapping.

Maps raw pointer (screen) coordinates into canvas space given the
current pan offset and zoom scale:

    canvas = (screen - pan) / scale
"""

import logging
from dataclasses import dataclass, field

from models import Point, snap_value


logger = logging.getLogger(__name__)


MIN_ZOOM = 0.1
MAX_ZOOM = 5.0
ZOOM_STEP = 0.1
WHEEL_ZOOM_FACTOR = 0.001
GRID_SIZE = 20


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class Viewport:
    """
    Pan offset and zoom scale of the canvas.

    Zooming changes the scale only; the pan offset is left alone, so the
    point under the cursor drifts while zooming.
    """
    pan: Point = field(default_factory=Point)
    scale: float = 1.0
    min_zoom: float = MIN_ZOOM
    max_zoom: float = MAX_ZOOM
    zoom_step: float = ZOOM_STEP

    def __post_init__(self):
        self.scale = clamp(self.scale, self.min_zoom, self.max_zoom)

    def screen_to_canvas(self, point: Point) -> Point:
        return Point(
            (point.x - self.pan.x) / self.scale,
            (point.y - self.pan.y) / self.scale,
        )

    def canvas_to_screen(self, point: Point) -> Point:
        return Point(
            point.x * self.scale + self.pan.x,
            point.y * self.scale + self.pan.y,
        )

    def zoom_to(self, scale: float) -> float:
        """Set the scale (clamped) and return the value applied."""
        self.scale = clamp(scale, self.min_zoom, self.max_zoom)
        return self.scale

    def zoom_by(self, delta: float) -> float:
        return self.zoom_to(self.scale + delta)

    def zoom_in(self) -> float:
        return self.zoom_by(self.zoom_step)

    def zoom_out(self) -> float:
        return self.zoom_by(-self.zoom_step)

    def reset(self):
        self.pan = Point()
        self.scale = 1.0

    def pan_by(self, dx: float, dy: float):
        """Translate the view by a raw screen-space delta."""
        self.pan = Point(self.pan.x + dx, self.pan.y + dy)

    def handle_wheel(self, delta_x: float, delta_y: float, zoom_modifier: bool = False):
        """
        Apply a wheel/trackpad gesture.

        With ctrl (or meta) held the gesture zooms; otherwise it scrolls
        the canvas in the opposite direction of the wheel delta.
        """
        if zoom_modifier:
            self.zoom_by(-delta_y * WHEEL_ZOOM_FACTOR)
        else:
            self.pan_by(-delta_x, -delta_y)

    @property
    def zoom_percent(self) -> int:
        return round(self.scale * 100)


@dataclass
class GridSnapper:
    """Rounds canvas coordinates to the grid when enabled."""
    enabled: bool = False
    grid_size: float = GRID_SIZE

    def snap(self, value: float) -> float:
        if not self.enabled:
            return value
        return snap_value(value, self.grid_size)

    def snap_point(self, point: Point) -> Point:
        if not self.enabled:
            return point
        return Point(self.snap(point.x), self.snap(point.y))

    def toggle(self) -> bool:
        self.enabled = not self.enabled
        logger.debug(f"Grid snap {'enabled' if self.enabled else 'disabled'}")
        return self.enabled
