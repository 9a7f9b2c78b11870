"""
Geometry primitives for the whiteboard canvas.

All coordinates are canvas-space unless noted otherwise. Shapes store a
raw (x, y, width, height) rectangle whose width/height may be negative
while a drag is in progress; Bounds is always the normalized form.
"""

from dataclasses import dataclass
from typing import Optional
import math


@dataclass(frozen=True)
class Point:
    """2D point on the canvas (or on screen, for raw pointer input)."""
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def to_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Bounds:
    """
    Axis-aligned rectangle with non-negative width and height.

    Edges are treated as closed intervals: a point on the border is
    inside, and two rectangles that touch along an edge intersect.
    """
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_raw(cls, x: float, y: float, width: float, height: float) -> "Bounds":
        """Normalize a rectangle whose width/height may be negative."""
        nx = x + width if width < 0 else x
        ny = y + height if height < 0 else y
        return cls(nx, ny, abs(width), abs(height))

    @classmethod
    def from_points(cls, a: Point, b: Point) -> "Bounds":
        """Rectangle spanned by two corner points, in any order."""
        return cls(
            min(a.x, b.x),
            min(a.y, b.y),
            abs(a.x - b.x),
            abs(a.y - b.y),
        )

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, point: Point) -> bool:
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom

    def intersects(self, other: "Bounds") -> bool:
        """Closed-interval overlap test."""
        return (
            self.x <= other.right and other.x <= self.right and
            self.y <= other.bottom and other.y <= self.bottom
        )

    def expanded(self, margin: float) -> "Bounds":
        return Bounds(
            self.x - margin,
            self.y - margin,
            self.width + 2 * margin,
            self.height + 2 * margin,
        )

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


def snap_value(value: float, grid_size: float) -> float:
    """Round a coordinate to the nearest multiple of grid_size."""
    if grid_size <= 0:
        return value
    # Half-way values round up, so 10 snaps to 20 on a 20 grid
    return math.floor(value / grid_size + 0.5) * grid_size


def union_bounds(bounds_list: list[Bounds]) -> Optional[Bounds]:
    """Smallest rectangle enclosing every rectangle in the list."""
    if not bounds_list:
        return None
    left = min(b.x for b in bounds_list)
    top = min(b.y for b in bounds_list)
    right = max(b.right for b in bounds_list)
    bottom = max(b.bottom for b in bounds_list)
    return Bounds(left, top, right - left, bottom - top)


def distance_to_segment(point: Point, a: Point, b: Point) -> float:
    """Shortest distance from point to the segment a-b."""
    dx, dy = b.x - a.x, b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(point.x - a.x, point.y - a.y)
    t = ((point.x - a.x) * dx + (point.y - a.y) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(point.x - (a.x + t * dx), point.y - (a.y + t * dy))
