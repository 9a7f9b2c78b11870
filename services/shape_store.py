"""
Shape store.

Ordered, mutable collection of whiteboard shapes. List order is paint
order: the last shape is drawn on top and wins hit tests.

Locking is enforced here rather than in the UI: geometry, style, group
and delete mutations silently skip locked shapes.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from models import Bounds, Point, ProtocolNodeShape, Shape, ShapeStyle, node_at


logger = logging.getLogger(__name__)

# Canvas-space distance within which a click picks a connector
CONNECTOR_HIT_TOLERANCE = 6.0


class ShapeStore:
    """
    Z-ordered shape collection.

    Shape ids are unique within a store; adding a shape whose id is
    already present raises ValueError.
    """

    def __init__(self, shapes: Optional[Iterable[Shape]] = None):
        self._shapes: List[Shape] = []
        self._index: Dict[str, Shape] = {}
        if shapes:
            self.replace_all(shapes)

    # -------------------------------------------------------------------------
    # Collection protocol
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._shapes)

    def __iter__(self) -> Iterator[Shape]:
        return iter(list(self._shapes))

    def __contains__(self, shape_id: str) -> bool:
        return shape_id in self._index

    @property
    def shapes(self) -> List[Shape]:
        """Snapshot of the shapes in paint order."""
        return list(self._shapes)

    @property
    def ids(self) -> List[str]:
        return [s.id for s in self._shapes]

    @property
    def protocol_nodes(self) -> List[ProtocolNodeShape]:
        return [s for s in self._shapes if s.is_protocol_node]

    @property
    def connectors(self) -> List[Shape]:
        return [s for s in self._shapes if s.is_connector]

    def get(self, shape_id: str) -> Optional[Shape]:
        return self._index.get(shape_id)

    # -------------------------------------------------------------------------
    # Add / remove
    # -------------------------------------------------------------------------

    def add(self, shape: Shape) -> Shape:
        """Append a shape on top of the paint order."""
        if shape.id in self._index:
            raise ValueError(f"Duplicate shape id: {shape.id}")
        self._shapes.append(shape)
        self._index[shape.id] = shape
        logger.debug(f"Added {shape.shape_type.value} shape {shape.id}")
        return shape

    def extend(self, shapes: Iterable[Shape]):
        for shape in shapes:
            self.add(shape)

    def remove(self, shape_id: str) -> bool:
        """Remove an unlocked shape. Returns False if missing or locked."""
        shape = self._index.get(shape_id)
        if shape is None or shape.locked:
            return False
        self._shapes.remove(shape)
        del self._index[shape_id]
        logger.debug(f"Removed shape {shape_id}")
        return True

    def remove_many(self, shape_ids: Iterable[str]) -> List[str]:
        """Remove every unlocked shape in shape_ids; returns the ids removed."""
        return [sid for sid in list(shape_ids) if self.remove(sid)]

    def clear(self):
        self._shapes.clear()
        self._index.clear()

    def replace_all(self, shapes: Iterable[Shape]):
        """
        Replace the whole store.

        The new list is validated before anything changes, so a duplicate
        id leaves the current contents untouched.
        """
        new_shapes = list(shapes)
        new_index: Dict[str, Shape] = {}
        for shape in new_shapes:
            if shape.id in new_index:
                raise ValueError(f"Duplicate shape id: {shape.id}")
            new_index[shape.id] = shape
        self._shapes = new_shapes
        self._index = new_index

    # -------------------------------------------------------------------------
    # Mutation (locked shapes are skipped)
    # -------------------------------------------------------------------------

    def move(self, shape_id: str, dx: float, dy: float) -> bool:
        shape = self._index.get(shape_id)
        if shape is None or shape.locked:
            return False
        shape.translate(dx, dy)
        return True

    def move_many(self, shape_ids: Iterable[str], dx: float, dy: float) -> List[str]:
        return [sid for sid in shape_ids if self.move(sid, dx, dy)]

    def resize(self, shape_id: str, x: float, y: float, width: float, height: float) -> bool:
        shape = self._index.get(shape_id)
        if shape is None or shape.locked:
            return False
        shape.set_geometry(x, y, width, height)
        return True

    def update_style(self, shape_id: str, **changes) -> bool:
        """
        Update style attributes (and the connector end markers) of a shape.

        Keyword names are ShapeStyle field names plus ``start_marker`` and
        ``end_marker`` for connectors. Unknown names raise AttributeError.
        """
        shape = self._index.get(shape_id)
        if shape is None or shape.locked:
            return False
        for key, value in changes.items():
            if key in ShapeStyle.__dataclass_fields__:
                setattr(shape.style, key, value)
            elif key in ("start_marker", "end_marker"):
                if shape.is_connector:
                    setattr(shape, key, value)
            else:
                raise AttributeError(f"Unknown style attribute: {key}")
        return True

    def set_text(self, shape_id: str, text: str) -> bool:
        shape = self._index.get(shape_id)
        if shape is None or shape.locked:
            return False
        shape.text = text
        return True

    def set_group(self, shape_ids: Iterable[str], group_id: Optional[str]) -> List[str]:
        """Assign (or clear, with None) the group of unlocked shapes."""
        changed = []
        for sid in shape_ids:
            shape = self._index.get(sid)
            if shape is None or shape.locked:
                continue
            shape.group_id = group_id
            changed.append(sid)
        return changed

    def reanchor_connectors(self, node_ids: Iterable[str]) -> List[str]:
        """
        Keep auto-connected connectors attached to the centres of moved nodes.

        Only connectors bound to both endpoints are touched; locked
        connectors keep their geometry.
        """
        moved = set(node_ids)
        updated = []
        for shape in self._shapes:
            if not shape.is_connector or not shape.auto_connected or shape.locked:
                continue
            if shape.from_node_id not in moved and shape.to_node_id not in moved:
                continue
            source = self._index.get(shape.from_node_id)
            target = self._index.get(shape.to_node_id)
            if source is None or target is None:
                continue
            shape.set_endpoints(source.center, target.center)
            updated.append(shape.id)
        return updated

    def set_locked(self, shape_id: str, locked: bool) -> bool:
        shape = self._index.get(shape_id)
        if shape is None:
            return False
        shape.locked = locked
        return True

    # -------------------------------------------------------------------------
    # Z-order
    # -------------------------------------------------------------------------

    def raise_to_front(self, shape_ids: Iterable[str]):
        """Move shapes to the end of the paint order, keeping their relative order."""
        wanted = set(shape_ids)
        if not wanted:
            return
        picked = [s for s in self._shapes if s.id in wanted]
        rest = [s for s in self._shapes if s.id not in wanted]
        self._shapes = rest + picked

    def lower_to_back(self, shape_ids: Iterable[str]):
        """Move shapes to the start of the paint order, keeping their relative order."""
        wanted = set(shape_ids)
        if not wanted:
            return
        picked = [s for s in self._shapes if s.id in wanted]
        rest = [s for s in self._shapes if s.id not in wanted]
        self._shapes = picked + rest

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def group_members(self, group_id: str) -> List[Shape]:
        return [s for s in self._shapes if s.group_id == group_id]

    def node_at(self, point: Point) -> Optional[ProtocolNodeShape]:
        """
        First protocol node (in store order) whose bounds contain point.

        Shared by connector resolution and drop targeting.
        """
        return node_at(self._shapes, point)

    def shape_at(self, point: Point, tolerance: float = CONNECTOR_HIT_TOLERANCE) -> Optional[Shape]:
        """
        Topmost shape under point.

        Closed shapes are hit anywhere inside their bounds; connectors only
        within tolerance of their drawn line.
        """
        for shape in reversed(self._shapes):
            if shape.hit_test(point, tolerance):
                return shape
        return None

    def shapes_intersecting(self, area: Bounds) -> List[Shape]:
        return [s for s in self._shapes if s.bounds().intersects(area)]
