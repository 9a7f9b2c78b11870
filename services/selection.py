"""
Selection manager.

Tracks the ordered set of selected shape ids. The first id is the
"lead" shape used to snap a multi-shape move as one unit.
"""

import logging
from typing import Iterable, List, Optional

from models import Bounds, Point, Shape

from .shape_store import ShapeStore


logger = logging.getLogger(__name__)


class SelectionManager:
    """Ordered selection over a ShapeStore."""

    def __init__(self, store: ShapeStore):
        self._store = store
        self._ids: List[str] = []

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, shape_id: str) -> bool:
        return shape_id in self._ids

    def __iter__(self):
        return iter(list(self._ids))

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    @property
    def is_empty(self) -> bool:
        return not self._ids

    @property
    def lead_id(self) -> Optional[str]:
        return self._ids[0] if self._ids else None

    @property
    def single(self) -> Optional[Shape]:
        """The selected shape when exactly one is selected."""
        if len(self._ids) != 1:
            return None
        return self._store.get(self._ids[0])

    def shapes(self) -> List[Shape]:
        """Selected shapes that still exist, in selection order."""
        return [s for s in (self._store.get(i) for i in self._ids) if s is not None]

    def unlocked_ids(self) -> List[str]:
        return [s.id for s in self.shapes() if not s.locked]

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def set(self, shape_ids: Iterable[str]):
        self._ids = []
        self.add(shape_ids)

    def add(self, shape_ids: Iterable[str]):
        for sid in shape_ids:
            if sid not in self._ids:
                self._ids.append(sid)

    def discard(self, shape_ids: Iterable[str]):
        drop = set(shape_ids)
        self._ids = [i for i in self._ids if i not in drop]

    def clear(self):
        self._ids = []

    def select_all(self):
        self._ids = self._store.ids

    def prune(self):
        """Forget ids whose shapes are no longer in the store."""
        self._ids = [i for i in self._ids if i in self._store]

    # -------------------------------------------------------------------------
    # Group resolution
    # -------------------------------------------------------------------------

    def resolve_group(self, shape: Shape) -> List[str]:
        """Ids of the shape's whole group, or just the shape when ungrouped."""
        if not shape.group_id:
            return [shape.id]
        return [s.id for s in self._store.group_members(shape.group_id)]

    def click(self, shape: Shape, shift: bool = False):
        """
        Apply a pointer-down on an unlocked shape.

        With shift the clicked group is toggled: removed when every member
        is already selected, otherwise added. Without shift the selection
        is replaced by the group unless the shape is already selected (so
        a multi-selection can be dragged).
        """
        group_ids = self.resolve_group(shape)
        if shift:
            if all(i in self._ids for i in group_ids):
                self.discard(group_ids)
            else:
                self.add(group_ids)
        elif shape.id not in self._ids:
            self.set(group_ids)

    def click_locked(self, shape: Shape, shift: bool = False):
        """A locked shape only ever becomes the single selection."""
        if not shift:
            self.set([shape.id])

    def select_area(self, anchor: Point, release: Point) -> List[str]:
        """
        Marquee selection.

        Replaces the selection with every shape whose normalized bounds
        overlap the rectangle between the two points, edges included.
        """
        area = Bounds.from_points(anchor, release)
        self.set(s.id for s in self._store.shapes_intersecting(area))
        logger.debug(f"Marquee selected {len(self._ids)} shape(s)")
        return self.ids
