"""
Drop payload handling.

Palette items (operations, assets, inventory, equipment, people,
projects) are dragged onto the canvas as a JSON string under the
DROP_MIME_TYPE tag:

    {"kind": "protocol", "id": "...", "name": "...", "operationType": "heat"}

Malformed payloads are ignored without surfacing an error.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models import (
    AssetShape, BasicShape, Point, ProtocolNodeShape, Shape, ShapeStyle,
    ShapeType, TextAlign, VerticalAlign, build_operation, generate_id,
)

from .shape_store import ShapeStore


logger = logging.getLogger(__name__)


DROP_MIME_TYPE = "application/x-protocolviz"

PROTOCOL_NODE_WIDTH = 240
PROTOCOL_NODE_HEIGHT = 140


class DropKind(Enum):
    ASSET = "asset"
    INVENTORY = "inventory"
    EQUIPMENT = "equipment"
    PROJECT = "project"
    PERSON = "person"
    PROTOCOL = "protocol"


@dataclass(frozen=True)
class DropPayload:
    kind: DropKind
    id: str
    name: Optional[str] = None
    operation_type: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def to_json(self) -> str:
        data = {"kind": self.kind.value, "id": self.id}
        if self.name:
            data["name"] = self.name
        if self.operation_type:
            data["operationType"] = self.operation_type
        return json.dumps(data)


def parse_drop_payload(raw) -> Optional[DropPayload]:
    """Decode a drop payload, returning None for anything malformed."""
    if not raw:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        data = json.loads(raw)
        payload = DropPayload(
            kind=DropKind(data["kind"]),
            id=str(data["id"]),
            name=data.get("name") or None,
            operation_type=data.get("operationType") or None,
        )
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.debug(f"Ignoring malformed drop payload: {e}")
        return None
    return payload


def protocol_node_shape(center: Point, op_type: str, name: Optional[str] = None) -> ProtocolNodeShape:
    """New protocol node centred on a canvas point, prefilled from the catalog."""
    shape_id = generate_id()
    return ProtocolNodeShape(
        id=shape_id,
        x=center.x - PROTOCOL_NODE_WIDTH / 2,
        y=center.y - PROTOCOL_NODE_HEIGHT / 2,
        width=PROTOCOL_NODE_WIDTH,
        height=PROTOCOL_NODE_HEIGHT,
        style=ShapeStyle(fill="#ffffff", stroke="#cbd5e1", stroke_width=1.5),
        operation=build_operation(op_type, name, op_id=f"op-{shape_id}"),
    )


def _placed_shape(payload: DropPayload, pos: Point) -> Shape:
    if payload.kind == DropKind.ASSET:
        return AssetShape(
            x=pos.x - 30, y=pos.y - 30, width=60, height=60,
            style=ShapeStyle(
                fill="#ffffff", stroke="#cbd5e1", stroke_width=1,
                text_align=TextAlign.CENTER, text_align_vertical=VerticalAlign.BOTTOM,
                font_size=10,
            ),
            asset_type=payload.id,
        )
    if payload.kind == DropKind.INVENTORY:
        return AssetShape(
            x=pos.x - 90, y=pos.y - 32, width=180, height=72,
            style=ShapeStyle(
                fill="#ffffff", stroke="#0f766e", stroke_width=1.5,
                text_align=TextAlign.LEFT, font_size=11,
            ),
            text=payload.name or "",
            linked_entity_type="inventory",
            linked_entity_id=payload.id,
        )
    if payload.kind == DropKind.EQUIPMENT:
        return AssetShape(
            x=pos.x - 95, y=pos.y - 32, width=190, height=72,
            style=ShapeStyle(
                fill="#eef2ff", stroke="#4f46e5", stroke_width=1.5,
                text_align=TextAlign.LEFT, font_size=11,
            ),
            text=payload.name or "",
            linked_entity_type="equipment",
            linked_entity_id=payload.id,
        )
    # Projects and people without a target node become a labelled box
    return BasicShape(
        shape_type=ShapeType.RECT,
        x=pos.x - 60, y=pos.y - 20, width=120, height=40,
        style=ShapeStyle(fill="#ffffff", stroke="#334155", stroke_width=1, font_size=12),
        text=payload.name or payload.kind.value,
    )


def _attach_to_node(node: ProtocolNodeShape, payload: DropPayload) -> bool:
    """Link a dropped entity to an existing protocol node. False if not applicable."""
    operation = node.operation
    if payload.kind == DropKind.INVENTORY:
        if payload.name:
            operation.add_object(payload.name)
    elif payload.kind == DropKind.EQUIPMENT:
        operation.metadata["equipment"] = payload.display_name
    elif payload.kind == DropKind.PERSON:
        operation.metadata["assignedTo"] = payload.display_name
    elif payload.kind == DropKind.PROJECT:
        operation.metadata["projectId"] = payload.id
    else:
        return False
    logger.debug(f"Linked {payload.kind.value} '{payload.display_name}' to node {node.id}")
    return True


def apply_drop(store: ShapeStore, payload: DropPayload, pos: Point) -> Optional[Shape]:
    """
    Apply a decoded payload dropped at a canvas position.

    Returns the newly created shape, or None when the payload was merged
    into an existing protocol node.
    """
    if payload.kind == DropKind.PROTOCOL:
        return store.add(protocol_node_shape(pos, payload.operation_type or "custom", payload.name))

    target = store.node_at(pos)
    if target is not None and not target.locked and _attach_to_node(target, payload):
        return None

    return store.add(_placed_shape(payload, pos))
