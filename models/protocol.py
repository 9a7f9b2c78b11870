"""
Protocol interchange document.

The durable wire format for a protocol graph:

    {
      "metadata": {"schemaVersion": "1.0", "exportedAt": "...", "name": "..."},
      "nodes": [{id, type, label, parameters, objects, inputs, outputs,
                 metadata, x, y, width, height}],
      "connections": [{"from": nodeId, "to": nodeId}]
    }
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .unit_operation import UnitOperation


# Schema version for future compatibility
SCHEMA_VERSION = "1.0"


@dataclass
class ProtocolMetadata:
    schema_version: str = SCHEMA_VERSION
    exported_at: str = ""
    name: str = "Protocol"
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "schemaVersion": self.schema_version,
            "exportedAt": self.exported_at,
            "name": self.name,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProtocolMetadata":
        known = {"schemaVersion", "exportedAt", "name"}
        return cls(
            schema_version=str(data.get("schemaVersion", SCHEMA_VERSION)),
            exported_at=data.get("exportedAt") or "",
            name=data.get("name") or "Protocol",
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass
class ProtocolNode:
    """
    A unit operation placed on the canvas.

    Geometry fields are optional on import; missing values are filled in
    with defaults when the node is turned back into a shape.
    """
    operation: UnitOperation = field(default_factory=UnitOperation)
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None

    @property
    def id(self) -> str:
        return self.operation.id

    def to_dict(self) -> Dict[str, Any]:
        data = self.operation.to_dict()
        data.update({"x": self.x, "y": self.y, "width": self.width, "height": self.height})
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProtocolNode":
        def _num(key: str) -> Optional[float]:
            value = data.get(key)
            return float(value) if value is not None else None

        return cls(
            operation=UnitOperation.from_dict(data),
            x=_num("x"),
            y=_num("y"),
            width=_num("width"),
            height=_num("height"),
        )


@dataclass(frozen=True)
class ProtocolConnection:
    """Directed edge between two node ids."""
    source: str
    target: str

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.source, "to": self.target}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProtocolConnection":
        return cls(source=str(data.get("from", "")), target=str(data.get("to", "")))


@dataclass
class ProtocolDocument:
    """Root of the protocol interchange format."""
    metadata: ProtocolMetadata = field(default_factory=ProtocolMetadata)
    nodes: List[ProtocolNode] = field(default_factory=list)
    connections: List[ProtocolConnection] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "nodes": [n.to_dict() for n in self.nodes],
            "connections": [c.to_dict() for c in self.connections],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProtocolDocument":
        return cls(
            metadata=ProtocolMetadata.from_dict(data.get("metadata") or {}),
            nodes=[ProtocolNode.from_dict(n) for n in (data.get("nodes") or [])],
            connections=[ProtocolConnection.from_dict(c) for c in (data.get("connections") or [])],
        )
