"""
Whiteboard persistence.

The editor only needs a save(existing_id, shapes) -> id operation from
its persistence collaborator. WhiteboardRepository describes that
contract; JsonWhiteboardRepository keeps one JSON file per whiteboard
in a workspace directory:

    {
      "schema": {"version": "1.0", "format": "protocol-whiteboard"},
      "metadata": {"id": "...", "name": "...", "created": "...", "modified": "..."},
      "shapes": [ {...shape...}, ... ]
    }
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from models import Shape, generate_id, shape_from_dict


logger = logging.getLogger(__name__)


# Schema version for future compatibility
SCHEMA_VERSION = "1.0"
FILE_FORMAT = "protocol-whiteboard"


@dataclass
class WhiteboardRecord:
    """A stored whiteboard."""
    id: str
    name: str = "Untitled whiteboard"
    shapes: List[Shape] = field(default_factory=list)
    created: str = ""
    modified: str = ""


class WhiteboardRepository(ABC):
    """Persistence collaborator contract."""

    @abstractmethod
    def save(self, existing_id: Optional[str], shapes: Iterable[Shape],
             name: Optional[str] = None) -> str:
        """Create a whiteboard when existing_id is None, else update it in place. Returns its id."""

    @abstractmethod
    def load(self, whiteboard_id: str) -> WhiteboardRecord:
        """Raises FileNotFoundError for unknown ids."""

    @abstractmethod
    def list(self) -> List[WhiteboardRecord]:
        """Stored whiteboards (shapes not loaded), most recently modified first."""

    @abstractmethod
    def delete(self, whiteboard_id: str) -> bool:
        """Returns False if the whiteboard did not exist."""


class JsonWhiteboardRepository(WhiteboardRepository):
    """Stores each whiteboard as <directory>/<id>.json."""

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, whiteboard_id: str) -> Path:
        return self._directory / f"{whiteboard_id}.json"

    def save(self, existing_id: Optional[str], shapes: Iterable[Shape],
             name: Optional[str] = None) -> str:
        """
        Save shapes to a whiteboard file.

        Args:
            existing_id: Whiteboard to overwrite, or None to create one
            shapes: Shapes in paint order
            name: Display name; an update keeps the stored name when omitted

        Returns:
            The whiteboard id
        """
        self._directory.mkdir(parents=True, exist_ok=True)
        now = datetime.now().isoformat()

        whiteboard_id = existing_id or generate_id()
        created = now
        stored_name = name
        path = self._path_for(whiteboard_id)
        if existing_id and path.exists():
            previous = self._read_metadata(path)
            created = previous.get("created") or now
            stored_name = name or previous.get("name")

        data = {
            "schema": {
                "version": SCHEMA_VERSION,
                "format": FILE_FORMAT,
            },
            "metadata": {
                "id": whiteboard_id,
                "name": stored_name or "Untitled whiteboard",
                "created": created,
                "modified": now,
            },
            "shapes": [s.to_dict() for s in shapes],
        }

        # Write next to the target first so a failed dump never truncates it
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(path)

        logger.info(f"{'Updated' if existing_id else 'Created'} whiteboard {whiteboard_id}")
        return whiteboard_id

    def load(self, whiteboard_id: str) -> WhiteboardRecord:
        path = self._path_for(whiteboard_id)
        if not path.exists():
            raise FileNotFoundError(f"Whiteboard not found: {whiteboard_id}")

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        metadata = data.get("metadata", {})
        return WhiteboardRecord(
            id=metadata.get("id", whiteboard_id),
            name=metadata.get("name", "Untitled whiteboard"),
            shapes=[shape_from_dict(s) for s in data.get("shapes", [])],
            created=metadata.get("created", ""),
            modified=metadata.get("modified", ""),
        )

    def list(self) -> List[WhiteboardRecord]:
        if not self._directory.exists():
            return []
        records = []
        for path in self._directory.glob("*.json"):
            try:
                metadata = self._read_metadata(path)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable whiteboard {path.name}: {e}")
                continue
            records.append(WhiteboardRecord(
                id=metadata.get("id", path.stem),
                name=metadata.get("name", "Untitled whiteboard"),
                created=metadata.get("created", ""),
                modified=metadata.get("modified", ""),
            ))
        records.sort(key=lambda r: r.modified, reverse=True)
        return records

    def delete(self, whiteboard_id: str) -> bool:
        path = self._path_for(whiteboard_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted whiteboard {whiteboard_id}")
        return True

    @staticmethod
    def _read_metadata(path: Path) -> dict:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f).get("metadata", {})
