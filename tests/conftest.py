"""
Pytest configuration and shared fixtures for protocol whiteboard tests.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Generator, Optional

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import (
    ConnectorShape, Point, ProtocolNodeShape, BasicShape, ShapeType, build_operation,
)
from services.editor_session import EditorSession
from services.settings_manager import EditorSettings, SettingsManager, reset_settings_manager
from services.whiteboard_repository import JsonWhiteboardRepository


# ============== Command Line Options ==============

def pytest_addoption(parser):
    parser.addoption(
        "--run-slow", action="store_true", default=False,
        help="run tests marked as slow",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="needs --run-slow")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# ============== Temporary Directory Fixtures ==============

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="whiteboard_test_")
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def temp_workspace(temp_dir: Path) -> Path:
    """Create a temporary workspace directory structure."""
    workspace = temp_dir / "workspace"
    workspace.mkdir()
    (workspace / "whiteboards").mkdir()
    (workspace / "protocols").mkdir()
    return workspace


@pytest.fixture
def settings_manager(temp_dir: Path) -> Generator[SettingsManager, None, None]:
    """Settings manager writing to a throwaway config file."""
    reset_settings_manager()
    manager = SettingsManager(config_override=str(temp_dir / "config" / "settings.json"))
    yield manager
    reset_settings_manager()


# ============== Shape Helpers ==============

def make_node(node_id: str, x: float = 0, y: float = 0, width: float = 100, height: float = 60,
              op_type: str = "custom", parallel_group_id: Optional[str] = None,
              locked: bool = False) -> ProtocolNodeShape:
    """Protocol node whose operation id is op-<node_id>."""
    return ProtocolNodeShape(
        id=node_id,
        x=x, y=y, width=width, height=height,
        operation=build_operation(op_type, op_id=f"op-{node_id}"),
        parallel_group_id=parallel_group_id,
        locked=locked,
    )


def make_arrow(start: Point, end: Point, shape_id: Optional[str] = None) -> ConnectorShape:
    """Unbound arrow from start to end."""
    arrow = ConnectorShape(id=shape_id) if shape_id else ConnectorShape()
    arrow.set_endpoints(start, end)
    return arrow


def connect(source: ProtocolNodeShape, target: ProtocolNodeShape) -> ConnectorShape:
    """Unbound arrow between two node centres."""
    return make_arrow(source.center, target.center)


def make_rect(shape_id: str, x: float = 0, y: float = 0, width: float = 50, height: float = 50,
              locked: bool = False) -> BasicShape:
    return BasicShape(shape_type=ShapeType.RECT, id=shape_id, x=x, y=y,
                      width=width, height=height, locked=locked)


# ============== Model Fixtures ==============

@pytest.fixture
def linear_protocol():
    """Three nodes A -> B -> C laid out left to right."""
    a = make_node("a", 0, 0)
    b = make_node("b", 200, 0)
    c = make_node("c", 400, 0)
    return [a, b, c, connect(a, b), connect(b, c)]


@pytest.fixture
def branching_protocol():
    """A feeding B and C, which share parallel group "p1"."""
    a = make_node("a", 0, 0)
    b = make_node("b", 200, 0, parallel_group_id="p1")
    c = make_node("c", 200, 200, parallel_group_id="p1")
    return [a, b, c, connect(a, b), connect(a, c)]


# ============== Session Fixtures ==============

@pytest.fixture
def repository(temp_workspace: Path) -> JsonWhiteboardRepository:
    return JsonWhiteboardRepository(temp_workspace / "whiteboards")


@pytest.fixture
def session(repository: JsonWhiteboardRepository) -> EditorSession:
    """Empty editor session backed by a temporary repository."""
    return EditorSession(repository=repository, settings=EditorSettings(), name="Test Protocol")


@pytest.fixture
def snapping_session(repository: JsonWhiteboardRepository) -> EditorSession:
    """Editor session with snap-to-grid enabled on a 20 unit grid."""
    return EditorSession(
        repository=repository,
        settings=EditorSettings(snap_to_grid=True, grid_size=20),
    )
