"""Services package."""

from .settings_manager import (
    SettingsManager,
    AppSettings,
    EditorSettings,
    UISettings,
    PathSettings,
    get_settings,
    reset_settings_manager,
)
from .viewport import Viewport, GridSnapper
from .shape_store import ShapeStore
from .selection import SelectionManager
from .drop_handler import (
    DROP_MIME_TYPE,
    DropKind,
    DropPayload,
    parse_drop_payload,
    apply_drop,
)
from .interaction import (
    InteractionController,
    InteractionMode,
    Tool,
    ResizeHandle,
    MouseButton,
    Key,
    PointerDown,
    PointerMove,
    PointerUp,
    DoubleClick,
    KeyPress,
    TextCommit,
    Wheel,
    Drop,
)
from .protocol_graph import (
    ProtocolGraph,
    StepNumbering,
    build_graph,
    compute_step_numbers,
)
from .protocol_serializer import (
    ProtocolError,
    ProtocolExportError,
    ProtocolImportError,
    export_protocol,
    import_protocol,
    parse_protocol_json,
    protocol_filename,
    save_protocol_file,
    load_protocol_file,
)
from .whiteboard_repository import (
    WhiteboardRecord,
    WhiteboardRepository,
    JsonWhiteboardRepository,
)
from .editor_session import EditorSession, SaveResult

__all__ = [
    # Settings
    "SettingsManager",
    "AppSettings",
    "EditorSettings",
    "UISettings",
    "PathSettings",
    "get_settings",
    "reset_settings_manager",
    # Canvas state
    "Viewport",
    "GridSnapper",
    "ShapeStore",
    "SelectionManager",
    # Drop payloads
    "DROP_MIME_TYPE",
    "DropKind",
    "DropPayload",
    "parse_drop_payload",
    "apply_drop",
    # Interaction
    "InteractionController",
    "InteractionMode",
    "Tool",
    "ResizeHandle",
    "MouseButton",
    "Key",
    "PointerDown",
    "PointerMove",
    "PointerUp",
    "DoubleClick",
    "KeyPress",
    "TextCommit",
    "Wheel",
    "Drop",
    # Protocol graph
    "ProtocolGraph",
    "StepNumbering",
    "build_graph",
    "compute_step_numbers",
    # Protocol serialization
    "ProtocolError",
    "ProtocolExportError",
    "ProtocolImportError",
    "export_protocol",
    "import_protocol",
    "parse_protocol_json",
    "protocol_filename",
    "save_protocol_file",
    "load_protocol_file",
    # Persistence
    "WhiteboardRecord",
    "WhiteboardRepository",
    "JsonWhiteboardRepository",
    # Session
    "EditorSession",
    "SaveResult",
]
