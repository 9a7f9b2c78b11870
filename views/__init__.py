"""Views package."""

from .shape_renderer import ShapeRenderer
from .whiteboard_canvas import WhiteboardCanvas, InlineTextEditor
from .operation_palette import OperationPalette, OperationButton, AssetButton
from .protocol_properties_panel import ProtocolPropertiesPanel
from .import_protocol_dialog import ImportProtocolDialog
from .main_window import MainWindow

__all__ = [
    "ShapeRenderer",
    "WhiteboardCanvas",
    "InlineTextEditor",
    "OperationPalette",
    "OperationButton",
    "AssetButton",
    "ProtocolPropertiesPanel",
    "ImportProtocolDialog",
    "MainWindow",
]
