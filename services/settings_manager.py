"""
Settings Manager.

Handles application settings with JSON file storage.
"""

import base64
import json
import logging
import os
import platform
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict
from pathlib import Path


logger = logging.getLogger(__name__)


@dataclass
class EditorSettings:
    """Canvas editing behaviour."""
    snap_to_grid: bool = False
    grid_size: int = 20
    min_zoom: float = 0.1
    max_zoom: float = 5.0
    zoom_step: float = 0.1
    nudge_step: int = 1
    nudge_step_large: int = 10
    duplicate_offset: int = 20
    default_protocol_name: str = "Protocol"


@dataclass
class UISettings:
    """User interface settings."""
    show_grid: bool = True
    show_step_numbers: bool = True
    recent_files_max: int = 10


@dataclass
class PathSettings:
    """
    Workspace and file path settings.

    Supports multiple workspace configurations for different use cases:
    - default: Normal user workspace
    - test: Automated testing workspace
    - custom: User-defined workspace
    """
    # Active workspace profile
    active_profile: str = "default"

    # Workspace profiles - maps profile name to base directory
    # If empty, uses platform-specific default
    workspaces: Dict[str, str] = field(default_factory=dict)

    # Subdirectory names within workspace
    whiteboards_subdir: str = "whiteboards"
    protocols_subdir: str = "protocols"

    # Last used directories (for file dialogs)
    last_open_dir: str = ""
    last_save_dir: str = ""
    last_export_dir: str = ""

    def get_workspace_root(self, profile: Optional[str] = None) -> Path:
        """
        Get the root directory for a workspace profile.

        Args:
            profile: Profile name, or None to use active profile

        Returns:
            Path to workspace root directory
        """
        profile = profile or self.active_profile

        if profile in self.workspaces and self.workspaces[profile]:
            return Path(self.workspaces[profile])

        return self._get_default_workspace()

    def _get_default_workspace(self) -> Path:
        """Get platform-specific default workspace directory."""
        system = platform.system()

        if system == "Windows":
            docs = Path(os.environ.get("USERPROFILE", "~")) / "Documents"
            return docs.expanduser() / "ProtocolWhiteboard"
        elif system == "Darwin":  # macOS
            return Path.home() / "Documents" / "ProtocolWhiteboard"
        else:  # Linux and others
            return Path.home() / "protocol-whiteboard"

    def get_whiteboards_dir(self, profile: Optional[str] = None) -> Path:
        """Get the saved whiteboards directory for a profile."""
        return self.get_workspace_root(profile) / self.whiteboards_subdir

    def get_protocols_dir(self, profile: Optional[str] = None) -> Path:
        """Get the exported protocols directory for a profile."""
        return self.get_workspace_root(profile) / self.protocols_subdir


@dataclass
class AppSettings:
    """Complete application settings."""
    editor: EditorSettings = field(default_factory=EditorSettings)
    ui: UISettings = field(default_factory=UISettings)
    paths: PathSettings = field(default_factory=PathSettings)
    recent_files: list = field(default_factory=list)
    window_geometry: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "editor": asdict(self.editor),
            "ui": asdict(self.ui),
            "paths": asdict(self.paths),
            "recent_files": self.recent_files,
            "window_geometry": self.window_geometry,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        """Create from dictionary, ignoring keys this version doesn't know."""
        settings = cls()

        if "editor" in data:
            settings.editor = _dataclass_from_dict(EditorSettings, data["editor"])
        if "ui" in data:
            settings.ui = _dataclass_from_dict(UISettings, data["ui"])
        if "paths" in data:
            settings.paths = _dataclass_from_dict(PathSettings, data["paths"])
        if "recent_files" in data:
            settings.recent_files = data["recent_files"]
        if "window_geometry" in data:
            settings.window_geometry = data["window_geometry"]

        return settings


def _dataclass_from_dict(cls, data: dict):
    known = cls.__dataclass_fields__.keys()
    return cls(**{k: v for k, v in data.items() if k in known})


class SettingsManager:
    """
    Manages application settings with JSON file storage.

    Settings file location:
    - Windows: %APPDATA%/ProtocolWhiteboard/settings.json
    - Linux: ~/.config/ProtocolWhiteboard/settings.json
    - macOS: ~/Library/Application Support/ProtocolWhiteboard/settings.json
    """

    APP_NAME = "ProtocolWhiteboard"
    SETTINGS_FILE = "settings.json"

    def __init__(self, config_override: Optional[str] = None):
        """
        Initialize settings manager.

        Args:
            config_override: Optional path to override config file location.
                            Useful for testing.
        """
        self._settings = AppSettings()
        self._config_override = config_override
        self._settings_path = self._get_settings_path()
        self._ensure_settings_dir()
        self.load()

    @property
    def settings(self) -> AppSettings:
        """Get current settings."""
        return self._settings

    @property
    def settings_path(self) -> str:
        """Get the settings file path."""
        return str(self._settings_path)

    @property
    def editor(self) -> EditorSettings:
        return self._settings.editor

    @property
    def paths(self) -> PathSettings:
        return self._settings.paths

    @property
    def snap_to_grid(self) -> bool:
        return self._settings.editor.snap_to_grid

    @snap_to_grid.setter
    def snap_to_grid(self, value: bool):
        self._settings.editor.snap_to_grid = value
        self.save()

    def get_whiteboards_dir(self) -> Path:
        """Get the active whiteboards directory."""
        return self._settings.paths.get_whiteboards_dir()

    def get_protocols_dir(self) -> Path:
        """Get the active exported protocols directory."""
        return self._settings.paths.get_protocols_dir()

    def get_open_directory(self) -> str:
        """Get the directory to use for Open dialogs."""
        # Priority: last used > protocols dir > current dir
        if self._settings.paths.last_open_dir and os.path.isdir(self._settings.paths.last_open_dir):
            return self._settings.paths.last_open_dir

        protocols_dir = self.get_protocols_dir()
        if protocols_dir.exists():
            return str(protocols_dir)

        return ""

    def set_open_directory(self, path: str):
        """Set the last used Open directory."""
        if os.path.isfile(path):
            path = os.path.dirname(path)
        self._settings.paths.last_open_dir = path
        self.save()

    def get_export_directory(self) -> str:
        """Get the directory to use for protocol export dialogs."""
        if self._settings.paths.last_export_dir and os.path.isdir(self._settings.paths.last_export_dir):
            return self._settings.paths.last_export_dir

        protocols_dir = self.get_protocols_dir()
        if protocols_dir.exists():
            return str(protocols_dir)

        return ""

    def set_export_directory(self, path: str):
        """Set the last used export directory."""
        if os.path.isfile(path) or not os.path.isdir(path):
            path = os.path.dirname(path)
        self._settings.paths.last_export_dir = path
        self.save()

    def set_workspace_path(self, profile: str, path: str):
        """Set the path for a workspace profile."""
        self._settings.paths.workspaces[profile] = path
        self.save()

    def _get_settings_path(self) -> Path:
        """Get platform-specific settings directory."""
        if self._config_override:
            return Path(self._config_override)

        system = platform.system()

        if system == "Windows":
            base = os.environ.get("APPDATA", os.path.expanduser("~"))
            config_dir = Path(base) / self.APP_NAME
        elif system == "Darwin":  # macOS
            config_dir = Path.home() / "Library" / "Application Support" / self.APP_NAME
        else:  # Linux and others
            xdg_config = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
            config_dir = Path(xdg_config) / self.APP_NAME

        return config_dir / self.SETTINGS_FILE

    def _ensure_settings_dir(self):
        """Create settings directory if it doesn't exist."""
        self._settings_path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> bool:
        """Load settings from file."""
        if not self._settings_path.exists():
            return False

        try:
            with open(self._settings_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._settings = AppSettings.from_dict(data)
            return True
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Error loading settings from {self._settings_path}: {e}")
            return False

    def save(self) -> bool:
        """Save settings to file."""
        try:
            self._ensure_settings_dir()
            with open(self._settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings.to_dict(), f, indent=2)
            return True
        except OSError as e:
            logger.warning(f"Error saving settings: {e}")
            return False

    def reset(self):
        """Reset settings to defaults."""
        self._settings = AppSettings()
        self.save()

    def add_recent_file(self, file_path: str):
        """Add a file to recent files list."""
        if file_path in self._settings.recent_files:
            self._settings.recent_files.remove(file_path)

        self._settings.recent_files.insert(0, file_path)

        max_files = self._settings.ui.recent_files_max
        self._settings.recent_files = self._settings.recent_files[:max_files]

        self.save()

    def get_recent_files(self) -> list:
        """Get recent files list, filtered to existing files."""
        existing = [f for f in self._settings.recent_files if os.path.exists(f)]
        if len(existing) != len(self._settings.recent_files):
            self._settings.recent_files = existing
            self.save()
        return existing

    def save_window_geometry(self, geometry: bytes, state: bytes):
        """Save window geometry and state."""
        self._settings.window_geometry = {
            "geometry": base64.b64encode(geometry).decode("ascii"),
            "state": base64.b64encode(state).decode("ascii"),
        }
        self.save()

    def get_window_geometry(self) -> tuple:
        """Get saved window geometry and state."""
        geo = self._settings.window_geometry
        if not geo:
            return None, None

        try:
            geometry = base64.b64decode(geo.get("geometry", ""))
            state = base64.b64decode(geo.get("state", ""))
            return geometry, state
        except ValueError:
            return None, None


# Global settings instance
_settings_manager: Optional[SettingsManager] = None


def get_settings(config_override: Optional[str] = None) -> SettingsManager:
    """
    Get the global settings manager instance.

    Args:
        config_override: Optional path to override config location.
                        Only used on first call to initialize.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager(config_override)
    return _settings_manager


def reset_settings_manager():
    """Reset the global settings manager (useful for testing)."""
    global _settings_manager
    _settings_manager = None
