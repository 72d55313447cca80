"""
Configuration & Path Management
===============================
This module serves as the central registry for editor constants, user
preferences and file paths.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic numbers (pick radius, drag threshold, paste
   offset...) scattered throughout the controllers.
2. Preferences: EditorConfig round-trips the tunable values through QSettings,
   so grid size and snapping survive a restart.

Exports:
    WORLD_SCALE (float): Canvas pixels per graph unit at 100 % zoom.
    SESSION_PATH (str): Default autosave file of the running session.
    EditorConfig: Dataclass bundling the tunables.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
import os
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QSettings


# Global Constants
WORLD_SCALE: float = 50.0
HIT_RADIUS_PX: float = 12.0
DRAG_EPSILON_PX: float = 3.0
PASTE_OFFSET: float = 0.06
DEFAULT_BOND_K: float = 1.0
DEFAULT_GRID_SIZE: float = 0.5
HISTORY_LIMIT: int = 500
MIN_ZOOM_PERCENT: float = 10.0
MAX_ZOOM_PERCENT: float = 1000.0

APP_DATA_DIR: str = os.path.join(str(Path.home()), ".springnet")
SESSION_PATH: str = os.path.join(APP_DATA_DIR, "session.h5")

SETTINGS_GROUP = "editor"


@dataclass
class EditorConfig:
    """User-tunable editor settings."""
    world_scale: float = WORLD_SCALE
    hit_radius_px: float = HIT_RADIUS_PX
    drag_epsilon_px: float = DRAG_EPSILON_PX
    paste_offset: float = PASTE_OFFSET
    default_bond_k: float = DEFAULT_BOND_K
    grid_size: float = DEFAULT_GRID_SIZE
    snap_to_grid: bool = False
    history_limit: int = HISTORY_LIMIT

    @classmethod
    def from_settings(cls, settings: Optional[QSettings] = None) -> EditorConfig:
        """Read every field from ``settings`` (keys under 'editor/'), falling back to the defaults."""
        settings = settings if settings is not None else QSettings()
        config = cls()
        settings.beginGroup(SETTINGS_GROUP)
        try:
            for f in fields(cls):
                default = getattr(config, f.name)
                value = settings.value(f.name, default, type=type(default))
                setattr(config, f.name, value)
        finally:
            settings.endGroup()
        return config

    def to_settings(self, settings: Optional[QSettings] = None) -> None:
        settings = settings if settings is not None else QSettings()
        settings.beginGroup(SETTINGS_GROUP)
        try:
            for f in fields(self):
                settings.setValue(f.name, getattr(self, f.name))
        finally:
            settings.endGroup()
        settings.sync()
