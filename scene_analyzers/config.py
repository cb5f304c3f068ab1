"""
Configuration
Module-level settings, overridable through environment variables.
A bad value is logged and replaced by its default so the server still starts.
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

SERVER_NAME = "godot-scene-mcp"

# Format assumed when a file has no [gd_scene] header at all
DEFAULT_FORMAT_VERSION = 3

SCENE_EXTENSIONS = (".tscn", ".scn")

DEFAULT_LOG_LEVEL = "WARNING"


def _read_log_level(raw: Optional[str]) -> str:
    if raw is None or raw.strip() == "":
        return DEFAULT_LOG_LEVEL
    level = raw.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        logger.warning("Ignoring GODOT_SCENE_LOG_LEVEL=%r: not a logging level", raw)
        return DEFAULT_LOG_LEVEL
    return level


def _read_max_depth(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return None
    try:
        depth = int(raw)
    except ValueError:
        logger.warning("Ignoring GODOT_SCENE_MAX_DEPTH=%r: not an integer", raw)
        return None
    if depth < 0:
        logger.warning("Ignoring GODOT_SCENE_MAX_DEPTH=%r: must be >= 0", raw)
        return None
    return depth


LOG_LEVEL = _read_log_level(os.environ.get("GODOT_SCENE_LOG_LEVEL"))

DEFAULT_PROJECT_PATH: Optional[str] = os.environ.get("GODOT_PROJECT_PATH") or None

DEFAULT_MAX_DEPTH: Optional[int] = _read_max_depth(os.environ.get("GODOT_SCENE_MAX_DEPTH"))
