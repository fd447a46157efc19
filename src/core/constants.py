"""Core constants used across Nimitz modules.

This module centralizes store layout names and tuning defaults.
Keeping values here avoids magic literals in store logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".nimitz")
DATA_DIR_NAME = "dat"
ZONE_DIR_TEMPLATE = "warzone-{zone_name}"
VOLUME_FILE_TEMPLATE = "volume-{volume_name}.sl3"
CURRENT_SCHEMA_VERSION = 2
PRE_VERSIONING_SCHEMA_VERSION = 0
CORNERS_TABLE = "corners"
BLOCKS_TABLE = "blocks"
STRUCTURE_PREFIX_TEMPLATE = "structure_{name_hash}"
EMPTY_CELL_TYPE = "AIR"
SIGN_LINE_COUNT = 4
DEFAULT_SAVE_BATCH_SIZE = 10000
STRUCTURE_BATCH_SIZE = 1000
DEFAULT_SLOW_SAVE_SECONDS = 5.0
