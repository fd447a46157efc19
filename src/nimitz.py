"""Public SDK surface for Nimitz.

This module provides a stable import path for store users.
It re-exports the stores, typed models, and codec helpers.
"""

from __future__ import annotations

from core.cell_extra import (
    BlockFace,
    CellExtra,
    CommandText,
    ContainerItems,
    ExtraKind,
    ItemStack,
    NoteTone,
    RecordPlaying,
    SignText,
    SkullMarker,
    SkullType,
    SpawnerMob,
    Tone,
)
from core.config import NimitzConfig
from core.types import BlockPosition, CellSnapshot, ChangeGrid, LoadResult, MigrationReport, Volume
from store.metadata_codec import decode_metadata, encode_metadata
from store.rebase import rebase, unrebase
from store.schema_version import ensure_current_schema
from store.structure_store import StructureStore, structure_prefix
from store.zone_store import ZoneVolumeStore
from world.memory_world import MemoryWorld

__all__ = [
    "BlockFace",
    "BlockPosition",
    "CellExtra",
    "CellSnapshot",
    "ChangeGrid",
    "CommandText",
    "ContainerItems",
    "ExtraKind",
    "ItemStack",
    "LoadResult",
    "MemoryWorld",
    "MigrationReport",
    "NimitzConfig",
    "NoteTone",
    "RecordPlaying",
    "SignText",
    "SkullMarker",
    "SkullType",
    "SpawnerMob",
    "StructureStore",
    "Tone",
    "Volume",
    "ZoneVolumeStore",
    "decode_metadata",
    "encode_metadata",
    "ensure_current_schema",
    "rebase",
    "structure_prefix",
    "unrebase",
]
