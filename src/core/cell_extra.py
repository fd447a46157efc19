"""Typed extra state carried by capability-bearing cells.

This module defines one frozen model per cell capability and the
``CellExtra`` union used by the metadata codec and world adapters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union


class ExtraKind(str, Enum):
    """Capability tag for cells that carry extra state."""

    SIGN = "sign"
    CONTAINER = "container"
    NOTE = "note"
    RECORD = "record"
    SKULL = "skull"
    COMMAND = "command"
    SPAWNER = "spawner"


class Tone(str, Enum):
    """Natural tone names of a note block."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"


class SkullType(str, Enum):
    """Head variants a skull block can display."""

    SKELETON = "SKELETON"
    WITHER = "WITHER"
    ZOMBIE = "ZOMBIE"
    PLAYER = "PLAYER"
    CREEPER = "CREEPER"
    DRAGON = "DRAGON"


class BlockFace(str, Enum):
    """Rotations a skull block can face."""

    NORTH = "NORTH"
    EAST = "EAST"
    SOUTH = "SOUTH"
    WEST = "WEST"
    UP = "UP"
    DOWN = "DOWN"
    NORTH_EAST = "NORTH_EAST"
    NORTH_WEST = "NORTH_WEST"
    SOUTH_EAST = "SOUTH_EAST"
    SOUTH_WEST = "SOUTH_WEST"
    WEST_NORTH_WEST = "WEST_NORTH_WEST"
    NORTH_NORTH_WEST = "NORTH_NORTH_WEST"
    NORTH_NORTH_EAST = "NORTH_NORTH_EAST"
    EAST_NORTH_EAST = "EAST_NORTH_EAST"
    EAST_SOUTH_EAST = "EAST_SOUTH_EAST"
    SOUTH_SOUTH_EAST = "SOUTH_SOUTH_EAST"
    SOUTH_SOUTH_WEST = "SOUTH_SOUTH_WEST"
    WEST_SOUTH_WEST = "WEST_SOUTH_WEST"
    SELF = "SELF"


@dataclass(frozen=True)
class ItemStack:
    """One inventory slot's contents.

    Attributes:
        material: Item material name.
        amount: Stack size.
        damage: Durability or variant value of the item.
    """

    material: str
    amount: int = 1
    damage: int = 0


@dataclass(frozen=True)
class SignText:
    """Text lines written on a sign."""

    kind: ClassVar[ExtraKind] = ExtraKind.SIGN
    lines: tuple[str, ...]


@dataclass(frozen=True)
class ContainerItems:
    """Inventory slots of a container; ``None`` marks an empty slot."""

    kind: ClassVar[ExtraKind] = ExtraKind.CONTAINER
    items: tuple[ItemStack | None, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class NoteTone:
    """Tuned note of a note block."""

    kind: ClassVar[ExtraKind] = ExtraKind.NOTE
    tone: Tone
    octave: int
    sharped: bool


@dataclass(frozen=True)
class RecordPlaying:
    """Record material currently inserted into a jukebox."""

    kind: ClassVar[ExtraKind] = ExtraKind.RECORD
    material: str


@dataclass(frozen=True)
class SkullMarker:
    """Owner, head type, and rotation of a skull block."""

    kind: ClassVar[ExtraKind] = ExtraKind.SKULL
    owner: str
    skull_type: SkullType
    rotation: BlockFace


@dataclass(frozen=True)
class CommandText:
    """Name and command of a command block."""

    kind: ClassVar[ExtraKind] = ExtraKind.COMMAND
    name: str
    command: str


@dataclass(frozen=True)
class SpawnerMob:
    """Entity type spawned by a mob spawner."""

    kind: ClassVar[ExtraKind] = ExtraKind.SPAWNER
    entity_type: str


CellExtra = Union[
    SignText,
    ContainerItems,
    NoteTone,
    RecordPlaying,
    SkullMarker,
    CommandText,
    SpawnerMob,
]
