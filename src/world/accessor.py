"""Live world accessor contracts.

This module declares the protocols the zone and structure stores use to
read and write live cells. Game servers adapt their own world API to them.
"""

from __future__ import annotations

from typing import Protocol

from core.cell_extra import CellExtra, ExtraKind
from core.types import BlockPosition, Volume


class CellHandle(Protocol):
    """Mutable view of one live cell.

    Type, data, and extra changes are staged on the handle and only
    reach the world when ``update`` is called.
    """

    @property
    def position(self) -> BlockPosition: ...

    cell_type: str
    data: int
    extra: CellExtra | None

    @property
    def capability(self) -> ExtraKind | None: ...

    def update(self, apply_physics: bool = False) -> None: ...


class WorldAccessor(Protocol):
    """World lookup contract required by the stores."""

    def cell_at(self, x: int, y: int, z: int) -> CellHandle: ...


class LegacyConverter(Protocol):
    """Pre-nimitz loader invoked once when a zone has no store yet."""

    def __call__(self, volume: Volume, zone_name: str) -> None: ...
