"""Dictionary-backed live world.

This module implements ``WorldAccessor`` over an in-process mapping.
It backs the CLI tooling and tests, and records physics-applying updates.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.cell_extra import CellExtra, ExtraKind
from core.constants import EMPTY_CELL_TYPE
from core.types import BlockPosition

CELL_CAPABILITIES: dict[str, ExtraKind] = {
    "SIGN_POST": ExtraKind.SIGN,
    "WALL_SIGN": ExtraKind.SIGN,
    "CHEST": ExtraKind.CONTAINER,
    "TRAPPED_CHEST": ExtraKind.CONTAINER,
    "FURNACE": ExtraKind.CONTAINER,
    "DISPENSER": ExtraKind.CONTAINER,
    "DROPPER": ExtraKind.CONTAINER,
    "HOPPER": ExtraKind.CONTAINER,
    "BREWING_STAND": ExtraKind.CONTAINER,
    "NOTE_BLOCK": ExtraKind.NOTE,
    "JUKEBOX": ExtraKind.RECORD,
    "SKULL": ExtraKind.SKULL,
    "COMMAND": ExtraKind.COMMAND,
    "MOB_SPAWNER": ExtraKind.SPAWNER,
}


@dataclass
class _StoredCell:
    cell_type: str
    data: int
    extra: CellExtra | None


@dataclass
class MemoryCell:
    """Detached handle onto one ``MemoryWorld`` cell."""

    world: "MemoryWorld"
    position: BlockPosition
    cell_type: str
    data: int
    extra: CellExtra | None = None

    @property
    def capability(self) -> ExtraKind | None:
        """Return the extra-state capability implied by the cell type."""
        return CELL_CAPABILITIES.get(self.cell_type)

    def update(self, apply_physics: bool = False) -> None:
        """Write the handle's state back into the world."""
        self.world.write(self, apply_physics)


@dataclass
class MemoryWorld:
    """In-memory world where unset positions are empty cells.

    Attributes:
        physics_updates: Positions written with physics enabled.
    """

    _cells: dict[BlockPosition, _StoredCell] = field(default_factory=dict)
    physics_updates: list[BlockPosition] = field(default_factory=list)

    def cell_at(self, x: int, y: int, z: int) -> MemoryCell:
        """Return a fresh handle for the cell at the given position."""
        position = BlockPosition(x, y, z)
        stored = self._cells.get(position)
        if stored is None:
            return MemoryCell(world=self, position=position, cell_type=EMPTY_CELL_TYPE, data=0)
        return MemoryCell(
            world=self,
            position=position,
            cell_type=stored.cell_type,
            data=stored.data,
            extra=stored.extra,
        )

    def set_cell(
        self,
        position: BlockPosition,
        cell_type: str,
        data: int = 0,
        extra: CellExtra | None = None,
    ) -> None:
        """Place a cell directly, bypassing handles."""
        if cell_type == EMPTY_CELL_TYPE:
            self._cells.pop(position, None)
            return
        self._cells[position] = _StoredCell(cell_type=cell_type, data=data, extra=extra)

    def write(self, cell: MemoryCell, apply_physics: bool) -> None:
        """Commit a handle's state, dropping extras the type cannot hold."""
        if apply_physics:
            self.physics_updates.append(cell.position)
        extra = cell.extra
        if extra is not None and extra.kind != cell.capability:
            extra = None
        self.set_cell(cell.position, cell.cell_type, cell.data, extra)

    def occupied_positions(self) -> list[BlockPosition]:
        """Return positions of every non-empty cell."""
        return list(self._cells)
