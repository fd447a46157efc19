"""Shared typed models.

This module defines the positions, volumes, and result models used by
the zone store, structure store, world adapters, and CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.cell_extra import CellExtra
from core.errors import NimitzStoreError

if TYPE_CHECKING:
    from world.accessor import WorldAccessor


@dataclass(frozen=True)
class BlockPosition:
    """Absolute or volume-relative integer cell coordinates."""

    x: int
    y: int
    z: int

    def offset(self, dx: int, dy: int, dz: int) -> "BlockPosition":
        """Return the position shifted by the given deltas."""
        return BlockPosition(self.x + dx, self.y + dy, self.z + dz)


@dataclass(frozen=True)
class CellSnapshot:
    """Detached copy of one cell's state.

    Attributes:
        position: Absolute cell position.
        cell_type: Type identifier, for example ``STONE``.
        data: Short numeric variant data.
        extra: Capability-specific extra state when present.
    """

    position: BlockPosition
    cell_type: str
    data: int = 0
    extra: CellExtra | None = None


@dataclass
class Volume:
    """Named cuboid region plus its staged cell collection.

    Attributes:
        name: Volume name used for store file and structure prefixes.
        world: Live world accessor the volume lives in.
        corner_one: First corner and rebasing origin.
        corner_two: Opposite corner.
        cells: Caller-managed staged snapshots.
    """

    name: str
    world: "WorldAccessor"
    corner_one: BlockPosition | None = None
    corner_two: BlockPosition | None = None
    cells: list[CellSnapshot] = field(default_factory=list)

    @property
    def has_corners(self) -> bool:
        """Return whether both corners are set."""
        return self.corner_one is not None and self.corner_two is not None

    @property
    def corner_pair(self) -> tuple[BlockPosition, BlockPosition]:
        """Return both corners, failing when either is unset."""
        return self._corners()

    @property
    def origin(self) -> BlockPosition:
        """Return corner one, the rebasing origin."""
        corner_one, _ = self._corners()
        return corner_one

    @property
    def min_x(self) -> int:
        corner_one, corner_two = self._corners()
        return min(corner_one.x, corner_two.x)

    @property
    def min_y(self) -> int:
        corner_one, corner_two = self._corners()
        return min(corner_one.y, corner_two.y)

    @property
    def min_z(self) -> int:
        corner_one, corner_two = self._corners()
        return min(corner_one.z, corner_two.z)

    @property
    def size_x(self) -> int:
        corner_one, corner_two = self._corners()
        return abs(corner_one.x - corner_two.x) + 1

    @property
    def size_y(self) -> int:
        corner_one, corner_two = self._corners()
        return abs(corner_one.y - corner_two.y) + 1

    @property
    def size_z(self) -> int:
        corner_one, corner_two = self._corners()
        return abs(corner_one.z - corner_two.z) + 1

    def _corners(self) -> tuple[BlockPosition, BlockPosition]:
        """Return both corners or fail when the volume is unbounded.

        Raises:
            NimitzStoreError: If either corner has not been set.
        """
        if self.corner_one is None or self.corner_two is None:
            raise NimitzStoreError(
                f"Volume '{self.name}' has no corner pair. "
                "Load corners or set both corners before using its bounds."
            )
        return self.corner_one, self.corner_two


class ChangeGrid:
    """Dense per-cell flags indexed from a volume's minimum corner."""

    def __init__(self, size_x: int, size_y: int, size_z: int) -> None:
        self.size_x = size_x
        self.size_y = size_y
        self.size_z = size_z
        self._flags = bytearray(size_x * size_y * size_z)

    @classmethod
    def for_volume(cls, volume: Volume) -> "ChangeGrid":
        """Build an all-clear grid sized to the volume's cuboid."""
        return cls(volume.size_x, volume.size_y, volume.size_z)

    def mark(self, xi: int, yi: int, zi: int) -> None:
        """Set the flag for one min-corner-relative index."""
        self._flags[self._index(xi, yi, zi)] = 1

    def is_marked(self, xi: int, yi: int, zi: int) -> bool:
        """Return the flag for one min-corner-relative index."""
        return bool(self._flags[self._index(xi, yi, zi)])

    def count(self) -> int:
        """Return the number of set flags."""
        return sum(self._flags)

    def _index(self, xi: int, yi: int, zi: int) -> int:
        if not (0 <= xi < self.size_x and 0 <= yi < self.size_y and 0 <= zi < self.size_z):
            raise IndexError(f"Cell index ({xi}, {yi}, {zi}) lies outside the change grid.")
        return (xi * self.size_y + yi) * self.size_z + zi


@dataclass(frozen=True)
class LoadResult:
    """Outcome of one zone load window.

    Attributes:
        changed: Stored rows processed in the window.
        updated: Rows whose live type or data differed and were rewritten.
    """

    changed: int
    updated: int


@dataclass(frozen=True)
class MigrationReport:
    """Outcome of gating a store through the schema version manager.

    Attributes:
        zone_name: Warzone the store belongs to.
        from_version: Version declared when the store was opened.
        to_version: Version after migration.
        compacted: Whether post-migration compaction ran successfully.
    """

    zone_name: str
    from_version: int
    to_version: int
    compacted: bool = False

    @property
    def migrated(self) -> bool:
        """Return whether any migration step ran."""
        return self.from_version != self.to_version
