"""Unit tests for shared volume models."""

from __future__ import annotations

import pytest

from core.errors import NimitzStoreError
from core.types import BlockPosition, ChangeGrid, Volume
from world.memory_world import MemoryWorld


def _volume() -> Volume:
    return Volume(
        name="spawn",
        world=MemoryWorld(),
        corner_one=BlockPosition(2, 65, -1),
        corner_two=BlockPosition(0, 64, 1),
    )


def test_volume_bounds_use_minimum_corner() -> None:
    """Minimums should come from either corner, not only corner one."""
    volume = _volume()

    assert (volume.min_x, volume.min_y, volume.min_z) == (0, 64, -1)


def test_volume_sizes_are_inclusive() -> None:
    """Sizes should count both corner cells."""
    volume = _volume()

    assert (volume.size_x, volume.size_y, volume.size_z) == (3, 2, 3)


def test_volume_without_corners_raises() -> None:
    """Bounds should be unavailable until both corners are set."""
    volume = Volume(name="empty", world=MemoryWorld(), corner_one=BlockPosition(0, 0, 0))

    with pytest.raises(NimitzStoreError):
        _ = volume.size_x

    assert not volume.has_corners


def test_change_grid_marks_single_cell() -> None:
    """Marking one index should set exactly that flag."""
    grid = ChangeGrid.for_volume(_volume())

    grid.mark(1, 0, 2)

    assert grid.is_marked(1, 0, 2) and grid.count() == 1


def test_change_grid_rejects_out_of_range_index() -> None:
    """Indices outside the cuboid should be refused."""
    grid = ChangeGrid(1, 1, 1)

    with pytest.raises(IndexError):
        grid.mark(0, 1, 0)

    assert grid.count() == 0
