"""Coordinate rebasing between absolute and volume-relative space."""

from __future__ import annotations

from core.types import BlockPosition


def rebase(origin: BlockPosition, point: BlockPosition) -> BlockPosition:
    """Return ``point`` relative to ``origin``."""
    return BlockPosition(point.x - origin.x, point.y - origin.y, point.z - origin.z)


def unrebase(origin: BlockPosition, relative: BlockPosition) -> BlockPosition:
    """Return the absolute position of an ``origin``-relative offset."""
    return origin.offset(relative.x, relative.y, relative.z)
