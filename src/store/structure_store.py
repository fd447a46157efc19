"""Reusable structure store.

This module saves dense cuboid templates into a zone's store file under
a ``structure_<hash>`` table prefix and stages them back as snapshots.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from core.constants import CURRENT_SCHEMA_VERSION, STRUCTURE_BATCH_SIZE, STRUCTURE_PREFIX_TEMPLATE
from core.errors import NimitzStoreError
from core.logging_config import get_logger
from core.types import BlockPosition, CellSnapshot, Volume
from store.cell_rows import (
    CellRowLayout,
    clear_tables,
    create_tables,
    iter_cuboid_positions,
    read_cell_rows,
    read_corners,
    write_cells,
    write_corners,
)
from store.rebase import unrebase
from store.schema_version import read_schema_version, reject_future_version, write_schema_version
from store.sqlite_session import transaction

_LOGGER = get_logger(__name__)
_INT32_MASK = 0xFFFFFFFF
_INT31_MASK = 0x7FFFFFFF


def name_hash(name: str) -> int:
    """Return the non-negative 31-bit string hash of a volume name.

    The value matches ``String.hashCode() & Integer.MAX_VALUE`` so
    prefixes stay stable across processes and existing store files.
    """
    value = 0
    encoded = name.encode("utf-16-be")
    for index in range(0, len(encoded), 2):
        code_unit = (encoded[index] << 8) | encoded[index + 1]
        value = (31 * value + code_unit) & _INT32_MASK
    return value & _INT31_MASK


def structure_prefix(volume_name: str) -> str:
    """Return the table prefix for a structure volume."""
    return STRUCTURE_PREFIX_TEMPLATE.format(name_hash=name_hash(volume_name))


def structure_layout(volume_name: str) -> CellRowLayout:
    """Return the dense, metadata-free layout for a structure volume."""
    prefix = structure_prefix(volume_name)
    return CellRowLayout(
        corners_table=f"{prefix}_corners",
        blocks_table=f"{prefix}_blocks",
        skip_empty=False,
        with_metadata=False,
        batch_size=STRUCTURE_BATCH_SIZE,
    )


class StructureStore:
    """Structure template persistence inside an open zone store."""

    def __init__(self, logger: Any = None) -> None:
        self._log = logger or _LOGGER

    def capture(self, volume: Volume) -> int:
        """Stage every live cell of the volume's cuboid, including empty ones.

        Returns:
            Number of staged cells.
        """
        volume.cells.clear()
        for position in iter_cuboid_positions(volume):
            cell = volume.world.cell_at(position.x, position.y, position.z)
            volume.cells.append(
                CellSnapshot(
                    position=position,
                    cell_type=cell.cell_type,
                    data=cell.data,
                    extra=cell.extra,
                )
            )
        return len(volume.cells)

    def save(self, volume: Volume, connection: sqlite3.Connection) -> int:
        """Replace a structure's stored rows with the volume's staged cells.

        Args:
            volume: Volume with corners and staged cells.
            connection: Open store connection.

        Returns:
            Number of cell rows written.

        Raises:
            NimitzStoreError: If writing fails; prior rows are kept.
            NimitzFutureVersionError: If the store was written by a newer release.
        """
        layout = structure_layout(volume.name)
        try:
            reject_future_version(read_schema_version(connection), volume.name)
            with transaction(connection):
                write_schema_version(connection, CURRENT_SCHEMA_VERSION)
                create_tables(connection, layout)
                clear_tables(connection, layout)
                write_corners(connection, layout, volume)
                written = write_cells(connection, layout, volume.origin, volume.cells)
        except sqlite3.Error as error:
            raise NimitzStoreError(
                f"Failed to save structure '{volume.name}': {error}. "
                "The structure tables were left unchanged."
            ) from error
        self._log.info(
            "structure_saved",
            volume_name=volume.name,
            table_prefix=structure_prefix(volume.name),
            cell_count=written,
        )
        return written

    def load(self, volume: Volume, connection: sqlite3.Connection) -> int:
        """Stage a stored structure into the volume's cell collection.

        The live world is not modified.

        Returns:
            Number of staged cells.

        Raises:
            NimitzStoreError: If the structure is missing or unreadable.
        """
        layout = structure_layout(volume.name)
        corner_one, corner_two = read_corners(connection, layout)
        volume.corner_one = corner_one
        volume.corner_two = corner_two
        volume.cells.clear()
        try:
            for row in read_cell_rows(connection, layout):
                relative = BlockPosition(int(row["x"]), int(row["y"]), int(row["z"]))
                volume.cells.append(
                    CellSnapshot(
                        position=unrebase(corner_one, relative),
                        cell_type=str(row["type"]),
                        data=int(row["data"]),
                    )
                )
        except sqlite3.Error as error:
            raise NimitzStoreError(
                f"Failed to read structure '{volume.name}': {error}."
            ) from error
        return len(volume.cells)
