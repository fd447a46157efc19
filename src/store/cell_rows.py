"""Shared cuboid row layout for zone and structure tables.

This module owns the SQL for corner and cell tables. The sparse zone
form and the dense structure form differ only by their ``CellRowLayout``.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from core.constants import BLOCKS_TABLE, CORNERS_TABLE, EMPTY_CELL_TYPE
from core.errors import NimitzStoreError
from core.types import BlockPosition, CellSnapshot, Volume
from store.metadata_codec import encode_metadata
from store.rebase import rebase


@dataclass(frozen=True)
class CellRowLayout:
    """Table names and encoding flags for one cuboid namespace.

    Attributes:
        corners_table: Table holding the two corner rows.
        blocks_table: Table holding one row per stored cell.
        skip_empty: Whether empty cells are left out of the table.
        with_metadata: Whether rows carry the encoded extra state.
        batch_size: Rows inserted per ``executemany`` flush.
    """

    corners_table: str
    blocks_table: str
    skip_empty: bool
    with_metadata: bool
    batch_size: int


def zone_layout(batch_size: int) -> CellRowLayout:
    """Return the sparse, metadata-bearing zone layout."""
    return CellRowLayout(
        corners_table=CORNERS_TABLE,
        blocks_table=BLOCKS_TABLE,
        skip_empty=True,
        with_metadata=True,
        batch_size=batch_size,
    )


def create_tables(connection: sqlite3.Connection, layout: CellRowLayout) -> None:
    """Create the layout's tables when absent."""
    metadata_column = ", metadata BLOB" if layout.with_metadata else ""
    connection.execute(
        f"CREATE TABLE IF NOT EXISTS {layout.blocks_table} "
        f"(x BIGINT, y BIGINT, z BIGINT, type TEXT, data SMALLINT{metadata_column})"
    )
    connection.execute(
        f"CREATE TABLE IF NOT EXISTS {layout.corners_table} "
        "(pos INTEGER PRIMARY KEY NOT NULL UNIQUE, x INTEGER NOT NULL, "
        "y INTEGER NOT NULL, z INTEGER NOT NULL)"
    )


def clear_tables(connection: sqlite3.Connection, layout: CellRowLayout) -> None:
    """Delete every row of the layout's tables, keeping the tables."""
    connection.execute(f"DELETE FROM {layout.blocks_table}")
    connection.execute(f"DELETE FROM {layout.corners_table}")


def write_corners(connection: sqlite3.Connection, layout: CellRowLayout, volume: Volume) -> None:
    """Insert the volume's corner pair as rows ``pos = 1`` and ``pos = 2``."""
    origin, corner_two = volume.corner_pair
    connection.executemany(
        f"INSERT INTO {layout.corners_table} (pos, x, y, z) VALUES (?, ?, ?, ?)",
        [
            (1, origin.x, origin.y, origin.z),
            (2, corner_two.x, corner_two.y, corner_two.z),
        ],
    )


def read_corners(
    connection: sqlite3.Connection,
    layout: CellRowLayout,
) -> tuple[BlockPosition, BlockPosition]:
    """Read the stored corner pair in ``pos`` order.

    Raises:
        NimitzStoreError: If the pair is missing or unreadable.
    """
    try:
        rows = connection.execute(
            f"SELECT x, y, z FROM {layout.corners_table} ORDER BY pos LIMIT 2"
        ).fetchall()
    except sqlite3.Error as error:
        raise NimitzStoreError(
            f"Failed to read corners from {layout.corners_table}: {error}."
        ) from error
    if len(rows) != 2:
        raise NimitzStoreError(
            f"Store table {layout.corners_table} holds {len(rows)} corner rows; expected 2. "
            "Re-save the volume to rebuild its corner pair."
        )
    first, second = rows
    return (
        BlockPosition(int(first["x"]), int(first["y"]), int(first["z"])),
        BlockPosition(int(second["x"]), int(second["y"]), int(second["z"])),
    )


def iter_cuboid_positions(volume: Volume) -> Iterator[BlockPosition]:
    """Yield every absolute position of the cuboid, x outer and z inner."""
    min_x, min_y, min_z = volume.min_x, volume.min_y, volume.min_z
    for x in range(min_x, min_x + volume.size_x):
        for y in range(min_y, min_y + volume.size_y):
            for z in range(min_z, min_z + volume.size_z):
                yield BlockPosition(x, y, z)


def write_cells(
    connection: sqlite3.Connection,
    layout: CellRowLayout,
    origin: BlockPosition,
    cells: Iterable[CellSnapshot],
    on_flush: Callable[[int], None] | None = None,
) -> int:
    """Insert cell rows rebased onto ``origin`` in batches.

    Args:
        connection: Connection inside the caller's transaction.
        layout: Target namespace layout.
        origin: Corner one of the volume.
        cells: Cells in write order.
        on_flush: Called with the running row count after each full batch.

    Returns:
        Number of rows written.
    """
    columns = "x, y, z, type, data, metadata" if layout.with_metadata else "x, y, z, type, data"
    placeholders = ", ".join("?" for _ in columns.split(", "))
    statement = f"INSERT INTO {layout.blocks_table} ({columns}) VALUES ({placeholders})"
    batch: list[tuple[object, ...]] = []
    written = 0
    for cell in cells:
        if layout.skip_empty and cell.cell_type == EMPTY_CELL_TYPE:
            continue
        batch.append(_cell_row(layout, origin, cell))
        written += 1
        if len(batch) >= layout.batch_size:
            connection.executemany(statement, batch)
            batch.clear()
            if on_flush is not None:
                on_flush(written)
    if batch:
        connection.executemany(statement, batch)
    return written


def read_cell_rows(
    connection: sqlite3.Connection,
    layout: CellRowLayout,
    start: int = 0,
    count: int | None = None,
) -> Iterator[sqlite3.Row]:
    """Yield stored cell rows in insertion order within ``[start, start+count)``."""
    limit = -1 if count is None else count
    cursor = connection.execute(
        f"SELECT * FROM {layout.blocks_table} ORDER BY rowid LIMIT ? OFFSET ?",
        (limit, start),
    )
    try:
        yield from cursor
    finally:
        cursor.close()


def count_cell_rows(connection: sqlite3.Connection, layout: CellRowLayout) -> int:
    """Return the number of stored cell rows."""
    row = connection.execute(f"SELECT COUNT(*) AS total FROM {layout.blocks_table}").fetchone()
    return int(row["total"])


def _cell_row(layout: CellRowLayout, origin: BlockPosition, cell: CellSnapshot) -> tuple[object, ...]:
    relative = rebase(origin, cell.position)
    row: tuple[object, ...] = (relative.x, relative.y, relative.z, cell.cell_type, cell.data)
    if layout.with_metadata:
        row += (encode_metadata(cell.extra),)
    return row
