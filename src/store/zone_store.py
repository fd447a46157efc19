"""Zone volume store.

This module persists a warzone volume's non-empty cells and their extra
state into a versioned SQLite file, and restores them into the live world.
"""

from __future__ import annotations

import sqlite3
import time
from pathlib import Path
from typing import Any, Iterator

from core.config import NimitzConfig
from core.constants import CURRENT_SCHEMA_VERSION
from core.errors import NimitzError, NimitzMetadataError, NimitzStoreError
from core.logging_config import get_logger
from core.types import BlockPosition, CellSnapshot, ChangeGrid, LoadResult, Volume
from store.cell_rows import (
    clear_tables,
    count_cell_rows,
    create_tables,
    iter_cuboid_positions,
    read_cell_rows,
    read_corners,
    write_cells,
    write_corners,
    zone_layout,
)
from store.metadata_codec import decode_metadata
from store.rebase import unrebase
from store.schema_version import (
    ensure_current_schema,
    read_schema_version,
    reject_future_version,
    write_schema_version,
)
from store.sqlite_session import (
    connect,
    ensure_zone_directory,
    transaction,
    volume_database_path,
)
from world.accessor import CellHandle, LegacyConverter

_LOGGER = get_logger(__name__)


class ZoneVolumeStore:
    """SQLite-backed store for warzone volumes.

    One store file exists per (zone, volume) pair. Cells are stored
    relative to the volume's first corner and empty cells are omitted.
    """

    def __init__(
        self,
        config: NimitzConfig,
        legacy_converter: LegacyConverter | None = None,
        logger: Any = None,
    ) -> None:
        """Initialize the zone store.

        Args:
            config: Runtime configuration.
            legacy_converter: Loader for zones saved before the nimitz format.
            logger: Structured logger; defaults to the module logger.
        """
        self._config = config
        self._legacy_converter = legacy_converter
        self._log = logger or _LOGGER
        self._layout = zone_layout(config.save_batch_size)

    def database_path(self, zone_name: str, volume_name: str) -> Path:
        """Return the store file path for a zone volume."""
        return volume_database_path(self._config, zone_name, volume_name)

    def open(self, volume: Volume, zone_name: str) -> sqlite3.Connection:
        """Open a volume's store, converting legacy data on first use.

        Args:
            volume: Volume whose store should be opened.
            zone_name: Warzone owning the volume.

        Returns:
            Connection to a store at the current schema version.

        Raises:
            NimitzStoreError: If the store is missing with no converter, or unreadable.
            NimitzFutureVersionError: If the store was written by a newer release.
            NimitzMigrationError: If migrating an old store fails.
        """
        database_path = self.database_path(zone_name, volume.name)
        if not database_path.exists():
            if self._legacy_converter is None:
                raise NimitzStoreError(
                    f"No volume store for '{volume.name}' in zone '{zone_name}' at "
                    f"{database_path}. Save the volume once before opening it."
                )
            self._legacy_converter(volume, zone_name)
            self.save(volume, zone_name)
            self._log.info("zone_converted", zone_name=zone_name, volume_name=volume.name)
        connection = connect(database_path)
        try:
            ensure_current_schema(connection, zone_name, self._log)
        except NimitzError:
            connection.close()
            raise
        return connection

    def load_corners(self, connection: sqlite3.Connection, volume: Volume) -> None:
        """Read the stored corner pair onto the volume.

        Raises:
            NimitzStoreError: If the corner pair is missing.
        """
        corner_one, corner_two = read_corners(connection, self._layout)
        volume.corner_one = corner_one
        volume.corner_two = corner_two

    def load(
        self,
        connection: sqlite3.Connection,
        volume: Volume,
        only_corners: bool = False,
        start: int = 0,
        count: int | None = None,
        changes: ChangeGrid | None = None,
    ) -> LoadResult:
        """Restore a window of stored cells into the live world.

        Args:
            connection: Open store connection.
            volume: Volume to restore; its corners are loaded first.
            only_corners: Stop after loading the corner pair.
            start: Offset of the first row in insertion order.
            count: Maximum rows to process; all remaining rows when ``None``.
            changes: Grid receiving a flag for every processed cell.

        Returns:
            Processed and updated row counts for the window.

        Raises:
            NimitzStoreError: If corners or rows cannot be read.
        """
        self.load_corners(connection, volume)
        if only_corners:
            return LoadResult(changed=0, updated=0)
        origin = volume.origin
        minimum = BlockPosition(volume.min_x, volume.min_y, volume.min_z)
        changed = 0
        updated = 0
        try:
            for row in read_cell_rows(connection, self._layout, start, count):
                relative = BlockPosition(int(row["x"]), int(row["y"]), int(row["z"]))
                target = unrebase(origin, relative)
                changed += 1
                if changes is not None:
                    changes.mark(target.x - minimum.x, target.y - minimum.y, target.z - minimum.z)
                if self._restore_cell(volume, target, row):
                    updated += 1
        except sqlite3.Error as error:
            raise NimitzStoreError(
                f"Failed to read cells for volume '{volume.name}': {error}."
            ) from error
        return LoadResult(changed=changed, updated=updated)

    def save(self, volume: Volume, zone_name: str) -> int:
        """Rebuild a volume's store from the live world.

        Args:
            volume: Volume with both corners set.
            zone_name: Warzone owning the volume.

        Returns:
            Number of non-empty cells written.

        Raises:
            NimitzDirectoryError: If the zone directory cannot be created.
            NimitzFutureVersionError: If the existing store was written by a newer release.
            NimitzStoreError: If writing fails; the store keeps its prior content.
        """
        started_at = time.monotonic()
        ensure_zone_directory(self._config, zone_name)
        origin = volume.origin
        connection = connect(self.database_path(zone_name, volume.name))
        try:
            reject_future_version(read_schema_version(connection), zone_name)
            with transaction(connection):
                write_schema_version(connection, CURRENT_SCHEMA_VERSION)
                create_tables(connection, self._layout)
                clear_tables(connection, self._layout)
                write_corners(connection, self._layout, volume)
                written = write_cells(
                    connection,
                    self._layout,
                    origin,
                    _snapshot_cuboid(volume),
                    on_flush=lambda total: self._log_progress(zone_name, total, started_at),
                )
        except sqlite3.Error as error:
            raise NimitzStoreError(
                f"Failed to save volume '{volume.name}' of zone '{zone_name}': {error}. "
                "The store was left unchanged."
            ) from error
        finally:
            connection.close()
        self._log.info(
            "zone_saved",
            zone_name=zone_name,
            volume_name=volume.name,
            cell_count=written,
            elapsed_seconds=round(time.monotonic() - started_at, 2),
        )
        return written

    def total_stored_cells(self, volume_name: str, zone_name: str) -> int:
        """Count a volume's stored cells without loading them.

        Raises:
            NimitzStoreError: If the store is missing or cannot be queried.
        """
        database_path = self.database_path(zone_name, volume_name)
        if not database_path.exists():
            raise NimitzStoreError(
                f"No volume store for '{volume_name}' in zone '{zone_name}' at {database_path}."
            )
        connection = connect(database_path)
        try:
            return count_cell_rows(connection, self._layout)
        except sqlite3.Error as error:
            raise NimitzStoreError(
                f"Failed to count cells for volume '{volume_name}': {error}."
            ) from error
        finally:
            connection.close()

    def _restore_cell(self, volume: Volume, target: BlockPosition, row: sqlite3.Row) -> bool:
        """Apply one stored row to the live cell at ``target``.

        Returns:
            Whether the cell's type or data was rewritten.
        """
        cell = volume.world.cell_at(target.x, target.y, target.z)
        cell_type = str(row["type"])
        data = int(row["data"])
        rewritten = False
        if cell.cell_type != cell_type or cell.data != data:
            cell.cell_type = cell_type
            cell.data = data
            cell.update(apply_physics=False)
            cell = volume.world.cell_at(target.x, target.y, target.z)
            rewritten = True
        payload = row["metadata"]
        if payload:
            self._apply_metadata(cell, payload)
        return rewritten

    def _apply_metadata(self, cell: CellHandle, payload: object) -> None:
        """Decode and apply a metadata payload, isolating failures to this cell."""
        kind = cell.capability
        if kind is None:
            return
        try:
            cell.extra = decode_metadata(kind, _payload_text(payload))
        except NimitzMetadataError as error:
            position = cell.position
            self._log.warning(
                "metadata_decode_failed",
                x=position.x,
                y=position.y,
                z=position.z,
                cell_type=cell.cell_type,
                data=cell.data,
                error=str(error),
            )
            return
        cell.update(apply_physics=False)

    def _log_progress(self, zone_name: str, total: int, started_at: float) -> None:
        """Log a progress event once a save has run past the slow threshold."""
        elapsed = time.monotonic() - started_at
        if elapsed >= self._config.slow_save_seconds:
            self._log.debug(
                "zone_save_progress",
                zone_name=zone_name,
                cells_written=total,
                elapsed_seconds=round(elapsed, 2),
            )


def _snapshot_cuboid(volume: Volume) -> Iterator[CellSnapshot]:
    """Yield a snapshot of every live cell in the volume's cuboid."""
    for position in iter_cuboid_positions(volume):
        cell = volume.world.cell_at(position.x, position.y, position.z)
        yield CellSnapshot(
            position=position,
            cell_type=cell.cell_type,
            data=cell.data,
            extra=cell.extra,
        )


def _payload_text(payload: object) -> str:
    """Return a stored payload as text.

    Raises:
        NimitzMetadataError: If a BLOB payload is not valid UTF-8.
    """
    if isinstance(payload, bytes):
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError as error:
            raise NimitzMetadataError(f"Metadata payload is not UTF-8 text: {error}.") from error
    return str(payload)
