"""SQLite connection and transaction helpers.

This module resolves per-volume store paths and opens connections in
explicit-transaction mode so saves and migrations commit atomically.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from core.config import NimitzConfig
from core.constants import DATA_DIR_NAME, VOLUME_FILE_TEMPLATE, ZONE_DIR_TEMPLATE
from core.errors import NimitzDirectoryError, NimitzStoreError


def zone_directory(config: NimitzConfig, zone_name: str) -> Path:
    """Return the data directory holding a warzone's volume stores."""
    return config.data_root / DATA_DIR_NAME / ZONE_DIR_TEMPLATE.format(zone_name=zone_name)


def volume_database_path(config: NimitzConfig, zone_name: str, volume_name: str) -> Path:
    """Return the store file path for one zone volume."""
    file_name = VOLUME_FILE_TEMPLATE.format(volume_name=volume_name)
    return zone_directory(config, zone_name) / file_name


def ensure_zone_directory(config: NimitzConfig, zone_name: str) -> Path:
    """Create the warzone data directory when missing.

    Raises:
        NimitzDirectoryError: If the directory cannot be created.
    """
    directory = zone_directory(config, zone_name)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise NimitzDirectoryError(
            f"Failed to create warzone data directory {directory}: {error}. "
            "Check write permissions for the data root."
        ) from error
    return directory


def connect(database_path: Path) -> sqlite3.Connection:
    """Open a store connection with explicit transaction control.

    Raises:
        NimitzStoreError: If the database cannot be opened.
    """
    try:
        connection = sqlite3.connect(str(database_path), isolation_level=None)
    except sqlite3.Error as error:
        raise NimitzStoreError(
            f"Failed to open volume store at {database_path}: {error}."
        ) from error
    connection.row_factory = sqlite3.Row
    return connection


@contextmanager
def transaction(connection: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block inside one ``BEGIN``/``COMMIT``, rolling back on failure."""
    connection.execute("BEGIN")
    try:
        yield connection
    except BaseException:
        if connection.in_transaction:
            connection.execute("ROLLBACK")
        raise
    connection.execute("COMMIT")
