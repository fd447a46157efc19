"""Store schema versioning and forward migration.

This module reads the store's ``user_version`` tag, refuses stores from
newer releases, and runs each migration step in its own transaction.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Callable

from core.constants import CURRENT_SCHEMA_VERSION
from core.errors import NimitzFutureVersionError, NimitzMigrationError, NimitzStoreError
from core.logging_config import get_logger
from core.types import MigrationReport
from store.sqlite_session import transaction

_LOGGER = get_logger(__name__)


def read_schema_version(connection: sqlite3.Connection) -> int:
    """Return the store's declared schema version.

    Raises:
        NimitzStoreError: If the version pragma cannot be read.
    """
    try:
        cursor = connection.execute("PRAGMA user_version")
        row = cursor.fetchone()
        cursor.close()
    except sqlite3.Error as error:
        raise NimitzStoreError(f"Failed to read store schema version: {error}.") from error
    return int(row[0])


def write_schema_version(connection: sqlite3.Connection, version: int) -> None:
    """Write the store's schema version tag."""
    # PRAGMA arguments cannot be bound parameters.
    connection.execute(f"PRAGMA user_version = {int(version)}")


def reject_future_version(declared: int, zone_name: str) -> None:
    """Refuse a store written by a newer release.

    Raises:
        NimitzFutureVersionError: If ``declared`` is above the current version.
    """
    if declared > CURRENT_SCHEMA_VERSION:
        raise NimitzFutureVersionError(
            f"Unsupported zone format for '{zone_name}': store was already converted to "
            f"version {declared}, current format is {CURRENT_SCHEMA_VERSION}. "
            "Upgrade to a release that understands this store."
        )


def _migrate_v1_to_v2(connection: sqlite3.Connection) -> None:
    """Collapse the seven per-capability columns into ``metadata``.

    At most one legacy column is populated per row; when several are,
    only the first in coalesce order survives.
    """
    connection.execute(
        "CREATE TEMPORARY TABLE blocks_backup(x BIGINT, y BIGINT, z BIGINT, type TEXT, "
        "data SMALLINT, sign TEXT, container BLOB, note INT, record TEXT, skull TEXT, "
        "command TEXT, mobid TEXT)"
    )
    connection.execute(
        "INSERT INTO blocks_backup SELECT x, y, z, type, data, sign, container, note, "
        "record, skull, command, mobid FROM blocks"
    )
    connection.execute("DROP TABLE blocks")
    connection.execute(
        "CREATE TABLE blocks(x BIGINT, y BIGINT, z BIGINT, type TEXT, data SMALLINT, "
        "metadata BLOB)"
    )
    connection.execute(
        "INSERT INTO blocks SELECT x, y, z, type, data, "
        "coalesce(container, sign, note, record, skull, command, mobid) "
        "FROM blocks_backup ORDER BY rowid"
    )
    connection.execute("DROP TABLE blocks_backup")


MIGRATIONS: dict[int, Callable[[sqlite3.Connection], None]] = {
    1: _migrate_v1_to_v2,
}


def ensure_current_schema(
    connection: sqlite3.Connection,
    zone_name: str,
    logger: Any = None,
) -> MigrationReport:
    """Bring a store up to the current schema version.

    Args:
        connection: Open store connection in explicit-transaction mode.
        zone_name: Warzone name used in diagnostics.
        logger: Optional structured logger; defaults to the module logger.

    Returns:
        Report describing the versions involved and compaction outcome.

    Raises:
        NimitzFutureVersionError: If the store was written by a newer release.
        NimitzMigrationError: If a step is missing or fails.
    """
    log = logger or _LOGGER
    declared = read_schema_version(connection)
    reject_future_version(declared, zone_name)
    if declared == CURRENT_SCHEMA_VERSION:
        return MigrationReport(zone_name=zone_name, from_version=declared, to_version=declared)
    for version in range(declared, CURRENT_SCHEMA_VERSION):
        _run_migration_step(connection, zone_name, version, log)
    compacted = _compact(connection, zone_name, log)
    log.info(
        "schema_migration_finished",
        zone_name=zone_name,
        from_version=declared,
        to_version=CURRENT_SCHEMA_VERSION,
        compacted=compacted,
    )
    return MigrationReport(
        zone_name=zone_name,
        from_version=declared,
        to_version=CURRENT_SCHEMA_VERSION,
        compacted=compacted,
    )


def _run_migration_step(
    connection: sqlite3.Connection,
    zone_name: str,
    version: int,
    log: Any,
) -> None:
    """Run the step upgrading ``version`` to ``version + 1`` atomically.

    Raises:
        NimitzMigrationError: If no step exists or the step fails.
    """
    step = MIGRATIONS.get(version)
    if step is None:
        raise NimitzMigrationError(
            f"No migration path from schema version {version} for zone '{zone_name}'. "
            "The file is not a recognised volume store."
        )
    log.info(
        "schema_migration_started",
        zone_name=zone_name,
        from_version=version,
        to_version=version + 1,
    )
    try:
        with transaction(connection):
            step(connection)
            write_schema_version(connection, version + 1)
    except sqlite3.Error as error:
        raise NimitzMigrationError(
            f"Migration of zone '{zone_name}' from v{version} to v{version + 1} failed: "
            f"{error}. The store was left at v{version}."
        ) from error


def _compact(connection: sqlite3.Connection, zone_name: str, log: Any) -> bool:
    """Rebuild the store file to reclaim space from rewritten tables."""
    try:
        connection.execute("VACUUM")
    except sqlite3.Error as error:
        log.error("schema_compaction_failed", zone_name=zone_name, error=str(error))
        return False
    return True
