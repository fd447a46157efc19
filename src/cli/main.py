"""Nimitz CLI entry points.
This module exposes operator commands for inspecting and migrating stores.
It maps argparse commands onto store calls.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from core.config import NimitzConfig
from core.errors import NimitzError, NimitzStoreError
from store.schema_version import ensure_current_schema, read_schema_version
from store.sqlite_session import connect
from store.zone_store import ZoneVolumeStore


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="nimitz", description="Nimitz zone volume store CLI")
    parser.add_argument("--data-root", help="Override NIMITZ_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("info", "Show schema version and stored cell count"),
        ("count", "Print the number of stored cells"),
        ("migrate", "Upgrade a store to the current schema version"),
    ):
        command_parser = subparsers.add_parser(name, help=help_text)
        command_parser.add_argument("--zone", required=True, help="Warzone name")
        command_parser.add_argument("--volume", required=True, help="Volume name")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Nimitz CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    store = _build_store(args.data_root)
    try:
        if args.command == "info":
            return _run_info_command(store, args)
        if args.command == "count":
            return _run_count_command(store, args)
        if args.command == "migrate":
            return _run_migrate_command(store, args)
    except NimitzError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_store(data_root: str | None) -> ZoneVolumeStore:
    """Build a zone store with optional data-root override.

    Args:
        data_root: Optional override path.

    Returns:
        Configured zone store.
    """
    config = NimitzConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return ZoneVolumeStore(config)


def _existing_store_path(store: ZoneVolumeStore, args: argparse.Namespace) -> Path:
    """Resolve the store path and require the file to exist.

    Raises:
        NimitzStoreError: If no store exists for the zone volume.
    """
    database_path = store.database_path(args.zone, args.volume)
    if not database_path.exists():
        raise NimitzStoreError(
            f"No volume store for '{args.volume}' in zone '{args.zone}' at {database_path}."
        )
    return database_path


def _run_info_command(store: ZoneVolumeStore, args: argparse.Namespace) -> int:
    """Handle info command.

    Args:
        store: Zone store.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    database_path = _existing_store_path(store, args)
    connection = connect(database_path)
    try:
        version = read_schema_version(connection)
    finally:
        connection.close()
    cell_count = store.total_stored_cells(args.volume, args.zone)
    print(f"{database_path}\tv{version}\t{cell_count}")
    return 0


def _run_count_command(store: ZoneVolumeStore, args: argparse.Namespace) -> int:
    """Handle count command."""
    print(store.total_stored_cells(args.volume, args.zone))
    return 0


def _run_migrate_command(store: ZoneVolumeStore, args: argparse.Namespace) -> int:
    """Handle migrate command.

    Args:
        store: Zone store.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    connection = connect(_existing_store_path(store, args))
    try:
        report = ensure_current_schema(connection, args.zone)
    finally:
        connection.close()
    print(f"{report.from_version} -> {report.to_version}")
    return 0
