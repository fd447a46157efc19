"""Unit tests for the zone volume store."""

from __future__ import annotations

import sqlite3
from dataclasses import replace

import pytest

from core.cell_extra import ContainerItems, ItemStack, SignText
from core.config import NimitzConfig
from core.errors import NimitzDirectoryError, NimitzFutureVersionError, NimitzStoreError
from core.types import BlockPosition, ChangeGrid, Volume
from store.zone_store import ZoneVolumeStore
from world.memory_world import MemoryWorld

_SIGN_LINES = ("Welcome", "to the", "red", "base")


def _config(tmp_path, **overrides: object) -> NimitzConfig:
    return replace(NimitzConfig.from_env(), data_root=tmp_path, **overrides)


def _sign_volume(world: MemoryWorld) -> Volume:
    """Build the 3x2x3 scenario volume with one sign at relative (1, 0, 1)."""
    world.set_cell(BlockPosition(1, 64, 1), "SIGN_POST", 4, SignText(lines=_SIGN_LINES))
    return Volume(
        name="spawn",
        world=world,
        corner_one=BlockPosition(0, 64, 0),
        corner_two=BlockPosition(2, 65, 2),
    )


def _fill_volume(world: MemoryWorld) -> Volume:
    """Build a 4x1x3 volume where every cell is stone with distinct data."""
    for x in range(4):
        for z in range(3):
            world.set_cell(BlockPosition(10 + x, 5, 20 + z), "STONE", x * 3 + z)
    return Volume(
        name="floor",
        world=world,
        corner_one=BlockPosition(13, 5, 22),
        corner_two=BlockPosition(10, 5, 20),
    )


def _rows(store: ZoneVolumeStore, zone_name: str, volume_name: str) -> list[tuple[object, ...]]:
    connection = sqlite3.connect(str(store.database_path(zone_name, volume_name)))
    rows = connection.execute("SELECT * FROM blocks ORDER BY rowid").fetchall()
    connection.close()
    return rows


def test_save_writes_single_sign_row(tmp_path) -> None:
    """Only the non-empty sign cell should be stored, with its lines."""
    store = ZoneVolumeStore(_config(tmp_path))

    written = store.save(_sign_volume(MemoryWorld()), "alpha")

    assert written == 1 and _rows(store, "alpha", "spawn") == [
        (1, 0, 1, "SIGN_POST", 4, "Welcome\nto the\nred\nbase")
    ]


def test_save_writes_corner_pair(tmp_path) -> None:
    """Both corners should be stored under positions 1 and 2."""
    store = ZoneVolumeStore(_config(tmp_path))
    store.save(_sign_volume(MemoryWorld()), "alpha")

    connection = sqlite3.connect(str(store.database_path("alpha", "spawn")))
    corners = connection.execute("SELECT pos, x, y, z FROM corners ORDER BY pos").fetchall()
    connection.close()

    assert corners == [(1, 0, 64, 0), (2, 2, 65, 2)]


def test_load_restores_sign_into_fresh_world(tmp_path) -> None:
    """Loading into an empty world should recreate the sign and flag only its cell."""
    store = ZoneVolumeStore(_config(tmp_path))
    store.save(_sign_volume(MemoryWorld()), "alpha")
    fresh_world = MemoryWorld()
    volume = Volume(name="spawn", world=fresh_world)
    connection = store.open(volume, "alpha")
    changes = ChangeGrid(3, 2, 3)

    result = store.load(connection, volume, changes=changes)
    connection.close()
    sign = fresh_world.cell_at(1, 64, 1)

    assert (
        result.changed == 1
        and sign.cell_type == "SIGN_POST"
        and sign.data == 4
        and sign.extra == SignText(lines=_SIGN_LINES)
        and changes.count() == 1
        and changes.is_marked(1, 0, 1)
    )


def test_load_uses_no_physics_updates(tmp_path) -> None:
    """Restoring cells must never trigger physics-applying updates."""
    store = ZoneVolumeStore(_config(tmp_path))
    store.save(_fill_volume(MemoryWorld()), "alpha")
    fresh_world = MemoryWorld()
    volume = Volume(name="floor", world=fresh_world)
    connection = store.open(volume, "alpha")

    store.load(connection, volume)
    connection.close()

    assert fresh_world.physics_updates == []


def test_load_skips_rewriting_unchanged_cells(tmp_path) -> None:
    """Cells already matching the store should be processed but not updated."""
    world = MemoryWorld()
    store = ZoneVolumeStore(_config(tmp_path))
    store.save(_fill_volume(world), "alpha")
    world.set_cell(BlockPosition(11, 5, 21), "DIRT")
    volume = Volume(name="floor", world=world)
    connection = store.open(volume, "alpha")

    result = store.load(connection, volume)
    connection.close()

    assert result.changed == 12 and result.updated == 1


def test_load_only_corners_leaves_world_untouched(tmp_path) -> None:
    """A corners-only load should set corners and report no changes."""
    store = ZoneVolumeStore(_config(tmp_path))
    store.save(_sign_volume(MemoryWorld()), "alpha")
    fresh_world = MemoryWorld()
    volume = Volume(name="spawn", world=fresh_world)
    connection = store.open(volume, "alpha")

    result = store.load(connection, volume, only_corners=True)
    connection.close()

    assert (
        result.changed == 0
        and volume.corner_two == BlockPosition(2, 65, 2)
        and fresh_world.occupied_positions() == []
    )


@pytest.mark.parametrize("window", [1, 2, 5, 12, 50])
def test_windowed_loads_match_full_load(tmp_path, window: int) -> None:
    """Loading in windows should process the same rows as one full load."""
    store = ZoneVolumeStore(_config(tmp_path))
    total = store.save(_fill_volume(MemoryWorld()), "alpha")
    fresh_world = MemoryWorld()
    volume = Volume(name="floor", world=fresh_world)
    connection = store.open(volume, "alpha")
    changes = ChangeGrid(4, 1, 3)

    changed = 0
    for start in range(0, total, window):
        changed += store.load(connection, volume, start=start, count=window, changes=changes).changed
    connection.close()

    assert changed == total and changes.count() == total


def test_save_twice_is_idempotent(tmp_path) -> None:
    """Saving an unchanged world twice should store identical rows."""
    world = MemoryWorld()
    world.set_cell(BlockPosition(12, 5, 21), "CHEST", 2, ContainerItems(items=(ItemStack("TNT", 5),)))
    store = ZoneVolumeStore(_config(tmp_path, save_batch_size=5))
    volume = _fill_volume(world)

    store.save(volume, "alpha")
    first_rows = _rows(store, "alpha", "floor")
    store.save(volume, "alpha")

    assert _rows(store, "alpha", "floor") == first_rows


def test_save_logs_progress_for_slow_saves(tmp_path, recording_logger) -> None:
    """Every flushed batch should log progress once the threshold is passed."""
    store = ZoneVolumeStore(
        _config(tmp_path, save_batch_size=5, slow_save_seconds=0.0),
        logger=recording_logger,
    )

    store.save(_fill_volume(MemoryWorld()), "alpha")

    assert recording_logger.names().count("zone_save_progress") == 2


def test_save_preserves_structure_tables(tmp_path) -> None:
    """Zone saves should clear zone rows only, never other prefixed tables."""
    store = ZoneVolumeStore(_config(tmp_path))
    volume = _sign_volume(MemoryWorld())
    store.save(volume, "alpha")
    connection = sqlite3.connect(str(store.database_path("alpha", "spawn")))
    connection.execute("CREATE TABLE structure_1_blocks (x, y, z, type, data)")
    connection.execute("INSERT INTO structure_1_blocks VALUES (0, 0, 0, 'STONE', 0)")
    connection.commit()
    connection.close()

    store.save(volume, "alpha")
    connection = sqlite3.connect(str(store.database_path("alpha", "spawn")))
    kept = connection.execute("SELECT COUNT(*) FROM structure_1_blocks").fetchone()[0]
    connection.close()

    assert kept == 1


def test_save_without_corners_raises(tmp_path) -> None:
    """A volume without corners cannot be saved."""
    store = ZoneVolumeStore(_config(tmp_path))

    with pytest.raises(NimitzStoreError):
        store.save(Volume(name="void", world=MemoryWorld()), "alpha")

    assert not store.database_path("alpha", "void").exists()


def test_save_raises_when_directory_cannot_be_created(tmp_path) -> None:
    """A data root blocked by a file should fail before any write."""
    blocked_root = tmp_path / "blocked"
    blocked_root.write_text("not a directory", encoding="utf-8")
    store = ZoneVolumeStore(_config(blocked_root))

    with pytest.raises(NimitzDirectoryError):
        store.save(_sign_volume(MemoryWorld()), "alpha")

    assert blocked_root.is_file()


def test_corrupt_metadata_does_not_abort_load(tmp_path, recording_logger) -> None:
    """One undecodable payload should be logged while other cells still load."""
    world = MemoryWorld()
    world.set_cell(BlockPosition(0, 64, 0), "NOTE_BLOCK")
    volume = _sign_volume(world)
    store = ZoneVolumeStore(_config(tmp_path), logger=recording_logger)
    store.save(volume, "alpha")
    connection = sqlite3.connect(str(store.database_path("alpha", "spawn")))
    connection.execute("UPDATE blocks SET metadata = 'Z\n9\nmaybe' WHERE type = 'NOTE_BLOCK'")
    connection.commit()
    connection.close()
    fresh_world = MemoryWorld()
    reload_volume = Volume(name="spawn", world=fresh_world)
    connection = store.open(reload_volume, "alpha")

    result = store.load(connection, reload_volume)
    connection.close()

    assert (
        result.changed == 2
        and fresh_world.cell_at(0, 64, 0).cell_type == "NOTE_BLOCK"
        and fresh_world.cell_at(0, 64, 0).extra is None
        and fresh_world.cell_at(1, 64, 1).extra == SignText(lines=_SIGN_LINES)
        and "metadata_decode_failed" in recording_logger.names()
    )


@pytest.mark.parametrize(
    "payload",
    [
        b"\xff\xfe items",
        "items:\n- {type: STONE, amount: .inf}\n",
    ],
)
def test_unreadable_container_payload_does_not_abort_load(
    tmp_path, recording_logger, payload: object
) -> None:
    """Non-UTF-8 bytes and out-of-range counts should only skip that cell's extra."""
    world = MemoryWorld()
    world.set_cell(BlockPosition(0, 64, 0), "CHEST")
    volume = _sign_volume(world)
    store = ZoneVolumeStore(_config(tmp_path), logger=recording_logger)
    store.save(volume, "alpha")
    connection = sqlite3.connect(str(store.database_path("alpha", "spawn")))
    connection.execute("UPDATE blocks SET metadata = ? WHERE type = 'CHEST'", (payload,))
    connection.commit()
    connection.close()
    fresh_world = MemoryWorld()
    reload_volume = Volume(name="spawn", world=fresh_world)
    connection = store.open(reload_volume, "alpha")

    result = store.load(connection, reload_volume)
    connection.close()

    assert (
        result.changed == 2
        and fresh_world.cell_at(0, 64, 0).cell_type == "CHEST"
        and fresh_world.cell_at(0, 64, 0).extra is None
        and fresh_world.cell_at(1, 64, 1).extra == SignText(lines=_SIGN_LINES)
        and "metadata_decode_failed" in recording_logger.names()
    )


def test_save_refuses_store_from_newer_release(tmp_path) -> None:
    """Saving over a future-version store should leave its version and rows untouched."""
    store = ZoneVolumeStore(_config(tmp_path))
    store.save(_sign_volume(MemoryWorld()), "alpha")
    connection = sqlite3.connect(str(store.database_path("alpha", "spawn")))
    connection.execute("PRAGMA user_version = 3")
    connection.commit()
    connection.close()

    with pytest.raises(NimitzFutureVersionError):
        store.save(_sign_volume(MemoryWorld()), "alpha")
    connection = sqlite3.connect(str(store.database_path("alpha", "spawn")))
    version = connection.execute("PRAGMA user_version").fetchone()[0]
    connection.close()

    assert version == 3 and len(_rows(store, "alpha", "spawn")) == 1


def test_load_raises_for_missing_corner_pair(tmp_path) -> None:
    """A store without two corner rows violates the format."""
    store = ZoneVolumeStore(_config(tmp_path))
    store.save(_sign_volume(MemoryWorld()), "alpha")
    connection = sqlite3.connect(str(store.database_path("alpha", "spawn")))
    connection.execute("DELETE FROM corners WHERE pos = 2")
    connection.commit()
    connection.close()
    volume = Volume(name="spawn", world=MemoryWorld())
    connection = store.open(volume, "alpha")

    with pytest.raises(NimitzStoreError):
        store.load(connection, volume)
    connection.close()

    assert volume.corner_one is None


def test_total_stored_cells_counts_rows(tmp_path) -> None:
    """The count query should match the number of saved cells."""
    store = ZoneVolumeStore(_config(tmp_path))
    written = store.save(_fill_volume(MemoryWorld()), "alpha")

    assert store.total_stored_cells("floor", "alpha") == written


def test_total_stored_cells_raises_for_missing_store(tmp_path) -> None:
    """Counting a store that was never saved should fail."""
    store = ZoneVolumeStore(_config(tmp_path))

    with pytest.raises(NimitzStoreError):
        store.total_stored_cells("ghost", "alpha")

    assert True


def test_open_converts_legacy_zone_once(tmp_path) -> None:
    """A missing store should be converted and saved on first open only."""
    calls: list[str] = []
    source_world = MemoryWorld()

    def _converter(volume: Volume, zone_name: str) -> None:
        calls.append(zone_name)
        source = _sign_volume(source_world)
        volume.corner_one = source.corner_one
        volume.corner_two = source.corner_two

    store = ZoneVolumeStore(_config(tmp_path), legacy_converter=_converter)
    volume = Volume(name="spawn", world=source_world)

    store.open(volume, "alpha").close()
    store.open(volume, "alpha").close()

    assert calls == ["alpha"] and store.total_stored_cells("spawn", "alpha") == 1


def test_open_without_converter_raises_for_missing_store(tmp_path) -> None:
    """Without a converter a missing store cannot be opened."""
    store = ZoneVolumeStore(_config(tmp_path))

    with pytest.raises(NimitzStoreError):
        store.open(Volume(name="spawn", world=MemoryWorld()), "alpha")

    assert not store.database_path("alpha", "spawn").exists()


def test_open_rejects_future_store(tmp_path) -> None:
    """Opening a store from a newer release should fail and leave it unchanged."""
    store = ZoneVolumeStore(_config(tmp_path))
    store.save(_sign_volume(MemoryWorld()), "alpha")
    database_path = store.database_path("alpha", "spawn")
    connection = sqlite3.connect(str(database_path))
    connection.execute("PRAGMA user_version = 3")
    connection.commit()
    connection.close()

    with pytest.raises(NimitzFutureVersionError):
        store.open(Volume(name="spawn", world=MemoryWorld()), "alpha")
    connection = sqlite3.connect(str(database_path))
    version = connection.execute("PRAGMA user_version").fetchone()[0]
    connection.close()

    assert version == 3
