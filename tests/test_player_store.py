import json
from pathlib import Path

import pytest

from arcana.player import PROGRESS_GAME_KEY, PROGRESS_SCENE_KEY, Player
from arcana.player_store import JsonPlayerStore, MemoryPlayerStore, StoreCorruptError
from arcana.save_migrations import SaveMigrationError, migrate_player_payload


def sample_player(player_id: str = "alice") -> Player:
    player = Player(player_id)
    player.set_attribute("gold", 12)
    player.set_attribute("health", 2)
    player.set_progress(PROGRESS_GAME_KEY, "merchant")
    player.set_progress(PROGRESS_SCENE_KEY, "road")
    return player


def test_json_store_round_trip(tmp_path: Path) -> None:
    store = JsonPlayerStore(tmp_path)
    record_path = store.save(sample_player())

    payload = json.loads(record_path.read_text(encoding="utf-8"))
    assert payload["version"] == JsonPlayerStore.SCHEMA_VERSION
    assert payload["metadata"]["schema"] == "player_v1"

    loaded = store.load("alice")
    assert loaded.all_attributes() == {"gold": 12, "health": 2}
    assert loaded.get_progress(PROGRESS_SCENE_KEY) == "road"


def test_json_store_returns_none_for_unknown_player(tmp_path: Path) -> None:
    assert JsonPlayerStore(tmp_path).load("nobody") is None


def test_second_save_keeps_backup(tmp_path: Path) -> None:
    store = JsonPlayerStore(tmp_path)
    player = sample_player()
    store.save(player)
    player.set_attribute("gold", 1)
    store.save(player)

    backup = json.loads((tmp_path / "alice.json.bak").read_text(encoding="utf-8"))
    assert backup["player"]["attributes"]["gold"] == 12


def test_corrupt_record_restores_from_backup(tmp_path: Path) -> None:
    store = JsonPlayerStore(tmp_path)
    player = sample_player()
    store.save(player)
    store.save(player)
    (tmp_path / "alice.json").write_text("{broken", encoding="utf-8")

    loaded = store.load("alice")

    assert loaded.get_attribute("gold") == 12
    assert json.loads((tmp_path / "alice.json").read_text(encoding="utf-8"))["version"] == 1


def test_corrupt_record_without_backup_raises(tmp_path: Path) -> None:
    store = JsonPlayerStore(tmp_path)
    (tmp_path / "alice.json").write_text("{broken", encoding="utf-8")
    with pytest.raises(StoreCorruptError):
        store.load("alice")


def test_legacy_record_is_migrated(tmp_path: Path) -> None:
    legacy = {
        "id": "alice",
        "attributes": {"gold": 3},
        "progress": {PROGRESS_GAME_KEY: "merchant", PROGRESS_SCENE_KEY: "market"},
    }
    (tmp_path / "alice.json").write_text(json.dumps(legacy), encoding="utf-8")

    loaded = JsonPlayerStore(tmp_path).load("alice")

    assert loaded.get_attribute("gold") == 3
    assert loaded.get_progress(PROGRESS_SCENE_KEY) == "market"


def test_newer_schema_is_rejected() -> None:
    with pytest.raises(SaveMigrationError, match="newer"):
        migrate_player_payload({"version": 9, "player": {}}, 1)


def test_reset_progress_keeps_record(tmp_path: Path) -> None:
    store = JsonPlayerStore(tmp_path)
    store.save(sample_player())

    store.reset_progress("alice")

    loaded = store.load("alice")
    assert loaded is not None
    assert loaded.all_attributes() == {}
    assert loaded.all_progress() == {}


def test_delete_removes_record_and_backup(tmp_path: Path) -> None:
    store = JsonPlayerStore(tmp_path)
    store.save(sample_player())
    store.save(sample_player())

    store.delete("alice")

    assert not store.exists("alice")
    assert not (tmp_path / "alice.json.bak").exists()
    store.delete("alice")


def test_unsafe_ids_map_to_distinct_files(tmp_path: Path) -> None:
    store = JsonPlayerStore(tmp_path)
    first = store.save(sample_player("../etc/passwd"))
    second = store.save(sample_player("etc/passwd"))

    assert first.parent == tmp_path
    assert first != second
    assert store.load("../etc/passwd").id == "../etc/passwd"


def test_memory_store_isolates_snapshots() -> None:
    store = MemoryPlayerStore()
    player = sample_player()
    store.save(player)
    player.set_attribute("gold", 0)

    assert store.load("alice").get_attribute("gold") == 12
    store.reset_progress("alice")
    assert store.load("alice").all_progress() == {}
    store.delete("alice")
    assert "alice" not in store
    assert store.load("alice") is None


def test_current_record_passes_through_migration_unchanged() -> None:
    payload = {"version": 1, "metadata": {}, "player": {"id": "alice"}}
    assert migrate_player_payload(payload, 1) is payload


def test_legacy_record_without_player_data_is_rejected() -> None:
    with pytest.raises(SaveMigrationError, match="Missing player block"):
        migrate_player_payload({"saved_at": "yesterday"}, 1)


def test_non_integer_version_is_rejected() -> None:
    with pytest.raises(SaveMigrationError, match="not an integer"):
        migrate_player_payload({"version": "1", "player": {}}, 1)
