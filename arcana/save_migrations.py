"""Player record migration registry."""

from __future__ import annotations

from typing import Callable, Dict


class SaveMigrationError(Exception):
    """Raised when a player record cannot be migrated to the latest schema."""


Migration = Callable[[Dict], Dict]


def _migrate_v0_to_v1(payload: Dict) -> Dict:
    player = payload.get("player")
    if not isinstance(player, dict):
        player = {}
        for key in ("id", "attributes", "progress"):
            if key in payload:
                player[key] = payload.get(key)
        if not player:
            raise SaveMigrationError("Missing player block for legacy record.")

    metadata = payload.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    return {
        "version": 1,
        "metadata": {
            "schema": "player_v1",
            "version": 1,
            "saved_at": metadata.get("saved_at") or payload.get("saved_at"),
        },
        "player": player,
    }


MIGRATIONS: Dict[int, Migration] = {
    0: _migrate_v0_to_v1,
}


def migrate_player_payload(payload: Dict, target_version: int) -> Dict:
    """Upgrade a decoded player record one step at a time to ``target_version``."""
    if not isinstance(payload, dict):
        raise SaveMigrationError("Player payload was not an object.")
    version = payload.get("version") or 0
    if not isinstance(version, int):
        raise SaveMigrationError(f"Record version {version!r} is not an integer.")
    if version > target_version:
        raise SaveMigrationError(
            f"Record schema {version} is newer than supported {target_version}."
        )
    for step in range(version, target_version):
        migrator = MIGRATIONS.get(step)
        if migrator is None:
            raise SaveMigrationError(f"No migration from record schema {step}.")
        payload = migrator(payload)
    return payload
