"""Durable player persistence."""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import os
import shutil
import string
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol

from .player import Player
from .save_migrations import SaveMigrationError, migrate_player_payload

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for player store failures."""


class StoreCorruptError(StoreError):
    """Raised when a stored record cannot be parsed or validated."""


class PlayerStore(Protocol):
    def load(self, player_id: str) -> Optional[Player]: ...

    def save(self, player: Player) -> None: ...

    def reset_progress(self, player_id: str) -> None: ...

    def delete(self, player_id: str) -> None: ...


class MemoryPlayerStore:
    """Keeps player snapshots in a dict; nothing survives the process."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict] = {}

    def load(self, player_id: str) -> Optional[Player]:
        record = self._records.get(player_id)
        if record is None:
            return None
        return Player.from_dict(copy.deepcopy(record), player_id)

    def save(self, player: Player) -> None:
        self._records[player.id] = copy.deepcopy(player.to_dict())

    def reset_progress(self, player_id: str) -> None:
        if player_id in self._records:
            self._records[player_id] = Player(player_id).to_dict()

    def delete(self, player_id: str) -> None:
        self._records.pop(player_id, None)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._records


class JsonPlayerStore:
    """One JSON document per player, written atomically with a backup copy."""

    SCHEMA_VERSION = 1
    SUFFIX = ".json"
    BACKUP_SUFFIX = ".json.bak"
    _VALID_ID_CHARS = set(string.ascii_letters + string.digits + "-_")

    def __init__(self, base_path: Path | str = "players") -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    # ---------- Public API ----------
    def load(self, player_id: str) -> Optional[Player]:
        record_path = self._record_path(player_id)
        backup_path = self._backup_path(player_id)
        if not record_path.exists() and not backup_path.exists():
            return None
        try:
            payload = self._read_payload(record_path)
        except (StoreError, SaveMigrationError) as err:
            if not backup_path.exists():
                raise StoreCorruptError(
                    f"Record for player '{player_id}' is unreadable: {err}"
                ) from err
            logger.warning(
                "Record for player '%s' is unreadable (%s); restoring backup.", player_id, err
            )
            try:
                payload = self._read_payload(backup_path)
            except (StoreError, SaveMigrationError) as backup_err:
                raise StoreCorruptError(
                    f"Backup for player '{player_id}' also failed: {backup_err}"
                ) from backup_err
            self._write_payload(record_path, backup_path, payload, make_backup=False)
        return Player.from_dict(payload["player"], player_id)

    def save(self, player: Player) -> Path:
        record_path = self._record_path(player.id)
        payload = self._build_payload(player)
        self._write_payload(record_path, self._backup_path(player.id), payload, make_backup=True)
        logger.debug("Saved player '%s' to %s.", player.id, record_path)
        return record_path

    def reset_progress(self, player_id: str) -> None:
        if not self._record_path(player_id).exists():
            return
        self.save(Player(player_id))

    def delete(self, player_id: str) -> None:
        for candidate in (self._record_path(player_id), self._backup_path(player_id)):
            try:
                candidate.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StoreError(f"Failed to delete {candidate}: {exc}") from exc

    def exists(self, player_id: str) -> bool:
        return self._record_path(player_id).exists()

    # ---------- Internal helpers ----------
    def _file_stem(self, player_id: str) -> str:
        cleaned = "".join(ch for ch in str(player_id) if ch in self._VALID_ID_CHARS)
        if cleaned and cleaned == player_id:
            return cleaned
        # Ids with other characters get a stable digest suffix to stay unique.
        digest = hashlib.sha1(str(player_id).encode("utf-8")).hexdigest()[:12]
        return f"{cleaned or 'player'}-{digest}"

    def _record_path(self, player_id: str) -> Path:
        return self.base_path / f"{self._file_stem(player_id)}{self.SUFFIX}"

    def _backup_path(self, player_id: str) -> Path:
        return self.base_path / f"{self._file_stem(player_id)}{self.BACKUP_SUFFIX}"

    def _build_payload(self, player: Player) -> Dict:
        return {
            "version": self.SCHEMA_VERSION,
            "metadata": {
                "schema": "player_v1",
                "version": self.SCHEMA_VERSION,
                "saved_at": datetime.now(timezone.utc).isoformat(),
            },
            "player": player.to_dict(),
        }

    def _write_payload(
        self,
        record_path: Path,
        backup_path: Path,
        payload: Dict,
        *,
        make_backup: bool,
    ) -> None:
        record_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                delete=False,
                dir=record_path.parent,
                prefix=record_path.name,
                suffix=".tmp",
                encoding="utf-8",
            ) as tmp_file:
                json.dump(payload, tmp_file, indent=2, ensure_ascii=False)
                tmp_file.write("\n")
                tmp_path = Path(tmp_file.name)
            if make_backup and record_path.exists():
                shutil.copy2(record_path, backup_path)
            os.replace(str(tmp_path), str(record_path))
        except OSError as exc:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except OSError:
                    pass
            raise StoreError(f"Failed to write {record_path}: {exc}") from exc

    def _read_payload(self, path: Path) -> Dict:
        try:
            with open(path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError as exc:
            raise StoreError("Record file missing.") from exc
        except json.JSONDecodeError as exc:
            raise StoreCorruptError(f"Invalid JSON: {exc}") from exc
        payload = migrate_player_payload(payload, self.SCHEMA_VERSION)
        self._validate_payload(payload)
        return payload

    def _validate_payload(self, payload: Dict) -> None:
        if not isinstance(payload, dict):
            raise StoreCorruptError("Payload was not an object.")
        version = payload.get("version")
        if version != self.SCHEMA_VERSION:
            raise StoreCorruptError(f"Unsupported schema version: {version!r}")
        player = payload.get("player")
        if not isinstance(player, dict):
            raise StoreCorruptError("Player block malformed.")
        for key in ("attributes", "progress"):
            if key in player and not isinstance(player[key], dict):
                raise StoreCorruptError(f"Malformed key: player.{key}")
