"""Runtime configuration: JSON settings file plus environment overrides."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .localization import Language

logger = logging.getLogger(__name__)

SETTINGS_PATH = Path("settings.json")
ENV_PREFIX = "ARCANA_"
LEGACY_GAMES_ENV = "GAMES_DIRECTORY"
MIN_CHOICE_TIMEOUT = 1.0
MAX_CHOICE_TIMEOUT = 86400.0
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


@dataclass
class Settings:
    """Configuration shared by the console entry point and session wiring."""

    games_directory: str = "games"
    players_directory: str = "players"
    choice_timeout: float = 3600.0
    default_language: str = "EN"
    log_level: str = "INFO"

    def clamp(self) -> "Settings":
        try:
            timeout = float(self.choice_timeout)
        except (TypeError, ValueError):
            timeout = 3600.0
        self.choice_timeout = _clamp(timeout, MIN_CHOICE_TIMEOUT, MAX_CHOICE_TIMEOUT)

        language = Language.from_code(self.default_language) or Language.default()
        self.default_language = language.code

        level = str(self.log_level).strip().upper()
        self.log_level = level if level in _LOG_LEVELS else "INFO"

        self.games_directory = str(self.games_directory or "games")
        self.players_directory = str(self.players_directory or "players")
        return self

    @property
    def language(self) -> Language:
        return Language.from_code(self.default_language) or Language.default()

    def copy(self) -> "Settings":
        return Settings.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Settings":
        if not isinstance(data, Mapping):
            return cls()

        def _as_float(key: str, default: float) -> float:
            try:
                return float(data.get(key, default))
            except (TypeError, ValueError):
                return default

        settings = cls(
            games_directory=str(data.get("games_directory", "games")),
            players_directory=str(data.get("players_directory", "players")),
            choice_timeout=_as_float("choice_timeout", 3600.0),
            default_language=str(data.get("default_language", "EN")),
            log_level=str(data.get("log_level", "INFO")),
        )
        return settings.clamp()


def apply_environment(settings: Settings, environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    updated = settings.copy()
    games = env.get(f"{ENV_PREFIX}GAMES_DIRECTORY") or env.get(LEGACY_GAMES_ENV)
    if games:
        updated.games_directory = games
    players = env.get(f"{ENV_PREFIX}PLAYERS_DIRECTORY")
    if players:
        updated.players_directory = players
    timeout = env.get(f"{ENV_PREFIX}CHOICE_TIMEOUT")
    if timeout:
        try:
            updated.choice_timeout = float(timeout)
        except ValueError:
            logger.warning("Ignoring invalid %sCHOICE_TIMEOUT=%r.", ENV_PREFIX, timeout)
    language = env.get(f"{ENV_PREFIX}DEFAULT_LANGUAGE")
    if language:
        updated.default_language = language
    level = env.get(f"{ENV_PREFIX}LOG_LEVEL")
    if level:
        updated.log_level = level
    return updated.clamp()


def load_settings(
    path: Path | str = SETTINGS_PATH,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        data = None
    except (OSError, json.JSONDecodeError, TypeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        data = None
    return apply_environment(Settings.from_dict(data), environ)


def save_settings(settings: Settings, path: Path | str = SETTINGS_PATH) -> Settings:
    path = Path(path)
    sanitized = settings.copy().clamp()
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", delete=False, dir=path.parent, prefix=path.name, suffix=".tmp", encoding="utf-8"
        ) as tmp_file:
            json.dump(sanitized.to_dict(), tmp_file, indent=2)
            tmp_file.write("\n")
            tmp_path = Path(tmp_file.name)
        os.replace(str(tmp_path), str(path))
    except OSError as exc:
        logger.error("Failed to save settings: %s", exc)
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except OSError:
                pass
    return sanitized
