"""Build ``Game`` graphs from declarative JSON game files."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

from .game_schema import check_game
from .localization import Language, LocalizedText
from .model import Game, GameCatalog, Option, Scene

logger = logging.getLogger(__name__)

GAME_FILE_PATTERN = "*.json"


class GameLoadError(ValueError):
    """Raised when a game source cannot be turned into a valid graph."""

    def __init__(self, source: str, errors: List[str]) -> None:
        self.source = source
        self.errors = list(errors)
        super().__init__(f"Invalid game {source}:\n- " + "\n- ".join(self.errors))


@dataclass
class LoadResult:
    games: List[Game] = field(default_factory=list)
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def _localized(value: Any, default_language: Language) -> LocalizedText:
    if isinstance(value, str):
        return LocalizedText.single(value, default_language)
    if isinstance(value, Mapping):
        return LocalizedText.from_mapping(value, default_language)
    return LocalizedText(default_language=default_language)


def _localized_field(
    localizations: Mapping[str, Any], key: str, default_language: Language
) -> LocalizedText:
    text = LocalizedText(default_language=default_language)
    for code, block in localizations.items():
        language = Language.from_code(code)
        if language is None or not isinstance(block, Mapping):
            continue
        value = block.get(key)
        if isinstance(value, str):
            text.set_text(language, value)
    return text


def _build_option(data: Mapping[str, Any], default_language: Language) -> Option:
    condition = data.get("condition")
    if condition is not None and not isinstance(condition, str):
        condition = str(condition)
    return Option(
        text=_localized(data.get("text"), default_language),
        next_scene_id=str(data.get("nextSceneId")),
        raw_condition=condition,
    )


def _build_scene(data: Mapping[str, Any], default_language: Language) -> Scene:
    options = [
        _build_option(option, default_language)
        for option in data.get("options") or []
        if isinstance(option, Mapping)
    ]
    attributes = {
        str(key): value if isinstance(value, str) else str(value)
        for key, value in (data.get("attributes") or {}).items()
    }
    return Scene(
        id=data["id"],
        text=_localized(data.get("text"), default_language),
        options=tuple(options),
        is_end_scene=bool(data.get("isEnd", False)),
        attributes=attributes,
    )


def build_game(data: Mapping[str, Any], source: str = "<memory>") -> Game:
    """Validate ``data`` and build an immutable game graph from it."""
    report = check_game(data)
    if report.errors:
        raise GameLoadError(source, report.errors)
    for warning in report.warnings:
        logger.warning("%s: %s", source, warning)

    default_language = Language.from_code(data.get("defaultLanguage")) or Language.default()
    localizations = data.get("localizations") or {}
    scenes = {
        scene["id"]: _build_scene(scene, default_language) for scene in data["scenes"]
    }
    return Game(
        id=data["id"],
        title=_localized_field(localizations, "title", default_language),
        description=_localized_field(localizations, "description", default_language),
        start_scene_id=data["startSceneId"],
        scenes=scenes,
        game_attributes={
            str(key): str(value) for key, value in (data.get("gameAttributes") or {}).items()
        },
        initial_attributes=dict(data.get("initialAttributes") or {}),
        default_language=default_language,
    )


def load_game(path: Path | str) -> Game:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        raise GameLoadError(str(path), [f"Invalid JSON: {exc}"]) from exc
    except OSError as exc:
        raise GameLoadError(str(path), [f"Cannot read file: {exc}"]) from exc
    return build_game(data, source=str(path))


def iter_game_files(source: Path | str) -> List[Path]:
    source = Path(source)
    if source.is_dir():
        return sorted(p for p in source.glob(GAME_FILE_PATTERN) if p.is_file())
    return [source]


def load_games(source: Path | str) -> LoadResult:
    """Load every game under ``source``; a broken file is reported and skipped."""
    result = LoadResult()
    source = Path(source)
    if not source.exists():
        message = f"Game source '{source}' does not exist."
        logger.error(message)
        result.errors[str(source)] = [message]
        return result

    seen: Dict[str, Path] = {}
    for game_path in iter_game_files(source):
        try:
            game = load_game(game_path)
        except GameLoadError as exc:
            logger.error("Skipping %s: %s", game_path, "; ".join(exc.errors))
            result.errors[str(game_path)] = exc.errors
            continue
        if game.id in seen:
            message = f"Duplicate game id '{game.id}' (already loaded from {seen[game.id]})."
            logger.error("Skipping %s: %s", game_path, message)
            result.errors[str(game_path)] = [message]
            continue
        seen[game.id] = game_path
        result.games.append(game)
    logger.info("Loaded %d game(s) from %s.", len(result.games), source)
    return result


def build_catalog(source: Path | str) -> Tuple[GameCatalog, Dict[str, List[str]]]:
    result = load_games(source)
    return GameCatalog(result.games), result.errors
