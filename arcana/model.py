"""Game graph: games, scenes and the options that connect them."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .conditions import Condition, is_blank_condition, parse_condition
from .effects import AttributeEffect, parse_effects
from .localization import Language, LocalizedText


def _frozen_mapping(data: Mapping | None) -> Mapping:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class Option:
    text: LocalizedText
    next_scene_id: str
    raw_condition: Optional[str] = None
    condition: Optional[Condition] = field(init=False, default=None)

    def __post_init__(self) -> None:
        if not is_blank_condition(self.raw_condition):
            object.__setattr__(self, "condition", parse_condition(self.raw_condition))

    @property
    def has_condition(self) -> bool:
        return not is_blank_condition(self.raw_condition)


@dataclass(frozen=True)
class Scene:
    id: str
    text: LocalizedText
    options: Tuple[Option, ...] = ()
    is_end_scene: bool = False
    attributes: Mapping[str, str] = field(default_factory=dict)
    effects: Tuple[AttributeEffect, ...] = field(init=False, default=())
    effect_errors: Tuple[str, ...] = field(init=False, default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", tuple(self.options))
        object.__setattr__(self, "attributes", _frozen_mapping(self.attributes))
        effects, errors = parse_effects(self.attributes)
        object.__setattr__(self, "effects", effects)
        object.__setattr__(self, "effect_errors", errors)


@dataclass(frozen=True)
class Game:
    id: str
    title: LocalizedText
    description: LocalizedText
    start_scene_id: str
    scenes: Mapping[str, Scene] = field(default_factory=dict)
    game_attributes: Mapping[str, str] = field(default_factory=dict)
    initial_attributes: Mapping[str, int] = field(default_factory=dict)
    default_language: Language = Language.EN

    def __post_init__(self) -> None:
        object.__setattr__(self, "scenes", _frozen_mapping(self.scenes))
        object.__setattr__(self, "game_attributes", _frozen_mapping(self.game_attributes))
        object.__setattr__(self, "initial_attributes", _frozen_mapping(self.initial_attributes))

    def get_scene(self, scene_id: Optional[str]) -> Optional[Scene]:
        if scene_id is None:
            return None
        return self.scenes.get(scene_id)

    @property
    def start_scene(self) -> Optional[Scene]:
        return self.get_scene(self.start_scene_id)

    def get_game_attribute(self, key: str) -> Optional[str]:
        return self.game_attributes.get(key)


class GameCatalog:
    """Read-only, load-once collection of games in load order."""

    def __init__(self, games: Iterable[Game] = ()) -> None:
        entries: Dict[str, Game] = {}
        for game in games:
            entries.setdefault(game.id, game)
        self._games: Mapping[str, Game] = MappingProxyType(entries)

    def get(self, game_id: Optional[str]) -> Optional[Game]:
        if game_id is None:
            return None
        return self._games.get(game_id)

    def games(self) -> List[Game]:
        return list(self._games.values())

    def ids(self) -> List[str]:
        return list(self._games.keys())

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._games

    def __iter__(self) -> Iterator[Game]:
        return iter(self._games.values())

    def __len__(self) -> int:
        return len(self._games)

    def __bool__(self) -> bool:
        return bool(self._games)

    def __repr__(self) -> str:
        return f"GameCatalog({', '.join(self._games)})"
