"""Player attribute and progress storage."""

from __future__ import annotations

import uuid
from typing import Any, Dict, Mapping, Optional

PROGRESS_GAME_KEY = "currentGameId"
PROGRESS_SCENE_KEY = "currentSceneId"


class Player:
    """Integer attributes plus a free-form progress map, keyed by a stable id."""

    def __init__(self, player_id: str | None = None) -> None:
        self.id = player_id or uuid.uuid4().hex
        self.attributes: Dict[str, int] = {}
        self.progress: Dict[str, Optional[str]] = {}

    def get_attribute(self, key: str) -> int:
        return self.attributes.get(key, 0)

    def set_attribute(self, key: str, value: int) -> None:
        self.attributes[key] = int(value)

    def has_attribute(self, key: str) -> bool:
        return key in self.attributes

    def all_attributes(self) -> Dict[str, int]:
        return dict(self.attributes)

    def get_progress(self, key: str) -> Optional[str]:
        return self.progress.get(key)

    def set_progress(self, key: str, value: Optional[str]) -> None:
        self.progress[key] = value

    def has_progress(self, key: str) -> bool:
        return key in self.progress

    def all_progress(self) -> Dict[str, Optional[str]]:
        return dict(self.progress)

    def reset(self) -> None:
        self.attributes.clear()
        self.progress.clear()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "attributes": self.all_attributes(),
            "progress": self.all_progress(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], player_id: str | None = None) -> "Player":
        player = cls(player_id or str(data.get("id") or "") or None)
        attributes = data.get("attributes")
        if isinstance(attributes, Mapping):
            for key, value in attributes.items():
                try:
                    player.set_attribute(str(key), int(value))
                except (TypeError, ValueError):
                    continue
        progress = data.get("progress")
        if isinstance(progress, Mapping):
            for key, value in progress.items():
                player.set_progress(str(key), None if value is None else str(value))
        return player

    def __repr__(self) -> str:
        return f"Player(id={self.id!r}, attributes={self.attributes!r}, progress={self.progress!r})"
