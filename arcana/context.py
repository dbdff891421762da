"""Per-session game state: player, active game and scene, language."""

from __future__ import annotations

import logging
from typing import Optional

from .localization import Language
from .model import Game, GameCatalog, Scene
from .player import PROGRESS_GAME_KEY, PROGRESS_SCENE_KEY, Player

logger = logging.getLogger(__name__)


class GameContext:
    """Mutable state owned by exactly one traversal session."""

    def __init__(
        self,
        player: Player,
        catalog: GameCatalog | None = None,
        language: Language = Language.EN,
    ) -> None:
        self.player = player
        self.catalog = catalog if catalog is not None else GameCatalog()
        self.current_game: Optional[Game] = None
        self.current_scene: Optional[Scene] = None
        self.current_language = language

    def set_current_game(self, game: Optional[Game]) -> None:
        self.current_game = game
        if game is None:
            self.current_scene = None
            return
        self.current_scene = game.start_scene
        for key, value in game.initial_attributes.items():
            if not self.player.has_attribute(key):
                self.player.set_attribute(key, value)

    def set_current_scene(self, scene: Optional[Scene]) -> None:
        self.current_scene = scene

    def get_game(self, game_id: Optional[str]) -> Optional[Game]:
        return self.catalog.get(game_id)

    def save_progress(self) -> None:
        if self.current_game is None:
            return
        scene_id = self.current_scene.id if self.current_scene is not None else None
        self.player.set_progress(PROGRESS_GAME_KEY, self.current_game.id)
        self.player.set_progress(PROGRESS_SCENE_KEY, scene_id)

    def has_saved_progress(self) -> bool:
        return self._resolve_saved_progress() is not None

    def load_progress(self) -> bool:
        """Restore the saved game and scene; stale or partial data counts as none."""
        resolved = self._resolve_saved_progress()
        if resolved is None:
            return False
        game, scene = resolved
        self.current_game = game
        self.current_scene = scene
        return True

    def _resolve_saved_progress(self) -> Optional[tuple[Game, Scene]]:
        game_id = self.player.get_progress(PROGRESS_GAME_KEY)
        scene_id = self.player.get_progress(PROGRESS_SCENE_KEY)
        if not game_id or not scene_id:
            return None
        game = self.get_game(game_id)
        if game is None:
            logger.info("Saved game '%s' is no longer available.", game_id)
            return None
        scene = game.get_scene(scene_id)
        if scene is None:
            logger.info("Saved scene '%s' is missing from game '%s'.", scene_id, game_id)
            return None
        return game, scene
