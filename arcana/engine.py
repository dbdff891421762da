"""Traversal state machine that walks a player through a game graph."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence

from .channels import ChannelError, OutputChannel
from .conditions import valid_options
from .context import GameContext
from .effects import apply_effects
from .localization import Language
from .model import Game, Option, Scene
from .player import Player

logger = logging.getLogger(__name__)

HEALTH_ATTRIBUTE = "health"

SELECT_LANGUAGE_TEXT = "Select language / Выберите язык:"
SELECT_GAME_TEXT = "Select a game:"
LANGUAGE_FALLBACK_TEXT = "Error selecting language. Using English as default."
GAME_SELECTION_ERROR_TEXT = "Error selecting game. Game over."
NO_GAMES_TEXT = "No games available."
RESUME_TEXT = "Continuing from your last saved position."
GAME_OVER_TEXT = "Game over."
NO_OPTIONS_TEXT = "No valid options available. Game over."
HEALTH_DEPLETED_TEXT = "Your health has dropped to 0 or below. Game over."
INTERRUPTED_TEXT = "Game interrupted due to an error or timeout."
STOPPED_TEXT = "Game stopped."
UNEXPECTED_ERROR_TEXT = "An unexpected error occurred. Game over."

ProgressCallback = Callable[[Player], None]


class EngineState(Enum):
    SELECTING_LANGUAGE = "selecting_language"
    SELECTING_GAME = "selecting_game"
    PLAYING = "playing"
    ENDED = "ended"


class EndReason(Enum):
    NO_SCENE = "no_scene"
    END_SCENE = "end_scene"
    NO_OPTIONS = "no_options"
    HEALTH = "health"
    INPUT_FAILURE = "input_failure"
    STOPPED = "stopped"
    NO_GAMES = "no_games"
    BROKEN_GRAPH = "broken_graph"
    ERROR = "error"


class _StopRequested(Exception):
    pass


class GameEngine:
    """Drive one ``GameContext`` through language, game selection and play."""

    def __init__(
        self,
        context: GameContext,
        channel: OutputChannel,
        *,
        on_progress: Optional[ProgressCallback] = None,
        choice_timeout: Optional[float] = None,
    ) -> None:
        self.context = context
        self.channel = channel
        self.on_progress = on_progress
        self.choice_timeout = choice_timeout
        self.state = EngineState.SELECTING_LANGUAGE
        self.end_reason: Optional[EndReason] = None
        self._stop_requested = False
        self._pending_choice: Optional[asyncio.Future] = None

    @property
    def running(self) -> bool:
        return self.state is not EngineState.ENDED and not self._stop_requested

    def stop(self) -> None:
        """Request termination; a pending choice request is cancelled."""
        self._stop_requested = True
        pending = self._pending_choice
        if pending is not None and not pending.done():
            pending.cancel()

    async def run(self) -> EndReason:
        try:
            await self.select_language()
            resumed = self.context.load_progress()
            if resumed:
                self.channel.send_message(RESUME_TEXT)
            elif not await self.select_game():
                return self.end_reason or EndReason.NO_GAMES
            self.state = EngineState.PLAYING
            self._display_status()
            return await self._game_loop()
        except _StopRequested:
            return self._finish(EndReason.STOPPED, STOPPED_TEXT)
        except ChannelError as exc:
            logger.warning("Channel failure: %s", exc)
            return self._finish(EndReason.INPUT_FAILURE, INTERRUPTED_TEXT)
        except asyncio.CancelledError:
            if self._stop_requested:
                return self._finish(EndReason.STOPPED, STOPPED_TEXT)
            self._finish(EndReason.INPUT_FAILURE, INTERRUPTED_TEXT)
            raise
        except Exception:
            logger.exception("Unexpected error in game loop.")
            return self._finish(EndReason.ERROR, UNEXPECTED_ERROR_TEXT)

    async def select_language(self) -> Language:
        self.state = EngineState.SELECTING_LANGUAGE
        languages = list(Language)
        try:
            index = await self._request_choice(
                SELECT_LANGUAGE_TEXT, [language.display_name for language in languages]
            )
            if not 0 <= index < len(languages):
                raise ChannelError(f"Language index {index} out of range.")
            language = languages[index]
        except ChannelError as exc:
            logger.warning("Language selection failed: %s", exc)
            self.channel.send_message(LANGUAGE_FALLBACK_TEXT)
            language = Language.default()
        self.context.current_language = language
        self.channel.set_current_language(language)
        return language

    async def select_game(self) -> bool:
        self.state = EngineState.SELECTING_GAME
        games: List[Game] = self.context.catalog.games()
        if not games:
            self._finish(EndReason.NO_GAMES, NO_GAMES_TEXT)
            return False
        language = self.context.current_language
        titles = [game.title.get_text(language) or game.id for game in games]
        try:
            index = await self._request_choice(SELECT_GAME_TEXT, titles)
        except ChannelError as exc:
            logger.warning("Game selection failed: %s", exc)
            self.context.set_current_game(None)
            self._finish(EndReason.INPUT_FAILURE, GAME_SELECTION_ERROR_TEXT)
            return False
        if not 0 <= index < len(games):
            self.context.set_current_game(None)
            self._finish(EndReason.INPUT_FAILURE, GAME_SELECTION_ERROR_TEXT)
            return False
        game = games[index]
        self.context.set_current_game(game)
        if self.context.current_scene is None:
            self._report_broken_graph(
                f"Start scene '{game.start_scene_id}' is missing from game '{game.id}'."
            )
            return False
        return True

    async def _game_loop(self) -> EndReason:
        while True:
            if self._stop_requested:
                return self._finish(EndReason.STOPPED, STOPPED_TEXT)
            scene = self.context.current_scene
            if scene is None:
                return self._finish(EndReason.NO_SCENE, GAME_OVER_TEXT)

            language = self.context.current_language
            scene_text = scene.text.get_text(language)

            if scene.is_end_scene:
                self._announce(scene_text)
                return self._finish(EndReason.END_SCENE, GAME_OVER_TEXT)

            if self._health_exhausted():
                return self._finish(EndReason.HEALTH, HEALTH_DEPLETED_TEXT)

            options = valid_options(scene, self.context.player)
            if not options:
                self._announce(scene_text)
                return self._finish(EndReason.NO_OPTIONS, NO_OPTIONS_TEXT)

            labels = [option.text.get_text(language) for option in options]
            index = await self._request_choice(scene_text, labels)
            if not 0 <= index < len(options):
                raise ChannelError(f"Choice index {index} out of range.")

            next_scene = self._resolve_next_scene(options[index])
            if next_scene is None:
                return self.end_reason or EndReason.BROKEN_GRAPH
            health_before = self.context.player.get_attribute(HEALTH_ATTRIBUTE)
            self.context.set_current_scene(next_scene)
            self._apply_scene_effects(next_scene)

            if self._health_depleted(health_before):
                self._save_progress()
                return self._finish(EndReason.HEALTH, HEALTH_DEPLETED_TEXT)

            self._display_status()
            self._save_progress()

    def _resolve_next_scene(self, option: Option) -> Optional[Scene]:
        game = self.context.current_game
        scene = game.get_scene(option.next_scene_id) if game is not None else None
        if scene is None:
            game_id = game.id if game is not None else "?"
            self._report_broken_graph(
                f"Scene '{option.next_scene_id}' does not exist in game '{game_id}'."
            )
        return scene

    def _apply_scene_effects(self, scene: Scene) -> None:
        skipped = apply_effects(scene.effects, self.context.player, scene.effect_errors)
        if skipped:
            logger.warning("Scene '%s' had %d malformed attribute effect(s).", scene.id, len(skipped))

    def _health_exhausted(self) -> bool:
        player = self.context.player
        return player.has_attribute(HEALTH_ATTRIBUTE) and player.get_attribute(HEALTH_ATTRIBUTE) <= 0

    def _health_depleted(self, before: int) -> bool:
        # On a transition only a drop counts; an unchanged zero does not end the game.
        return self._health_exhausted() and self.context.player.get_attribute(HEALTH_ATTRIBUTE) < before

    def _announce(self, text: str) -> None:
        if text:
            self.channel.send_message(text)

    def _display_status(self) -> None:
        attributes = self.context.player.all_attributes()
        if attributes:
            self.channel.display_player_status(attributes)

    def _save_progress(self) -> None:
        self.context.save_progress()
        if self.on_progress is None:
            return
        try:
            self.on_progress(self.context.player)
        except Exception:
            logger.exception("Failed to persist progress for player '%s'.", self.context.player.id)

    async def _request_choice(self, text: str, options: Sequence[str]) -> int:
        if self._stop_requested:
            raise _StopRequested()
        future = asyncio.ensure_future(self.channel.send_options_message(text, list(options)))
        self._pending_choice = future
        try:
            if self.choice_timeout is None:
                return await future
            try:
                return await asyncio.wait_for(future, timeout=self.choice_timeout)
            except asyncio.TimeoutError as exc:
                raise ChannelError(f"No choice within {self.choice_timeout} seconds.") from exc
        except asyncio.CancelledError:
            if self._stop_requested:
                raise _StopRequested() from None
            raise
        except ChannelError:
            raise
        except Exception as exc:
            raise ChannelError(f"Channel failed: {exc!r}") from exc
        finally:
            self._pending_choice = None

    def _report_broken_graph(self, detail: str) -> None:
        logger.error("Data integrity failure: %s", detail)
        self.channel.send_message(f"[!] {detail}")
        self._finish(EndReason.BROKEN_GRAPH, GAME_OVER_TEXT)

    def _finish(self, reason: EndReason, message: str) -> EndReason:
        if self.state is EngineState.ENDED:
            return self.end_reason or reason
        self.state = EngineState.ENDED
        self.end_reason = reason
        self.channel.send_message(message)
        return reason
