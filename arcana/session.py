"""Session lifecycle: one engine per player, flushed to storage on every exit."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Optional

from .channels import OutputChannel
from .context import GameContext
from .engine import EndReason, GameEngine
from .model import GameCatalog
from .player import PROGRESS_GAME_KEY, Player
from .player_store import PlayerStore, StoreError

logger = logging.getLogger(__name__)

NO_SAVED_GAME_TEXT = "No saved game found. Starting a new game."
PROGRESS_RESET_TEXT = "Your progress has been reset."

ChannelFactory = Callable[[str], OutputChannel]


class GameSession:
    """Owns a context and engine for one player; persists on every exit path."""

    def __init__(
        self,
        player: Player,
        catalog: GameCatalog,
        channel: OutputChannel,
        store: PlayerStore,
        *,
        choice_timeout: Optional[float] = None,
    ) -> None:
        self.channel = channel
        self.store = store
        self.context = GameContext(player, catalog)
        self.engine = GameEngine(
            self.context,
            channel,
            on_progress=self._persist,
            choice_timeout=choice_timeout,
        )

    @property
    def player(self) -> Player:
        return self.context.player

    async def run(self) -> EndReason:
        try:
            return await self.engine.run()
        finally:
            self.flush()

    def stop(self) -> None:
        self.engine.stop()
        self.flush()

    def flush(self) -> bool:
        self.context.save_progress()
        return self._persist(self.context.player)

    def _persist(self, player: Player) -> bool:
        try:
            self.store.save(player)
        except (StoreError, OSError) as exc:
            logger.error("Failed to save player '%s': %s", player.id, exc)
            return False
        return True


@asynccontextmanager
async def open_session(
    player: Player,
    catalog: GameCatalog,
    channel: OutputChannel,
    store: PlayerStore,
    *,
    choice_timeout: Optional[float] = None,
) -> AsyncIterator[GameSession]:
    session = GameSession(player, catalog, channel, store, choice_timeout=choice_timeout)
    try:
        yield session
    finally:
        session.flush()


def load_player(store: PlayerStore, player_id: str) -> Optional[Player]:
    try:
        return store.load(player_id)
    except (StoreError, OSError) as exc:
        logger.error("Failed to load player '%s': %s", player_id, exc)
        return None


class SessionManager:
    """Maps chat identities to running sessions; a new session replaces the old one."""

    def __init__(
        self,
        catalog: GameCatalog,
        store: PlayerStore,
        channel_factory: ChannelFactory,
        *,
        choice_timeout: Optional[float] = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.channel_factory = channel_factory
        self.choice_timeout = choice_timeout
        self._sessions: Dict[str, GameSession] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def active(self, chat_id: str) -> Optional[GameSession]:
        return self._sessions.get(chat_id)

    def task(self, chat_id: str) -> Optional[asyncio.Task]:
        return self._tasks.get(chat_id)

    def has_saved_game(self, player_id: str) -> bool:
        player = load_player(self.store, player_id)
        return player is not None and player.has_progress(PROGRESS_GAME_KEY)

    async def start_new(self, chat_id: str, player_id: str) -> GameSession:
        await self.stop(chat_id)
        return self._launch(chat_id, Player(player_id))

    async def continue_game(self, chat_id: str, player_id: str) -> GameSession:
        await self.stop(chat_id)
        player = load_player(self.store, player_id)
        if player is None:
            self.channel_factory(chat_id).send_message(NO_SAVED_GAME_TEXT)
            player = Player(player_id)
        return self._launch(chat_id, player)

    async def reset_progress(self, chat_id: str, player_id: str) -> None:
        await self.stop(chat_id)
        try:
            self.store.reset_progress(player_id)
        except (StoreError, OSError) as exc:
            logger.error("Failed to reset player '%s': %s", player_id, exc)
            return
        self.channel_factory(chat_id).send_message(PROGRESS_RESET_TEXT)

    async def stop(self, chat_id: str) -> Optional[EndReason]:
        session = self._sessions.pop(chat_id, None)
        task = self._tasks.pop(chat_id, None)
        if session is None:
            return None
        session.stop()
        if task is None:
            return session.engine.end_reason
        try:
            return await task
        except asyncio.CancelledError:
            return session.engine.end_reason

    async def shutdown(self) -> None:
        for chat_id in list(self._sessions):
            await self.stop(chat_id)

    def _launch(self, chat_id: str, player: Player) -> GameSession:
        session = GameSession(
            player,
            self.catalog,
            self.channel_factory(chat_id),
            self.store,
            choice_timeout=self.choice_timeout,
        )
        self._sessions[chat_id] = session
        self._tasks[chat_id] = asyncio.create_task(self._run(chat_id, session))
        return session

    async def _run(self, chat_id: str, session: GameSession) -> EndReason:
        try:
            return await session.run()
        finally:
            if self._sessions.get(chat_id) is session:
                del self._sessions[chat_id]
                self._tasks.pop(chat_id, None)
