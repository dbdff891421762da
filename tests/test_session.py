import asyncio

from arcana.channels import QueueChannel
from arcana.engine import EndReason, STOPPED_TEXT
from arcana.loader import build_game
from arcana.model import GameCatalog
from arcana.player import PROGRESS_GAME_KEY, PROGRESS_SCENE_KEY, Player
from arcana.player_store import MemoryPlayerStore, StoreError
from arcana.session import (
    NO_SAVED_GAME_TEXT,
    PROGRESS_RESET_TEXT,
    GameSession,
    SessionManager,
    open_session,
)


def two_scene_game() -> dict:
    return {
        "id": "G",
        "startSceneId": "S0",
        "initialAttributes": {"gold": 1},
        "localizations": {"EN": {"title": "Game G"}},
        "scenes": [
            {"id": "S0", "text": "Intro", "options": [{"text": "Go", "nextSceneId": "S1"}]},
            {"id": "S1", "text": "The End", "isEnd": True, "attributes": {"gold": "+1"}},
        ],
    }


def catalog() -> GameCatalog:
    return GameCatalog([build_game(two_scene_game())])


class FailingStore(MemoryPlayerStore):
    def save(self, player: Player) -> None:
        raise StoreError("disk full")


async def settle(rounds: int = 50) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def test_session_persists_final_position() -> None:
    async def scenario():
        store = MemoryPlayerStore()
        channel = QueueChannel(timeout=1)
        for reply in ("1", "1", "Go"):
            channel.submit_reply(reply)
        session = GameSession(Player("alice"), catalog(), channel, store)
        return await session.run(), store

    reason, store = asyncio.run(scenario())

    assert reason is EndReason.END_SCENE
    saved = store.load("alice")
    assert saved.get_progress(PROGRESS_GAME_KEY) == "G"
    assert saved.get_progress(PROGRESS_SCENE_KEY) == "S1"
    assert saved.get_attribute("gold") == 2


def test_session_flushes_when_input_fails() -> None:
    async def scenario():
        store = MemoryPlayerStore()
        channel = QueueChannel(timeout=0.05)
        channel.submit_reply("1")
        channel.submit_reply("1")
        session = GameSession(Player("alice"), catalog(), channel, store)
        return await session.run(), store

    reason, store = asyncio.run(scenario())

    assert reason is EndReason.INPUT_FAILURE
    assert store.load("alice").get_progress(PROGRESS_SCENE_KEY) == "S0"


def test_store_failure_does_not_stop_play() -> None:
    async def scenario():
        channel = QueueChannel(timeout=1)
        for reply in ("1", "1", "1"):
            channel.submit_reply(reply)
        session = GameSession(Player("alice"), catalog(), channel, FailingStore())
        reason = await session.run()
        return reason, session.flush()

    reason, flushed = asyncio.run(scenario())

    assert reason is EndReason.END_SCENE
    assert flushed is False


def test_open_session_flushes_on_exit() -> None:
    async def scenario():
        store = MemoryPlayerStore()
        async with open_session(Player("bob"), catalog(), QueueChannel(), store) as session:
            session.context.set_current_game(session.context.get_game("G"))
        return store

    store = asyncio.run(scenario())

    assert store.load("bob").get_progress(PROGRESS_SCENE_KEY) == "S0"


def test_manager_start_stop_and_continue() -> None:
    channels = {}

    def factory(chat_id: str) -> QueueChannel:
        return channels.setdefault(chat_id, QueueChannel(timeout=None))

    async def scenario():
        store = MemoryPlayerStore()
        manager = SessionManager(catalog(), store, factory)
        first = await manager.start_new("chat", "alice")
        factory("chat").submit_reply("1")
        factory("chat").submit_reply("1")
        await settle()
        assert manager.active("chat") is first

        reason = await manager.stop("chat")
        assert reason is EndReason.STOPPED
        assert manager.active("chat") is None
        assert manager.has_saved_game("alice")

        resumed = await manager.continue_game("chat", "alice")
        await settle()
        assert resumed.player.get_progress(PROGRESS_SCENE_KEY) == "S0"
        await manager.shutdown()
        return store

    store = asyncio.run(scenario())

    assert STOPPED_TEXT in channels["chat"].outbox
    assert store.load("alice").get_progress(PROGRESS_GAME_KEY) == "G"


def test_manager_start_new_replaces_running_session() -> None:
    async def scenario():
        manager = SessionManager(catalog(), MemoryPlayerStore(), lambda chat_id: QueueChannel(timeout=None))
        first = await manager.start_new("chat", "alice")
        await settle()
        second = await manager.start_new("chat", "alice")
        await settle()
        state = (first.engine.end_reason, manager.active("chat") is second)
        await manager.shutdown()
        return state

    first_reason, second_active = asyncio.run(scenario())

    assert first_reason is EndReason.STOPPED
    assert second_active


def test_manager_continue_without_save_starts_fresh() -> None:
    channel = QueueChannel(timeout=None)

    async def scenario():
        manager = SessionManager(catalog(), MemoryPlayerStore(), lambda chat_id: channel)
        session = await manager.continue_game("chat", "carol")
        await manager.shutdown()
        return session

    session = asyncio.run(scenario())

    assert channel.outbox[0] == NO_SAVED_GAME_TEXT
    assert session.player.id == "carol"


def test_manager_reset_progress() -> None:
    channel = QueueChannel(timeout=None)
    store = MemoryPlayerStore()
    player = Player("dave")
    player.set_progress(PROGRESS_GAME_KEY, "G")
    store.save(player)

    async def scenario():
        manager = SessionManager(catalog(), store, lambda chat_id: channel)
        await manager.reset_progress("chat", "dave")
        return manager.has_saved_game("dave")

    assert asyncio.run(scenario()) is False
    assert channel.outbox == [PROGRESS_RESET_TEXT]
