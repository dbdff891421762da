from arcana.context import GameContext
from arcana.loader import build_game
from arcana.model import GameCatalog
from arcana.player import PROGRESS_GAME_KEY, PROGRESS_SCENE_KEY, Player


def catalog() -> GameCatalog:
    return GameCatalog([build_game({
        "id": "G",
        "startSceneId": "S0",
        "initialAttributes": {"gold": 2},
        "scenes": [
            {"id": "S0", "text": "Intro", "options": [{"text": "Go", "nextSceneId": "S1"}]},
            {"id": "S1", "text": "The End", "isEnd": True},
        ],
    })])


def test_save_progress_records_game_and_scene() -> None:
    context = GameContext(Player("p"), catalog())
    context.set_current_game(context.get_game("G"))
    context.save_progress()
    assert context.player.all_progress() == {PROGRESS_GAME_KEY: "G", PROGRESS_SCENE_KEY: "S0"}
    assert context.player.get_attribute("gold") == 2


def test_save_progress_without_scene_clears_stale_scene() -> None:
    context = GameContext(Player("p"), catalog())
    context.set_current_game(context.get_game("G"))
    context.set_current_scene(context.current_game.get_scene("S1"))
    context.save_progress()

    context.set_current_scene(None)
    context.save_progress()

    assert context.player.get_progress(PROGRESS_GAME_KEY) == "G"
    assert context.player.get_progress(PROGRESS_SCENE_KEY) is None
    assert not context.has_saved_progress()


def test_save_progress_without_game_is_a_no_op() -> None:
    context = GameContext(Player("p"), catalog())
    context.save_progress()
    assert context.player.all_progress() == {}


def test_load_progress_restores_saved_scene() -> None:
    player = Player("p")
    player.set_progress(PROGRESS_GAME_KEY, "G")
    player.set_progress(PROGRESS_SCENE_KEY, "S1")
    context = GameContext(player, catalog())

    assert context.load_progress()
    assert context.current_game.id == "G"
    assert context.current_scene.id == "S1"
