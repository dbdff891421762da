import json
import subprocess
import sys
from pathlib import Path

from tools import list_unreachable


REPO_ROOT = Path(__file__).resolve().parents[1]


def write_game(tmp_path: Path, game: dict) -> Path:
    path = tmp_path / "game.json"
    path.write_text(json.dumps(game))
    return path


def run_validate(path: Path) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, str(REPO_ROOT / "tools" / "validate.py"), str(path)],
        capture_output=True,
        text=True,
        check=False,
    )


def test_validate_tool_passes_bundled_games() -> None:
    result = run_validate(REPO_ROOT / "games")
    assert result.returncode == 0, result.stdout
    assert "Validation passed" in result.stdout
    assert "Validation failed" not in result.stdout


def test_validate_tool_flags_unknown_target(tmp_path: Path) -> None:
    game = {
        "id": "G",
        "startSceneId": "start",
        "scenes": [
            {"id": "start", "text": "Hi", "options": [{"text": "Go", "nextSceneId": "missing"}]},
        ],
    }
    result = run_validate(write_game(tmp_path, game))
    assert result.returncode == 1
    assert "targets unknown scene 'missing'" in result.stdout


def test_validate_tool_warns_about_unreachable_scene(tmp_path: Path) -> None:
    game = {
        "id": "G",
        "startSceneId": "start",
        "scenes": [
            {"id": "start", "text": "Hi", "isEnd": True},
            {"id": "island", "text": "Lost", "isEnd": True, "attributes": {"gold": "lots"}},
        ],
    }
    result = run_validate(write_game(tmp_path, game))
    assert result.returncode == 0
    assert "Warnings for" in result.stdout
    assert "'island' is unreachable" in result.stdout
    assert "non-integer value" in result.stdout


def test_list_unreachable_reports_missing_targets() -> None:
    game = {
        "startSceneId": "start",
        "scenes": [
            {
                "id": "start",
                "options": [
                    {"text": "A", "nextSceneId": "next"},
                    {"text": "B", "nextSceneId": "missing"},
                ],
            },
            {"id": "next", "options": []},
            {"id": "orphan"},
        ],
    }
    graph, missing_targets = list_unreachable.build_graph(game)
    assert graph["start"] == ["next", "missing"]
    assert any("missing scene missing" in message for message in missing_targets)
    assert list_unreachable.unreachable_scenes(game) == ["orphan"]
