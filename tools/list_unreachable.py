import json
import sys
from pathlib import Path

DEFAULT_GAME_PATH = Path("games/merchant.json")


def load_game_data(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def build_graph(game: dict) -> tuple[dict, list]:
    scenes = {
        scene.get("id"): scene
        for scene in game.get("scenes", []) or []
        if isinstance(scene, dict) and isinstance(scene.get("id"), str)
    }
    graph = {scene_id: [] for scene_id in scenes}
    missing_targets = []
    for scene_id, scene in scenes.items():
        for option in scene.get("options", []) or []:
            if not isinstance(option, dict):
                continue
            target = option.get("nextSceneId")
            if not isinstance(target, str):
                continue
            graph[scene_id].append(target)
            if target not in scenes:
                missing_targets.append(f"scene {scene_id} points to missing scene {target}")
    return graph, missing_targets


def traverse_from(start_scene: str, graph: dict) -> set:
    if start_scene not in graph:
        return set()
    visited = set()
    stack = [start_scene]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        stack.extend(target for target in graph.get(current, []) if target in graph)
    return visited


def unreachable_scenes(game: dict) -> list:
    graph, _ = build_graph(game)
    start = game.get("startSceneId")
    reached = traverse_from(start, graph) if isinstance(start, str) else set()
    return sorted(set(graph.keys()) - reached)


def main() -> None:
    game_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_GAME_PATH
    game = load_game_data(game_path)
    graph, missing_targets = build_graph(game)
    unreachable = unreachable_scenes(game)

    print(f"Game file: {game_path}")
    print(f"Total scenes: {len(graph)}")
    print(f"Reachable scenes: {len(graph) - len(unreachable)}")
    for message in missing_targets:
        print(f"[!] {message}")
    if unreachable:
        print("Unreachable scenes:")
        for scene_id in unreachable:
            print(f"  - {scene_id}")
    else:
        print("All scenes reachable from the start scene.")


if __name__ == "__main__":
    main()
