#!/usr/bin/env python3
"""Validate game files for common authoring mistakes."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_GAMES = REPO_ROOT / "games"

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from arcana.game_schema import check_game
from arcana.loader import iter_game_files
from tools.list_unreachable import unreachable_scenes


def load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate Arcana game files.")
    parser.add_argument(
        "games_path",
        nargs="?",
        default=str(DEFAULT_GAMES),
        help="Path to a game JSON file or a directory of them.",
    )
    return parser.parse_args(argv)


def validate_file(path: Path) -> tuple[List[str], List[str]]:
    try:
        data = load_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        return [f"Failed to parse JSON: {exc}"], []
    report = check_game(data)
    warnings = list(report.warnings)
    if not report.errors:
        for scene_id in unreachable_scenes(data):
            warnings.append(f"scenes: scene '{scene_id}' is unreachable from the start scene.")
    return report.errors, warnings


def main(argv: Sequence[str]) -> None:
    args = parse_args(argv[1:])
    games_path = Path(args.games_path).resolve()
    failed = False
    for path in iter_game_files(games_path):
        errors, warnings = validate_file(path)
        if errors:
            failed = True
            print(f"Validation failed for {path} (path: message):")
            for err in errors:
                print(f" - {err}")
        if warnings:
            print(f"Warnings for {path} (path: message):")
            for warning in warnings:
                print(f" - {warning}")
        if not errors:
            print(f"Validation passed for {path}.")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main(sys.argv)
