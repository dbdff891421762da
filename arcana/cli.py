#!/usr/bin/env python3
"""
Arcana console runner.
- Loads every game in a directory (broken files are reported and skipped).
- Resumes the player's saved scene when it still exists.
- Progress is written to the player store after every scene transition.
Usage: python3 -m arcana.cli [games_dir] [--player ID]
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
    from arcana.channels import ConsoleChannel
    from arcana.engine import EndReason
    from arcana.loader import build_catalog
    from arcana.player import Player
    from arcana.player_store import JsonPlayerStore, StoreError
    from arcana.session import GameSession, load_player
    from arcana.settings import SETTINGS_PATH, load_settings
else:
    from .channels import ConsoleChannel
    from .engine import EndReason
    from .loader import build_catalog
    from .player import Player
    from .player_store import JsonPlayerStore, StoreError
    from .session import GameSession, load_player
    from .settings import SETTINGS_PATH, load_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("arcana")


def emit_print(*args, **kwargs) -> None:
    print(*args, **kwargs)


def default_player_id() -> str:
    try:
        return getpass.getuser() or "player"
    except (KeyError, OSError):
        return "player"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play branching-narrative games in the terminal.")
    parser.add_argument("games", nargs="?", default=None, help="Game file or directory of game files.")
    parser.add_argument("--player", default=None, help="Player id used for saved progress.")
    parser.add_argument("--players-dir", default=None, help="Directory for player records.")
    parser.add_argument("--settings", default=str(SETTINGS_PATH), help="Path to settings.json.")
    parser.add_argument("--reset", action="store_true", help="Clear saved progress before playing.")
    parser.add_argument("--log-level", default=None, help="Logging level (default from settings).")
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = load_settings(args.settings)
    configure_logging(args.log_level or settings.log_level)

    games_source = args.games or settings.games_directory
    catalog, errors = build_catalog(games_source)
    for source, messages in errors.items():
        emit_print(f"[!] Skipped {source}:")
        for message in messages:
            emit_print(f"    - {message}")

    store = JsonPlayerStore(args.players_dir or settings.players_directory)
    player_id = args.player or default_player_id()
    if args.reset:
        try:
            store.reset_progress(player_id)
        except (StoreError, OSError) as exc:
            logger.error("Failed to reset player '%s': %s", player_id, exc)
    player = load_player(store, player_id) or Player(player_id)

    channel = ConsoleChannel(language=settings.language)
    session = GameSession(
        player, catalog, channel, store, choice_timeout=settings.choice_timeout
    )
    reason = await session.run()
    logger.info("Session for '%s' ended: %s.", player_id, reason.value)
    return 0 if reason is not EndReason.ERROR else 1


def run() -> None:
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        emit_print("\n[Interrupted] Bye.")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    run()
