#!/usr/bin/env python3
"""
replay_game.py

Replays the turn log of one game (or every game) in the project's database
and compares the result with the progress stored on the player rows. Prints
one line per game and a short summary.

Usage:
  python tools/replay_game.py [--db /path/to/darts.db] [--game 12]

If --db is omitted the script uses DATABASE_URL or `darts.db` in the project
root, the same as the app.
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Optional

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app import Game, create_app  # noqa: E402
from config import Config  # noqa: E402
from errors import DartsError  # noqa: E402


def stored_progress(game) -> dict:
    return {p.id: p.progress or {} for p in game.players}


def replayed_progress(state) -> dict:
    progress = {}
    for entry in state.snapshot()["progress"]:
        entry = dict(entry)
        progress[entry.pop("player_id")] = entry
    return progress


def check_game(service, game) -> list[str]:
    """
    Return a list of mismatch descriptions for ``game``; empty when the stored
    progress matches a replay of the log.
    """
    problems = []
    state = service.load_state(game.id)
    expected = replayed_progress(state)
    for player_id, stored in stored_progress(game).items():
        if stored != expected.get(player_id):
            problems.append(f"player {player_id}: stored {stored} != replayed {expected.get(player_id)}")
    if game.winner_player_id != state.winner_id:
        problems.append(f"winner: stored {game.winner_player_id} != replayed {state.winner_id}")
    return problems


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Replay turn logs and compare with stored progress")
    p.add_argument("--db", help="Path to darts.db (SQLite). If omitted the app's configured database is used.")
    p.add_argument("--game", type=int, help="Only check this game id")
    return p.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    class ReplayConfig(Config):
        pass

    if args.db:
        if not os.path.exists(args.db):
            print(f"ERROR: database file not found at: {args.db}", file=sys.stderr)
            return 2
        ReplayConfig.SQLALCHEMY_DATABASE_URI = "sqlite:///" + os.path.abspath(args.db)

    app = create_app(ReplayConfig)
    service = app.extensions["darts_service"]
    mismatched = 0
    with app.app_context():
        query = Game.query.order_by(Game.id)
        if args.game is not None:
            query = query.filter_by(id=args.game)
        games = query.all()
        if not games:
            print("No games found.")
            return 0 if args.game is None else 2

        for game in games:
            try:
                problems = check_game(service, game)
            except DartsError as e:
                print(f"game {game.id} ({game.variant}): log does not replay: {e}", file=sys.stderr)
                mismatched += 1
                continue
            if problems:
                mismatched += 1
                print(f"game {game.id} ({game.variant}): MISMATCH")
                for problem in problems:
                    print(f"  {problem}")
            else:
                print(f"game {game.id} ({game.variant}): ok, {len(game.turns)} turns")

    print(f"{len(games)} games checked, {mismatched} mismatched.")
    return 1 if mismatched else 0


if __name__ == "__main__":
    sys.exit(main())
