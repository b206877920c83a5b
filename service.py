# Game service: the entry point callers use to play a game.
#
# Loads a game from the store, replays its turn log through the variant
# engine, and applies submissions, previews, reverts and edits. Every call that
# writes holds the game's lock for its whole read-modify-write.

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import history
from checkout import suggest_checkout
from dart import parse_darts
from engine import (
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_PAUSED,
    PlayerInfo,
    PlayerKind,
)
from errors import (
    DuplicateTurnError,
    GameNotActiveError,
    SubmissionInProgressError,
    TurnOrderError,
    ValidationError,
)
from variants import engine_for

logger = logging.getLogger(__name__)

MAX_PLAYERS = 6


@dataclass
class SubmitResult:
    turn: history.Turn
    state: Any
    duplicate: bool = False


@dataclass
class LoadedGame:
    record: Any
    engine: Any
    initial_state: Any
    turns: list
    state: Any


def normalize_players(players):
    """Turn names or partial dicts into ``{"name", "order", "kind"}`` entries."""
    if not isinstance(players, (list, tuple)) or not players:
        raise ValidationError("At least one player is required")
    if len(players) > MAX_PLAYERS:
        raise ValidationError(f"A game has at most {MAX_PLAYERS} players")
    normalized = []
    for position, raw in enumerate(players, start=1):
        if isinstance(raw, str):
            raw = {"name": raw}
        if not isinstance(raw, dict):
            raise ValidationError(f"Invalid player entry {raw!r}")
        name = (raw.get("name") or "").strip() or f"Player {position}"
        try:
            order = int(raw.get("order", position))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid order for player {name!r}")
        kind = PlayerKind.coerce(raw.get("kind", PlayerKind.SECONDARY))
        normalized.append({"name": name, "order": order, "kind": kind})
    if sum(1 for p in normalized if p["kind"] is PlayerKind.PRIMARY) > 1:
        raise ValidationError("Only one primary player is allowed")
    return normalized


class GameService:
    def __init__(self, store, revert_strategy="replay"):
        if revert_strategy not in history.REVERT_STRATEGIES:
            raise ValidationError(f"Unknown revert strategy {revert_strategy!r}")
        self.store = store
        self.revert_strategy = revert_strategy
        self._lock = threading.Lock()
        self._locks = {}

    def lock_for(self, game_id):
        with self._lock:
            lock = self._locks.get(game_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[game_id] = lock
            return lock

    @contextmanager
    def exclusive(self, game_id):
        """Hold the game's lock, or fail straight away if someone else has it."""
        lock = self.lock_for(game_id)
        if not lock.acquire(blocking=False):
            logger.warning("Rejected concurrent write for game id=%s", game_id)
            raise SubmissionInProgressError(f"Another submission for game {game_id} is in progress")
        try:
            yield
        finally:
            lock.release()

    # Loading

    def load(self, game_id):
        record = self.store.load_game(game_id)
        engine = engine_for(record.variant)
        initial = engine.initial_state(record.id, record.players)
        turns = self.store.load_turns(game_id)
        state = history.replay(engine, initial, turns)
        if record.status == STATUS_PAUSED and state.status == STATUS_ACTIVE:
            state.status = STATUS_PAUSED
        return LoadedGame(record, engine, initial, turns, state)

    def load_state(self, game_id):
        return self.load(game_id).state

    def turns(self, game_id):
        return self.store.load_turns(game_id)

    # Setup and status

    def create_game(self, variant, players):
        engine = engine_for(variant)
        entries = normalize_players(players)
        # Validate the roster before anything is written.
        engine.initial_state(
            None,
            [PlayerInfo(id=i, name=p["name"], order=p["order"], kind=p["kind"]) for i, p in enumerate(entries)],
        )
        record = self.store.create_game(engine.variant, entries)
        logger.info("Created game id=%s variant=%s players=%d", record.id, record.variant, len(entries))
        return engine.initial_state(record.id, record.players)

    def pause_game(self, game_id):
        return self._set_status(game_id, STATUS_ACTIVE, STATUS_PAUSED)

    def resume_game(self, game_id):
        return self._set_status(game_id, STATUS_PAUSED, STATUS_ACTIVE)

    def _set_status(self, game_id, expected, status):
        with self.exclusive(game_id):
            loaded = self.load(game_id)
            if loaded.state.status != expected:
                raise GameNotActiveError(f"Game {game_id} is {loaded.state.status}, expected {expected}")
            self.store.set_status(game_id, status)
            logger.info("Game id=%s %s -> %s", game_id, expected, status)
            loaded.state.status = status
            return loaded.state

    def delete_game(self, game_id):
        with self.exclusive(game_id):
            self.store.delete_game(game_id)
            logger.info("Deleted game id=%s", game_id)
        self._forget_lock(game_id)

    def _forget_lock(self, game_id):
        # Completed and deleted games take no further writes.
        with self._lock:
            self._locks.pop(game_id, None)

    # Turns

    def submit_turn(self, game_id, player_id, turn_number, darts):
        """
        Record a completed visit.

        A visit that is already in the log for this player and turn number is
        not applied again; the stored turn is returned with ``duplicate=True``.
        """
        darts = parse_darts(darts)
        if turn_number is None:
            raise ValidationError("turn_number required")
        with self.exclusive(game_id):
            loaded = self.load(game_id)
            existing = _find_turn(loaded.turns, player_id, turn_number)
            if existing is not None:
                logger.warning(
                    "Duplicate turn %s for player id=%s in game id=%s; resyncing from log",
                    turn_number,
                    player_id,
                    game_id,
                )
                return SubmitResult(existing, loaded.state, duplicate=True)

            new_state, turn = history.record_turn(
                loaded.engine, loaded.state, player_id, turn_number, darts
            )
            try:
                stored = self.store.append_turn(turn, new_state)
            except DuplicateTurnError:
                logger.warning("Store reported duplicate turn for game id=%s; resyncing", game_id)
                return self._resync(game_id, player_id, turn.turn_number)

        logger.info(
            "Game id=%s turn %s player id=%s darts=%s result=%s bust=%s",
            game_id,
            stored.turn_number,
            player_id,
            [d.label for d in stored.darts],
            stored.result,
            stored.bust,
        )
        if new_state.status == STATUS_COMPLETED:
            self._forget_lock(game_id)
        return SubmitResult(stored, new_state)

    def _resync(self, game_id, player_id, turn_number):
        loaded = self.load(game_id)
        existing = _find_turn(loaded.turns, player_id, turn_number)
        if existing is None:
            raise DuplicateTurnError(player_id, turn_number)
        return SubmitResult(existing, loaded.state, duplicate=True)

    def preview_turn(self, game_id, player_id, partial_darts):
        """Progress as it would stand after the darts thrown so far. Writes nothing."""
        loaded = self.load(game_id)
        state = loaded.state
        if state.status != STATUS_ACTIVE:
            raise GameNotActiveError(f"Game {game_id} is {state.status}")
        if state.player(player_id).id != state.current_player.id:
            raise TurnOrderError(f"Player {player_id} is not on the oche")
        return loaded.engine.preview(state, player_id, partial_darts)

    def revert_to_turn(self, game_id, turn_id, strategy=None):
        """Drop every turn after ``turn_id`` and recompute progress from what is left."""
        with self.exclusive(game_id):
            loaded = self.load(game_id)
            if loaded.state.status != STATUS_ACTIVE:
                raise GameNotActiveError(f"Cannot revert game {game_id} while it is {loaded.state.status}")
            result = history.revert(
                loaded.engine,
                loaded.initial_state,
                loaded.turns,
                turn_id,
                strategy or self.revert_strategy,
            )
            if result.removed == 0:
                logger.info("Revert of game id=%s to turn id=%s: nothing to remove", game_id, turn_id)
                return result
            result.turns = self.store.rewrite_turns(game_id, result.turns, result.state)
        logger.info("Reverted game id=%s to turn id=%s, removed %d turns", game_id, turn_id, result.removed)
        return result

    def edit_turn(self, game_id, turn_id, darts):
        """Correct the darts of a recorded turn; later turns are recomputed."""
        darts = parse_darts(darts)
        with self.exclusive(game_id):
            loaded = self.load(game_id)
            if loaded.state.status != STATUS_ACTIVE:
                raise GameNotActiveError(f"Cannot edit game {game_id} while it is {loaded.state.status}")
            result = history.edit(loaded.engine, loaded.initial_state, loaded.turns, turn_id, darts)
            result.turns = self.store.rewrite_turns(game_id, result.turns, result.state)
        logger.info("Edited turn id=%s of game id=%s", turn_id, game_id)
        return result

    # Queries

    def current_phase(self, game_id):
        loaded = self.load(game_id)
        return loaded.engine.current_phase(loaded.state)

    def check_winner(self, game_id):
        loaded = self.load(game_id)
        if loaded.state.status == STATUS_COMPLETED:
            return loaded.state.winner_id
        return loaded.engine.check_winner(loaded.state)

    @staticmethod
    def suggest_checkout(remaining):
        return suggest_checkout(remaining)

    def game_view(self, game_id):
        loaded = self.load(game_id)
        view = loaded.state.to_dict()
        view["game"] = loaded.record.to_dict()
        view["game"]["status"] = loaded.state.status
        view["phase"] = loaded.engine.current_phase(loaded.state)
        view.update(loaded.engine.hints(loaded.state))
        return view


def _find_turn(turns, player_id, turn_number):
    for turn in turns:
        if turn.player_id == player_id and turn.turn_number == turn_number:
            return turn
    return None
