# Persistence collaborator used by GameService.
# The SQLAlchemy implementation lives in app.py; MemoryStore keeps everything
# in process and backs the tests.

import copy
import itertools
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional

from engine import STATUS_ACTIVE, PlayerInfo
from errors import DuplicateTurnError, GameNotFoundError


@dataclass
class GameRecord:
    id: int
    variant: str
    status: str
    players: List[PlayerInfo]
    winner_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self):
        return {
            "id": self.id,
            "variant": self.variant,
            "status": self.status,
            "winner_id": self.winner_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class GameStore:
    """What the service needs from storage.

    Implementations raise GameNotFoundError for unknown games,
    DuplicateTurnError when a (player, turn number) pair already exists and
    PersistenceError for anything else that goes wrong while saving.
    """

    def create_game(self, variant, players):
        """``players`` is a list of dicts with name, order and kind. Returns a GameRecord."""
        raise NotImplementedError()

    def load_game(self, game_id):
        raise NotImplementedError()

    def load_turns(self, game_id):
        raise NotImplementedError()

    def append_turn(self, turn, state):
        """Persist ``turn`` plus the progress in ``state``. Returns the stored turn with its id."""
        raise NotImplementedError()

    def rewrite_turns(self, game_id, turns, state):
        """Make ``turns`` the whole log (dropping any others) and persist ``state``."""
        raise NotImplementedError()

    def set_status(self, game_id, status):
        raise NotImplementedError()

    def delete_game(self, game_id):
        raise NotImplementedError()


class MemoryStore(GameStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._games = {}
        self._turns = {}
        self._progress = {}
        self._game_ids = itertools.count(1)
        self._player_ids = itertools.count(1)
        self._turn_ids = itertools.count(1)

    def create_game(self, variant, players):
        with self._lock:
            game_id = next(self._game_ids)
            infos = [
                PlayerInfo(id=next(self._player_ids), name=p["name"], order=p["order"], kind=p["kind"])
                for p in players
            ]
            now = datetime.utcnow()
            record = GameRecord(game_id, variant, STATUS_ACTIVE, infos, created_at=now, updated_at=now)
            self._games[game_id] = record
            self._turns[game_id] = []
            return copy.deepcopy(record)

    def _game(self, game_id):
        try:
            return self._games[game_id]
        except KeyError:
            raise GameNotFoundError(f"Game {game_id} not found")

    def load_game(self, game_id):
        with self._lock:
            return copy.deepcopy(self._game(game_id))

    def load_turns(self, game_id):
        with self._lock:
            self._game(game_id)
            return copy.deepcopy(self._turns[game_id])

    def load_progress(self, game_id):
        with self._lock:
            return copy.deepcopy(self._progress.get(game_id))

    def _save_state(self, record, state):
        record.status = state.status
        record.winner_id = state.winner_id
        record.updated_at = datetime.utcnow()
        self._progress[record.id] = state.snapshot()

    def append_turn(self, turn, state):
        with self._lock:
            record = self._game(turn.game_id)
            log = self._turns[turn.game_id]
            if any(t.player_id == turn.player_id and t.turn_number == turn.turn_number for t in log):
                raise DuplicateTurnError(turn.player_id, turn.turn_number)
            stored = replace(turn, id=next(self._turn_ids))
            log.append(stored)
            self._save_state(record, state)
            return copy.deepcopy(stored)

    def rewrite_turns(self, game_id, turns, state):
        with self._lock:
            record = self._game(game_id)
            self._turns[game_id] = copy.deepcopy(list(turns))
            self._save_state(record, state)
            return copy.deepcopy(self._turns[game_id])

    def set_status(self, game_id, status):
        with self._lock:
            record = self._game(game_id)
            record.status = status
            record.updated_at = datetime.utcnow()
            return copy.deepcopy(record)

    def delete_game(self, game_id):
        with self._lock:
            self._game(game_id)
            del self._games[game_id]
            self._turns.pop(game_id, None)
            self._progress.pop(game_id, None)
