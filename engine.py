# Shared game state and the variant engine base class.
# Each variant engine only resolves the darts of a single visit; turn order,
# validation and completion live here so every variant behaves the same way.

import copy
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dart import parse_darts
from errors import GameNotActiveError, TurnOrderError, ValidationError

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_PAUSED = "paused"
STATUS_COMPLETED = "completed"
GAME_STATUSES = (STATUS_ACTIVE, STATUS_PAUSED, STATUS_COMPLETED)

DARTS_PER_TURN = 3


class PlayerKind(enum.Enum):
    """Signed-in account holder versus a roster-only participant."""

    PRIMARY = "primary"
    SECONDARY = "secondary"

    @classmethod
    def coerce(cls, raw):
        if isinstance(raw, cls):
            return raw
        # 'user' / 'friend' are the labels older clients send.
        aliases = {"user": cls.PRIMARY, "friend": cls.SECONDARY}
        if not isinstance(raw, str):
            raise ValidationError(f"Unknown player kind {raw!r}")
        if raw in aliases:
            return aliases[raw]
        try:
            return cls(raw)
        except ValueError:
            raise ValidationError(f"Unknown player kind {raw!r}")


@dataclass(frozen=True)
class PlayerInfo:
    id: int
    name: str
    order: int
    kind: PlayerKind = PlayerKind.SECONDARY

    def to_dict(self):
        return {"id": self.id, "name": self.name, "order": self.order, "kind": self.kind.value}


@dataclass
class TurnOutcome:
    """What a variant engine reports back after resolving one visit."""

    scores: List[int]
    result: int
    bust: bool = False
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GameState:
    game_id: Any
    variant: str
    players: List[PlayerInfo]
    progress: Dict[int, Any]
    current_index: int = 0
    turn_number: int = 1
    status: str = STATUS_ACTIVE
    winner_id: Optional[int] = None
    # Sticky once any Killer player has become a killer or been eliminated.
    killer_play_started: bool = False

    @property
    def current_player(self):
        return self.players[self.current_index]

    def player(self, player_id):
        for p in self.players:
            if p.id == player_id:
                return p
        raise TurnOrderError(f"Player {player_id} is not part of game {self.game_id}")

    def index_of(self, player_id):
        return self.players.index(self.player(player_id))

    def copy(self):
        return copy.deepcopy(self)

    def snapshot(self):
        """Plain-data view of everything a turn changes, stored on each turn."""
        return {
            "progress": [dict(player_id=p.id, **self.progress[p.id].to_dict()) for p in self.players],
            "current_index": self.current_index,
            "turn_number": self.turn_number,
            "status": self.status,
            "winner_id": self.winner_id,
            "killer_play_started": self.killer_play_started,
        }

    def to_dict(self):
        data = self.snapshot()
        data.update(
            {
                "game_id": self.game_id,
                "variant": self.variant,
                "players": [p.to_dict() for p in self.players],
                "current_player_id": self.current_player.id if self.players else None,
            }
        )
        return data


class Engine:
    """Base class for the variant engines.

    Subclasses provide ``initial_progress``, ``progress_from_dict``,
    ``resolve`` and ``check_winner``; everything else is shared.
    """

    variant = None
    family = None

    def initial_progress(self, player):
        raise NotImplementedError()

    def progress_from_dict(self, data):
        raise NotImplementedError()

    def resolve(self, state, player, darts):
        """Apply ``darts`` for ``player`` to ``state.progress`` in place and return a TurnOutcome.

        Must raise before touching ``state`` when the visit is invalid.
        """
        raise NotImplementedError()

    def check_winner(self, state):
        raise NotImplementedError()

    def preview(self, state, player_id, darts):
        raise NotImplementedError()

    def current_phase(self, state):
        return "playing" if state.status != STATUS_COMPLETED else "finished"

    def hints(self, state):
        return {}

    def next_player_index(self, state, index):
        return (index + 1) % len(state.players)

    def initial_state(self, game_id, players):
        if not players:
            raise ValidationError("A game needs at least one player")
        ordered = sorted(players, key=lambda p: p.order)
        orders = [p.order for p in ordered]
        if orders != list(range(1, len(ordered) + 1)):
            raise ValidationError(f"Player order must be 1..{len(ordered)} without gaps, got {orders}")
        return GameState(
            game_id=game_id,
            variant=self.variant,
            players=ordered,
            progress={p.id: self.initial_progress(p) for p in ordered},
        )

    def restore(self, initial_state, snapshot):
        """Rebuild a state from a stored turn snapshot."""
        state = initial_state.copy()
        state.progress = {}
        for entry in snapshot["progress"]:
            entry = dict(entry)
            player_id = entry.pop("player_id")
            state.progress[player_id] = self.progress_from_dict(entry)
        state.current_index = snapshot["current_index"]
        state.turn_number = snapshot["turn_number"]
        state.status = snapshot["status"]
        state.winner_id = snapshot["winner_id"]
        state.killer_play_started = snapshot.get("killer_play_started", False)
        return state

    def validate_turn(self, state, player_id, turn_number, darts):
        if state.status != STATUS_ACTIVE:
            raise GameNotActiveError(f"Game {state.game_id} is {state.status}")
        player = state.player(player_id)
        if player.id != state.current_player.id:
            raise TurnOrderError(
                f"It is {state.current_player.name}'s turn, not {player.name}'s"
            )
        if turn_number is not None and turn_number != state.turn_number:
            raise TurnOrderError(f"Expected turn {state.turn_number}, got {turn_number}")
        return player, parse_darts(darts, limit=DARTS_PER_TURN)

    def play(self, state, player_id, darts, turn_number=None):
        """Validate and apply one visit. Returns ``(new_state, outcome)``; ``state`` is untouched."""
        player, darts = self.validate_turn(state, player_id, turn_number, darts)
        new_state = state.copy()
        outcome = self.resolve(new_state, player, darts)

        winner_id = self.check_winner(new_state)
        if winner_id is not None:
            new_state.status = STATUS_COMPLETED
            new_state.winner_id = winner_id
            logger.info("Game id=%s won by player id=%s", state.game_id, winner_id)
            return new_state, outcome

        index = new_state.current_index
        next_index = self.next_player_index(new_state, index)
        if next_index <= index:
            new_state.turn_number += 1
        new_state.current_index = next_index
        return new_state, outcome
