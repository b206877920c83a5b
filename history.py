# Turn log shared by every variant.
#
# The log is append-only. Current progress is always a fold of the engine's
# turn logic over the log, so revert is "truncate, then fold the prefix" and
# an edit is "swap the darts, then fold the whole log again".

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from dart import Dart
from errors import DartsError, TurnNotFoundError, ValidationError

logger = logging.getLogger(__name__)

REVERT_STRATEGIES = ("replay", "snapshot")


@dataclass
class Turn:
    game_id: Any
    player_id: int
    turn_number: int
    darts: tuple
    scores: List[int]
    result: int
    bust: bool = False
    checkout: bool = False
    edited: bool = False
    edited_at: Optional[datetime] = None
    details: Dict[str, Any] = field(default_factory=dict)
    snapshot: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def to_dict(self):
        return {
            "id": self.id,
            "game_id": self.game_id,
            "player_id": self.player_id,
            "turn_number": self.turn_number,
            "darts": [d.label for d in self.darts],
            "scores": list(self.scores),
            "result": self.result,
            "bust": self.bust,
            "checkout": self.checkout,
            "edited": self.edited,
            "edited_at": self.edited_at.isoformat() if self.edited_at else None,
            "details": self.details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class RevertResult:
    turns: List[Turn]
    state: Any
    removed: int = 0


def record_turn(engine, state, player_id, turn_number, darts):
    """Play one visit and build its log entry. Returns ``(new_state, turn)``."""
    new_state, outcome = engine.play(state, player_id, darts, turn_number=turn_number)
    turn = Turn(
        game_id=state.game_id,
        player_id=player_id,
        turn_number=state.turn_number,
        darts=tuple(Dart.coerce(d) for d in darts),
        scores=outcome.scores,
        result=outcome.result,
        bust=outcome.bust,
        checkout=new_state.winner_id == player_id,
        details=outcome.details,
        snapshot=new_state.snapshot(),
        created_at=datetime.utcnow(),
    )
    return new_state, turn


def replay(engine, initial_state, turns):
    """Fold ``turns`` over ``initial_state``. Pure: neither argument is modified."""
    state = initial_state
    for turn in turns:
        state, _ = engine.play(state, turn.player_id, turn.darts, turn_number=turn.turn_number)
    return state


def _index_of(turns, turn_id):
    for index, turn in enumerate(turns):
        if turn.id == turn_id:
            return index
    raise TurnNotFoundError(f"Turn {turn_id} not found")


def restore_snapshot(engine, initial_state, turn):
    return engine.restore(initial_state, turn.snapshot)


def revert(engine, initial_state, turns, turn_id, strategy="replay"):
    """
    Keep the log up to and including ``turn_id`` and recompute progress.

    ``strategy`` picks between folding the kept prefix (``"replay"``) and
    reading the snapshot stored on the target turn (``"snapshot"``); both
    give the same state.
    """
    if strategy not in REVERT_STRATEGIES:
        raise ValidationError(f"Unknown revert strategy {strategy!r}")
    index = _index_of(turns, turn_id)
    kept = list(turns[: index + 1])
    removed = len(turns) - len(kept)
    if strategy == "snapshot" and kept[-1].snapshot:
        state = restore_snapshot(engine, initial_state, kept[-1])
    else:
        state = replay(engine, initial_state, kept)
    return RevertResult(turns=kept, state=state, removed=removed)


def rebuild(engine, initial_state, turns):
    """Replay the log and regenerate every derived field of every turn."""
    state = initial_state
    rebuilt = []
    for turn in turns:
        state, fresh = record_turn(engine, state, turn.player_id, turn.turn_number, turn.darts)
        rebuilt.append(
            replace(
                fresh,
                id=turn.id,
                created_at=turn.created_at,
                edited=turn.edited,
                edited_at=turn.edited_at,
            )
        )
    return rebuilt, state


def edit(engine, initial_state, turns, turn_id, darts):
    """Replace the darts of one turn and recompute the log after it.

    Rejected without side effects when the corrected log no longer plays,
    e.g. because the game would now have ended before a later turn.
    """
    index = _index_of(turns, turn_id)
    corrected = list(turns)
    corrected[index] = replace(
        turns[index],
        darts=tuple(Dart.coerce(d) for d in darts),
        edited=True,
        edited_at=datetime.utcnow(),
    )
    try:
        rebuilt, state = rebuild(engine, initial_state, corrected)
    except DartsError as e:
        logger.info("Edit of turn id=%s rejected: %s", turn_id, e)
        raise ValidationError(f"Edit would invalidate the turn log: {e}")
    return RevertResult(turns=rebuilt, state=state, removed=0)
