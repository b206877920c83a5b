# Around the World: hit every target of a fixed sequence in order.

from dataclasses import dataclass, field
from typing import List, Optional

from dart import parse_darts
from engine import Engine, TurnOutcome


@dataclass(frozen=True)
class ATWConfig:
    variant: str
    sequence: tuple
    multiplier_advances: bool
    display_name: str
    description: str


_ONE_TO_TWENTY = tuple(range(1, 21))

ATW_CONFIGS = {
    "atw_1_20": ATWConfig(
        "atw_1_20",
        _ONE_TO_TWENTY,
        False,
        "Around the World (1-20)",
        "Hit numbers 1 through 20 in sequence",
    ),
    "atw_1_20_bull": ATWConfig(
        "atw_1_20_bull",
        _ONE_TO_TWENTY + (50,),
        False,
        "Around the World (1-20 + Bull)",
        "Hit numbers 1 through 20, then bullseye",
    ),
    "atw_1_20_25_bull": ATWConfig(
        "atw_1_20_25_bull",
        _ONE_TO_TWENTY + (25, 50),
        False,
        "Around the World (1-20 + 25 + Bull)",
        "Hit numbers 1 through 20, then 25, then bullseye",
    ),
}


@dataclass
class ATWProgress:
    sequence_position: int
    current_target: Optional[int]
    completed_targets: List[int] = field(default_factory=list)

    def to_dict(self):
        return {
            "sequence_position": self.sequence_position,
            "current_target": self.current_target,
            "completed_targets": list(self.completed_targets),
        }


def target_at(sequence, position):
    """Target for a 1-based position, or None once the sequence is done."""
    if 1 <= position <= len(sequence):
        return sequence[position - 1]
    return None


def advance(position, sequence, darts, multiplier_advances=False):
    """
    Walk the darts of one visit from ``position``.

    Only a hit on the current target moves the player on: one step, or
    ``multiplier`` steps when multiplier advances are enabled. Position is
    capped at ``len(sequence) + 1`` and darts after that are ignored.

    Returns ``(new_position, advances, completed)`` where ``completed`` lists
    the targets passed during the visit.
    """
    finish = len(sequence) + 1
    completed = []
    start = position
    for dart in darts:
        if position >= finish:
            break
        target = sequence[position - 1]
        if dart.is_miss or dart.value != target:
            continue
        step = dart.multiplier if multiplier_advances else 1
        new_position = min(position + step, finish)
        completed.extend(sequence[position - 1:new_position - 1])
        position = new_position
    return position, position - start, completed


class ATWEngine(Engine):
    family = "atw"

    def __init__(self, config, multiplier_advances=None, variant=None):
        self.config = config
        self.sequence = tuple(config.sequence)
        self.multiplier_advances = (
            config.multiplier_advances if multiplier_advances is None else multiplier_advances
        )
        self.variant = variant or config.variant

    @property
    def finish_position(self):
        return len(self.sequence) + 1

    def initial_progress(self, player):
        return ATWProgress(sequence_position=1, current_target=self.sequence[0])

    def progress_from_dict(self, data):
        return ATWProgress(
            sequence_position=int(data["sequence_position"]),
            current_target=data.get("current_target"),
            completed_targets=list(data.get("completed_targets") or []),
        )

    def resolve(self, state, player, darts):
        progress = state.progress[player.id]
        before = progress.sequence_position
        after, advances, completed = advance(before, self.sequence, darts, self.multiplier_advances)
        progress.sequence_position = after
        progress.current_target = target_at(self.sequence, after)
        progress.completed_targets.extend(completed)
        return TurnOutcome(
            scores=[d.points for d in darts],
            result=after,
            details={
                "hits": [d.value for d in darts],
                "advances": advances,
                "position_before": before,
                "position_after": after,
                "completed_game": after == self.finish_position,
            },
        )

    def check_winner(self, state):
        for p in state.players:
            if state.progress[p.id].sequence_position >= self.finish_position:
                return p.id
        return None

    def preview(self, state, player_id, darts):
        darts = parse_darts(darts)
        before = state.progress[player_id].sequence_position
        after, advances, _ = advance(before, self.sequence, darts, self.multiplier_advances)
        return {
            "player_id": player_id,
            "sequence_position": after,
            "current_target": target_at(self.sequence, after),
            "advances": advances,
            "completed_game": after == self.finish_position,
        }

    def hints(self, state):
        leader = max(state.players, key=lambda p: state.progress[p.id].sequence_position)
        return {
            "sequence": list(self.sequence),
            "multiplier_advances": self.multiplier_advances,
            "leader_id": leader.id,
        }
