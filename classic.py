# Countdown games (301 / 501 / 701).
# Players count down from the starting score; going below zero or leaving 1
# is a bust and the visit is scored as nothing.

from dataclasses import dataclass

from checkout import suggest_checkout
from dart import parse_darts
from engine import STATUS_COMPLETED, Engine, TurnOutcome

STARTING_SCORES = (301, 501, 701)

# Recorded in place of the dart scores when a visit busts.
BUST_SCORES = [0]


@dataclass
class ClassicProgress:
    remaining: int

    def to_dict(self):
        return {"remaining": self.remaining}


def settle(remaining, darts, double_out=False):
    """
    Score a visit against ``remaining``.

    Returns ``(new_remaining, bust, checkout)``. A bust leaves ``remaining``
    unchanged. With ``double_out`` a finish whose last scoring dart is not a
    double or the bullseye is also a bust.
    """
    candidate = remaining - sum(d.points for d in darts)
    if candidate < 0 or candidate == 1:
        return remaining, True, False
    if candidate == 0:
        if double_out:
            scoring = [d for d in darts if not d.is_miss]
            if not scoring or not scoring[-1].is_finisher:
                return remaining, True, False
        return 0, False, True
    return candidate, False, False


class ClassicEngine(Engine):
    family = "classic"

    def __init__(self, starting_score=501, double_out=False, variant=None):
        self.starting_score = starting_score
        self.double_out = double_out
        self.variant = variant or str(starting_score)

    def initial_progress(self, player):
        return ClassicProgress(remaining=self.starting_score)

    def progress_from_dict(self, data):
        return ClassicProgress(remaining=int(data["remaining"]))

    def resolve(self, state, player, darts):
        progress = state.progress[player.id]
        before = progress.remaining
        remaining, bust, checkout = settle(before, darts, self.double_out)
        progress.remaining = remaining
        return TurnOutcome(
            scores=list(BUST_SCORES) if bust else [d.points for d in darts],
            result=remaining,
            bust=bust,
            details={
                "total": sum(d.points for d in darts),
                "remaining_before": before,
                "checkout": checkout,
            },
        )

    def check_winner(self, state):
        for p in state.players:
            if state.progress[p.id].remaining == 0:
                return p.id
        return None

    def preview(self, state, player_id, darts):
        """Temporary remaining for a visit still in progress. Nothing is recorded."""
        darts = parse_darts(darts)
        before = state.progress[player_id].remaining
        remaining, bust, checkout = settle(before, darts, self.double_out)
        return {
            "player_id": player_id,
            "remaining": remaining,
            "running_total": sum(d.points for d in darts),
            "bust": bust,
            "checkout": checkout,
            "suggestions": suggest_checkout(remaining),
        }

    def hints(self, state):
        if state.status == STATUS_COMPLETED:
            return {}
        remaining = state.progress[state.current_player.id].remaining
        return {"suggestions": suggest_checkout(remaining)}
