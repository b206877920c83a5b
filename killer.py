# Killer: claim a number, build lives on it, then shoot everyone else out.
#
# Phases are derived from player progress, never stored:
#   claiming - some active player has no number yet
#   killer   - every active player is a killer
#   building - anything in between
#
# A visit is resolved as a fold over its darts carrying the thrower's lives and
# killer flag, so a player who reaches the threshold on the second dart attacks
# with the third.

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Optional

from dart import BOARD_NUMBERS, parse_darts
from engine import Engine, TurnOutcome
from errors import NumberAlreadyClaimedError, ValidationError

logger = logging.getLogger(__name__)

KILLER_THRESHOLD = 3

PHASE_CLAIMING = "claiming"
PHASE_BUILDING = "building"
PHASE_KILLER = "killer"

KILLER_CONFIGS = {
    "killer_3": {"max_lives": 3, "display_name": "Killer (3 Lives)"},
    "killer_5": {"max_lives": 5, "display_name": "Killer (5 Lives)"},
    "killer_7": {"max_lives": 7, "display_name": "Killer (7 Lives)"},
}


@dataclass
class KillerProgress:
    claimed_number: Optional[int] = None
    lives: int = 0
    max_lives: int = 3
    is_killer: bool = False
    is_eliminated: bool = False

    def to_dict(self):
        return {
            "claimed_number": self.claimed_number,
            "lives": self.lives,
            "max_lives": self.max_lives,
            "is_killer": self.is_killer,
            "is_eliminated": self.is_eliminated,
        }


def encode_hit(dart):
    # Stored turn hits use number*10 + multiplier, e.g. D17 -> 172.
    return dart.value * 10 + dart.multiplier


def active_players(players, progress):
    return [p for p in players if not progress[p.id].is_eliminated]


def game_phase(players, progress):
    active = active_players(players, progress)
    if any(progress[p.id].claimed_number is None for p in active):
        return PHASE_CLAIMING
    if all(progress[p.id].is_killer for p in active):
        return PHASE_KILLER
    return PHASE_BUILDING


def claimed_numbers(players, progress):
    """Map of claimed number -> owning player id."""
    return {
        progress[p.id].claimed_number: p.id
        for p in players
        if progress[p.id].claimed_number is not None
    }


def next_player_index(players, progress, index):
    """Next seat after ``index`` that is still in the game.

    Gives up after one lap so an all-eliminated table cannot loop forever.
    """
    count = len(players)
    next_index = (index + 1) % count
    attempts = 0
    while progress[players[next_index].id].is_eliminated and attempts < count:
        next_index = (next_index + 1) % count
        attempts += 1
    return next_index


def find_winner(players, progress, killer_play_started):
    active = active_players(players, progress)
    if len(active) == 1 and killer_play_started:
        return active[0].id
    return None


def resolve_darts(players, progress, player_id, darts, max_lives):
    """
    Fold one visit over copies of every player's progress.

    Returns ``(new_progress, effects)``. Raises NumberAlreadyClaimedError
    before anything is returned if the visit tries to claim a taken number.
    """
    progress = {pid: replace(p) for pid, p in progress.items()}
    owners = claimed_numbers(players, progress)
    me = progress[player_id]
    lives_before = me.lives
    damage = defaultdict(int)
    claimed = None
    became_killer = False

    for dart in darts:
        # Bulls and misses do nothing in Killer.
        if dart.is_miss or dart.value not in BOARD_NUMBERS:
            continue
        number, multiplier = dart.value, dart.multiplier

        if me.claimed_number is None:
            owner = owners.get(number)
            if owner is not None and owner != player_id:
                raise NumberAlreadyClaimedError(number, owner)
            me.claimed_number = number
            owners[number] = player_id
            claimed = number
            me.lives = min(me.lives + multiplier, max_lives)
        elif number == me.claimed_number:
            me.lives = min(me.lives + multiplier, max_lives)
        elif me.is_killer:
            target_id = owners.get(number)
            if target_id is not None and not progress[target_id].is_eliminated:
                target = progress[target_id]
                target.lives = max(target.lives - multiplier, 0)
                target.is_killer = target.lives >= KILLER_THRESHOLD
                damage[target_id] += multiplier
                if target.lives == 0:
                    target.is_eliminated = True

        if not me.is_killer and me.lives >= KILLER_THRESHOLD:
            me.is_killer = True
            became_killer = True

    effects = {
        "claimed": claimed,
        "lives_before": lives_before,
        "lives_after": me.lives,
        "became_killer": became_killer,
        "damage": [
            {
                "player_id": target_id,
                "lives_lost": lost,
                "lives_after": progress[target_id].lives,
                "eliminated": progress[target_id].is_eliminated,
            }
            for target_id, lost in damage.items()
        ],
    }
    return progress, effects


class KillerEngine(Engine):
    family = "killer"

    def __init__(self, max_lives=3, variant=None):
        if max_lives < KILLER_THRESHOLD:
            raise ValidationError(f"max_lives must be at least {KILLER_THRESHOLD}")
        self.max_lives = max_lives
        self.variant = variant or f"killer_{max_lives}"

    def initial_state(self, game_id, players):
        if len(players) < 2:
            raise ValidationError("Killer needs at least two players")
        return super().initial_state(game_id, players)

    def initial_progress(self, player):
        return KillerProgress(max_lives=self.max_lives)

    def progress_from_dict(self, data):
        return KillerProgress(
            claimed_number=data.get("claimed_number"),
            lives=int(data.get("lives", 0)),
            max_lives=int(data.get("max_lives", self.max_lives)),
            is_killer=bool(data.get("is_killer", False)),
            is_eliminated=bool(data.get("is_eliminated", False)),
        )

    def resolve(self, state, player, darts):
        progress, effects = resolve_darts(
            state.players, state.progress, player.id, darts, self.max_lives
        )
        state.progress = progress
        if any(p.is_killer or p.is_eliminated for p in progress.values()):
            state.killer_play_started = True
        for hit in effects["damage"]:
            if hit["eliminated"]:
                logger.info(
                    "Game id=%s player id=%s eliminated by player id=%s",
                    state.game_id,
                    hit["player_id"],
                    player.id,
                )
        details = dict(effects, hits=[encode_hit(d) for d in darts])
        return TurnOutcome(scores=[d.points for d in darts], result=effects["lives_after"], details=details)

    def check_winner(self, state):
        return find_winner(state.players, state.progress, state.killer_play_started)

    def next_player_index(self, state, index):
        return next_player_index(state.players, state.progress, index)

    def current_phase(self, state):
        return game_phase(state.players, state.progress)

    def preview(self, state, player_id, darts):
        """Lives every player would have if the visit ended now."""
        darts = parse_darts(darts)
        progress, effects = resolve_darts(
            state.players, state.progress, player_id, darts, self.max_lives
        )
        players = []
        for p in state.players:
            change = progress[p.id].lives - state.progress[p.id].lives
            players.append(
                {
                    "player_id": p.id,
                    "lives": progress[p.id].lives,
                    "change": change,
                    "is_killer": progress[p.id].is_killer,
                    "is_eliminated": progress[p.id].is_eliminated,
                }
            )
        return {
            "player_id": player_id,
            "claimed": effects["claimed"],
            "became_killer": effects["became_killer"],
            "players": players,
        }

    def hints(self, state):
        return {
            "claimed_numbers": {
                str(number): owner
                for number, owner in claimed_numbers(state.players, state.progress).items()
            },
            "max_lives": self.max_lives,
        }
