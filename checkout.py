# Checkout suggestions.
# Walks a short list of rules in priority order and returns up to two valid
# 1-3 dart finishes that end on a double or the bullseye.

from functools import lru_cache

from dart import (
    BOARD_NUMBERS,
    BULLS,
    DOUBLES,
    SINGLES,
    TRIPLES,
    Dart,
)
from errors import InvalidDartError

MAX_CHECKOUT = 170  # T20 T20 Bull
MAX_SUGGESTIONS = 2
MAX_DOUBLE_FINISH = 40

# Totals in range with no three-dart finish at all.
BOGEY_NUMBERS = frozenset({159, 162, 163, 165, 166, 168, 169})

# Awkward totals with hand-checked paths.
HAND_VERIFIED = {
    113: ["T20", "S13", "D20"],
    115: ["T20", "S15", "D20"],
}

# Doubles players like to be left on, tried before the rest.
_PREFERRED_DOUBLES = [20, 16, 18, 12, 8, 10, 4]
PREFERRED_FINISHERS = (
    [Dart(n, 2) for n in _PREFERRED_DOUBLES]
    + [d for d in sorted(DOUBLES, key=lambda d: -d.value) if d.value not in _PREFERRED_DOUBLES]
    + [Dart(50, 1)]
)

# Order in which first darts are tried: big trebles first, then bulls, singles, doubles.
_LEAD_ORDER = (
    sorted(TRIPLES, key=lambda d: -d.value)
    + list(reversed(BULLS))
    + sorted(SINGLES, key=lambda d: -d.value)
    + sorted(DOUBLES, key=lambda d: -d.value)
)

# One dart per reachable point value; singles win over other ways to score the same.
_LEAD_BY_POINTS = {}
_BY_PREFERENCE = (
    sorted(SINGLES, key=lambda d: -d.value)
    + sorted(TRIPLES, key=lambda d: -d.value)
    + sorted(DOUBLES, key=lambda d: -d.value)
    + BULLS
)
for _dart in _BY_PREFERENCE:
    _LEAD_BY_POINTS.setdefault(_dart.points, _dart)


def _double_for(points):
    """Label of the single dart finishing exactly ``points``, or None."""
    if points == 50:
        return "Bull"
    if points % 2 == 0 and points // 2 in BOARD_NUMBERS:
        return f"D{points // 2}"
    return None


def is_bogey(remaining):
    return remaining in BOGEY_NUMBERS


def is_checkout_path(path, remaining):
    """True when ``path`` is 1-3 legal darts summing to ``remaining`` and ending on a finisher."""
    if not path or len(path) > 3:
        return False
    try:
        darts = [Dart.parse(label) for label in path]
    except InvalidDartError:
        return False
    if any(d.is_miss for d in darts):
        return False
    return sum(d.points for d in darts) == remaining and darts[-1].is_finisher


def _is_setup_path(path, remaining):
    try:
        darts = [Dart.parse(label) for label in path]
    except InvalidDartError:
        return False
    left = remaining - sum(d.points for d in darts)
    return len(darts) == 3 and _double_for(left) is not None


# Rules. Each returns candidate paths in preference order, or an empty list.

def _bull_rule(remaining):
    if remaining == 50:
        return [["Bull"], ["D20", "D5"]]
    return []


def _single_double_rule(remaining):
    if remaining <= MAX_DOUBLE_FINISH and remaining % 2 == 0:
        return [[f"D{remaining // 2}"]]
    return []


def _odd_rule(remaining):
    if remaining % 2 == 0 or remaining <= 2:
        return []
    for single in range(1, 20, 2):
        left = remaining - single
        if 2 <= left <= MAX_DOUBLE_FINISH:
            return [[f"S{single}", f"D{left // 2}"]]
    return []


def _treble_lead_rule(remaining):
    if remaining <= 100:
        return []
    paths = []
    for number in range(20, 0, -1):
        left = remaining - number * 3
        if 2 <= left <= MAX_DOUBLE_FINISH and left % 2 == 0:
            paths.append([f"T{number}", f"D{left // 2}"])
        elif left == 50:
            paths.append([f"T{number}", "Bull"])
    return paths


def _search_rule(remaining):
    paths = []
    if remaining in HAND_VERIFIED:
        paths.append(list(HAND_VERIFIED[remaining]))

    for finisher in PREFERRED_FINISHERS:
        lead = _LEAD_BY_POINTS.get(remaining - finisher.points)
        if lead is not None:
            paths.append([lead.label, finisher.label])
            if len(paths) >= MAX_SUGGESTIONS + 1:
                return paths

    for first in _LEAD_ORDER:
        for finisher in PREFERRED_FINISHERS:
            second = _LEAD_BY_POINTS.get(remaining - first.points - finisher.points)
            if second is not None:
                paths.append([first.label, second.label, finisher.label])
                if len(paths) >= MAX_SUGGESTIONS + 1:
                    return paths
    return paths


_RULES = (_bull_rule, _single_double_rule, _odd_rule, _treble_lead_rule, _search_rule)


def _setup_fallback(remaining):
    """Three scoring darts leaving a one-dart finish, for totals that cannot be checked out."""
    leaves = [f.points for f in PREFERRED_FINISHERS]
    for first in sorted(TRIPLES, key=lambda d: -d.value):
        for second in sorted(TRIPLES, key=lambda d: -d.value):
            for leave in leaves:
                third = _LEAD_BY_POINTS.get(remaining - first.points - second.points - leave)
                if third is not None:
                    return [first.label, second.label, third.label]
    # Unreachable for totals up to 170.
    return ["T20", "T20", "T20"]


@lru_cache(maxsize=256)
def _suggest(remaining):
    suggestions = []
    for rule in _RULES:
        for path in rule(remaining):
            if len(suggestions) >= MAX_SUGGESTIONS:
                break
            if path in suggestions or not is_checkout_path(path, remaining):
                continue
            suggestions.append(path)
        if suggestions:
            break

    if not suggestions:
        path = _setup_fallback(remaining)
        if _is_setup_path(path, remaining):
            suggestions.append(path)
    return tuple(tuple(path) for path in suggestions)


def suggest_checkout(remaining):
    """
    Suggest up to two finishing paths for ``remaining``.

    Returns a list of dart label lists, e.g. ``[["T20", "T20", "Bull"]]``.
    Totals of 1 or less, or above 170, have no checkout and give ``[]``.
    Bogey numbers (see ``BOGEY_NUMBERS``) get a three-dart setup path
    leaving a one-dart finish instead.
    """
    if isinstance(remaining, bool) or not isinstance(remaining, int):
        return []
    if remaining <= 1 or remaining > MAX_CHECKOUT:
        return []
    return [list(path) for path in _suggest(remaining)]

