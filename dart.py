# Single dart results and their wire labels.
# A dart is (value, multiplier): 0/0 is a miss, 1-20 take multiplier 1-3,
# 25 (single bull) and 50 (bullseye) are fixed at multiplier 1.

from dataclasses import dataclass

from errors import InvalidDartError

MISS, SINGLE, DOUBLE, TRIPLE = 0, 1, 2, 3

BOARD_NUMBERS = tuple(range(1, 21))
SINGLE_BULL = 25
BULLSEYE = 50
LEGAL_VALUES = (0,) + BOARD_NUMBERS + (SINGLE_BULL, BULLSEYE)

_PREFIXES = {SINGLE: "S", DOUBLE: "D", TRIPLE: "T"}
_MULTIPLIERS = {"S": SINGLE, "D": DOUBLE, "T": TRIPLE}

# Labels used by older clients that encoded bulls the darts4you way.
_LEGACY_LABELS = {
    "SBULL": (SINGLE_BULL, SINGLE),
    "BULL": (BULLSEYE, SINGLE),
    "DBULL": (BULLSEYE, SINGLE),
    "MISS": (0, MISS),
    "OUT": (0, MISS),
}


@dataclass(frozen=True)
class Dart:
    """
    One dart as thrown.

    - value: 0 (miss), 1-20, 25 (single bull) or 50 (bullseye)
    - multiplier: 0 (miss), 1 single, 2 double, 3 triple
    """

    value: int
    multiplier: int

    def __post_init__(self):
        if self.value not in LEGAL_VALUES:
            raise InvalidDartError(f"Illegal dart value {self.value!r}")
        if self.value == 0:
            if self.multiplier != MISS:
                raise InvalidDartError("A miss must have multiplier 0")
        elif self.value in (SINGLE_BULL, BULLSEYE):
            if self.multiplier != SINGLE:
                raise InvalidDartError(f"Bull value {self.value} must have multiplier 1")
        elif self.multiplier not in (SINGLE, DOUBLE, TRIPLE):
            raise InvalidDartError(f"Illegal multiplier {self.multiplier!r} for {self.value}")

    @property
    def points(self) -> int:
        return self.value * self.multiplier

    @property
    def is_miss(self) -> bool:
        return self.value == 0

    @property
    def is_bull(self) -> bool:
        return self.value in (SINGLE_BULL, BULLSEYE)

    @property
    def is_finisher(self) -> bool:
        # Legs can only be finished on a double or the bullseye.
        return self.value == BULLSEYE or (self.value in BOARD_NUMBERS and self.multiplier == DOUBLE)

    @property
    def label(self) -> str:
        if self.value == 0:
            return "Miss"
        if self.value == BULLSEYE:
            return "Bull"
        if self.value == SINGLE_BULL:
            return "25"
        return f"{_PREFIXES[self.multiplier]}{self.value}"

    def __str__(self):
        return self.label

    def to_dict(self):
        return {"value": self.value, "multiplier": self.multiplier, "label": self.label}

    @classmethod
    def parse(cls, label):
        """Parse a wire label such as ``T20``, ``25``, ``Bull`` or ``Miss``."""
        if not isinstance(label, str):
            raise InvalidDartError(f"Dart label must be a string, got {label!r}")
        text = label.strip().upper()
        if text == "25":
            return cls(SINGLE_BULL, SINGLE)
        if text in _LEGACY_LABELS:
            return cls(*_LEGACY_LABELS[text])
        if len(text) >= 2 and text[0] in _MULTIPLIERS and text[1:].isdigit():
            value = int(text[1:])
            if value not in BOARD_NUMBERS:
                raise InvalidDartError(f"Illegal dart label {label!r}")
            return cls(value, _MULTIPLIERS[text[0]])
        raise InvalidDartError(f"Illegal dart label {label!r}")

    @classmethod
    def coerce(cls, raw):
        """Accept a Dart, a wire label or a ``{"value", "multiplier"}`` mapping."""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            return cls.parse(raw)
        if isinstance(raw, dict):
            pair = (raw.get("value", 0), raw.get("multiplier", 0))
        elif isinstance(raw, (tuple, list)) and len(raw) == 2:
            pair = raw
        else:
            raise InvalidDartError(f"Illegal dart {raw!r}")
        try:
            value, multiplier = int(pair[0]), int(pair[1])
        except (TypeError, ValueError):
            raise InvalidDartError(f"Illegal dart {raw!r}")
        return cls(value, multiplier)


def parse_darts(raw_darts, limit=3):
    """Validate a whole visit. Raises before anything is applied."""
    if raw_darts is None:
        raw_darts = []
    if not isinstance(raw_darts, (list, tuple)):
        raise InvalidDartError("Darts must be a list")
    if len(raw_darts) > limit:
        raise InvalidDartError(f"A turn has at most {limit} darts, got {len(raw_darts)}")
    return tuple(Dart.coerce(d) for d in raw_darts)


MISS_DART = Dart(0, MISS)

SINGLES = [Dart(i, SINGLE) for i in BOARD_NUMBERS]
DOUBLES = [Dart(i, DOUBLE) for i in BOARD_NUMBERS]
TRIPLES = [Dart(i, TRIPLE) for i in BOARD_NUMBERS]
BULLS = [Dart(SINGLE_BULL, SINGLE), Dart(BULLSEYE, SINGLE)]
LEGAL_DARTS = TRIPLES + DOUBLES + SINGLES + BULLS
FINISHERS = DOUBLES + [Dart(BULLSEYE, SINGLE)]
