# Exceptions raised by the rules engine and the game service.
# The Flask layer in app.py maps these onto HTTP status codes.


class DartsError(Exception):
    """Base class for every error raised by the engine."""

    status_code = 500


class ValidationError(DartsError):
    """A request was rejected before any state was touched."""

    status_code = 400


class InvalidDartError(ValidationError):
    pass


class TurnOrderError(ValidationError):
    """Wrong player, wrong turn number or too many darts."""


class NumberAlreadyClaimedError(ValidationError):
    def __init__(self, number, owner_id=None):
        self.number = number
        self.owner_id = owner_id
        super().__init__(f"Number {number} is already claimed")


class GameNotFoundError(DartsError):
    status_code = 404


class TurnNotFoundError(DartsError):
    status_code = 404


class GameNotActiveError(DartsError):
    status_code = 409


class SubmissionInProgressError(DartsError):
    """Another submission or revert holds the game's lock."""

    status_code = 409


class DuplicateTurnError(DartsError):
    """The store already holds a turn for this player and turn number.

    Recoverable: the service resynchronises from the stored log instead of
    applying the turn a second time.
    """

    status_code = 409

    def __init__(self, player_id, turn_number):
        self.player_id = player_id
        self.turn_number = turn_number
        super().__init__(f"Turn {turn_number} already recorded for player {player_id}")


class PersistenceError(DartsError):
    """The persistence collaborator failed. The caller decides whether to retry."""

    status_code = 503
    retryable = True
