import logging
from datetime import datetime

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

import history
from config import Config
from dart import Dart
from engine import STATUS_ACTIVE, STATUS_COMPLETED, PlayerInfo, PlayerKind
from errors import (
    DartsError,
    DuplicateTurnError,
    GameNotFoundError,
    PersistenceError,
    ValidationError,
)
from service import GameService
from store import GameRecord, GameStore
from variants import available_variants

# Basic logging setup; create_app applies LOG_LEVEL from the config.
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

db = SQLAlchemy()


# Models
class Game(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    # Variant tag: 301/501/701 (optionally _do), atw_*, killer_*
    variant = db.Column(db.String(50), default="501", nullable=False)
    status = db.Column(db.String(16), default=STATUS_ACTIVE, nullable=False)
    winner_player_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    players = db.relationship(
        "Player", backref="game", cascade="all, delete-orphan", order_by="Player.turn_order"
    )
    turns = db.relationship("Turn", backref="game", cascade="all, delete-orphan", order_by="Turn.id")


class Player(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey("game.id"), nullable=False)
    name = db.Column(db.String(80), default="Player")
    # 'primary' for the signed-in account holder, 'secondary' for roster-only players
    kind = db.Column(db.String(16), default=PlayerKind.SECONDARY.value, nullable=False)
    turn_order = db.Column(db.Integer, nullable=False)
    # Latest derived progress, kept for readers that do not replay the log
    progress = db.Column(db.JSON, nullable=True)
    winner = db.Column(db.Boolean, default=False)


class Turn(db.Model):
    __table_args__ = (db.UniqueConstraint("game_id", "player_id", "turn_number", name="uq_turn_player_number"),)

    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey("game.id"), nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey("player.id"), nullable=False)
    turn_number = db.Column(db.Integer, nullable=False)
    darts = db.Column(db.JSON, nullable=False)  # [{"value": 20, "multiplier": 3}, ...]
    scores = db.Column(db.JSON, nullable=False)
    result = db.Column(db.Integer, nullable=False)
    bust = db.Column(db.Boolean, default=False)
    checkout = db.Column(db.Boolean, default=False)
    edited = db.Column(db.Boolean, default=False)
    edited_at = db.Column(db.DateTime, nullable=True)
    details = db.Column(db.JSON, nullable=True)
    snapshot = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    player = db.relationship("Player")


def game_to_record(game):
    players = [
        PlayerInfo(id=p.id, name=p.name, order=p.turn_order, kind=PlayerKind(p.kind)) for p in game.players
    ]
    return GameRecord(
        id=game.id,
        variant=game.variant,
        status=game.status,
        players=players,
        winner_id=game.winner_player_id,
        created_at=game.created_at,
        updated_at=game.updated_at,
    )


def row_to_turn(row):
    return history.Turn(
        id=row.id,
        game_id=row.game_id,
        player_id=row.player_id,
        turn_number=row.turn_number,
        darts=tuple(Dart.coerce(d) for d in row.darts or []),
        scores=list(row.scores or []),
        result=row.result,
        bust=bool(row.bust),
        checkout=bool(row.checkout),
        edited=bool(row.edited),
        edited_at=row.edited_at,
        details=row.details or {},
        snapshot=row.snapshot or {},
        created_at=row.created_at,
    )


def _fill_row(row, turn):
    row.darts = [{"value": d.value, "multiplier": d.multiplier} for d in turn.darts]
    row.scores = list(turn.scores)
    row.result = turn.result
    row.bust = turn.bust
    row.checkout = turn.checkout
    row.edited = turn.edited
    row.edited_at = turn.edited_at
    row.details = turn.details
    row.snapshot = turn.snapshot
    return row


class SqlStore(GameStore):
    """GameStore backed by the Flask-SQLAlchemy session."""

    def _commit(self, what, game_id=None):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            logger.exception("Failed to %s for game id=%s: %s", what, game_id, e)
            try:
                db.session.rollback()
            except SQLAlchemyError:
                logger.debug("Rollback failed after %s error for game id=%s", what, game_id)
            raise PersistenceError(f"Failed to {what}")

    def _game(self, game_id):
        try:
            game = db.session.get(Game, game_id)
        except SQLAlchemyError as e:
            logger.exception("Failed to load game id=%s: %s", game_id, e)
            db.session.rollback()
            raise PersistenceError("Failed to load game")
        if game is None:
            raise GameNotFoundError(f"Game {game_id} not found")
        return game

    def create_game(self, variant, players):
        game = Game(variant=variant, status=STATUS_ACTIVE)
        db.session.add(game)
        try:
            db.session.flush()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception("Failed to create game: %s", e)
            raise PersistenceError("Failed to create game")
        for p in players:
            db.session.add(Player(game_id=game.id, name=p["name"], turn_order=p["order"], kind=p["kind"].value))
        self._commit("create game", game.id)
        return game_to_record(game)

    def load_game(self, game_id):
        return game_to_record(self._game(game_id))

    def load_turns(self, game_id):
        game = self._game(game_id)
        return [row_to_turn(row) for row in game.turns]

    def _save_state(self, game, state):
        game.status = state.status
        game.winner_player_id = state.winner_id
        progress = {entry["player_id"]: entry for entry in state.snapshot()["progress"]}
        for p in game.players:
            entry = dict(progress.get(p.id, {}))
            entry.pop("player_id", None)
            p.progress = entry
            p.winner = p.id == state.winner_id

    def append_turn(self, turn, state):
        game = self._game(turn.game_id)
        row = _fill_row(
            Turn(
                game_id=turn.game_id,
                player_id=turn.player_id,
                turn_number=turn.turn_number,
                created_at=turn.created_at or datetime.utcnow(),
            ),
            turn,
        )
        try:
            # Player rows load lazily; keep the pending turn out of that query.
            with db.session.no_autoflush:
                self._save_state(game, state)
            db.session.add(row)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateTurnError(turn.player_id, turn.turn_number)
        except SQLAlchemyError as e:
            logger.exception("Failed to save turn for game id=%s: %s", turn.game_id, e)
            db.session.rollback()
            raise PersistenceError("Failed to save turn")
        return row_to_turn(row)

    def rewrite_turns(self, game_id, turns, state):
        game = self._game(game_id)
        keep = {t.id: t for t in turns}
        for row in list(game.turns):
            if row.id in keep:
                _fill_row(row, keep[row.id])
            else:
                game.turns.remove(row)
        self._save_state(game, state)
        self._commit("rewrite turns", game_id)
        return [row_to_turn(row) for row in game.turns]

    def set_status(self, game_id, status):
        game = self._game(game_id)
        game.status = status
        self._commit("update status", game_id)
        return game_to_record(game)

    def delete_game(self, game_id):
        game = self._game(game_id)
        db.session.delete(game)
        self._commit("delete game", game_id)


api = Blueprint("api", __name__)


def _service():
    return current_app.extensions["darts_service"]


@api.errorhandler(DartsError)
def handle_darts_error(e):
    payload = {"error": str(e) or e.__class__.__name__, "type": e.__class__.__name__}
    if isinstance(e, PersistenceError):
        payload["retryable"] = True
    return jsonify(payload), e.status_code


@api.route("/")
def index():
    return jsonify({"variants": available_variants()})


# Game creation
@api.route("/api/new_game", methods=["POST"])
def new_game():
    payload = request.get_json(silent=True) or {}
    variant = payload.get("variant") or payload.get("mode") or "501"
    state = _service().create_game(variant, payload.get("players", []))
    created_players = [p.to_dict() for p in state.players]
    return jsonify({"game_id": state.game_id, "variant": state.variant, "players_created": created_players}), 201


# Game state including progress, phase and checkout hints for the player to throw
@api.route("/api/game_state/<int:game_id>", methods=["GET"])
def game_state(game_id):
    return jsonify(_service().game_view(game_id))


@api.route("/api/games/<int:game_id>", methods=["DELETE"])
def delete_game(game_id):
    _service().delete_game(game_id)
    return jsonify({"status": "deleted"})


@api.route("/api/games/<int:game_id>/turns", methods=["GET"])
def list_turns(game_id):
    return jsonify([t.to_dict() for t in _service().turns(game_id)])


@api.route("/api/games/<int:game_id>/turns", methods=["POST"])
def submit_turn(game_id):
    """
    Record a full visit. Accepts JSON:
      { "player_id": <int>, "turn_number": <int>, "darts": ["T20", "S5", {"value": 1, "multiplier": 1}] }
    Returns 201 with the stored turn, or 200 with the existing turn when it was already recorded.
    """
    data = request.get_json(silent=True) or {}
    player_id = data.get("player_id")
    if player_id is None:
        raise ValidationError("player_id required")
    turn_number = data.get("turn_number")
    if turn_number is None:
        raise ValidationError("turn_number required")
    try:
        player_id = int(player_id)
        turn_number = int(turn_number)
    except (TypeError, ValueError):
        raise ValidationError("player_id and turn_number must be integers")

    result = _service().submit_turn(game_id, player_id, turn_number, data.get("darts", []))
    body = {"turn": result.turn.to_dict(), "duplicate": result.duplicate, "state": result.state.to_dict()}
    if result.state.status == STATUS_COMPLETED:
        body["winner_id"] = result.state.winner_id
    return jsonify(body), 200 if result.duplicate else 201


@api.route("/api/games/<int:game_id>/preview", methods=["POST"])
def preview_turn(game_id):
    data = request.get_json(silent=True) or {}
    try:
        player_id = int(data.get("player_id"))
    except (TypeError, ValueError):
        raise ValidationError("player_id required")
    return jsonify(_service().preview_turn(game_id, player_id, data.get("darts", [])))


@api.route("/api/games/<int:game_id>/revert", methods=["POST"])
def revert_turn(game_id):
    data = request.get_json(silent=True) or {}
    try:
        turn_id = int(data.get("turn_id"))
    except (TypeError, ValueError):
        raise ValidationError("turn_id required")
    result = _service().revert_to_turn(game_id, turn_id, data.get("strategy"))
    return jsonify(
        {
            "turns": [t.to_dict() for t in result.turns],
            "removed": result.removed,
            "state": result.state.to_dict(),
        }
    )


@api.route("/api/games/<int:game_id>/turns/<int:turn_id>", methods=["PATCH"])
def edit_turn(game_id, turn_id):
    data = request.get_json(silent=True) or {}
    result = _service().edit_turn(game_id, turn_id, data.get("darts", []))
    return jsonify({"turns": [t.to_dict() for t in result.turns], "state": result.state.to_dict()})


@api.route("/api/games/<int:game_id>/pause", methods=["POST"])
def pause_game(game_id):
    state = _service().pause_game(game_id)
    return jsonify({"status": state.status})


@api.route("/api/games/<int:game_id>/resume", methods=["POST"])
def resume_game(game_id):
    state = _service().resume_game(game_id)
    return jsonify({"status": state.status})


@api.route("/api/games/<int:game_id>/phase", methods=["GET"])
def game_phase(game_id):
    service = _service()
    return jsonify({"phase": service.current_phase(game_id), "winner_id": service.check_winner(game_id)})


@api.route("/api/checkout/<int:remaining>", methods=["GET"])
def checkout(remaining):
    return jsonify({"remaining": remaining, "suggestions": GameService.suggest_checkout(remaining)})


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    logging.getLogger().setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    app.register_blueprint(api)
    app.extensions["darts_service"] = GameService(
        SqlStore(), revert_strategy=app.config.get("REVERT_STRATEGY", "replay")
    )

    # Ensure tables exist
    with app.app_context():
        db.create_all()
    return app


if __name__ == "__main__":
    create_app().run(debug=True)
