from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from app import db
from app.errors import NotFound, ValidationError
from app.models import Game, User
from app.services.games.coordinator import submit_move
from app.socketio_events import broadcast_state

games = Blueprint('games', __name__)
stats = Blueprint('stats', __name__)


def _coordinate(data, key):
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{key} must be an integer')
    return value


@games.route('/<int:game_id>', methods=['GET'])
def get_game(game_id):
    game = db.session.get(Game, game_id)
    if game is None:
        raise NotFound('Game not found')
    return jsonify(game.to_dict())


@games.route('/<int:game_id>/move', methods=['POST'])
@login_required
def make_move(game_id):
    """
    Places the current user's symbol at (row, col) if it is their turn.
    """
    data = request.get_json(silent=True) or {}
    row = _coordinate(data, 'row')
    col = _coordinate(data, 'col')
    result = submit_move(game_id, current_user.id, row, col)
    broadcast_state(result.game.room_id, result.game.id)
    return jsonify(result.to_dict()), 200


@stats.route('/leaderboard', methods=['GET'])
def leaderboard():
    limit = int(current_app.config.get('LEADERBOARD_LIMIT', 10))
    leaders = (User.query
               .order_by(User.wins.desc(), User.current_streak.desc(), User.id.asc())
               .limit(limit).all())
    return jsonify([u.to_dict() for u in leaders])


@stats.route('/user/games', methods=['GET'])
@login_required
def user_games():
    limit = int(current_app.config.get('USER_GAMES_LIMIT', 10))
    mine = (Game.query
            .filter((Game.player1_id == current_user.id) | (Game.player2_id == current_user.id))
            .order_by(Game.created_at.desc(), Game.id.desc())
            .limit(limit).all())
    return jsonify([g.to_dict() for g in mine])
