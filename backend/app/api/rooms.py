from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from app import db
from app.errors import NotFound, ValidationError
from app.models import Game, Message, Room, ROOM_WAITING
from app.services.games import matchmaker
from app.services.games.coordinator import commit_session
from app.services.games.matchmaker import normalize_tags
from app.socketio_events import broadcast_state

rooms = Blueprint('rooms', __name__)

MAX_MESSAGE_LENGTH = 500


def _get_room(room_id: int) -> Room:
    room = db.session.get(Room, room_id)
    if room is None:
        raise NotFound('Room not found')
    return room


def _room_game(room: Room):
    """Newest non-terminal game for the room, else its newest game."""
    games_desc = Game.query.filter_by(room_id=room.id).order_by(Game.created_at.desc(), Game.id.desc()).all()
    for game in games_desc:
        if not game.is_terminal:
            return game
    return games_desc[0] if games_desc else None


def _waiting_rooms(tags=None):
    query = Room.query.filter_by(status=ROOM_WAITING).order_by(Room.created_at.desc(), Room.id.desc())
    found = query.all()
    if tags:
        found = [r for r in found if any(r.has_tag(t) for t in tags)]
    return found


@rooms.route('', methods=['GET'])
def list_rooms():
    tags = normalize_tags(request.args.get('tags'))
    return jsonify([r.to_dict(include_participants=False) for r in _waiting_rooms(tags)])


@rooms.route('', methods=['POST'])
@login_required
def create_room():
    """
    Creates a new room and seats the current user as its first participant.
    """
    data = request.get_json(silent=True) or {}
    room = matchmaker.create_room(
        current_user.id,
        data.get('name'),
        tags=data.get('tags'),
        is_private=data.get('is_private', False),
    )
    broadcast_state(room.id)
    return jsonify(room.to_dict()), 201


@rooms.route('/quick-match', methods=['POST'])
@login_required
def quick_match():
    """
    Joins the newest waiting public room with a free seat, or opens one.
    """
    data = request.get_json(silent=True) or {}
    tags = normalize_tags(data.get('tags'))
    candidates = [r for r in _waiting_rooms(tags) if not r.is_private]
    result = matchmaker.quick_match(candidates, current_user.id)
    broadcast_state(result.room.id, result.game.id if result.game else None)
    return jsonify(result.to_dict()), 201 if result.created else 200


@rooms.route('/<int:room_id>', methods=['GET'])
def get_room(room_id):
    return jsonify(_get_room(room_id).to_dict())


@rooms.route('/<int:room_id>/join', methods=['POST'])
@login_required
def join_room(room_id):
    result = matchmaker.join(room_id, current_user.id)
    if result.joined:
        broadcast_state(room_id, result.game.id if result.game else None)
    return jsonify(result.to_dict()), 200


@rooms.route('/<int:room_id>/leave', methods=['POST'])
@login_required
def leave_room(room_id):
    room = matchmaker.leave(room_id, current_user.id)
    broadcast_state(room_id)
    return jsonify({'message': 'Left room successfully', 'room': room.to_dict()}), 200


@rooms.route('/<int:room_id>/game', methods=['GET'])
def get_room_game(room_id):
    game = _room_game(_get_room(room_id))
    return jsonify(game.to_dict() if game else None)


@rooms.route('/<int:room_id>/messages', methods=['GET'])
def list_messages(room_id):
    _get_room(room_id)
    limit = int(current_app.config.get('ROOM_MESSAGES_LIMIT', 50))
    latest = (Message.query.filter_by(room_id=room_id)
              .order_by(Message.created_at.desc(), Message.id.desc())
              .limit(limit).all())
    return jsonify([m.to_dict() for m in reversed(latest)])


@rooms.route('/<int:room_id>/messages', methods=['POST'])
@login_required
def post_message(room_id):
    room = _get_room(room_id)
    data = request.get_json(silent=True) or {}
    content = (data.get('content') or '').strip()
    if not content:
        raise ValidationError('Message content is required')
    if len(content) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f'Messages are limited to {MAX_MESSAGE_LENGTH} characters')
    game = _room_game(room)
    message = Message(
        room_id=room.id,
        game_id=game.id if game else None,
        user_id=current_user.id,
        content=content,
    )
    db.session.add(message)
    commit_session()
    return jsonify(message.to_dict()), 201
