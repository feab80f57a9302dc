from flask import current_app
from flask_socketio import join_room, leave_room, emit
from app import socketio

NAMESPACE = '/ws'


def channel_for(room_id) -> str:
    return f"room:{room_id}"


def broadcast_state(room_id, game_id=None) -> None:
    """Tell clients watching a room to refetch room/game state."""
    payload = {'room_id': room_id, 'game_id': game_id}
    socketio.emit('state_update', payload, to=channel_for(room_id), namespace=NAMESPACE)
    current_app.logger.debug(f"[broadcast] room={room_id} game={game_id}")


def _room_id_from(data):
    room_id = (data or {}).get('room_id')
    try:
        return int(room_id)
    except (TypeError, ValueError):
        return None


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_watch_room(data):
    room_id = _room_id_from(data)
    if room_id is None:
        emit('error', {'message': 'room_id is required'})
        return
    channel = channel_for(room_id)
    join_room(channel)
    emit('watching', {'room': channel})


def handle_unwatch_room(data):
    room_id = _room_id_from(data)
    if room_id is None:
        emit('error', {'message': 'room_id is required'})
        return
    channel = channel_for(room_id)
    leave_room(channel)
    emit('unwatched', {'room': channel})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register the room-watching handlers on the '/ws' namespace.

    Socket.IO drops a sid from all of its rooms on disconnect, so no
    disconnect handler is needed.
    """
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('watch_room', handle_watch_room, namespace=NAMESPACE)
    socketio.on_event('unwatch_room', handle_unwatch_room, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
