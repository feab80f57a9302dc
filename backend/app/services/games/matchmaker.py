from dataclasses import dataclass
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from app import db
from app.errors import (
    GameError, NotFound, ResourceBusy, RoomFull, StorageUnavailable, ValidationError,
)
from app.models import (
    Game, Room, RoomParticipant, ROOM_ACTIVE, ROOM_CAPACITY, ROOM_WAITING,
)
from .coordinator import commit_session, exclusive
from .state_machine import create_game

MAX_NAME_LENGTH = 100
MAX_TAGS = 10
MAX_TAG_LENGTH = 32


@dataclass
class RoomJoinResult:
    room: Room
    joined: bool
    already_joined: bool = False
    created: bool = False
    game: Optional[Game] = None

    def to_dict(self):
        return {
            'room': self.room.to_dict(),
            'joined': self.joined,
            'already_joined': self.already_joined,
            'created': self.created,
            'game': self.game.to_dict() if self.game else None,
        }


def normalize_tags(tags) -> List[str]:
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(',')
    if not isinstance(tags, (list, tuple)):
        raise ValidationError('tags must be a list of strings')
    cleaned = []
    for tag in tags:
        if not isinstance(tag, str):
            raise ValidationError('tags must be a list of strings')
        tag = tag.strip()
        if not tag or tag.lower() in (t.lower() for t in cleaned):
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationError(f'Tags are limited to {MAX_TAG_LENGTH} characters')
        cleaned.append(tag)
    if len(cleaned) > MAX_TAGS:
        raise ValidationError(f'At most {MAX_TAGS} tags per room')
    return cleaned


def load_room(room_id: int) -> Room:
    try:
        room = db.session.get(Room, room_id, populate_existing=True)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[storage] load room={room_id} failed: {exc}")
        raise StorageUnavailable() from exc
    if room is None:
        raise NotFound('Room not found')
    return room


def create_room(creator_id: int, name: str, tags=None, is_private: bool = False) -> Room:
    """Open a waiting room with the creator already seated."""
    name = (name or '').strip()
    if not name:
        raise ValidationError('Room name is required')
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f'Room name is limited to {MAX_NAME_LENGTH} characters')
    room = Room(
        name=name,
        creator_id=creator_id,
        is_private=bool(is_private),
        max_players=ROOM_CAPACITY,
        status=ROOM_WAITING,
        tags=normalize_tags(tags),
    )
    room.participants.append(RoomParticipant(user_id=creator_id))
    room.current_players = len(room.participants)
    db.session.add(room)
    commit_session()
    current_app.logger.info(f"[room-create] room={room.id} creator={creator_id} tags={room.tags}")
    return room


def _join_locked(room: Room, user_id: int) -> RoomJoinResult:
    if room.has_participant(user_id):
        return RoomJoinResult(room=room, joined=False, already_joined=True)
    if room.status != ROOM_WAITING or room.is_full:
        raise RoomFull()

    room.participants.append(RoomParticipant(user_id=user_id))
    room.current_players = len(room.participants)
    game = None
    if room.current_players >= room.max_players:
        room.status = ROOM_ACTIVE
        seats = room.participants[:2]
        game = create_game(room.id, seats[0].user_id, seats[1].user_id)
    db.session.add(room)
    return RoomJoinResult(room=room, joined=True, game=game)


def join(room_id: int, user_id: int) -> RoomJoinResult:
    """Seat ``user_id`` in the room; the join that fills it starts the game.

    Re-joining is an idempotent no-op. Check, increment and game creation
    commit together under the room lock, so only one game is ever created.
    """
    with exclusive(('room', room_id)):
        for attempt in (1, 2):
            room = load_room(room_id)
            try:
                result = _join_locked(room, user_id)
                if result.joined:
                    commit_session()
                    current_app.logger.info(
                        f"[room-join] room={room.id} user={user_id} "
                        f"occupancy={room.current_players}/{room.max_players} status={room.status}"
                    )
                return result
            except StaleDataError:
                db.session.rollback()
                current_app.logger.info(f"[room-join-stale] room={room_id} user={user_id} attempt={attempt}")
                if attempt == 2:
                    raise ResourceBusy()
            except GameError as exc:
                db.session.rollback()
                current_app.logger.info(f"[room-join-rejected] room={room_id} user={user_id} reason={exc.code}")
                raise


def leave(room_id: int, user_id: int) -> Room:
    """Give up a seat. A running game is not forfeited."""
    with exclusive(('room', room_id)):
        for attempt in (1, 2):
            room = load_room(room_id)
            seat = next((p for p in room.participants if p.user_id == user_id), None)
            if seat is None:
                return room
            room.participants.remove(seat)
            room.current_players = len(room.participants)
            db.session.add(room)
            try:
                commit_session()
            except StaleDataError:
                current_app.logger.info(f"[room-leave-stale] room={room_id} user={user_id} attempt={attempt}")
                if attempt == 2:
                    raise ResourceBusy()
                continue
            current_app.logger.info(
                f"[room-leave] room={room.id} user={user_id} occupancy={room.current_players}/{room.max_players}"
            )
            return room


def quick_match(candidate_rooms: Iterable[Room], user_id: int) -> RoomJoinResult:
    """Join the first candidate with a free seat, else open a new room.

    Candidates are taken in the given order (first fit). Rooms the user
    already sits in are passed over, and a candidate that fills up between
    listing and joining is skipped.
    """
    for room in candidate_rooms:
        if room.current_players >= room.max_players or room.has_participant(user_id):
            continue
        try:
            return join(room.id, user_id)
        except RoomFull:
            continue
    cfg = current_app.config
    room = create_room(
        user_id,
        cfg.get('QUICK_MATCH_ROOM_NAME', 'Quick Match'),
        tags=[cfg.get('QUICK_MATCH_TAG', 'casual')],
    )
    return RoomJoinResult(room=room, joined=True, created=True)
