from app import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone

# Fixed by the ruleset: two seats per room
ROOM_CAPACITY = 2

ROOM_WAITING = 'waiting'
ROOM_ACTIVE = 'active'
ROOM_FINISHED = 'finished'

GAME_WAITING = 'waiting'
GAME_ACTIVE = 'active'
GAME_FINISHED = 'finished'
GAME_DRAW = 'draw'
TERMINAL_GAME_STATUSES = (GAME_FINISHED, GAME_DRAW)


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=True)
    first_name = db.Column(db.String(64), nullable=True)
    last_name = db.Column(db.String(64), nullable=True)
    profile_image_url = db.Column(db.String(512), nullable=True)
    # Stats, mutated only when a game completes
    games_played = db.Column(db.Integer, default=0, nullable=False)
    wins = db.Column(db.Integer, default=0, nullable=False)
    losses = db.Column(db.Integer, default=0, nullable=False)
    current_streak = db.Column(db.Integer, default=0, nullable=False)
    best_time = db.Column(db.Integer, nullable=True)  # seconds
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'profile_image_url': self.profile_image_url,
            'games_played': self.games_played or 0,
            'wins': self.wins or 0,
            'losses': self.losses or 0,
            'current_streak': self.current_streak or 0,
            'best_time': self.best_time,
        }


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    creator_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    is_private = db.Column(db.Boolean, default=False, nullable=False)
    max_players = db.Column(db.Integer, default=ROOM_CAPACITY, nullable=False)
    current_players = db.Column(db.Integer, default=0, nullable=False)
    status = db.Column(db.String(20), default=ROOM_WAITING, nullable=False)  # waiting, active, finished
    tags = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    # Optimistic concurrency counter, bumped on every UPDATE
    version = db.Column(db.Integer, nullable=False)

    creator = db.relationship('User', foreign_keys=[creator_id])
    participants = db.relationship(
        'RoomParticipant', back_populates='room',
        order_by=lambda: (RoomParticipant.joined_at, RoomParticipant.id),
        cascade='all, delete-orphan',
    )
    games = db.relationship('Game', back_populates='room', order_by='Game.id')

    __mapper_args__ = {'version_id_col': version}

    @property
    def is_full(self):
        return (self.current_players or 0) >= (self.max_players or ROOM_CAPACITY)

    def mark_finished(self):
        # Status only moves forward: waiting -> active -> finished
        self.status = ROOM_FINISHED

    def has_participant(self, user_id):
        return any(p.user_id == user_id for p in self.participants)

    def has_tag(self, tag):
        wanted = (tag or '').strip().lower()
        return any((t or '').lower() == wanted for t in (self.tags or []))

    def to_dict(self, include_participants=True):
        data = {
            'id': self.id,
            'name': self.name,
            'creator_id': self.creator_id,
            'is_private': bool(self.is_private),
            'max_players': self.max_players,
            'current_players': self.current_players,
            'status': self.status,
            'tags': list(self.tags or []),
            'created_at': _iso(self.created_at),
        }
        if include_participants:
            data['participants'] = [p.to_dict() for p in self.participants]
        return data


class RoomParticipant(db.Model):
    __tablename__ = 'room_participant'
    __table_args__ = (
        db.UniqueConstraint('room_id', 'user_id', name='uq_room_participant_room_user'),
    )
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    joined_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    room = db.relationship('Room', back_populates='participants')
    user = db.relationship('User')

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'joined_at': _iso(self.joined_at),
        }


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False, index=True)
    player1_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    player2_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    # Symbols are fixed at creation: player1 -> X, player2 -> O
    player1_symbol = db.Column(db.String(1), default='X', nullable=False)
    player2_symbol = db.Column(db.String(1), default='O', nullable=False)
    current_player_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    board = db.Column(db.JSON, nullable=False)
    status = db.Column(db.String(20), default=GAME_WAITING, nullable=False)  # waiting, active, finished, draw
    winner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    started_at = db.Column(db.DateTime, nullable=True)
    finished_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    version = db.Column(db.Integer, nullable=False)

    room = db.relationship('Room', back_populates='games')
    player1 = db.relationship('User', foreign_keys=[player1_id])
    player2 = db.relationship('User', foreign_keys=[player2_id])

    __mapper_args__ = {'version_id_col': version}

    @property
    def is_terminal(self):
        return self.status in TERMINAL_GAME_STATUSES

    def symbol_for(self, user_id):
        if user_id == self.player1_id:
            return self.player1_symbol
        if user_id == self.player2_id:
            return self.player2_symbol
        return None

    def opponent_of(self, user_id):
        return self.player2_id if user_id == self.player1_id else self.player1_id

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'player1_id': self.player1_id,
            'player2_id': self.player2_id,
            'symbols': {
                str(self.player1_id): self.player1_symbol,
                str(self.player2_id): self.player2_symbol,
            },
            'current_player_id': self.current_player_id,
            'board': [list(row) for row in (self.board or [])],
            'status': self.status,
            'winner_id': self.winner_id,
            'started_at': _iso(self.started_at),
            'finished_at': _iso(self.finished_at),
        }


class Message(db.Model):
    __tablename__ = 'message'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False, index=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), default='message', nullable=False)  # message, system, reaction
    created_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'game_id': self.game_id,
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'content': self.content,
            'type': self.type,
            'created_at': _iso(self.created_at),
        }
