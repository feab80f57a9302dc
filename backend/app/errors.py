"""Error taxonomy for rooms and games.

Every error carries an HTTP status and a stable ``code`` so the request
layer can render it without knowing the concrete class.
"""


class GameError(Exception):
    status_code = 500
    code = 'error'
    message = 'Unexpected error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


# ---- 400: rejected before any mutation ----

class ValidationError(GameError):
    status_code = 400
    code = 'validation_error'
    message = 'Invalid request'


class InvalidBoard(ValidationError):
    code = 'invalid_board'
    message = 'Board must be a 3x3 grid'


class InvalidParticipants(ValidationError):
    code = 'invalid_participants'
    message = 'A game needs two distinct players'


class OutOfBounds(ValidationError):
    code = 'out_of_bounds'
    message = 'Row and column must be between 0 and 2'


# ---- 409: expected conflicts, caller refetches and retries or stops ----

class StateConflict(GameError):
    status_code = 409
    code = 'state_conflict'
    message = 'State changed, refetch and retry'


class NotYourTurn(StateConflict):
    code = 'not_your_turn'
    message = 'Not your turn'


class CellOccupied(StateConflict):
    code = 'cell_occupied'
    message = 'Cell already occupied'


class GameNotActive(StateConflict):
    code = 'game_not_active'
    message = 'Game is not active'


class RoomFull(StateConflict):
    code = 'room_full'
    message = 'Room is full'


class ResourceBusy(StateConflict):
    code = 'resource_busy'
    message = 'Too many concurrent requests, retry shortly'


# ---- 404 ----

class NotFound(GameError):
    status_code = 404
    code = 'not_found'
    message = 'Not found'


# ---- 503: storage failures are propagated, never retried here ----

class StorageUnavailable(GameError):
    status_code = 503
    code = 'storage_unavailable'
    message = 'Storage unavailable'
