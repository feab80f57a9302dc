"""Serialises writes per game (and per room) so concurrent requests queue up.

Two layers:
- an in-process lock per key, held while the row is re-read, validated and
  committed;
- the ``version`` column on Game/Room, so a writer in another process that
  committed first makes our flush fail with StaleDataError. We then reload
  and validate once more, which yields the proper conflict error.
"""

import contextlib
import threading
from typing import Dict, Hashable, List

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from app import db
from app.errors import GameError, NotFound, ResourceBusy, StorageUnavailable
from app.models import Game
from .state_machine import MoveResult, apply_move


class KeyedLocks:
    """A lock per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, List] = {}

    def checkout(self, key) -> threading.Lock:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._entries[key] = entry
            entry[1] += 1
            return entry[0]

    def checkin(self, key) -> None:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                del self._entries[key]

    def __len__(self):
        with self._guard:
            return len(self._entries)


_locks = KeyedLocks()


@contextlib.contextmanager
def exclusive(key, timeout=None):
    """Hold the lock for ``key``; raise ResourceBusy after ``timeout`` seconds."""
    if timeout is None:
        timeout = float(current_app.config.get('LOCK_TIMEOUT_SEC', 5))
    lock = _locks.checkout(key)
    acquired = False
    try:
        acquired = lock.acquire(timeout=timeout)
        if not acquired:
            current_app.logger.warning(f"[lock-timeout] key={key} timeout={timeout}s")
            raise ResourceBusy()
        yield
    finally:
        if acquired:
            lock.release()
        _locks.checkin(key)


def commit_session() -> None:
    """Commit, mapping driver failures to StorageUnavailable.

    StaleDataError is re-raised untouched so callers can retry on fresh state.
    """
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[storage] commit failed: {exc}")
        raise StorageUnavailable() from exc


def load_game(game_id: int) -> Game:
    try:
        game = db.session.get(Game, game_id, populate_existing=True)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[storage] load game={game_id} failed: {exc}")
        raise StorageUnavailable() from exc
    if game is None:
        raise NotFound('Game not found')
    return game


def submit_move(game_id: int, actor_id: int, row: int, col: int) -> MoveResult:
    """Apply one move with exclusive access to the game.

    The loser of a race re-reads the committed state and fails with
    NotYourTurn or CellOccupied; the board is never written twice.
    """
    with exclusive(('game', game_id)):
        for attempt in (1, 2):
            game = load_game(game_id)
            try:
                result = apply_move(game, actor_id, row, col)
                commit_session()
                return result
            except StaleDataError:
                # may surface from the autoflush ahead of the stats update
                db.session.rollback()
                current_app.logger.info(f"[move-stale] game={game_id} actor={actor_id} attempt={attempt}")
                if attempt == 2:
                    raise ResourceBusy()
            except GameError as exc:
                db.session.rollback()
                current_app.logger.info(f"[move-rejected] game={game_id} actor={actor_id} reason={exc.code}")
                raise
