from dataclasses import dataclass
from typing import List, Optional

from flask import current_app

from app import db
from app.errors import (
    CellOccupied, GameNotActive, InvalidParticipants, NotYourTurn, OutOfBounds,
)
from app.models import (
    Game, GAME_ACTIVE, GAME_DRAW, GAME_FINISHED, utcnow,
)
from .board import EMPTY, SIZE, copy_board, empty_board, evaluate
from .scoring import record_game_result

PLAYER1_SYMBOL = 'X'
PLAYER2_SYMBOL = 'O'


@dataclass
class MoveResult:
    game: Game
    board: List[List[str]]
    winner_id: Optional[int]
    winner_symbol: Optional[str]
    is_draw: bool
    next_player_id: Optional[int]

    def to_dict(self):
        return {
            'game_id': self.game.id,
            'board': self.board,
            'winner_id': self.winner_id,
            'winner': self.winner_symbol,
            'is_draw': self.is_draw,
            'next_player_id': self.next_player_id,
            'status': self.game.status,
        }


def create_game(room_id: int, player1_id: int, player2_id: int) -> Game:
    """Start an active game for a full room.

    player1 is the earliest joiner: moves first and plays X. Symbols are
    stored on the row and never change afterwards. The game is added to the
    session; the caller commits.
    """
    if not player1_id or not player2_id or player1_id == player2_id:
        raise InvalidParticipants()
    game = Game(
        room_id=room_id,
        player1_id=player1_id,
        player2_id=player2_id,
        player1_symbol=PLAYER1_SYMBOL,
        player2_symbol=PLAYER2_SYMBOL,
        current_player_id=player1_id,
        board=empty_board(),
        status=GAME_ACTIVE,
        started_at=utcnow(),
    )
    db.session.add(game)
    current_app.logger.info(f"[game-create] room={room_id} player1={player1_id} player2={player2_id}")
    return game


def _in_bounds(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < SIZE


def validate_move(game: Game, actor_id: int, row, col) -> None:
    """Raise the first failing precondition; touches nothing.

    The turn is checked first: a terminal game has no current player, so
    the loser of a race against the finishing move gets NotYourTurn.
    """
    if actor_id is None or actor_id != game.current_player_id:
        raise NotYourTurn()
    if game.status != GAME_ACTIVE:
        raise GameNotActive()
    if not (_in_bounds(row) and _in_bounds(col)):
        raise OutOfBounds()
    if game.board[row][col] != EMPTY:
        raise CellOccupied()


def apply_move(game: Game, actor_id: int, row: int, col: int) -> MoveResult:
    """Place the actor's symbol and advance the game.

    All checks run before the board is touched, so a rejected move leaves
    the game exactly as it was. The new board is assigned as a fresh list
    so the JSON column is flagged dirty. The caller commits.
    """
    validate_move(game, actor_id, row, col)

    symbol = game.symbol_for(actor_id)
    board = copy_board(game.board)
    board[row][col] = symbol
    game.board = board

    outcome = evaluate(board)
    winner_id = None
    next_player_id = None
    if outcome.winner:
        winner_id = actor_id
        game.status = GAME_FINISHED
        game.winner_id = actor_id
        game.current_player_id = None
        game.finished_at = utcnow()
    elif outcome.is_draw:
        game.status = GAME_DRAW
        game.current_player_id = None
        game.finished_at = utcnow()
    else:
        next_player_id = game.opponent_of(actor_id)
        game.current_player_id = next_player_id
    db.session.add(game)

    current_app.logger.info(
        f"[move] game={game.id} actor={actor_id} cell=({row},{col}) symbol={symbol} status={game.status}"
    )
    if game.is_terminal:
        current_app.logger.info(f"[game-finish] game={game.id} status={game.status} winner={winner_id}")
        if game.room is not None:
            game.room.mark_finished()
        record_game_result(game)

    return MoveResult(
        game=game,
        board=[list(r) for r in board],
        winner_id=winner_id,
        winner_symbol=outcome.winner,
        is_draw=outcome.is_draw,
        next_player_id=next_player_id,
    )
