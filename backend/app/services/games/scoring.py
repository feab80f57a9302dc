from flask import current_app
from sqlalchemy import case

from app.models import Game, User, GAME_FINISHED, GAME_DRAW


def _duration_seconds(game: Game):
    if not (game.started_at and game.finished_at):
        return None
    return max(0, int((game.finished_at - game.started_at).total_seconds()))


def _stat_changes(game: Game, user_id: int, elapsed):
    changes = {User.games_played: User.games_played + 1}
    if game.status != GAME_FINISHED:
        return changes
    if user_id == game.winner_id:
        changes[User.wins] = User.wins + 1
        changes[User.current_streak] = User.current_streak + 1
        if elapsed is not None:
            changes[User.best_time] = case(
                (User.best_time.is_(None), elapsed),
                (User.best_time > elapsed, elapsed),
                else_=User.best_time,
            )
    else:
        changes[User.losses] = User.losses + 1
        changes[User.current_streak] = 0
    return changes


def record_game_result(game: Game) -> None:
    """Apply player stats for a game that just reached a terminal status.

    Winner: +1 played, +1 win, +1 streak, best_time kept only if strictly
    better. Loser: +1 played, +1 loss, streak reset. Draw: +1 played each.

    Each player's row is changed with one UPDATE computed by the database,
    so two games finishing at once for the same player both count.
    Runs in the current session; the caller commits.
    """
    if game.status not in (GAME_FINISHED, GAME_DRAW):
        return
    elapsed = _duration_seconds(game)
    for user_id in (game.player1_id, game.player2_id):
        if not user_id:
            continue
        updated = User.query.filter_by(id=user_id).update(
            _stat_changes(game, user_id, elapsed),
            synchronize_session=False,
        )
        current_app.logger.info(
            f"[stats] game={game.id} user={user_id} status={game.status} "
            f"winner={game.winner_id} rows={updated}"
        )
