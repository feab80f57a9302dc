from dataclasses import dataclass
from typing import List, Optional

from app.errors import InvalidBoard

EMPTY = ''
SIZE = 3

# Rows, columns, then both diagonals
WIN_LINES = (
    [[(r, c) for c in range(SIZE)] for r in range(SIZE)]
    + [[(r, c) for r in range(SIZE)] for c in range(SIZE)]
    + [[(i, i) for i in range(SIZE)], [(i, SIZE - 1 - i) for i in range(SIZE)]]
)


@dataclass(frozen=True)
class BoardEvaluation:
    winner: Optional[str]
    is_draw: bool


def empty_board() -> List[List[str]]:
    return [[EMPTY] * SIZE for _ in range(SIZE)]


def copy_board(grid) -> List[List[str]]:
    check_shape(grid)
    return [list(row) for row in grid]


def check_shape(grid) -> None:
    if not isinstance(grid, (list, tuple)) or len(grid) != SIZE:
        raise InvalidBoard()
    for row in grid:
        if not isinstance(row, (list, tuple)) or len(row) != SIZE:
            raise InvalidBoard()


def evaluate(grid) -> BoardEvaluation:
    """Return the winning symbol (if any) and whether the board is a draw.

    A draw is a full board with no winning line.
    """
    check_shape(grid)
    for line in WIN_LINES:
        first = grid[line[0][0]][line[0][1]]
        if first != EMPTY and all(grid[r][c] == first for r, c in line):
            return BoardEvaluation(winner=first, is_draw=False)
    full = all(cell != EMPTY for row in grid for cell in row)
    return BoardEvaluation(winner=None, is_draw=full)
