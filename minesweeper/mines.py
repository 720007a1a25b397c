"""Mine placement and neighbor counting."""
import random
from typing import Optional

from minesweeper.board import Board


def count_neighbor_mines(board: Board, row: int, col: int) -> int:
    """Count the number of mines in neighboring cells."""
    return sum(1 for neighbor in board.neighbors(row, col) if neighbor.is_mine)


def compute_neighbor_counts(board: Board) -> None:
    for cell in board:
        cell.neighbor_mines = count_neighbor_mines(board, cell.row, cell.col)


def place_mines(board: Board, avoid_row: int, avoid_col: int,
                rng: Optional[random.Random] = None) -> None:
    """Mine ``board.total_mines`` distinct cells, never the avoided one.

    Candidates are drawn with a partial Fisher-Yates shuffle, so placement
    always terminates and every candidate subset is equally likely.
    """
    rng = rng or random.Random()
    board.get(avoid_row, avoid_col)
    if board.mine_count():
        raise ValueError("Mines have already been placed on this board")

    avoid_index = avoid_row * board.cols + avoid_col
    candidates = [index for index in range(len(board)) if index != avoid_index]
    if board.total_mines > len(candidates):
        raise ValueError(
            f"Cannot place {board.total_mines} mines on a {board.rows}x{board.cols} board"
        )

    for i in range(board.total_mines):
        j = rng.randrange(i, len(candidates))
        candidates[i], candidates[j] = candidates[j], candidates[i]
        row, col = divmod(candidates[i], board.cols)
        board.cells[row][col].is_mine = True

    compute_neighbor_counts(board)
