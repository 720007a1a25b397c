"""Reveal, flag, win detection and safe-click hints."""
import random
from typing import List, Optional, Tuple

from minesweeper.board import Board
from minesweeper.types import HintResult, RevealResult


NO_HINTS_LEFT = "No safe clicks left!"
NO_SAFE_CELL = "No safe cell found!"


def reveal(board: Board, row: int, col: int) -> RevealResult:
    """Reveal a cell and cascade through connected zero-count cells.

    Flagged and already revealed cells are left alone. The cascade uses
    an explicit stack, and a cell is marked revealed before it is pushed,
    so no cell is visited twice.
    """
    result = RevealResult()
    cell = board.get(row, col)
    if cell.is_revealed or cell.is_flagged:
        return result

    cell.is_revealed = True
    result.revealed.append((row, col))

    if cell.is_mine:
        result.hit_mine = True
        return result

    if cell.neighbor_mines == 0:
        stack: List[Tuple[int, int]] = [(row, col)]
        while stack:
            current_row, current_col = stack.pop()
            for new_row, new_col in board.neighbor_coords(current_row, current_col):
                neighbor = board.cells[new_row][new_col]
                if neighbor.is_revealed or neighbor.is_flagged:
                    continue
                neighbor.is_revealed = True
                result.revealed.append((new_row, new_col))
                if neighbor.neighbor_mines == 0 and not neighbor.is_mine:
                    stack.append((new_row, new_col))

    return result


def toggle_flag(board: Board, row: int, col: int) -> bool:
    """Toggle flag on a cell. Returns False if the cell is already revealed."""
    cell = board.get(row, col)
    if cell.is_revealed:
        return False
    cell.is_flagged = not cell.is_flagged
    return True


def check_win(board: Board, total_mines: Optional[int] = None) -> bool:
    """The game is won once the only unrevealed cells left are the mines."""
    if total_mines is None:
        total_mines = board.total_mines
    return board.unrevealed_count() == total_mines


def safe_candidates(board: Board) -> List[Tuple[int, int]]:
    return [
        (cell.row, cell.col)
        for cell in board
        if not cell.is_revealed and not cell.is_flagged and not cell.is_mine
    ]


def apply_hint(board: Board, hints_remaining: int,
               rng: Optional[random.Random] = None) -> HintResult:
    """Reveal one random safe cell, without cascading, and spend a hint.

    Running out of hints or of safe cells is reported in the result's
    message; the board is not touched in either case.
    """
    if hints_remaining <= 0:
        return HintResult(hints_remaining=0, message=NO_HINTS_LEFT)

    candidates = safe_candidates(board)
    if not candidates:
        return HintResult(hints_remaining=hints_remaining, message=NO_SAFE_CELL)

    row, col = (rng or random).choice(candidates)
    board.cells[row][col].is_revealed = True
    return HintResult(hints_remaining=hints_remaining - 1, row=row, col=col)
