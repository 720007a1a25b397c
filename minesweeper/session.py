"""Serialization of an in-progress game to a persistable record."""
from dataclasses import dataclass
from typing import Any, Dict, List

from minesweeper.board import Board
from minesweeper.types import DEFAULT_HINTS, Cell, Difficulty


REQUIRED_FIELDS = ('rows', 'cols', 'totalMines', 'elapsed')


class CorruptSessionError(ValueError):
    """A persisted session record does not satisfy the minimum schema."""


@dataclass
class Session:
    """Everything needed to resume a game."""
    difficulty: Difficulty
    board: Board
    elapsed: int = 0
    first_click_pending: bool = True
    hints_remaining: int = DEFAULT_HINTS


def serialize(session: Session) -> Dict[str, Any]:
    """Convert a session to a JSON-serializable record."""
    board = session.board
    return {
        'rows': board.rows,
        'cols': board.cols,
        'totalMines': board.total_mines,
        'elapsed': session.elapsed,
        'firstClickPending': session.first_click_pending,
        'hintsRemaining': session.hints_remaining,
        'difficulty': session.difficulty.value,
        'cells': [
            {
                'mine': cell.is_mine,
                'neighborMines': cell.neighbor_mines,
                'revealed': cell.is_revealed,
                'flagged': cell.is_flagged,
            }
            for cell in board
        ],
    }


def _flat_cells(record: Dict[str, Any]) -> List[Dict[str, Any]]:
    # Older records stored the grid as a list of rows under 'plainGrid'.
    if 'cells' in record:
        cells = record['cells']
    elif 'plainGrid' in record:
        cells = [cell for row in record['plainGrid'] for cell in row]
    else:
        raise CorruptSessionError("Session record has no cells")
    if not isinstance(cells, list):
        raise CorruptSessionError("Session cells must be a list")
    return cells


def deserialize(record: Dict[str, Any]) -> Session:
    """Rebuild a session from a record produced by ``serialize``.

    Raises ``CorruptSessionError`` when required fields are missing or the
    cell list does not match the board dimensions.
    """
    if not isinstance(record, dict):
        raise CorruptSessionError(f"Session record must be an object, got {type(record).__name__}")

    missing = [name for name in REQUIRED_FIELDS if name not in record]
    if missing:
        raise CorruptSessionError(f"Session record is missing {', '.join(missing)}")

    try:
        rows, cols = int(record['rows']), int(record['cols'])
        total_mines = int(record['totalMines'])
        elapsed = int(record['elapsed'])
        cells = _flat_cells(record)
        board = Board(rows, cols, total_mines)
    except (TypeError, ValueError) as error:
        raise CorruptSessionError(f"Session record is malformed: {error}") from error

    if len(cells) != rows * cols:
        raise CorruptSessionError(
            f"Session record has {len(cells)} cells, expected {rows * cols}"
        )

    if 'difficulty' in record:
        try:
            difficulty = Difficulty.parse(record['difficulty'])
        except ValueError as error:
            raise CorruptSessionError(str(error)) from error
    else:
        difficulty = Difficulty.for_dimensions(rows, cols, total_mines)
        if difficulty is None:
            raise CorruptSessionError("Session record has no difficulty")

    try:
        for index, stored in enumerate(cells):
            row, col = divmod(index, cols)
            board.cells[row][col] = Cell(
                row=row,
                col=col,
                is_mine=bool(stored['mine']),
                neighbor_mines=int(stored['neighborMines']),
                is_revealed=bool(stored['revealed']),
                is_flagged=bool(stored['flagged']),
            )
    except (KeyError, TypeError, ValueError) as error:
        raise CorruptSessionError(f"Session cell is malformed: {error}") from error

    first_click_pending = record.get('firstClickPending', record.get('firstClick', True))
    if not isinstance(first_click_pending, bool):
        raise CorruptSessionError(f"Session first-click flag is not a boolean: {first_click_pending!r}")

    hints = record.get('hintsRemaining', record.get('safeClicksRemaining'))
    try:
        hints = DEFAULT_HINTS if hints is None else int(hints)
    except (TypeError, ValueError) as error:
        raise CorruptSessionError(f"Session hint count is malformed: {error}") from error

    # Mines exist only once the first click has happened.
    expected_mines = 0 if first_click_pending else total_mines
    if board.mine_count() != expected_mines:
        raise CorruptSessionError(
            f"Session board has {board.mine_count()} mines, expected {expected_mines}"
        )

    return Session(
        difficulty=difficulty,
        board=board,
        elapsed=max(elapsed, 0),
        first_click_pending=first_click_pending,
        hints_remaining=max(hints, 0),
    )
