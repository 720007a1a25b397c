"""Grid of cells with bounds-checked access."""
from typing import Iterator, List, Tuple

from minesweeper.types import Cell


class Board:
    """A fixed-size rectangular grid of cells plus its mine total.

    Cells are stored row-major. Coordinates outside the grid raise
    ``IndexError``; callers that take coordinates from the outside world
    must check ``in_bounds`` first.
    """

    def __init__(self, rows: int, cols: int, total_mines: int = 0):
        if rows <= 0 or cols <= 0:
            raise ValueError(f"Board dimensions must be positive, got {rows}x{cols}")
        if total_mines < 0:
            raise ValueError("Mine count cannot be negative")
        self.rows = rows
        self.cols = cols
        self.total_mines = total_mines
        self.cells: List[List[Cell]] = [
            [Cell(row=row, col=col) for col in range(cols)]
            for row in range(rows)
        ]

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def _check(self, row: int, col: int) -> None:
        if not self.in_bounds(row, col):
            raise IndexError(f"Cell ({row}, {col}) is outside the {self.rows}x{self.cols} board")

    def get(self, row: int, col: int) -> Cell:
        self._check(row, col)
        return self.cells[row][col]

    def set(self, row: int, col: int, cell: Cell) -> None:
        self._check(row, col)
        cell.row, cell.col = row, col
        self.cells[row][col] = cell

    def __iter__(self) -> Iterator[Cell]:
        for board_row in self.cells:
            yield from board_row

    def __len__(self) -> int:
        return self.rows * self.cols

    def neighbor_coords(self, row: int, col: int) -> Iterator[Tuple[int, int]]:
        """Yield coordinates of the up-to-8 cells around (row, col)."""
        self._check(row, col)
        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                if dr == 0 and dc == 0:
                    continue
                new_row, new_col = row + dr, col + dc
                if self.in_bounds(new_row, new_col):
                    yield new_row, new_col

    def neighbors(self, row: int, col: int) -> Iterator[Cell]:
        for new_row, new_col in self.neighbor_coords(row, col):
            yield self.cells[new_row][new_col]

    def mine_count(self) -> int:
        return sum(1 for cell in self if cell.is_mine)

    def flagged_count(self) -> int:
        return sum(1 for cell in self if cell.is_flagged and not cell.is_revealed)

    def unrevealed_count(self) -> int:
        return sum(1 for cell in self if not cell.is_revealed)
