"""
Pytest configuration and shared fixtures.
"""
import random

import pytest

from minesweeper.board import Board
from minesweeper.mines import compute_neighbor_counts
from minesweeper.store import LocalPersistence, MemoryStore


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source so placements and hints are reproducible."""
    return random.Random(1234)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def persistence(store) -> LocalPersistence:
    return LocalPersistence(store)


@pytest.fixture
def make_board():
    """Build a board with mines at exactly the given coordinates."""
    def _make(rows, cols, mines):
        board = Board(rows, cols, len(mines))
        for row, col in mines:
            board.get(row, col).is_mine = True
        compute_neighbor_counts(board)
        return board
    return _make


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Point every file-backed store at a throwaway directory."""
    path = tmp_path / "data"
    monkeypatch.setenv("MINESWEEPER_DATA_DIR", str(path))
    return path
