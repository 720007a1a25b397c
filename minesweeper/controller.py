"""Lifecycle of a single game: first click, reveals, flags, hints, timer, end."""
import copy
import random
from typing import Callable, List, Optional

from minesweeper.board import Board
from minesweeper.mines import place_mines
from minesweeper.reveal import apply_hint, check_win, reveal, toggle_flag
from minesweeper.session import Session, serialize
from minesweeper.types import (
    DEFAULT_HINTS, Difficulty, GameEvent, GameSnapshot, GameStatus,
    Highscores, HintResult, Stats,
)

NOT_STARTED = "Start the game first!"
GAME_OVER = "The game is over."


class NullPersistence:
    """Persistence that drops every write."""

    def save_session(self, record):
        pass

    def clear_session(self):
        pass

    def record_result(self, won):
        return None

    def save_highscores(self, record):
        return None


class GameController:
    """Owns one board and its session metadata.

    States run IDLE -> ACTIVE -> WON/LOST. Mines are only placed on the
    first reveal, so an IDLE board never holds mines and the first
    revealed cell is always safe. Every mutating call writes the session
    through ``persistence``; finished games clear it and update stats.

    The controller never schedules anything itself: whoever hosts it
    calls ``tick()`` once per second while ``timer_running`` is true.
    """

    def __init__(self, difficulty: Difficulty = Difficulty.BEGINNER,
                 persistence=None, rng: Optional[random.Random] = None,
                 stats: Optional[Stats] = None,
                 highscores: Optional[Highscores] = None):
        self.persistence = persistence or NullPersistence()
        self.rng = rng or random.Random()
        self.stats = stats or Stats()
        self.highscores = highscores or Highscores()
        self.listeners: List[Callable[[GameEvent], None]] = []
        self.events: List[GameEvent] = []
        self.message: Optional[str] = None
        self._new_board(Difficulty.parse(difficulty))

    @classmethod
    def from_session(cls, session: Session, persistence=None,
                     rng: Optional[random.Random] = None,
                     stats: Optional[Stats] = None,
                     highscores: Optional[Highscores] = None) -> 'GameController':
        """Resume a saved game where it left off."""
        controller = cls(session.difficulty, persistence=persistence, rng=rng,
                         stats=stats, highscores=highscores)
        controller.board = session.board
        controller.elapsed = session.elapsed
        controller.hints_remaining = session.hints_remaining
        controller.status = GameStatus.IDLE if session.first_click_pending else GameStatus.ACTIVE
        return controller

    def _new_board(self, difficulty: Difficulty) -> None:
        self.difficulty = difficulty
        self.board = Board(difficulty.rows, difficulty.cols, difficulty.total_mines)
        self.status = GameStatus.IDLE
        self.elapsed = 0
        self.hints_remaining = DEFAULT_HINTS

    @property
    def timer_running(self) -> bool:
        return self.status == GameStatus.ACTIVE

    @property
    def first_click_pending(self) -> bool:
        return self.status == GameStatus.IDLE

    def add_listener(self, listener: Callable[[GameEvent], None]) -> None:
        self.listeners.append(listener)

    def _begin_action(self) -> None:
        self.events = []
        self.message = None

    def _emit(self, event: GameEvent) -> None:
        self.events.append(event)
        for listener in self.listeners:
            listener(event)

    def to_session(self) -> Session:
        return Session(
            difficulty=self.difficulty,
            board=self.board,
            elapsed=self.elapsed,
            first_click_pending=self.first_click_pending,
            hints_remaining=self.hints_remaining,
        )

    def _persist(self) -> None:
        self.persistence.save_session(serialize(self.to_session()))

    def activate(self, row: int, col: int) -> bool:
        """Primary action on a cell: reveal it. Returns True if anything changed."""
        self._begin_action()
        if self.status.is_terminal:
            return False
        cell = self.board.get(row, col)
        if cell.is_revealed or cell.is_flagged:
            return False

        self._emit(GameEvent.CELL_ACTIVATED)
        if self.status == GameStatus.IDLE:
            place_mines(self.board, row, col, self.rng)
            self.status = GameStatus.ACTIVE

        result = reveal(self.board, row, col)
        if result.hit_mine:
            self._lose()
        elif check_win(self.board):
            self._win()
        else:
            self._persist()
        return True

    def alternate_activate(self, row: int, col: int) -> bool:
        """Secondary action on a cell: toggle its flag."""
        self._begin_action()
        if self.status.is_terminal:
            return False
        if not toggle_flag(self.board, row, col):
            return False
        self._emit(GameEvent.FLAG_TOGGLED)
        self._persist()
        return True

    def safe_click(self) -> HintResult:
        """Reveal one random safe cell, spending one of the hints."""
        self._begin_action()
        if self.status == GameStatus.IDLE:
            result = HintResult(hints_remaining=self.hints_remaining, message=NOT_STARTED)
        elif self.status.is_terminal:
            result = HintResult(hints_remaining=self.hints_remaining, message=GAME_OVER)
        else:
            result = apply_hint(self.board, self.hints_remaining, self.rng)

        if not result.succeeded:
            self.message = result.message
            return result

        self.hints_remaining = result.hints_remaining
        self._emit(GameEvent.HINT_USED)
        if check_win(self.board):
            self._win()
        else:
            self._persist()
        return result

    def tick(self) -> bool:
        """Advance the clock by one second while the game is running."""
        if not self.timer_running:
            return False
        self.elapsed += 1
        self._persist()
        return True

    def restart(self, difficulty: Optional[Difficulty] = None) -> None:
        """Throw the current board away and go back to IDLE."""
        self._begin_action()
        if difficulty is None:
            difficulty = self.difficulty
        self._new_board(Difficulty.parse(difficulty))
        self.persistence.clear_session()

    def sync_stats(self, record) -> None:
        """Adopt the stats totals as stored, which may include other games."""
        self.stats = Stats.from_record(record)

    def reconcile_highscores(self, record) -> None:
        """Adopt the stored highscores after a win was written.

        Another game may have stored a better time in the meantime; the
        new-best announcement is withdrawn if this win did not hold.
        """
        self.highscores = Highscores.from_record(record)
        if (self.status == GameStatus.WON and GameEvent.NEW_HIGHSCORE in self.events
                and self.highscores.best(self.difficulty) != self.elapsed):
            self.events.remove(GameEvent.NEW_HIGHSCORE)
            self.message = None

    def _finish(self, won: bool) -> None:
        # Persistence counts the game against its stored totals when it can.
        self.stats.record(won)
        stored = self.persistence.record_result(won)
        if stored is not None:
            self.sync_stats(stored)
        self.persistence.clear_session()

    def _lose(self) -> None:
        self.status = GameStatus.LOST
        self._emit(GameEvent.MINE_HIT)
        for cell in self.board:
            if cell.is_mine:
                cell.is_revealed = True
        self._finish(won=False)

    def _win(self) -> None:
        self.status = GameStatus.WON
        self._emit(GameEvent.GAME_WON)
        if self.highscores.offer(self.difficulty, self.elapsed):
            stored = self.persistence.save_highscores(self.highscores.to_record())
            if stored is not None:
                self.highscores = Highscores.from_record(stored)
            if self.highscores.best(self.difficulty) == self.elapsed:
                self.message = f"New best time ({self.difficulty.value}): {self.elapsed}s!"
                self._emit(GameEvent.NEW_HIGHSCORE)
        self._finish(won=True)

    def snapshot(self) -> GameSnapshot:
        """Copy of everything the presentation layer needs to redraw."""
        return GameSnapshot(
            status=self.status,
            difficulty=self.difficulty,
            rows=self.board.rows,
            cols=self.board.cols,
            total_mines=self.board.total_mines,
            mines_remaining=self.board.total_mines - self.board.flagged_count(),
            elapsed=self.elapsed,
            hints_remaining=self.hints_remaining,
            cells=copy.deepcopy(self.board.cells),
            stats=copy.copy(self.stats),
            highscores=copy.copy(self.highscores),
            events=list(self.events),
            message=self.message,
        )
