"""Type definitions for Minesweeper."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum


DEFAULT_HINTS = 3


@dataclass
class Cell:
    """Represents a single cell on the minesweeper board."""
    row: int
    col: int
    is_mine: bool = False
    neighbor_mines: int = 0
    is_revealed: bool = False
    is_flagged: bool = False


class Difficulty(str, Enum):
    """Fixed board presets."""
    BEGINNER = 'beginner'
    INTERMEDIATE = 'intermediate'
    EXPERT = 'expert'

    @property
    def rows(self) -> int:
        return PRESETS[self][0]

    @property
    def cols(self) -> int:
        return PRESETS[self][1]

    @property
    def total_mines(self) -> int:
        return PRESETS[self][2]

    @classmethod
    def parse(cls, value: Any) -> 'Difficulty':
        """Accept an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown difficulty: {value!r}") from None

    @classmethod
    def for_dimensions(cls, rows: int, cols: int, total_mines: int) -> Optional['Difficulty']:
        for difficulty, preset in PRESETS.items():
            if preset == (rows, cols, total_mines):
                return difficulty
        return None


# (rows, cols, mines)
PRESETS: Dict[Difficulty, Tuple[int, int, int]] = {
    Difficulty.BEGINNER: (9, 9, 10),
    Difficulty.INTERMEDIATE: (16, 16, 40),
    Difficulty.EXPERT: (16, 30, 99),
}


class GameStatus(str, Enum):
    """Possible game states."""
    IDLE = 'IDLE'
    ACTIVE = 'ACTIVE'
    WON = 'WON'
    LOST = 'LOST'
    CLOSED = 'CLOSED'

    @property
    def is_terminal(self) -> bool:
        return self in (GameStatus.WON, GameStatus.LOST, GameStatus.CLOSED)


class GameEvent(str, Enum):
    """Named trigger points for sound cues."""
    CELL_ACTIVATED = 'cell-activated'
    FLAG_TOGGLED = 'flag-toggled'
    MINE_HIT = 'mine-hit'
    GAME_WON = 'game-won'
    HINT_USED = 'hint-used'
    NEW_HIGHSCORE = 'new-highscore'


@dataclass
class RevealResult:
    """Outcome of a single reveal action."""
    revealed: List[Tuple[int, int]] = field(default_factory=list)
    hit_mine: bool = False


@dataclass
class HintResult:
    """Outcome of a safe click request."""
    hints_remaining: int
    row: Optional[int] = None
    col: Optional[int] = None
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.message is None


@dataclass
class Stats:
    """Cumulative game counters."""
    played: int = 0
    won: int = 0

    def record(self, won: bool) -> None:
        self.played += 1
        if won:
            self.won += 1

    def to_record(self) -> Dict[str, int]:
        return {'played': self.played, 'won': self.won}

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> 'Stats':
        record = record or {}
        played = int(record.get('played') or 0)
        won = int(record.get('won') or 0)
        return cls(played=max(played, 0), won=max(min(won, played), 0))


@dataclass
class Highscores:
    """Best completion time in seconds per difficulty."""
    beginner: Optional[int] = None
    intermediate: Optional[int] = None
    expert: Optional[int] = None

    def best(self, difficulty: Difficulty) -> Optional[int]:
        return getattr(self, Difficulty.parse(difficulty).value)

    def offer(self, difficulty: Difficulty, elapsed: int) -> bool:
        """Store elapsed as the new best if it beats the current one."""
        best = self.best(difficulty)
        if best is None or elapsed < best:
            setattr(self, Difficulty.parse(difficulty).value, elapsed)
            return True
        return False

    def to_record(self) -> Dict[str, Optional[int]]:
        return {d.value: self.best(d) for d in Difficulty}

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> 'Highscores':
        record = record or {}
        values = {}
        for difficulty in Difficulty:
            value = record.get(difficulty.value)
            values[difficulty.value] = int(value) if value is not None else None
        return cls(**values)


@dataclass
class MoveRequest:
    """Request to make a move."""
    row: int
    col: int
    action: str  # 'reveal' or 'flag'


@dataclass
class SavedGame:
    """Everything loaded from persistence when a game host starts."""
    stats: Dict[str, int]
    highscores: Dict[str, Optional[int]]
    session: Optional[Dict[str, Any]] = None


@dataclass
class NewGameRequest:
    """Request to start a game, optionally resuming the saved session.

    ``carried`` and ``last_activity_time`` are only set when a running
    game hands itself over to a fresh workflow run.
    """
    difficulty: Difficulty = Difficulty.BEGINNER
    resume: bool = False
    carried: Optional[SavedGame] = None
    last_activity_time: Optional[float] = None


@dataclass
class GameSnapshot:
    """Read-only view of a game for the presentation layer."""
    status: GameStatus
    difficulty: Difficulty
    rows: int
    cols: int
    total_mines: int
    mines_remaining: int
    elapsed: int
    hints_remaining: int
    cells: List[List[Cell]]
    stats: Stats
    highscores: Highscores
    events: List[GameEvent] = field(default_factory=list)
    message: Optional[str] = None
