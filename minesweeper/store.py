"""Key/value persistence for the saved session, stats and highscores."""
import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional

from minesweeper.session import CorruptSessionError, Session, deserialize
from minesweeper.types import Highscores, Stats

logger = logging.getLogger(__name__)

SESSION_KEY = 'minesweeperState'
STATS_KEY = 'minesweeperStats'
HIGHSCORES_KEY = 'minesweeperHighscores'


class MemoryStore:
    """Dictionary-backed store, used by tests and throwaway games."""

    def __init__(self):
        self.data: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def put(self, key: str, value: Any) -> None:
        # Round-trip through JSON so callers never share mutable state.
        self.data[key] = json.loads(json.dumps(value))

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """One JSON file per key inside a directory."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable record {path}: {e}")
            return None

    def put(self, key: str, value: Any) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.")
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(value, f)
            os.replace(tmp_path, self._path(key))
        except BaseException:
            os.unlink(tmp_path)
            raise

    def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


class LocalPersistence:
    """Synchronous persistence of game records on top of a store.

    The controller only ever calls the ``save_*``/``clear_session``
    methods; the ``load_*`` methods are for whoever builds the controller.
    """

    def __init__(self, store):
        self.store = store

    def save_session(self, record: Dict[str, Any]) -> None:
        self.store.put(SESSION_KEY, record)

    def clear_session(self) -> None:
        self.store.delete(SESSION_KEY)

    def save_stats(self, record: Dict[str, int]) -> None:
        self.store.put(STATS_KEY, record)

    def record_result(self, won: bool) -> Dict[str, int]:
        """Count one finished game on top of the stored stats."""
        stats = self.load_stats()
        stats.record(won)
        self.save_stats(stats.to_record())
        return stats.to_record()

    def save_highscores(self, record: Dict[str, Optional[int]]) -> Dict[str, Optional[int]]:
        """Merge times into the stored highscores; returns what is stored now.

        A better time already on record is kept.
        """
        current = self.load_highscores()
        for difficulty, elapsed in record.items():
            if elapsed is not None:
                current.offer(difficulty, int(elapsed))
        self.store.put(HIGHSCORES_KEY, current.to_record())
        return current.to_record()

    def load_session_record(self) -> Optional[Dict[str, Any]]:
        return self.store.get(SESSION_KEY)

    def load_session(self) -> Optional[Session]:
        """Return the saved session, discarding it if it is corrupt."""
        record = self.load_session_record()
        if record is None:
            return None
        try:
            return deserialize(record)
        except CorruptSessionError as e:
            logger.warning(f"Discarding corrupt saved session: {e}")
            self.clear_session()
            return None

    def load_stats(self) -> Stats:
        return Stats.from_record(self.store.get(STATS_KEY))

    def load_highscores(self) -> Highscores:
        return Highscores.from_record(self.store.get(HIGHSCORES_KEY))
