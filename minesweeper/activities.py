"""Temporal activities for reading and writing persisted game records.

These do blocking file I/O, so they are plain functions and the worker
runs them on a thread pool.
"""
from typing import Any, Dict, Optional

from temporalio import activity

from minesweeper.config import load_settings
from minesweeper.session import CorruptSessionError, deserialize
from minesweeper.store import JsonFileStore, LocalPersistence
from minesweeper.types import SavedGame


def get_persistence() -> LocalPersistence:
    return LocalPersistence(JsonFileStore(load_settings().data_dir))


@activity.defn
def load_saved_game(resume: bool) -> SavedGame:
    """Load stats, highscores and, if resuming, the saved session.

    A saved session the player chose not to resume, or one that fails
    validation, is discarded.
    """
    persistence = get_persistence()
    record = persistence.load_session_record()
    if record is not None and not resume:
        activity.logger.info("Discarding saved session")
        persistence.clear_session()
        record = None
    elif record is not None:
        try:
            deserialize(record)
        except CorruptSessionError as error:
            activity.logger.warning(f"Discarding corrupt saved session: {error}")
            persistence.clear_session()
            record = None

    return SavedGame(
        stats=persistence.load_stats().to_record(),
        highscores=persistence.load_highscores().to_record(),
        session=record,
    )


@activity.defn
def save_session(record: Dict[str, Any]) -> None:
    get_persistence().save_session(record)


@activity.defn
def clear_session() -> None:
    get_persistence().clear_session()


@activity.defn
def record_result(won: bool) -> Dict[str, int]:
    """Add one finished game to the stored stats and return the new totals."""
    return get_persistence().record_result(won)


@activity.defn
def save_highscores(record: Dict[str, Optional[int]]) -> Dict[str, Optional[int]]:
    return get_persistence().save_highscores(record)


ALL_ACTIVITIES = [load_saved_game, save_session, clear_session, record_result, save_highscores]
