"""
Tests for the persistence activities, run outside a worker
"""

import inspect
import random

import pytest
from temporalio.testing import ActivityEnvironment

from minesweeper.activities import (
    ALL_ACTIVITIES, clear_session, get_persistence, load_saved_game, record_result,
    save_highscores, save_session,
)
from minesweeper.controller import GameController
from minesweeper.session import serialize
from minesweeper.types import Difficulty, SavedGame


@pytest.fixture
def env():
    return ActivityEnvironment()


@pytest.fixture
def saved_record():
    controller = GameController(Difficulty.INTERMEDIATE, rng=random.Random(5))
    controller.activate(8, 8)
    return serialize(controller.to_session())


def test_activities_are_plain_functions():
    # File I/O must not block the worker's event loop.
    for fn in ALL_ACTIVITIES:
        assert not inspect.iscoroutinefunction(fn), fn.__name__


def test_cold_start(env):
    saved = env.run(load_saved_game, True)

    assert saved == SavedGame(
        stats={'played': 0, 'won': 0},
        highscores={'beginner': None, 'intermediate': None, 'expert': None},
        session=None,
    )


def test_resume_returns_saved_session(env, saved_record):
    env.run(save_session, saved_record)
    saved = env.run(load_saved_game, True)

    assert saved.session == saved_record


def test_declining_resume_discards_session(env, saved_record):
    env.run(save_session, saved_record)
    saved = env.run(load_saved_game, False)

    assert saved.session is None
    assert get_persistence().load_session_record() is None


def test_corrupt_session_is_discarded(env, saved_record):
    saved_record['cells'] = saved_record['cells'][:10]
    env.run(save_session, saved_record)
    saved = env.run(load_saved_game, True)

    assert saved.session is None
    assert get_persistence().load_session_record() is None


def test_bad_hint_count_is_discarded(env, saved_record):
    saved_record['hintsRemaining'] = "lots"
    env.run(save_session, saved_record)
    saved = env.run(load_saved_game, True)

    assert saved.session is None


def test_clear_session(env, saved_record):
    env.run(save_session, saved_record)
    env.run(clear_session)
    env.run(clear_session)

    assert get_persistence().load_session_record() is None


def test_results_add_up(env):
    assert env.run(record_result, True) == {'played': 1, 'won': 1}
    assert env.run(record_result, False) == {'played': 2, 'won': 1}

    saved = env.run(load_saved_game, False)
    assert saved.stats == {'played': 2, 'won': 1}


def test_highscores_never_get_worse(env):
    env.run(save_highscores, {'beginner': 20, 'intermediate': None, 'expert': 300})
    stored = env.run(save_highscores, {'beginner': 25, 'intermediate': 90, 'expert': None})

    assert stored == {'beginner': 20, 'intermediate': 90, 'expert': 300}
    saved = env.run(load_saved_game, False)
    assert saved.highscores == stored
