"""
Tests for the game workflow: queued persistence, and whole games on a time-skipping test server
"""

import concurrent.futures
import contextlib
import random
import uuid
from datetime import timedelta

import pytest
from temporalio.client import WorkflowUpdateFailedError
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import UnsandboxedWorkflowRunner

from minesweeper import workflows
from minesweeper.activities import (
    clear_session, get_persistence, record_result, save_highscores, save_session,
)
from minesweeper.board import Board
from minesweeper.controller import GameController
from minesweeper.mines import place_mines
from minesweeper.server import query_with_retry
from minesweeper.session import Session, serialize
from minesweeper.types import Difficulty, GameStatus, MoveRequest, NewGameRequest, Stats
from minesweeper.worker import build_worker
from minesweeper.workflows import MinesweeperWorkflow, QueuedPersistence


def queued_names(persistence):
    return [fn for fn, _ in persistence.pending]


def test_moves_queue_session_writes():
    persistence = QueuedPersistence()
    controller = GameController(persistence=persistence, rng=random.Random(8))
    controller.alternate_activate(0, 0)
    controller.activate(4, 4)
    controller.tick()

    assert queued_names(persistence) == [save_session, save_session, save_session]
    assert persistence.pending[-1][1][0]['elapsed'] == 1


def test_loss_queues_result_then_clear():
    persistence = QueuedPersistence()
    controller = GameController(persistence=persistence, rng=random.Random(8))
    controller.activate(4, 4)
    persistence.pending.clear()

    mine = next(c for c in controller.board if c.is_mine)
    controller.activate(mine.row, mine.col)

    assert queued_names(persistence) == [record_result, clear_session]
    assert persistence.pending[0][1] == (False,)


def test_win_queues_highscore():
    persistence = QueuedPersistence()
    controller = GameController(persistence=persistence, rng=random.Random(8))
    controller.activate(4, 4)
    for cell in list(controller.board):
        if not cell.is_mine and controller.timer_running:
            controller.activate(cell.row, cell.col)
    persistence.pending = [entry for entry in persistence.pending if entry[0] is not save_session]

    assert queued_names(persistence) == [save_highscores, record_result, clear_session]
    assert persistence.pending[1][1] == (True,)


# Whole games against a local test server

@contextlib.asynccontextmanager
async def game_worker(**worker_options):
    """Time-skipping test server with a worker for the game task queue."""
    task_queue = f"minesweeper-test-{uuid.uuid4()}"
    async with await WorkflowEnvironment.start_time_skipping() as env:
        with concurrent.futures.ThreadPoolExecutor(max_workers=4) as executor:
            async with build_worker(env.client, task_queue, executor, **worker_options):
                yield env, task_queue


async def start_game(env, task_queue, request=None):
    game_id = str(uuid.uuid4())
    handle = await env.client.start_workflow(
        MinesweeperWorkflow.run,
        args=[game_id, request or NewGameRequest(Difficulty.INTERMEDIATE)],
        id=game_id,
        task_queue=task_queue,
    )
    await query_with_retry(handle, max_retries=10)
    return handle


async def state(handle):
    return await handle.query(MinesweeperWorkflow.get_game_state_query)


async def move(handle, row, col, action='reveal'):
    return await handle.execute_update(MinesweeperWorkflow.make_move_update, MoveRequest(row, col, action))


def hidden_mine(snapshot):
    return next(cell for row in snapshot.cells for cell in row if cell.is_mine and not cell.is_revealed)


def save_nearly_won_game(elapsed):
    """Saved beginner game where only one safe cell is left to open."""
    board = Board(9, 9, 10)
    place_mines(board, 0, 0, random.Random(3))
    safe = [cell for cell in board if not cell.is_mine]
    for cell in safe[:-1]:
        cell.is_revealed = True
    get_persistence().save_session(serialize(
        Session(Difficulty.BEGINNER, board, elapsed=elapsed, first_click_pending=False)
    ))
    return safe[-1].row, safe[-1].col


class TestGameWorkflow:

    @pytest.mark.asyncio
    async def test_timer_starts_with_first_reveal(self):
        async with game_worker() as (env, task_queue):
            handle = await start_game(env, task_queue)
            await env.sleep(timedelta(seconds=5))
            assert (await state(handle)).elapsed == 0

            snapshot = await move(handle, 8, 8)
            assert snapshot.status == GameStatus.ACTIVE
            await env.sleep(timedelta(seconds=5))

            assert (await state(handle)).elapsed >= 1
            assert get_persistence().load_session_record()['firstClickPending'] is False

    @pytest.mark.asyncio
    async def test_restart_stops_timer(self):
        async with game_worker() as (env, task_queue):
            handle = await start_game(env, task_queue)
            await move(handle, 8, 8)
            snapshot = await handle.execute_update(MinesweeperWorkflow.restart_game_update, Difficulty.BEGINNER)
            assert snapshot.status == GameStatus.IDLE

            await env.sleep(timedelta(seconds=5))

            snapshot = await state(handle)
            assert snapshot.elapsed == 0
            assert snapshot.rows == 9
            assert get_persistence().load_session_record() is None

    @pytest.mark.asyncio
    async def test_loss_stops_timer_and_counts_game(self):
        async with game_worker() as (env, task_queue):
            handle = await start_game(env, task_queue)
            snapshot = await move(handle, 8, 8)
            mine = hidden_mine(snapshot)

            snapshot = await move(handle, mine.row, mine.col)
            assert snapshot.status == GameStatus.LOST
            assert snapshot.stats == Stats(played=1, won=0)
            assert get_persistence().load_stats() == Stats(played=1, won=0)
            assert get_persistence().load_session_record() is None

            await env.sleep(timedelta(seconds=5))
            assert (await state(handle)).elapsed == snapshot.elapsed

    @pytest.mark.asyncio
    async def test_resumed_game_wins_and_stops_timer(self):
        row, col = save_nearly_won_game(elapsed=30)
        get_persistence().save_highscores({'beginner': 100, 'intermediate': None, 'expert': None})

        async with game_worker() as (env, task_queue):
            handle = await start_game(env, task_queue, NewGameRequest(resume=True))
            snapshot = await state(handle)
            assert snapshot.status == GameStatus.ACTIVE
            assert snapshot.elapsed >= 30

            snapshot = await move(handle, row, col)
            assert snapshot.status == GameStatus.WON
            assert get_persistence().load_highscores().beginner == snapshot.elapsed
            assert get_persistence().load_stats() == Stats(played=1, won=1)

            await env.sleep(timedelta(seconds=5))
            assert (await state(handle)).elapsed == snapshot.elapsed

    @pytest.mark.asyncio
    async def test_writes_land_before_update_returns(self):
        async with game_worker() as (env, task_queue):
            handle = await start_game(env, task_queue)
            await move(handle, 0, 0, 'flag')
            assert get_persistence().load_session_record()['cells'][0]['flagged'] is True

            await move(handle, 0, 0, 'flag')
            await move(handle, 15, 15)
            record = get_persistence().load_session_record()
            assert record['cells'][0]['flagged'] is False
            assert record['firstClickPending'] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("request_move", [MoveRequest(99, 0, 'reveal'), MoveRequest(0, -1, 'flag'),
                                              MoveRequest(0, 0, 'chord')])
    async def test_invalid_moves_are_rejected(self, request_move):
        async with game_worker() as (env, task_queue):
            handle = await start_game(env, task_queue)
            with pytest.raises(WorkflowUpdateFailedError):
                await handle.execute_update(MinesweeperWorkflow.make_move_update, request_move)

            assert (await state(handle)).status == GameStatus.IDLE

    @pytest.mark.asyncio
    async def test_close_signal_completes_workflow(self):
        async with game_worker() as (env, task_queue):
            handle = await start_game(env, task_queue)
            await move(handle, 8, 8)
            await handle.signal(MinesweeperWorkflow.close_game_signal)

            assert await handle.result() is None

    @pytest.mark.asyncio
    async def test_long_game_continues_as_new(self, monkeypatch):
        # Module constants only reach the workflow outside the sandbox.
        monkeypatch.setattr(workflows, 'TICKS_PER_RUN', 3)
        async with game_worker(workflow_runner=UnsandboxedWorkflowRunner()) as (env, task_queue):
            handle = await start_game(env, task_queue)
            before = await move(handle, 8, 8)
            await move(handle, 0, 0, 'flag')

            await env.sleep(timedelta(seconds=10))

            latest = env.client.get_workflow_handle(handle.id)
            description = await latest.describe()
            assert description.run_id != handle.first_execution_run_id

            snapshot = await query_with_retry(latest, max_retries=10)
            assert snapshot.status == GameStatus.ACTIVE
            assert snapshot.elapsed >= 3
            assert snapshot.cells[0][0].is_flagged
            revealed = [(c.row, c.col) for row in before.cells for c in row if c.is_revealed]
            assert all(snapshot.cells[r][c].is_revealed for r, c in revealed)
