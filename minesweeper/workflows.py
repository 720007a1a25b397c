"""Temporal workflows for Minesweeper game."""
import asyncio
from datetime import timedelta
from typing import Any, List, Optional, Tuple

from temporalio import workflow

with workflow.unsafe.imports_passed_through():
    from minesweeper.activities import (
        clear_session, load_saved_game, record_result, save_highscores, save_session,
    )
    from minesweeper.controller import GameController
    from minesweeper.session import deserialize, serialize
    from minesweeper.types import (
        Difficulty, GameSnapshot, GameStatus, Highscores, MoveRequest,
        NewGameRequest, SavedGame, Stats,
    )

ACTIVITY_TIMEOUT = timedelta(seconds=60)
MOVE_ACTIONS = ('reveal', 'flag')
# Each tick adds a timer and a save_session activity to the history.
TICKS_PER_RUN = 1000


class QueuedPersistence:
    """Collects controller writes so the workflow can run them as activities.

    Results are not known until the flush, so every method returns None
    and the workflow hands activity results back to the controller.
    """

    def __init__(self):
        self.pending: List[Tuple[Any, Tuple[Any, ...]]] = []

    def save_session(self, record):
        self.pending.append((save_session, (record,)))

    def clear_session(self):
        self.pending.append((clear_session, ()))

    def record_result(self, won):
        self.pending.append((record_result, (won,)))

    def save_highscores(self, record):
        self.pending.append((save_highscores, (record,)))


@workflow.defn
class MinesweeperWorkflow:
    """Workflow that hosts a single Minesweeper game and its timer."""

    def __init__(self):
        self.game_id: str = ""
        self.controller: Optional[GameController] = None
        self.persistence = QueuedPersistence()
        self.flush_lock = asyncio.Lock()
        self.timer_task: Optional[asyncio.Task] = None
        self.last_activity_time: float = 0
        self.should_close: bool = False
        self.continue_requested: bool = False
        self.closed: bool = False

    @workflow.run
    async def run(self, game_id: str, request: NewGameRequest) -> None:
        """Main workflow entry point."""
        self.game_id = game_id
        self.last_activity_time = request.last_activity_time or workflow.time()

        if request.carried is not None:
            saved = request.carried
        else:
            saved = await workflow.execute_activity(
                load_saved_game,
                request.resume,
                start_to_close_timeout=ACTIVITY_TIMEOUT,
            )
        options = dict(
            persistence=self.persistence,
            rng=workflow.random(),
            stats=Stats.from_record(saved.stats),
            highscores=Highscores.from_record(saved.highscores),
        )
        if saved.session is not None:
            self.controller = GameController.from_session(deserialize(saved.session), **options)
            if request.carried is None:
                workflow.logger.info(f"Game {game_id} resumed at {self.controller.elapsed}s")
        else:
            self.controller = GameController(request.difficulty, **options)
        self._sync_timer()

        # Auto-close workflow after 24 hours of inactivity
        inactivity_timeout = timedelta(hours=24).total_seconds()
        while not self.should_close:
            if self.continue_requested:
                if self.controller.timer_running:
                    await self._continue_as_new()
                self.continue_requested = False

            idle = workflow.time() - self.last_activity_time
            if idle >= inactivity_timeout:
                workflow.logger.info(f"Game {game_id} auto-closing due to 24 hours of inactivity")
                break
            try:
                await workflow.wait_condition(
                    lambda: self.should_close or self.continue_requested,
                    timeout=inactivity_timeout - idle,
                )
            except asyncio.TimeoutError:
                pass

        self._stop_timer()
        await self._flush()
        self.closed = True
        workflow.logger.info(f"Minesweeper workflow {game_id} completed")

    async def _continue_as_new(self) -> None:
        """Hand the running game over to a fresh run with an empty history."""
        controller = self._require_controller()
        self._stop_timer()
        await workflow.wait_condition(workflow.all_handlers_finished)
        await self._flush()
        if not controller.timer_running or self.should_close:
            return
        workflow.logger.info(f"Game {self.game_id} continuing as new at {controller.elapsed}s")
        workflow.continue_as_new(args=[
            self.game_id,
            NewGameRequest(
                difficulty=controller.difficulty,
                resume=True,
                carried=SavedGame(
                    stats=controller.stats.to_record(),
                    highscores=controller.highscores.to_record(),
                    session=serialize(controller.to_session()),
                ),
                last_activity_time=self.last_activity_time,
            ),
        ])

    def _require_controller(self) -> GameController:
        if self.controller is None:
            raise ValueError("Game state not initialized")
        return self.controller

    def _stop_timer(self) -> None:
        if self.timer_task is not None:
            self.timer_task.cancel()
            self.timer_task = None

    def _sync_timer(self) -> None:
        """Start the tick task for an active game, cancel it otherwise."""
        running = self.controller is not None and self.controller.timer_running
        if self.continue_requested:
            return
        if running and (self.timer_task is None or self.timer_task.done()):
            self.timer_task = asyncio.create_task(self._run_timer())
        elif not running:
            self._stop_timer()

    async def _run_timer(self) -> None:
        controller = self._require_controller()
        ticks = 0
        while controller.timer_running:
            if ticks >= TICKS_PER_RUN or workflow.info().is_continue_as_new_suggested():
                self.continue_requested = True
                return
            await workflow.sleep(1)
            if controller.tick():
                ticks += 1
                await self._flush()

    async def _flush(self) -> None:
        """Run queued writes in order. An entry is dropped only once written."""
        async with self.flush_lock:
            while self.persistence.pending:
                fn, args = self.persistence.pending[0]
                result = await workflow.execute_activity(
                    fn,
                    args=list(args),
                    start_to_close_timeout=ACTIVITY_TIMEOUT,
                )
                self.persistence.pending.pop(0)
                if fn is record_result:
                    self._require_controller().sync_stats(result)
                elif fn is save_highscores:
                    self._require_controller().reconcile_highscores(result)

    def _snapshot(self) -> GameSnapshot:
        snapshot = self._require_controller().snapshot()
        if self.closed:
            snapshot.status = GameStatus.CLOSED
        return snapshot

    def _log_transition(self, before: GameStatus) -> None:
        controller = self._require_controller()
        after = controller.status
        if after == before:
            return
        if after == GameStatus.ACTIVE:
            workflow.logger.info(f"Game {self.game_id} started ({controller.difficulty.value})")
        elif after == GameStatus.WON:
            workflow.logger.info(f"Game {self.game_id} won in {controller.elapsed}s")
        elif after == GameStatus.LOST:
            workflow.logger.info(f"Game {self.game_id} lost after {controller.elapsed}s")

    async def _after_action(self, before: GameStatus) -> GameSnapshot:
        self.last_activity_time = workflow.time()
        self._log_transition(before)
        self._sync_timer()
        await self._flush()
        return self._snapshot()

    @workflow.update
    async def make_move_update(self, move_request: MoveRequest) -> GameSnapshot:
        """Reveal or flag a cell and return the updated state."""
        controller = self._require_controller()
        before = controller.status
        if not self.closed:
            if move_request.action == 'reveal':
                controller.activate(move_request.row, move_request.col)
            else:
                controller.alternate_activate(move_request.row, move_request.col)
        return await self._after_action(before)

    @make_move_update.validator
    def validate_move(self, move_request: MoveRequest) -> None:
        controller = self._require_controller()
        if move_request.action not in MOVE_ACTIONS:
            raise ValueError(f"Unknown action: {move_request.action}")
        if not controller.board.in_bounds(move_request.row, move_request.col):
            raise ValueError(f"Cell ({move_request.row}, {move_request.col}) is off the board")

    @workflow.update
    async def safe_click_update(self) -> GameSnapshot:
        """Spend a hint and return the updated state."""
        controller = self._require_controller()
        before = controller.status
        if not self.closed:
            controller.safe_click()
        return await self._after_action(before)

    @workflow.update
    async def restart_game_update(self, difficulty: Optional[Difficulty] = None) -> GameSnapshot:
        """Start over, optionally on a different difficulty."""
        controller = self._require_controller()
        before = controller.status
        if not self.closed:
            self._stop_timer()
            controller.restart(difficulty)
            workflow.logger.info(f"Game {self.game_id} restarted ({controller.difficulty.value})")
        return await self._after_action(before)

    @workflow.signal
    def close_game_signal(self) -> None:
        """Signal to close the game."""
        self.should_close = True

    @workflow.query
    def get_game_state_query(self) -> GameSnapshot:
        """Query to get the current game state."""
        return self._snapshot()
