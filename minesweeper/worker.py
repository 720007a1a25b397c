"""Temporal worker for Minesweeper game."""
import asyncio
import concurrent.futures
import logging
from temporalio.client import Client
from temporalio.worker import Worker
from minesweeper.activities import ALL_ACTIVITIES
from minesweeper.config import get_temporal_client, load_settings
from minesweeper.workflows import MinesweeperWorkflow

logger = logging.getLogger(__name__)

ACTIVITY_THREADS = 8


def build_worker(client: Client, task_queue: str,
                 activity_executor: concurrent.futures.Executor, **kwargs) -> Worker:
    """Worker for the game workflow; activities run on ``activity_executor``."""
    return Worker(
        client,
        task_queue=task_queue,
        workflows=[MinesweeperWorkflow],
        activities=ALL_ACTIVITIES,
        activity_executor=activity_executor,
        **kwargs,
    )


async def run_worker() -> None:
    """Poll the game task queue until interrupted."""
    settings = load_settings()
    client = await get_temporal_client(settings)

    with concurrent.futures.ThreadPoolExecutor(max_workers=ACTIVITY_THREADS) as activity_executor:
        worker = build_worker(client, settings.task_queue, activity_executor)
        logger.info(f"Worker listening on task queue {settings.task_queue}, saving games to {settings.data_dir}")
        await worker.run()


def main():
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
