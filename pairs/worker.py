"""Temporal worker for the Pairs memory game."""
import asyncio
import logging

from temporalio.worker import Worker

from pairs import activities
from pairs.config import TASK_QUEUE, get_temporal_client
from pairs.workflows import MemoryGameWorkflow

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    """Start the Temporal worker."""
    client = await get_temporal_client()

    worker = Worker(
        client,
        task_queue=TASK_QUEUE,
        workflows=[MemoryGameWorkflow],
        activities=[activities.announce_win],
    )

    logger.info("Worker started, connected to Temporal")
    logger.info(f"Listening on task queue: {TASK_QUEUE}")

    await worker.run()


if __name__ == "__main__":
    asyncio.run(main())
