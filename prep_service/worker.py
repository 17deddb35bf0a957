"""Background worker process.

RUN:  python -m prep_service.worker

Replays attempt writes that failed at submit time.  The API has already
shown the user their score; the worker's only job is to get that score
into the store.  Same image as the API, different command:

  api:    uvicorn prep_service.main:app --host 0.0.0.0 --port 8000
  worker: python -m prep_service.worker

A failed replay is re-enqueued with its ``retries`` count bumped until
MAX_RETRIES, then dropped with an error log (the attempt row stays
"started, never completed").
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from datetime import datetime
from typing import Any

from prep_service.core.config import SETTINGS
from prep_service.core.logging import setup_logging
from prep_service.core.metrics import QUEUE_DEPTH
from prep_service.models.assessment import AttemptUpdate
from prep_service.services.cache import cache_service, readiness_key
from prep_service.services.stores import attempt_store
from prep_service.services.task_queue import ATTEMPT_PERSISTENCE_QUEUE, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")

MAX_RETRIES = 5

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


def update_from_payload(payload: dict) -> AttemptUpdate:
    return AttemptUpdate(
        attempt_id=payload["attempt_id"],
        completed_at=datetime.fromisoformat(payload["completed_at"]),
        score=int(payload["score"]),
        answers=tuple(payload["answers"]),
    )


@register_handler(ATTEMPT_PERSISTENCE_QUEUE)
async def handle_attempt_persistence(payload: dict) -> None:
    update = update_from_payload(payload)
    await attempt_store.complete_attempt(update)
    if payload.get("user_id"):
        await cache_service.delete(readiness_key(payload["user_id"]))
    logger.info(
        "Attempt write replayed: score=%d",
        update.score,
        extra={"attempt_id": update.attempt_id, "user_id": payload.get("user_id")},
    )


async def process_one(queue_name: str, timeout: int = 1) -> bool:
    """Dequeue and run one task.  Returns False when the queue was empty."""
    task = await task_queue.dequeue(queue_name, timeout=timeout)
    if task is None:
        return False

    handler = HANDLERS[queue_name]
    try:
        await handler(task.payload)
        logger.info("Task %s on [%s] completed", task.id, queue_name)
    except Exception:
        retries = int(task.payload.get("retries", 0)) + 1
        if retries > MAX_RETRIES:
            logger.exception(
                "Task %s on [%s] failed %d times, giving up",
                task.id,
                queue_name,
                retries,
            )
        else:
            logger.warning(
                "Task %s on [%s] failed (retry %d/%d)",
                task.id,
                queue_name,
                retries,
                MAX_RETRIES,
                exc_info=True,
            )
            await task_queue.enqueue(queue_name, {**task.payload, "retries": retries})
    finally:
        QUEUE_DEPTH.labels(queue_name=queue_name).set(
            await task_queue.queue_length(queue_name)
        )
    return True


async def run_worker() -> None:
    """Poll all registered queues and dispatch tasks to handlers."""
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        for queue_name in queues:
            await process_one(queue_name)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
