import asyncio
import logging
from typing import Any, List, Set

logger = logging.getLogger(__name__)

# In-memory pub/sub: one asyncio.Queue per Server-Sent Events subscriber
_subscribers: List[asyncio.Queue] = []
# strong references to scheduled publishes until they finish
_pending: Set[asyncio.Task] = set()


def register_queue() -> asyncio.Queue:
    q = asyncio.Queue()
    _subscribers.append(q)
    return q


def unregister_queue(q: asyncio.Queue) -> None:
    try:
        _subscribers.remove(q)
    except ValueError:
        pass


async def publish(event: Any) -> None:
    logger.debug("publish event: %s", event.get('type') if isinstance(event, dict) else type(event))
    for q in list(_subscribers):
        await q.put(event)


def notify_invalidation(*keys: str) -> None:
    """Tell subscribers that cached views of `keys` are stale.

    Must be called from a coroutine (async route); the publish is scheduled
    on the running loop without blocking the response.
    """
    event = {"type": "invalidate", "keys": list(keys)}
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning("notify_invalidation called outside an event loop: %s", keys)
        return
    task = loop.create_task(publish(event))
    _pending.add(task)
    task.add_done_callback(_pending.discard)


def get_status() -> dict:
    """Return a small debug status: number of SSE queues."""
    return {"sse_queues": len(_subscribers)}
