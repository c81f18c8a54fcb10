"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from pactnexus.redis_client import get_redis


async def get_redis_dep() -> AsyncGenerator[object | None, None]:
    """Yield the Redis client, or None when the pool is not up.

    Notification pushes are best-effort, so a missing Redis never blocks a request.
    """
    try:
        client = get_redis()
    except RuntimeError:
        client = None
    yield client
