"""Redis connection pool and best-effort pub/sub publishing."""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool used for toast and streak broadcasts."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    logger.info("Redis pool ready at %s", url)


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client. Raises RuntimeError before ``init_redis``."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


async def publish_json(client: object | None, channel: str, payload: dict[str, Any]) -> bool:
    """Publish ``payload`` as JSON on ``channel``.

    Delivery is best-effort: a missing client or a failed publish is logged and
    reported as False, never raised. The caller's database work is already
    committed by then.
    """
    if client is None:
        return False
    try:
        await client.publish(channel, json.dumps(payload, default=str))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to publish on %s", channel, exc_info=True)
        return False
    return True
