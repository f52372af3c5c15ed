"""
Broker connection for the FeedLens job queue.

:class:`RedisClient` owns one ``redis.asyncio`` connection pool. It is
built once per process, opened in the lifespan and shared by the
:class:`JobQueue` and the queue health reporter.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from redis.exceptions import RedisError


class RedisClient:
    """Lifecycle wrapper around a ``redis.asyncio.Redis`` pool.

    Args:
        url: Broker URL, e.g. ``redis://localhost:6379/0``.
        socket_timeout: Per-command timeout in seconds. Blocking queue
            commands add their own wait on top.
        connect_timeout: TCP connect timeout in seconds.
    """

    def __init__(
        self,
        url: str,
        *,
        socket_timeout: float = 5.0,
        connect_timeout: float = 3.0,
    ) -> None:
        self.url = url
        self._socket_timeout = socket_timeout
        self._connect_timeout = connect_timeout
        self._redis: aioredis.Redis | None = None

    async def connect(self) -> None:
        """Create the pool; calling it twice keeps the first pool.

        The pool dials lazily, so an unreachable broker only shows up on
        the first command or on :meth:`health_check`.
        """
        if self._redis is not None:
            return
        self._redis = aioredis.from_url(
            self.url,
            decode_responses=True,
            socket_timeout=self._socket_timeout,
            socket_connect_timeout=self._connect_timeout,
        )

    async def close(self) -> None:
        if self._redis is None:
            return
        redis, self._redis = self._redis, None
        await redis.aclose()

    @property
    def is_connected(self) -> bool:
        return self._redis is not None

    @property
    def redis(self) -> aioredis.Redis:
        """The open pool.

        Raises:
            RuntimeError: Before :meth:`connect` or after :meth:`close`.
        """
        if self._redis is None:
            raise RuntimeError("RedisClient is not connected; call connect() first")
        return self._redis

    async def health_check(self) -> bool:
        """``PING`` the broker; any failure reads as unhealthy."""
        try:
            return bool(await self.redis.ping())
        except (RedisError, OSError, RuntimeError):
            return False
