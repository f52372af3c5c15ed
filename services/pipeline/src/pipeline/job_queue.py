"""
Durable Redis-backed job queue for FeedLens.

At-least-once delivery with a per-job idempotency key. Each job is a hash
``<prefix>:job:<job_id>``; its id moves between the ``waiting``/``active``
lists and the ``delayed``/``completed``/``failed`` sorted sets (scored by
due time or finish time). Failed attempts are retried with exponential
backoff taken from a :class:`RetryPolicy`; finished jobs are kept for the
:class:`RetentionPolicy` window and then swept by :meth:`JobQueue.clean`.

Steps that move an id out of one structure and into another while also
touching its hash (enqueue, delayed promotion, stalled requeue) run as
Lua scripts, so a dropped connection never leaves a job in none of them.

State machine::

    waiting -> active -> completed
                      -> delayed -> waiting      (attempts left)
                      -> failed                  (attempts exhausted)
    active  -> waiting                           (stalled: lock expired)
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable

import structlog
from redis.exceptions import RedisError

from fl_common.errors import QueueUnavailableError
from fl_common.messaging.redis_client import RedisClient
from fl_common.models import JobState, QueueCounts

from pipeline.retry_policy import RetentionPolicy, RetryPolicy

logger = structlog.get_logger(__name__)

DEFAULT_QUEUE_NAME = "feedback-processing"
_DEFAULT_LOCK_DURATION_S = 60.0

# KEYS: job hash, waiting list. ARGV: job id, payload, max attempts, now.
# Returns nil when the job was created, else the existing job's state.
# A hash without a payload is a leftover of an interrupted write and is
# replaced.
_ENQUEUE_LUA = """
if redis.call("HEXISTS", KEYS[1], "payload") == 1 then
    return redis.call("HGET", KEYS[1], "state") or "waiting"
end
redis.call("DEL", KEYS[1])
redis.call("HSET", KEYS[1], "state", "waiting", "payload", ARGV[2],
    "attempts_made", 0, "max_attempts", ARGV[3], "created_at", ARGV[4])
redis.call("LPUSH", KEYS[2], ARGV[1])
return false
"""

# KEYS: delayed zset, waiting list. ARGV: now, job key prefix.
_PROMOTE_LUA = """
local due = redis.call("ZRANGEBYSCORE", KEYS[1], "-inf", ARGV[1])
for _, job_id in ipairs(due) do
    redis.call("ZREM", KEYS[1], job_id)
    redis.call("HSET", ARGV[2] .. job_id, "state", "waiting")
    redis.call("LPUSH", KEYS[2], job_id)
end
return #due
"""

# KEYS: active list, waiting list, job hash, unlocked zset. ARGV: job id.
_REQUEUE_LUA = """
if redis.call("LREM", KEYS[1], 1, ARGV[1]) == 0 then
    return 0
end
redis.call("HSET", KEYS[3], "state", "waiting")
redis.call("HDEL", KEYS[3], "lock_until")
redis.call("ZREM", KEYS[4], ARGV[1])
redis.call("RPUSH", KEYS[2], ARGV[1])
return 1
"""


@dataclass
class QueueJob:
    """A job as stored in the queue.

    Attributes:
        job_id: Idempotency key.
        payload: Job data (``user_id``, ``text``, ``metadata``, ``submitted_at``).
        state: Current lifecycle state.
        attempts_made: Failed attempts so far.
        max_attempts: Attempt budget recorded at enqueue time.
        failed_reason: Last failure message, if any.
        created_at: Enqueue time (epoch seconds).
        finished_at: Completion or terminal-failure time (epoch seconds).
    """

    job_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    state: JobState = JobState.WAITING
    attempts_made: int = 0
    max_attempts: int = 3
    failed_reason: str | None = None
    created_at: float | None = None
    finished_at: float | None = None

    @property
    def attempt(self) -> int:
        """1-based number of the current delivery attempt."""
        return self.attempts_made + 1

    @classmethod
    def from_hash(cls, job_id: str, fields: dict[str, str]) -> QueueJob:
        return cls(
            job_id=job_id,
            payload=json.loads(fields.get("payload") or "{}"),
            state=JobState(fields.get("state", JobState.WAITING.value)),
            attempts_made=int(fields.get("attempts_made", 0)),
            max_attempts=int(fields.get("max_attempts", 0)),
            failed_reason=fields.get("failed_reason") or None,
            created_at=_float_or_none(fields.get("created_at")),
            finished_at=_float_or_none(fields.get("finished_at")),
        )


@dataclass(frozen=True)
class EnqueueResult:
    """Outcome of :meth:`JobQueue.enqueue`.

    ``created`` is ``False`` when a job with the same id already existed;
    ``state`` then reports that job's current state.
    """

    job_id: str
    created: bool
    state: JobState


def _float_or_none(value: str | None) -> float | None:
    return float(value) if value not in (None, "") else None


class JobQueue:
    """Redis-backed queue with idempotent enqueue, backoff and retention.

    Args:
        redis: Connected :class:`RedisClient`.
        name: Queue name; used as key namespace.
        retry_policy: Attempt budget and backoff.
        retention: How long completed/failed jobs are kept.
        lock_duration_s: How long a reserved job may stay active before
            :meth:`requeue_stalled` hands it to another worker.
        clock: Time source returning epoch seconds.
    """

    def __init__(
        self,
        redis: RedisClient,
        name: str = DEFAULT_QUEUE_NAME,
        *,
        retry_policy: RetryPolicy | None = None,
        retention: RetentionPolicy | None = None,
        lock_duration_s: float = _DEFAULT_LOCK_DURATION_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis
        self.name = name
        self.retry_policy = retry_policy or RetryPolicy()
        self.retention = retention or RetentionPolicy()
        self._lock_duration_s = lock_duration_s
        self._clock = clock

        prefix = f"fl:queue:{name}"
        self._job_prefix = f"{prefix}:job:"
        self.waiting_key = f"{prefix}:waiting"
        self.active_key = f"{prefix}:active"
        self.delayed_key = f"{prefix}:delayed"
        self.completed_key = f"{prefix}:completed"
        self.failed_key = f"{prefix}:failed"
        # Active ids seen without a lock, scored by first sighting.
        self.unlocked_key = f"{prefix}:unlocked"

    def job_key(self, job_id: str) -> str:
        return f"{self._job_prefix}{job_id}"

    async def _run_script(self, source: str, keys: list[str], args: list[Any]) -> Any:
        script = self._redis.redis.register_script(source)
        return await script(keys=keys, args=args)

    # ── producer side ──

    async def enqueue(self, job_id: str, payload: dict[str, Any]) -> EnqueueResult:
        """Add a job unless one with *job_id* is already known.

        Raises:
            QueueUnavailableError: If the broker cannot be reached.
        """
        try:
            existing = await self._run_script(
                _ENQUEUE_LUA,
                keys=[self.job_key(job_id), self.waiting_key],
                args=[job_id, json.dumps(payload), self.retry_policy.max_attempts, self._clock()],
            )
        except (RedisError, OSError, RuntimeError) as exc:
            raise QueueUnavailableError(f"Job queue unavailable: {exc}") from exc

        if existing is not None:
            state = JobState(existing)
            logger.info("job_already_queued", job_id=job_id, state=state.value)
            return EnqueueResult(job_id=job_id, created=False, state=state)

        logger.info("job_enqueued", job_id=job_id, queue=self.name)
        return EnqueueResult(job_id=job_id, created=True, state=JobState.WAITING)

    # ── consumer side ──

    async def reserve(self, timeout_s: float = 1.0) -> QueueJob | None:
        """Move the oldest waiting job to ``active`` and return it.

        Blocks up to *timeout_s* seconds for a job; returns ``None`` when
        none arrives. If stamping the lock fails after the move, the id
        stays in ``active`` without a lock and :meth:`requeue_stalled`
        recovers it.
        """
        r = self._redis.redis
        job_id = await r.blmove(self.waiting_key, self.active_key, timeout_s, "RIGHT", "LEFT")
        if job_id is None:
            return None

        key = self.job_key(job_id)
        now = self._clock()
        pipe = r.pipeline(transaction=True)
        pipe.hset(
            key,
            mapping={
                "state": JobState.ACTIVE.value,
                "lock_until": now + self._lock_duration_s,
                "processed_on": now,
            },
        )
        pipe.zrem(self.unlocked_key, job_id)
        pipe.hgetall(key)
        fields = (await pipe.execute())[-1]

        if "payload" not in fields:
            # Hash expired or was removed while the id sat in the list.
            pipe = r.pipeline(transaction=True)
            pipe.lrem(self.active_key, 1, job_id)
            pipe.delete(key)
            await pipe.execute()
            logger.warning("job_orphan_dropped", job_id=job_id)
            return None

        try:
            return QueueJob.from_hash(job_id, fields)
        except ValueError as exc:
            await self._bury(job_id, f"Unreadable job data: {exc}")
            return None

    async def _bury(self, job_id: str, reason: str) -> None:
        """Move an active job straight to ``failed`` without retries."""
        now = self._clock()
        key = self.job_key(job_id)
        pipe = self._redis.redis.pipeline(transaction=True)
        pipe.lrem(self.active_key, 1, job_id)
        pipe.zrem(self.unlocked_key, job_id)
        pipe.zadd(self.failed_key, {job_id: now})
        pipe.hset(
            key,
            mapping={"state": JobState.FAILED.value, "failed_reason": reason, "finished_at": now},
        )
        pipe.hdel(key, "lock_until")
        pipe.expire(key, self.retention.failed_s)
        await pipe.execute()
        logger.error("job_unreadable", job_id=job_id, reason=reason)

    async def complete(self, job: QueueJob) -> None:
        """Mark *job* completed; it is kept for the completed retention window."""
        now = self._clock()
        key = self.job_key(job.job_id)
        pipe = self._redis.redis.pipeline(transaction=True)
        pipe.lrem(self.active_key, 1, job.job_id)
        pipe.zrem(self.unlocked_key, job.job_id)
        pipe.zadd(self.completed_key, {job.job_id: now})
        pipe.hset(key, mapping={"state": JobState.COMPLETED.value, "finished_at": now})
        pipe.hdel(key, "lock_until")
        pipe.expire(key, self.retention.completed_s)
        await pipe.execute()
        job.state = JobState.COMPLETED
        job.finished_at = now

    async def fail(self, job: QueueJob, reason: str) -> JobState:
        """Record a failed attempt of *job*.

        Returns:
            ``DELAYED`` when the job will be retried after backoff,
            ``FAILED`` when its attempts are exhausted.
        """
        r = self._redis.redis
        key = self.job_key(job.job_id)
        attempts_made = int(await r.hincrby(key, "attempts_made", 1))
        now = self._clock()

        pipe = r.pipeline(transaction=True)
        pipe.lrem(self.active_key, 1, job.job_id)
        pipe.zrem(self.unlocked_key, job.job_id)
        pipe.hdel(key, "lock_until")
        if self.retry_policy.should_retry(attempts_made):
            delay = self.retry_policy.delay_for(attempts_made)
            pipe.zadd(self.delayed_key, {job.job_id: now + delay})
            pipe.hset(
                key,
                mapping={"state": JobState.DELAYED.value, "failed_reason": reason},
            )
            state = JobState.DELAYED
            logger.warning(
                "job_attempt_failed",
                job_id=job.job_id,
                attempt=attempts_made,
                retry_in_s=delay,
                reason=reason,
            )
        else:
            pipe.zadd(self.failed_key, {job.job_id: now})
            pipe.hset(
                key,
                mapping={
                    "state": JobState.FAILED.value,
                    "failed_reason": reason,
                    "finished_at": now,
                },
            )
            pipe.expire(key, self.retention.failed_s)
            state = JobState.FAILED
            logger.error(
                "job_failed_permanently",
                job_id=job.job_id,
                attempts=attempts_made,
                reason=reason,
            )
        await pipe.execute()

        job.attempts_made = attempts_made
        job.state = state
        job.failed_reason = reason
        return state

    # ── housekeeping ──

    async def promote_delayed(self) -> int:
        """Move delayed jobs whose backoff has elapsed back to ``waiting``."""
        promoted = int(
            await self._run_script(
                _PROMOTE_LUA,
                keys=[self.delayed_key, self.waiting_key],
                args=[self._clock(), self._job_prefix],
            )
        )
        if promoted:
            logger.debug("delayed_jobs_promoted", count=promoted)
        return promoted

    async def requeue_stalled(self) -> int:
        """Return active jobs whose lock expired to the head of ``waiting``.

        A lock expires when the worker holding the job lost its broker
        connection or died mid-job. An active id that never got a lock
        (the stamp after the move failed) is treated the same way once a
        full lock period has passed since it was first seen unlocked.
        """
        r = self._redis.redis
        now = self._clock()
        requeued = 0
        for job_id in await r.lrange(self.active_key, 0, -1):
            key = self.job_key(job_id)
            lock_until = await r.hget(key, "lock_until")
            if lock_until is None:
                if not await r.exists(key):
                    pipe = r.pipeline(transaction=True)
                    pipe.lrem(self.active_key, 1, job_id)
                    pipe.zrem(self.unlocked_key, job_id)
                    await pipe.execute()
                    continue
                await r.zadd(self.unlocked_key, {job_id: now}, nx=True)
                first_seen = await r.zscore(self.unlocked_key, job_id)
                if first_seen is None or now - float(first_seen) < self._lock_duration_s:
                    continue
            elif float(lock_until) >= now:
                continue
            moved = await self._run_script(
                _REQUEUE_LUA,
                keys=[self.active_key, self.waiting_key, key, self.unlocked_key],
                args=[job_id],
            )
            if not moved:
                continue
            requeued += 1
            logger.warning("stalled_job_requeued", job_id=job_id)
        return requeued

    async def clean(self) -> int:
        """Drop completed and failed jobs older than their retention window."""
        now = self._clock()
        removed = 0
        for set_key, retention_s in (
            (self.completed_key, self.retention.completed_s),
            (self.failed_key, self.retention.failed_s),
        ):
            removed += await self._sweep(set_key, now - retention_s)
        if removed:
            logger.info("queue_jobs_cleaned", queue=self.name, removed=removed)
        return removed

    async def _sweep(self, set_key: str, cutoff: float) -> int:
        r = self._redis.redis
        expired = await r.zrangebyscore(set_key, "-inf", cutoff)
        if not expired:
            return 0
        pipe = r.pipeline(transaction=True)
        pipe.delete(*(self.job_key(job_id) for job_id in expired))
        pipe.zremrangebyscore(set_key, "-inf", cutoff)
        await pipe.execute()
        return len(expired)

    # ── inspection ──

    async def get_job(self, job_id: str) -> QueueJob | None:
        """Return the stored job, or ``None`` if the queue does not know it."""
        fields = await self._redis.redis.hgetall(self.job_key(job_id))
        if not fields or "payload" not in fields:
            return None
        return QueueJob.from_hash(job_id, fields)

    async def counts(self) -> QueueCounts:
        """Number of jobs in each state."""
        pipe = self._redis.redis.pipeline(transaction=False)
        pipe.llen(self.waiting_key)
        pipe.llen(self.active_key)
        pipe.zcard(self.completed_key)
        pipe.zcard(self.failed_key)
        pipe.zcard(self.delayed_key)
        waiting, active, completed, failed, delayed = await pipe.execute()
        return QueueCounts(
            waiting=waiting,
            active=active,
            completed=completed,
            failed=failed,
            delayed=delayed,
        )
