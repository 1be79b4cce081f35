from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from loguru import logger
from redis import RedisError
from redis.asyncio import Redis


@dataclass
class _Window:
  ends_at: float
  count: int


class RateLimiter:
  """
  Fixed-window counter for login attempts.

  Counters live in Redis when a client is configured, so every replica sees
  the same windows. Without Redis, or while it is unreachable, each process
  counts in its own table. That table is swept of closed windows and capped
  at ``max_windows`` entries, so keys built from client input cannot grow it
  without bound.
  """

  def __init__(
    self,
    redis_client: Redis | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
    max_windows: int = 50_000,
    sweep_interval: float = 1.0,
    key_prefix: str = "envvault:rl:",
  ) -> None:
    self._redis = redis_client
    self._clock = clock
    self._max_windows = max_windows
    self._sweep_interval = sweep_interval
    self._key_prefix = key_prefix
    self._lock = Lock()
    self._windows: dict[str, _Window] = {}
    self._next_sweep = 0.0

  @property
  def local_window_count(self) -> int:
    return len(self._windows)

  async def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    """Count one attempt against ``key``. Returns (allowed, retry_after_seconds)."""
    if self._redis is not None:
      try:
        return await self._hit_redis(key, limit=limit, window_seconds=window_seconds)
      except (RedisError, OSError) as exc:
        logger.warning("rate limiter falling back to local counters: {}", type(exc).__name__)
    return self._hit_local(key, limit=limit, window_seconds=window_seconds)

  async def _hit_redis(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    rk = f"{self._key_prefix}{key}"
    async with self._redis.pipeline(transaction=True) as pipe:
      pipe.incr(rk)
      pipe.ttl(rk)
      count, ttl = await pipe.execute()
    if int(ttl) < 0:
      # first hit of the window, or a counter left without expiry
      await self._redis.expire(rk, window_seconds)
      ttl = window_seconds
    if int(count) > limit:
      return False, max(1, int(ttl))
    return True, 0

  def _hit_local(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    now = self._clock()
    with self._lock:
      self._sweep(now)
      w = self._windows.get(key)
      if w is None or now >= w.ends_at:
        self._windows.pop(key, None)
        self._windows[key] = _Window(ends_at=now + window_seconds, count=1)
        self._trim()
        return True, 0
      if w.count >= limit:
        return False, max(1, int(w.ends_at - now))
      w.count += 1
      return True, 0

  def _sweep(self, now: float) -> None:
    if now < self._next_sweep:
      return
    closed = [k for k, w in self._windows.items() if now >= w.ends_at]
    for k in closed:
      del self._windows[k]
    self._next_sweep = now + self._sweep_interval

  def _trim(self) -> None:
    # dict order is insertion order, and a reopened window is re-inserted,
    # so the front holds the oldest windows
    while len(self._windows) > self._max_windows:
      del self._windows[next(iter(self._windows))]

  async def reset_prefix(self, prefix: str) -> None:
    with self._lock:
      for k in [k for k in self._windows if k.startswith(prefix)]:
        del self._windows[k]
    if self._redis is not None:
      try:
        async for rk in self._redis.scan_iter(match=f"{self._key_prefix}{prefix}*"):
          await self._redis.delete(rk)
      except (RedisError, OSError) as exc:
        logger.warning("rate limiter could not clear redis counters: {}", type(exc).__name__)

  async def close(self) -> None:
    if self._redis is not None:
      await self._redis.aclose()
