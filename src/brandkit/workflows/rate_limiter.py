"""Fixed-window request limiter backed by an expiring key-value store.

Counts live under ``rate_limit:<identity>:<window_start_ms>`` with a TTL
that ends with the window, so old windows disappear on their own. Windows
are aligned to multiples of the window size; a client can therefore spend
its allowance at the end of one window and again at the start of the next.

The read-modify-write is not atomic. Concurrent requests from one identity
in one window can overshoot the limit slightly; that slack is accepted
rather than paying for a lock on every request.
"""

from __future__ import annotations

import logging
import math
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, Tuple, Union

import redis

from ..core.keys import K_LIMITED, K_REMAINING, K_RESET_EPOCH_MS
from .brand_config import RATE_LIMIT_KEY_PREFIX, env_float, rate_limit_max_requests, rate_limit_window_ms

logger = logging.getLogger(__name__)

__all__ = [
    "CounterStore",
    "InMemoryStore",
    "build_redis_store",
    "RateLimitResult",
    "RateLimiter",
    "check_rate_limit",
    "now_ms",
]


class CounterStore(Protocol):
    """The subset of the redis-py client API the limiter relies on."""

    def get(self, name: str) -> Optional[Union[bytes, str]]: ...

    def set(self, name: str, value: Any, ex: Optional[int] = None) -> Any: ...

    def delete(self, *names: str) -> Any: ...


def now_ms() -> int:
    return int(time.time() * 1000)


class InMemoryStore:
    """Process-local stand-in for redis with read-through expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(name)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._data[name]
                return None
            return value

    def set(self, name: str, value: Any, ex: Optional[int] = None) -> bool:
        now = self._clock()
        expires_at = now + ex if ex else None
        with self._lock:
            # Window keys are never read again once expired.
            stale = [key for key, (_, exp) in self._data.items() if exp is not None and now >= exp]
            for key in stale:
                del self._data[key]
            self._data[name] = (str(value), expires_at)
        return True

    def delete(self, *names: str) -> int:
        removed = 0
        with self._lock:
            for name in names:
                if self._data.pop(name, None) is not None:
                    removed += 1
        return removed


def build_redis_store(url: Optional[str] = None) -> Optional[redis.Redis]:
    """Redis client from ``url`` or ``BRANDKIT_REDIS_URL``; None when unset."""

    target = url or os.getenv("BRANDKIT_REDIS_URL")
    if not target:
        return None
    timeout = env_float("BRANDKIT_REDIS_TIMEOUT", 2.0)
    return redis.Redis.from_url(
        target,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        decode_responses=True,
    )


@dataclass(frozen=True)
class RateLimitResult:
    limited: bool
    remaining: int
    reset_epoch_ms: int
    limit: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            K_LIMITED: self.limited,
            K_REMAINING: self.remaining,
            K_RESET_EPOCH_MS: self.reset_epoch_ms,
        }

    def to_headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_epoch_ms // 1000),
        }


def _parse_count(raw: Optional[Union[bytes, str]]) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bytes):
        raw = raw.decode("ascii", errors="ignore")
    return int(str(raw).strip() or 0)


class RateLimiter:
    """Per-identity request counter over fixed, aligned time windows."""

    def __init__(
        self,
        store: CounterStore,
        *,
        max_requests: Optional[int] = None,
        window_ms: Optional[int] = None,
        key_prefix: str = RATE_LIMIT_KEY_PREFIX,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self.max_requests = max_requests if max_requests is not None else rate_limit_max_requests()
        self.window_ms = window_ms if window_ms is not None else rate_limit_window_ms()
        self.key_prefix = key_prefix
        self.clock = clock

    def window_start(self, now: int) -> int:
        return (now // self.window_ms) * self.window_ms

    def key_for(self, identity: str, window_start: int) -> str:
        return f"{self.key_prefix}{identity}:{window_start}"

    def _result(self, limited: bool, remaining: int, reset: int) -> RateLimitResult:
        return RateLimitResult(limited=limited, remaining=remaining, reset_epoch_ms=reset, limit=self.max_requests)

    def check_and_increment(self, identity: str) -> RateLimitResult:
        """Count one request for ``identity`` unless its window is exhausted.

        A request without an identity is refused. Store failures allow the
        request through and are logged.
        """

        now = self.clock()
        start = self.window_start(now)
        reset = start + self.window_ms
        if not identity:
            return self._result(True, 0, reset)
        key = self.key_for(identity, start)
        try:
            current = _parse_count(self.store.get(key))
            if current >= self.max_requests:
                return self._result(True, 0, reset)
            new_count = current + 1
            ttl = max(1, math.ceil((reset - now) / 1000))
            self.store.set(key, str(new_count), ex=ttl)
        except Exception as exc:
            logger.warning("rate limit store unavailable for %s; allowing request: %s", key, exc)
            return self._result(False, self.max_requests - 1, reset)
        return self._result(False, self.max_requests - new_count, reset)

    def status(self, identity: str) -> RateLimitResult:
        """Current standing for ``identity`` without counting a request."""

        now = self.clock()
        start = self.window_start(now)
        reset = start + self.window_ms
        try:
            current = _parse_count(self.store.get(self.key_for(identity, start)))
        except Exception as exc:
            logger.warning("rate limit status unavailable for %s: %s", identity, exc)
            return self._result(False, self.max_requests, reset)
        return self._result(current >= self.max_requests, max(0, self.max_requests - current), reset)

    def clear(self, identity: str) -> bool:
        """Forget the current window's count for ``identity``."""

        start = self.window_start(self.clock())
        try:
            self.store.delete(self.key_for(identity, start))
        except Exception as exc:
            logger.warning("rate limit clear failed for %s: %s", identity, exc)
            return False
        return True


def check_rate_limit(identity: str, limiter: RateLimiter) -> RateLimitResult:
    return limiter.check_and_increment(identity)
