"""In-memory rate limiters for admin API requests and login attempts.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: per-IP state lives in a StripedLockMap, so each update is
  atomic for its key without serializing unrelated IPs.
- Bounded: records that can no longer affect a decision are swept at most
  once per window, so idle IPs do not accumulate.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from portfolio_api.adapters.rate_limit.base import (
    AbstractLoginLimiter,
    AbstractRateLimiter,
    LoginCheck,
    RateLimitResult,
)
from portfolio_api.adapters.rate_limit.striped import StripedLockMap


class _SweepSchedule:
    """Decides when a limiter should sweep; at most one caller wins per interval."""

    def __init__(self, interval_seconds: float) -> None:
        self._interval = interval_seconds
        self._last: float | None = None
        self._lock = threading.Lock()

    def due(self, now: float) -> bool:
        with self._lock:
            if self._last is None:
                self._last = now
                return False
            if now - self._last < self._interval:
                return False
            self._last = now
            return True


@dataclass
class ApiRateRecord:
    count: int
    reset_time: float


@dataclass
class LoginAttemptRecord:
    count: int
    last_attempt: float
    locked_until: float | None = None


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per key.

    The window opens with the first request seen for a key and closes
    ``window_seconds`` later; the next request after that opens a new one.
    Bursts straddling a boundary can briefly reach twice the limit.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
        state: StripedLockMap[ApiRateRecord] | None = None,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed requests per window.
            window_seconds: Size of the fixed window in seconds.
            clock: Time source function returning UNIX time in seconds.
            state: Concurrent map holding per-key records.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._state: StripedLockMap[ApiRateRecord] = state if state is not None else StripedLockMap()
        self._sweeps = _SweepSchedule(window_seconds)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def _build_allowed_result(self, *, remaining: int, reset_at: float) -> RateLimitResult:
        """Build a RateLimitResult for an allowed request."""
        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=remaining,
            reset_at=int(math.ceil(reset_at)),
            retry_after_seconds=None,
        )

    def _build_blocked_result(self, *, now: float, reset_at: float) -> RateLimitResult:
        """Build a RateLimitResult for a blocked request."""
        retry_after = max(0, int(math.ceil(reset_at - now)))
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=int(math.ceil(reset_at)),
            retry_after_seconds=retry_after,
        )

    def consume(self, key: str) -> RateLimitResult:
        """Count one request for ``key`` if its window has budget left.

        A blocked request leaves the record untouched.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()
        if self._sweeps.due(now):
            self.sweep(now)

        with self._state.locked(key) as records:
            record = records.get(key)

            if record is None or record.reset_time <= now:
                record = ApiRateRecord(count=1, reset_time=now + self._window_seconds)
                records[key] = record
                return self._build_allowed_result(
                    remaining=self._limit - 1, reset_at=record.reset_time
                )

            if record.count >= self._limit:
                return self._build_blocked_result(now=now, reset_at=record.reset_time)

            record.count += 1
            return self._build_allowed_result(
                remaining=self._limit - record.count, reset_at=record.reset_time
            )

    def sweep(self, now: float | None = None) -> int:
        """Drop records whose window has closed; return how many were removed."""
        now = self._clock() if now is None else now
        return self._state.sweep(lambda record: record.reset_time <= now)


class InMemoryLoginAttemptLimiter(AbstractLoginLimiter):
    """Sliding-window login attempt counter with lockout, keyed by client IP.

    An IP gets ``max_attempts`` attempts; the count starts over once the IP
    has been idle longer than ``attempt_window_seconds``. The attempt after
    the last allowed one locks the IP out for ``lockout_seconds``.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 5,
        attempt_window_seconds: int = 300,
        lockout_seconds: int = 900,
        clock: Callable[[], float] = time.time,
        state: StripedLockMap[LoginAttemptRecord] | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if attempt_window_seconds < 1:
            raise ValueError("attempt_window_seconds must be >= 1")
        if lockout_seconds < 1:
            raise ValueError("lockout_seconds must be >= 1")

        self._max_attempts = max_attempts
        self._attempt_window = attempt_window_seconds
        self._lockout = lockout_seconds
        self._clock = clock
        self._state: StripedLockMap[LoginAttemptRecord] = (
            state if state is not None else StripedLockMap()
        )
        self._sweeps = _SweepSchedule(attempt_window_seconds)

    def check_and_record_attempt(self, key: str) -> LoginCheck:
        now = self._clock()
        if self._sweeps.due(now):
            self.sweep(now)

        with self._state.locked(key) as records:
            record = records.get(key)

            if record is not None and record.locked_until is not None and record.locked_until > now:
                return LoginCheck(allowed=False, locked_until=record.locked_until)

            if record is None or now - record.last_attempt > self._attempt_window:
                records[key] = LoginAttemptRecord(count=1, last_attempt=now)
                return LoginCheck(allowed=True)

            if record.count >= self._max_attempts:
                record.locked_until = now + self._lockout
                return LoginCheck(allowed=False, locked_until=record.locked_until)

            record.count += 1
            record.last_attempt = now
            return LoginCheck(allowed=True)

    def record_failure(self, key: str) -> None:
        # Does not increment count: check_and_record_attempt already counted
        # this attempt on entry. Counting again here would lock after three
        # failures instead of allowing five and locking the sixth attempt.
        now = self._clock()
        with self._state.locked(key) as records:
            record = records.get(key)
            if record is not None:
                record.last_attempt = now

    def clear(self, key: str) -> None:
        self._state.pop(key)

    def sweep(self, now: float | None = None) -> int:
        """Drop records that are neither locked nor inside the attempt window.

        A dropped record is indistinguishable from one the next attempt would
        reset, so sweeping never changes a decision.
        """
        now = self._clock() if now is None else now

        def is_stale(record: LoginAttemptRecord) -> bool:
            locked = record.locked_until is not None and record.locked_until > now
            return not locked and now - record.last_attempt > self._attempt_window

        return self._state.sweep(is_stale)

    def snapshot(self, key: str) -> LoginAttemptRecord | None:
        """Return a copy of the record for ``key`` (for inspection)."""
        with self._state.locked(key) as records:
            record = records.get(key)
            if record is None:
                return None
            return LoginAttemptRecord(
                count=record.count,
                last_attempt=record.last_attempt,
                locked_until=record.locked_until,
            )
