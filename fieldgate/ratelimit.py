"""Per-caller rate limiting for field access request submission.

Call sites only see BaseRateLimiter. The concrete class comes from
settings.FIELD_REQUEST_RATE_LIMITER, so the in-process limiter can be
swapped for the cache-backed one (shared by all workers) without touching
the lifecycle code.

Limits are advisory: losing the in-memory counters on restart is fine.
The cache-backed limiter counts through django-ratelimit, which also
throttles login.
"""
import logging
import threading
import time
from collections import namedtuple

from django.conf import settings
from django.core.cache import cache
from django.utils.module_loading import import_string
from django_ratelimit.core import get_usage

logger = logging.getLogger(__name__)

RateLimitResult = namedtuple("RateLimitResult", ["allowed", "remaining", "reset_at"])

_limiter = None


class BaseRateLimiter:
    """Fixed-window counter keyed by caller identity."""

    def __init__(self, max_requests=None, window_seconds=None, clock=time.time):
        self.max_requests = max_requests or settings.FIELD_REQUEST_RATE_LIMIT
        self.window_seconds = window_seconds or settings.FIELD_REQUEST_RATE_WINDOW
        self.clock = clock

    def check(self, identifier):
        """Count one request for identifier and return a RateLimitResult."""
        raise NotImplementedError

    def reset(self, identifier=None):
        """Forget one identifier's window, or every window when None."""
        raise NotImplementedError

    def cleanup(self):
        """Drop expired windows. Returns the number removed."""
        return 0


class InMemoryRateLimiter(BaseRateLimiter):
    """Process-local limiter with an optional background sweeper."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._windows = {}
        self._lock = threading.Lock()
        self._sweeper = None

    def check(self, identifier):
        now = self.clock()
        with self._lock:
            window = self._windows.get(identifier)
            if window is None or now > window["reset_at"]:
                reset_at = now + self.window_seconds
                self._windows[identifier] = {"count": 1, "reset_at": reset_at}
                return RateLimitResult(True, self.max_requests - 1, reset_at)

            if window["count"] >= self.max_requests:
                return RateLimitResult(False, 0, window["reset_at"])

            window["count"] += 1
            return RateLimitResult(
                True, self.max_requests - window["count"], window["reset_at"]
            )

    def reset(self, identifier=None):
        with self._lock:
            if identifier is None:
                self._windows.clear()
            else:
                self._windows.pop(identifier, None)

    def cleanup(self):
        now = self.clock()
        with self._lock:
            expired = [k for k, w in self._windows.items() if now > w["reset_at"]]
            for key in expired:
                del self._windows[key]
        if expired:
            logger.debug("Rate limiter cleanup removed %d window(s)", len(expired))
        return len(expired)

    def __len__(self):
        return len(self._windows)

    def start_sweeper(self, interval):
        """Run cleanup() every `interval` seconds on a daemon timer."""
        if interval <= 0 or self._sweeper is not None:
            return

        def _sweep():
            try:
                self.cleanup()
            except Exception:
                logger.exception("Rate limiter cleanup failed")
            self._sweeper = None
            self.start_sweeper(interval)

        self._sweeper = threading.Timer(interval, _sweep)
        self._sweeper.daemon = True
        self._sweeper.start()

    def stop_sweeper(self):
        if self._sweeper is not None:
            self._sweeper.cancel()
            self._sweeper = None


class CacheRateLimiter(BaseRateLimiter):
    """Limiter on django-ratelimit's cache counters, shared across workers.

    Windows expire through the cache TTL, so cleanup() has nothing to do.
    django-ratelimit keys its windows on wall-clock time; the injected clock
    only anchors reset_at. reset() bumps a generation number that is part of
    the counted key, since the library's cache keys are hashed and cannot be
    deleted by identifier.
    """

    group = "fieldgate.field_request"
    key_prefix = "field_request_rate"

    @property
    def rate(self):
        return f"{self.max_requests}/{self.window_seconds}s"

    def _generation(self, name):
        return cache.get(f"{self.key_prefix}:gen:{name}", 0)

    def _bump(self, name):
        key = f"{self.key_prefix}:gen:{name}"
        if not cache.add(key, 1, None):
            try:
                cache.incr(key)
            except ValueError:
                cache.set(key, 1, None)

    def check(self, identifier):
        value = f"{self._generation('*')}:{identifier}:{self._generation(identifier)}"
        usage = get_usage(
            None,
            group=self.group,
            key=lambda group, request: value,
            rate=self.rate,
            increment=True,
        )
        now = self.clock()
        if usage is None:
            # RATELIMIT_ENABLE is off
            return RateLimitResult(True, self.max_requests, now + self.window_seconds)

        reset_at = now + max(usage["time_left"], 0)
        if usage["should_limit"]:
            return RateLimitResult(False, 0, reset_at)
        return RateLimitResult(True, max(0, usage["limit"] - usage["count"]), reset_at)

    def reset(self, identifier=None):
        self._bump("*" if identifier is None else identifier)


def get_rate_limiter():
    """Return the process-wide limiter configured in settings."""
    global _limiter
    if _limiter is None:
        limiter_class = import_string(settings.FIELD_REQUEST_RATE_LIMITER)
        _limiter = limiter_class()
        if hasattr(_limiter, "start_sweeper"):
            _limiter.start_sweeper(settings.RATE_LIMIT_CLEANUP_INTERVAL)
    return _limiter


def reset_rate_limiter():
    """Discard the process-wide limiter (used by tests and settings changes)."""
    global _limiter
    if _limiter is not None and hasattr(_limiter, "stop_sweeper"):
        _limiter.stop_sweeper()
    _limiter = None
