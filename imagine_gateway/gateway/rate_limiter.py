"""Sliding-window rate limiter: named rules, one window per logical action.

Each rule ("image-generation", "chat", ...) keeps a list of request
timestamps per subject. On every check the samples older than the window are
pruned; the call is allowed only while the pruned count is below the rule's
maximum. Rejected calls are not recorded, so hammering a closed window does
not extend it.

``check`` never awaits, so under the asyncio event loop each check is an
atomic read-modify-write of its own sample list.
"""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING

from imagine_gateway.gateway.types import RateLimitDecision, RateLimitRule

if TYPE_CHECKING:
    from imagine_gateway.core.config import Settings

logger = logging.getLogger(__name__)

IMAGE_GENERATION = "image-generation"
CHAT = "chat"
IMAGE_DOWNLOAD = "image-download"

# Subjects idle for a full window are dropped at most this often
SWEEP_INTERVAL_SECONDS = 60.0


class SlidingWindowRateLimiter:
    """Named sliding-window throttle.

    Usage:
        limiter = SlidingWindowRateLimiter()
        limiter.register("image-generation", max_requests=10, window_seconds=60)

        decision = limiter.check("image-generation", subject_key=user_id)
        if not decision.allowed:
            ...  # decision.reset_in seconds until a slot frees up
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = SWEEP_INTERVAL_SECONDS):
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()
        self._rules: dict[str, RateLimitRule] = {}
        # (rule name, subject) -> timestamps, oldest first
        self._samples: dict[tuple[str, str], deque[float]] = {}

    def register(
        self,
        name: str,
        max_requests: int,
        window_seconds: float,
        message: str | None = None,
    ) -> RateLimitRule:
        """Register or replace a rule. Existing sample history is kept."""
        if max_requests < 0 or window_seconds <= 0:
            raise ValueError("max_requests must be >= 0 and window_seconds > 0")
        rule = RateLimitRule(name=name, max_requests=max_requests, window_seconds=window_seconds, message=message)
        self._rules[name] = rule
        return rule

    def get_rule(self, name: str) -> RateLimitRule | None:
        return self._rules.get(name)

    def _prune(self, samples: deque[float], now: float, window: float) -> None:
        cutoff = now - window
        while samples and samples[0] <= cutoff:
            samples.popleft()

    def check(self, name: str, subject_key: str | None = None) -> RateLimitDecision:
        """Check and, if allowed, record one request against ``name``.

        Unknown rules fail open: absence of a rule must not block functionality.
        """
        rule = self._rules.get(name)
        if rule is None:
            logger.warning("No rate limit rule registered for %s", name)
            return RateLimitDecision(allowed=True, remaining=-1, reset_in=0.0)

        now = self._clock()
        if now - self._last_sweep >= self._sweep_interval:
            self._sweep(now)

        key = (name, subject_key or name)
        samples = self._samples.setdefault(key, deque())
        self._prune(samples, now, rule.window_seconds)

        count = len(samples)
        reset_in = rule.window_seconds - (now - samples[0]) if samples else 0.0

        if count >= rule.max_requests:
            logger.warning(
                "Rate limit hit: %s (%d/%d), resets in %ds",
                name,
                count,
                rule.max_requests,
                math.ceil(reset_in),
                extra={"rule": name},
            )
            if not samples:
                del self._samples[key]
            return RateLimitDecision(allowed=False, remaining=0, reset_in=reset_in, message=rule.message)

        samples.append(now)
        return RateLimitDecision(allowed=True, remaining=rule.max_requests - count - 1, reset_in=reset_in)

    def _sweep(self, now: float) -> None:
        """Forget every subject whose samples have all left the window."""
        for key, samples in list(self._samples.items()):
            rule = self._rules.get(key[0])
            if rule is not None:
                self._prune(samples, now, rule.window_seconds)
            if not samples:
                del self._samples[key]
        self._last_sweep = now

    @property
    def tracked_subjects(self) -> int:
        return len(self._samples)

    def clear(self, subject_key: str) -> None:
        """Drop every rule's history for one subject (a rule name clears its anonymous history)."""
        for key in [k for k in self._samples if k[1] == subject_key]:
            del self._samples[key]

    def clear_all(self) -> None:
        self._samples.clear()

    def get_stats(self) -> dict[str, dict[str, int]]:
        """Current usage of each rule's anonymous (rule-wide) window."""
        now = self._clock()
        stats: dict[str, dict[str, int]] = {}
        for name, rule in self._rules.items():
            samples = self._samples.get((name, name), deque())
            current = sum(1 for ts in samples if now - ts < rule.window_seconds)
            stats[name] = {
                "current": current,
                "max": rule.max_requests,
                "remaining": max(0, rule.max_requests - current),
            }
        return stats


def build_default_rate_limiter(settings: Settings) -> SlidingWindowRateLimiter:
    """Limiter with the product's standard rules registered."""
    limiter = SlidingWindowRateLimiter()
    window = settings.rate_limit_window_seconds
    limiter.register(
        IMAGE_GENERATION,
        max_requests=settings.image_generation_rpm,
        window_seconds=window,
        message="Too many generation requests, please try again in a minute",
    )
    limiter.register(
        CHAT,
        max_requests=settings.chat_rpm,
        window_seconds=window,
        message="Too many chat requests, please try again later",
    )
    limiter.register(
        IMAGE_DOWNLOAD,
        max_requests=settings.image_download_rpm,
        window_seconds=window,
        message="Too many downloads, please try again later",
    )
    return limiter
