"""
security/rate_limiter.py
-------------------------
Rate limiting middleware to prevent abuse.
Limits the number of messages a user can send within a time window.
"""

import time
from collections import defaultdict
from functools import wraps
from typing import Callable, Hashable

from telegram import Update
from telegram.ext import ContextTypes

from config import RATE_LIMIT_MESSAGES, RATE_LIMIT_WINDOW_SECONDS
from utils.logger import get_logger

logger = get_logger(__name__)


class SlidingWindowLimiter:
    """Allows at most ``limit`` events per key within the last ``window`` seconds."""

    def __init__(self, limit: int, window: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._events: dict[Hashable, list[float]] = defaultdict(list)

    def allow(self, key: Hashable) -> bool:
        """Record an event for ``key`` unless the limit is already reached."""
        now = self._clock()
        cutoff = now - self.window
        recent = [t for t in self._events[key] if t > cutoff]
        if len(recent) >= self.limit:
            self._events[key] = recent
            return False
        recent.append(now)
        self._events[key] = recent
        return True


_limiter = SlidingWindowLimiter(RATE_LIMIT_MESSAGES, RATE_LIMIT_WINDOW_SECONDS)


def rate_limited(func: Callable):
    """
    Decorator that enforces rate limiting per Telegram user.

    Configuration (via .env):
        RATE_LIMIT_MESSAGES: Max messages per window (default: 30).
        RATE_LIMIT_WINDOW_SECONDS: Window duration in seconds (default: 60).
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not _limiter.allow(user.id):
            logger.warning(f"⚠️ Rate limit hit for telegram user {user.id}")
            await update.message.reply_text("⚠️ Too many messages. Please wait a moment and try again.")
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
