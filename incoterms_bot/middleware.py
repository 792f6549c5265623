"""Throttling middleware: per-user rate limit for messages and button presses.

Commands (messages starting with /) always pass through so a user can
always /start over. Dropped callback queries are answered so the
client's loading spinner stops.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from incoterms_bot.config import settings

logger = logging.getLogger(__name__)

# Purge stale users every 5 minutes
_CLEANUP_INTERVAL = 300


class ThrottleMiddleware(BaseMiddleware):
    def __init__(
        self,
        limit: int | None = None,
        window: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        self.limit = limit if limit is not None else settings.RATE_LIMIT_EVENTS
        self.window = window if window is not None else settings.RATE_LIMIT_SECONDS
        self._clock = clock
        self._events: Dict[int, list[float]] = {}
        self._last_cleanup: float = 0.0

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        if not isinstance(event, (Message, CallbackQuery)) or not event.from_user:
            return await handler(event, data)

        if isinstance(event, Message) and event.text and event.text.startswith("/"):
            return await handler(event, data)

        uid = event.from_user.id
        now = self._clock()

        if now - self._last_cleanup > _CLEANUP_INTERVAL:
            self._cleanup(now)
            self._last_cleanup = now

        timestamps = self._events.setdefault(uid, [])
        cutoff = now - self.window
        timestamps[:] = [t for t in timestamps if t > cutoff]
        if len(timestamps) >= self.limit:
            logger.warning("Throttled: user %d", uid)
            if isinstance(event, CallbackQuery):
                await event.answer("⏳ Too fast — please slow down.")
            return None
        timestamps.append(now)

        return await handler(event, data)

    def _cleanup(self, now: float) -> None:
        """Remove stale users to prevent memory leaks."""
        stale = [
            uid for uid, ts in self._events.items()
            if not ts or (now - ts[-1]) > self.window * 10
        ]
        for uid in stale:
            del self._events[uid]
