"""Tracks how fresh a user's authenticated session data is.

A long-lived consumer (the onboarding flow) asks `is_data_stale()` before
relying on cached user facts and calls `force_auth_validation()` to
re-check them.  Concurrent callers share one in-flight validation, so a
mount-time check and a timer tick landing together hit the validator once.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

from smarttherapy.config import settings

logger = logging.getLogger("smarttherapy.auth")


class AuthSessionMonitor:
    def __init__(
        self,
        validator: Callable[[], Awaitable[bool]],
        stale_after: float = settings.auth_stale_after_seconds,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._validator = validator
        self._clock = clock
        self.stale_after = stale_after
        self.last_validated: float | None = None
        self.is_authenticated = True
        self._inflight: asyncio.Task | None = None

    @property
    def is_validating(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def is_data_stale(self) -> bool:
        if self.last_validated is None:
            return True
        return self._clock() - self.last_validated > self.stale_after

    def mark_validated(self) -> None:
        self.last_validated = self._clock()

    async def force_auth_validation(self) -> bool:
        """Validate now, or join the validation already running."""
        if not self.is_validating:
            self._inflight = asyncio.create_task(self._validate())
        # shield: one caller giving up must not cancel it for the others
        return await asyncio.shield(self._inflight)

    async def _validate(self) -> bool:
        try:
            ok = bool(await self._validator())
        except Exception:
            logger.exception("Auth validation failed")
            return False

        self.is_authenticated = ok
        if ok:
            self.mark_validated()
        else:
            logger.info("Auth validation rejected the current session")
        return ok

    async def close(self) -> None:
        if self.is_validating:
            self._inflight.cancel()
            try:
                await self._inflight
            except asyncio.CancelledError:
                pass
