"""Timed redirect to the portal after the payment step.

Once the store reaches `complete` with `just_completed_subscription` set,
the user sees the success screen for a few seconds, then the flow is
finalized and the user is sent to the portal.  The pending timer belongs
to whoever armed it and must be cancelled when that owner goes away;
a timer firing after unmount would redirect a user who already left.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from smarttherapy.config import settings
from smarttherapy.onboarding.steps import OnboardingStep
from smarttherapy.onboarding.store import OnboardingStore

logger = logging.getLogger("smarttherapy.onboarding.completion")

RedirectCallback = Callable[[str], Awaitable[None]]


class CompletionTimer:
    def __init__(
        self,
        store: OnboardingStore,
        on_redirect: RedirectCallback,
        *,
        delay: float = settings.onboarding_completion_delay_seconds,
        portal_url: str = settings.portal_path,
    ):
        self.store = store
        self.delay = delay
        self.portal_url = portal_url
        self._on_redirect = on_redirect
        self._task: asyncio.Task | None = None
        self._firing = False

    @property
    def should_fire(self) -> bool:
        return (
            self.store.current_step == OnboardingStep.COMPLETE
            and self.store.just_completed_subscription
        )

    @property
    def is_pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self) -> bool:
        """Start the countdown if the store calls for it. Returns True if pending."""
        if self.is_pending:
            return True
        if not self.should_fire:
            return False
        self._task = asyncio.create_task(self._fire())
        logger.debug("Portal redirect in %.1fs", self.delay)
        return True

    async def _fire(self) -> None:
        await asyncio.sleep(self.delay)
        self._firing = True

        ok = await self.store.complete_onboarding()
        if not ok:
            # The portal re-checks onboarding itself; still send the user on.
            logger.warning("Completing onboarding failed: %s", self.store.error)
        self.store.clear_just_completed_subscription()

        try:
            await self._on_redirect(self.portal_url)
        finally:
            self._firing = False

    async def cancel(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Portal redirect cancelled")

    async def disarm_if_stale(self) -> None:
        """Cancel a pending redirect whose condition no longer holds."""
        if self.is_pending and not self._firing and not self.should_fire:
            await self.cancel()

    async def wait(self) -> None:
        if self._task is not None:
            await self._task
