"""Keeps the stored wizard step consistent with server truth.

The stored step can go stale: a reload after days, another tab, an admin
deleting the clinic mid-flow.  `reconcile()` fetches the step the server
facts support and:

  - local == server                → in_sync, nothing changes
  - local complete, server is not  → reset: wipe the store, then move to
                                     the server step
  - any other difference           → corrected: move to the server step

Only one fetch runs at a time; a trigger arriving while one is running is
skipped rather than queued.  A fetched status is discarded when a
submission is in flight or the store moved while it was being fetched.
`start()` runs reconciliation every `interval` seconds until `stop()`.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Awaitable, Callable

from smarttherapy.config import settings
from smarttherapy.onboarding.gateway import EligibilityProvider
from smarttherapy.onboarding.steps import FINAL_STEP, is_ahead_of
from smarttherapy.onboarding.store import OnboardingStore
from smarttherapy.schemas.onboarding import OnboardingStatus

logger = logging.getLogger("smarttherapy.onboarding.reconciler")


class ReconcileOutcome(str, enum.Enum):
    IN_SYNC = "in_sync"
    CORRECTED = "corrected"
    RESET = "reset"
    SKIPPED = "skipped"


class StepReconciler:
    def __init__(
        self,
        store: OnboardingStore,
        eligibility: EligibilityProvider,
        *,
        interval: float = settings.onboarding_reconcile_interval_seconds,
        before_check: Callable[[], Awaitable[bool]] | None = None,
        on_change: Callable[[ReconcileOutcome], Awaitable[None]] | None = None,
    ):
        self.store = store
        self.interval = interval
        self._eligibility = eligibility
        self._before_check = before_check
        self._on_change = on_change
        self._is_validating = False
        self._task: asyncio.Task | None = None
        self.last_status: OnboardingStatus | None = None

    @property
    def is_validating(self) -> bool:
        return self._is_validating

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def apply(self, status: OnboardingStatus) -> ReconcileOutcome:
        """Align the store with an already fetched server status."""
        self.last_status = status
        if self.store.is_loading:
            # The status may predate the submission that is still running.
            logger.debug("Submission in flight, not applying server status")
            return ReconcileOutcome.SKIPPED

        server_step = status.current_step
        local_step = self.store.current_step

        if local_step == server_step:
            if is_ahead_of(self.store.furthest_step, server_step):
                self.store.furthest_step = server_step
            return ReconcileOutcome.IN_SYNC

        if is_ahead_of(local_step, server_step):
            if local_step == FINAL_STEP:
                logger.warning(
                    "Stored onboarding step is complete but server reports %s; resetting",
                    server_step.value,
                )
                self.store.reset_onboarding()
                self.store.set_step(server_step)
                return ReconcileOutcome.RESET
            logger.warning(
                "Stored onboarding step %s is ahead of server step %s",
                local_step.value,
                server_step.value,
            )

        self.store.set_step(server_step)
        return ReconcileOutcome.CORRECTED

    async def reconcile(self) -> ReconcileOutcome:
        if self._is_validating:
            logger.debug("Reconciliation already running, skipping")
            return ReconcileOutcome.SKIPPED

        self._is_validating = True
        revision = self.store.revision
        try:
            status = await self._eligibility.fetch_status()
        except Exception:
            logger.exception("Could not fetch onboarding status")
            return ReconcileOutcome.SKIPPED
        finally:
            self._is_validating = False

        if self.store.revision != revision:
            logger.debug("Store moved during the status fetch, discarding it")
            return ReconcileOutcome.SKIPPED
        return self.apply(status)

    # ── Periodic task ────────────────────────────────────────

    async def _tick(self) -> None:
        if self._before_check is not None and not await self._before_check():
            return
        outcome = await self.reconcile()
        if outcome in (ReconcileOutcome.CORRECTED, ReconcileOutcome.RESET) and self._on_change:
            await self._on_change(outcome)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._tick()
            except Exception:
                logger.exception("Unhandled error in onboarding reconciliation")

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.debug("Onboarding reconciliation started (every %.0fs)", self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Onboarding reconciliation stopped")

    async def __aenter__(self) -> "StepReconciler":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
