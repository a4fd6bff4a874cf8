"""Lifecycle owner for one user's onboarding wizard.

OnboardingFlow ties the store to its background work for as long as the
wizard is open:

  mount()    reconcile once with server truth, start the periodic
             reconciliation, arm the portal redirect if payment just
             finished
  unmount()  stop the periodic task and cancel a pending redirect

Use it as `async with OnboardingFlow(...) as flow:` so that teardown
always runs.  After unmount, late results (a submission that was already
in flight) do not re-arm timers.
"""

from __future__ import annotations

import logging

from smarttherapy.auth.monitor import AuthSessionMonitor
from smarttherapy.config import Settings, settings as default_settings
from smarttherapy.onboarding.completion import CompletionTimer, RedirectCallback
from smarttherapy.onboarding.gateway import EligibilityProvider
from smarttherapy.onboarding.reconciler import ReconcileOutcome, StepReconciler
from smarttherapy.onboarding.steps import OnboardingStep
from smarttherapy.onboarding.store import OnboardingStore
from smarttherapy.schemas.onboarding import (
    ClinicFormData,
    OnboardingStatus,
    PaymentData,
    SubscriptionData,
)

logger = logging.getLogger("smarttherapy.onboarding.flow")

# Entering these steps re-checks server truth before the user fills them in.
RECHECK_ON_ENTRY = frozenset({OnboardingStep.SUBSCRIPTION, OnboardingStep.PAYMENT})


class OnboardingFlow:
    def __init__(
        self,
        store: OnboardingStore,
        eligibility: EligibilityProvider,
        auth_monitor: AuthSessionMonitor,
        on_redirect: RedirectCallback,
        settings: Settings = default_settings,
    ):
        self.store = store
        self.auth_monitor = auth_monitor
        self.reconciler = StepReconciler(
            store,
            eligibility,
            interval=settings.onboarding_reconcile_interval_seconds,
            before_check=self._ensure_fresh_auth,
            on_change=self._after_reconcile,
        )
        self.completion = CompletionTimer(
            store,
            on_redirect,
            delay=settings.onboarding_completion_delay_seconds,
            portal_url=settings.portal_path,
        )
        self.is_mounted = False

    @property
    def last_status(self) -> OnboardingStatus | None:
        return self.reconciler.last_status

    # ── Lifecycle ────────────────────────────────────────────

    async def mount(self) -> ReconcileOutcome:
        self.is_mounted = True
        outcome = await self.reconciler.reconcile()
        self.reconciler.start()
        await self._sync_completion()
        return outcome

    async def unmount(self) -> None:
        if not self.is_mounted:
            return
        self.is_mounted = False
        await self.reconciler.stop()
        await self.completion.cancel()

    async def __aenter__(self) -> "OnboardingFlow":
        await self.mount()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.unmount()

    # ── Hooks ────────────────────────────────────────────────

    async def _ensure_fresh_auth(self) -> bool:
        if not self.auth_monitor.is_data_stale():
            return True
        logger.debug("Auth data is stale, revalidating before reconciliation")
        return await self.auth_monitor.force_auth_validation()

    async def _after_reconcile(self, outcome: ReconcileOutcome) -> None:
        logger.info("Onboarding step %s to %s", outcome.value, self.store.current_step.value)
        await self._sync_completion()

    async def _sync_completion(self) -> None:
        if not self.is_mounted:
            return
        await self.completion.disarm_if_stale()
        self.completion.arm()

    async def on_step_entered(self, step: OnboardingStep) -> ReconcileOutcome | None:
        if not self.is_mounted or step not in RECHECK_ON_ENTRY:
            return None
        outcome = await self.reconciler.reconcile()
        await self._sync_completion()
        return outcome

    # ── User actions ─────────────────────────────────────────

    async def submit_clinic_data(self, data: ClinicFormData) -> bool:
        ok = await self.store.submit_clinic_data(data)
        if ok:
            await self.on_step_entered(self.store.current_step)
        return ok

    async def submit_subscription(self, data: SubscriptionData) -> bool:
        ok = await self.store.submit_subscription(data)
        if ok:
            await self.on_step_entered(self.store.current_step)
        return ok

    async def submit_payment(self, data: PaymentData) -> bool:
        ok = await self.store.submit_payment(data)
        await self._sync_completion()
        return ok

    async def go_back(self) -> None:
        self.store.prev_step()
        await self.on_step_entered(self.store.current_step)
