"""Onboarding wizard state container.

An OnboardingStore is built per user session with an explicit gateway;
there is no module-level instance.  It holds:

  current_step                 wizard position (single source of truth
                               for the client's view)
  furthest_step                furthest step a submission or the server
                               has confirmed; caps next_step
  revision                     bumped on every step change or accepted
                               submission
  data                         payloads of the steps submitted so far
  is_loading / error           status of the request in flight
  is_complete                  completion was acknowledged by the server
  just_completed_subscription  payment finished in this session; arms the
                               timed redirect to the portal

Transitions:

  submit_clinic_data   clinic_info  → subscription
  submit_subscription  subscription → payment
  submit_payment       payment      → complete (+ just_completed_subscription)
  next_step            forward, but never past furthest_step
  prev_step            one step back; no-op at clinic_info and complete
  set_step             resynchronize with server truth only
  reset_onboarding     back to clinic_info with empty data

Submissions never raise: failures land in `error` and the step stays put.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from smarttherapy.middleware.exceptions import SmartTherapyException
from smarttherapy.onboarding.gateway import OnboardingGateway, SubmissionError
from smarttherapy.onboarding.steps import (
    FINAL_STEP,
    FIRST_STEP,
    OnboardingStep,
    next_step as step_after,
    previous_step,
    step_index,
)
from smarttherapy.schemas.onboarding import (
    ClinicFormData,
    OnboardingData,
    OnboardingStateOut,
    OnboardingStatus,
    PaymentData,
    SubscriptionData,
)

logger = logging.getLogger("smarttherapy.onboarding.store")

DEFAULT_ERRORS = {
    "clinic": "Failed to submit clinic data",
    "subscription": "Failed to select subscription",
    "payment": "Failed to process payment",
    "complete": "Failed to complete onboarding",
}

STEP_NAMES = {
    OnboardingStep.CLINIC_INFO: "Clinic information",
    OnboardingStep.SUBSCRIPTION: "Subscription",
    OnboardingStep.PAYMENT: "Payment",
    OnboardingStep.COMPLETE: "Complete",
}


class OnboardingStore:
    def __init__(
        self,
        gateway: OnboardingGateway,
        *,
        current_step: OnboardingStep = FIRST_STEP,
        furthest_step: OnboardingStep | None = None,
        data: OnboardingData | None = None,
        error: str | None = None,
        is_complete: bool = False,
        just_completed_subscription: bool = False,
    ):
        self._gateway = gateway
        self.current_step = current_step
        if furthest_step is None or step_index(furthest_step) < step_index(current_step):
            furthest_step = current_step
        self.furthest_step = furthest_step
        self.revision = 0
        self.data = data or OnboardingData()
        self.is_loading = False
        self.error = error
        self.is_complete = is_complete
        self.just_completed_subscription = just_completed_subscription
        self.last_status: OnboardingStatus | None = None

    # ── Navigation ───────────────────────────────────────────

    @property
    def can_go_back(self) -> bool:
        return self.current_step not in (FIRST_STEP, FINAL_STEP)

    @property
    def can_go_forward(self) -> bool:
        return step_index(self.current_step) < step_index(self.furthest_step)

    def _move_to(self, step: OnboardingStep) -> None:
        self.current_step = step
        self.revision += 1

    def _confirm(self, step: OnboardingStep) -> None:
        """Record that the backend accepted everything before `step`."""
        if step_index(step) > step_index(self.furthest_step):
            self.furthest_step = step
        self._move_to(step)

    def set_step(self, step: OnboardingStep) -> None:
        """Adopt the server's step; it is also the furthest confirmed step."""
        if step != self.current_step:
            logger.info("Onboarding step set: %s → %s", self.current_step.value, step.value)
        self.furthest_step = step
        self._move_to(step)

    def next_step(self) -> None:
        """Move forward again over a step that was already submitted."""
        if not self.can_go_forward:
            return
        self._move_to(step_after(self.current_step))

    def prev_step(self) -> None:
        if not self.can_go_back:
            return
        self._move_to(previous_step(self.current_step))

    # ── Draft data ───────────────────────────────────────────

    def update_clinic_data(self, clinic: ClinicFormData) -> None:
        self.data = self.data.model_copy(update={"clinic": clinic})

    def update_subscription_data(self, subscription: SubscriptionData) -> None:
        self.data = self.data.model_copy(update={"subscription": subscription})

    def update_payment_data(self, payment: PaymentData) -> None:
        self.data = self.data.model_copy(update={"payment": payment})

    # ── Submissions ──────────────────────────────────────────

    async def _submit(
        self,
        label: str,
        expected_step: OnboardingStep | None,
        call: Callable[[], Awaitable[OnboardingStatus]],
    ) -> bool:
        if self.is_loading:
            logger.warning("Ignoring %s submission: a submission is already in flight", label)
            return False
        if expected_step is not None and self.current_step != expected_step:
            self.error = f"Complete {STEP_NAMES[self.current_step]} first"
            return False

        self.is_loading = True
        self.error = None
        try:
            self.last_status = await call()
        except (SubmissionError, SmartTherapyException) as exc:
            logger.warning("Onboarding %s submission rejected: %s", label, exc.message)
            self.error = exc.message or DEFAULT_ERRORS[label]
            return False
        except Exception:
            logger.exception("Onboarding %s submission failed", label)
            self.error = DEFAULT_ERRORS[label]
            return False
        finally:
            self.is_loading = False
        return True

    async def submit_clinic_data(self, clinic: ClinicFormData) -> bool:
        ok = await self._submit(
            "clinic",
            OnboardingStep.CLINIC_INFO,
            lambda: self._gateway.submit_clinic_data(clinic),
        )
        if ok:
            self.update_clinic_data(clinic)
            self._confirm(OnboardingStep.SUBSCRIPTION)
        return ok

    async def submit_subscription(self, subscription: SubscriptionData) -> bool:
        ok = await self._submit(
            "subscription",
            OnboardingStep.SUBSCRIPTION,
            lambda: self._gateway.submit_subscription(subscription),
        )
        if ok:
            self.update_subscription_data(subscription)
            self._confirm(OnboardingStep.PAYMENT)
        return ok

    async def submit_payment(self, payment: PaymentData) -> bool:
        ok = await self._submit(
            "payment",
            OnboardingStep.PAYMENT,
            lambda: self._gateway.submit_payment(payment),
        )
        if ok:
            self.update_payment_data(payment)
            self._confirm(OnboardingStep.COMPLETE)
            self.just_completed_subscription = True
        return ok

    async def complete_onboarding(self) -> bool:
        ok = await self._submit("complete", None, self._gateway.complete_onboarding)
        if ok:
            self.is_complete = True
            self._confirm(OnboardingStep.COMPLETE)
        return ok

    # ── Resets ───────────────────────────────────────────────

    def reset_onboarding(self) -> None:
        logger.info("Onboarding state reset (was %s)", self.current_step.value)
        self.furthest_step = FIRST_STEP
        self._move_to(FIRST_STEP)
        self.data = OnboardingData()
        self.is_loading = False
        self.error = None
        self.is_complete = False
        self.just_completed_subscription = False

    def clear_error(self) -> None:
        self.error = None

    def clear_just_completed_subscription(self) -> None:
        self.just_completed_subscription = False

    # ── Persistence ──────────────────────────────────────────

    def snapshot(self) -> dict[str, Any]:
        """Persistable view; `is_loading` is transient and never stored."""
        return {
            "current_step": self.current_step.value,
            "furthest_step": self.furthest_step.value,
            "data": self.data.model_dump(mode="json", exclude_none=True),
            "error": self.error,
            "is_complete": self.is_complete,
            "just_completed_subscription": self.just_completed_subscription,
        }

    @classmethod
    def from_snapshot(
        cls, gateway: OnboardingGateway, snapshot: dict[str, Any]
    ) -> "OnboardingStore":
        try:
            step = OnboardingStep(snapshot.get("current_step") or FIRST_STEP)
        except ValueError:
            logger.warning("Discarding unknown stored step %r", snapshot.get("current_step"))
            step = FIRST_STEP
        try:
            furthest = OnboardingStep(snapshot.get("furthest_step") or step)
        except ValueError:
            furthest = step
        return cls(
            gateway,
            current_step=step,
            furthest_step=furthest,
            data=OnboardingData.model_validate(snapshot.get("data") or {}),
            error=snapshot.get("error"),
            is_complete=bool(snapshot.get("is_complete")),
            just_completed_subscription=bool(snapshot.get("just_completed_subscription")),
        )

    def to_schema(self, redirect_to: str | None = None) -> OnboardingStateOut:
        return OnboardingStateOut(
            current_step=self.current_step,
            data=self.data,
            is_loading=self.is_loading,
            error=self.error,
            is_complete=self.is_complete,
            just_completed_subscription=self.just_completed_subscription,
            can_go_back=self.can_go_back,
            can_go_forward=self.can_go_forward,
            redirect_to=redirect_to,
        )
