"""In-memory collaborators for the onboarding store, reconciler and flow."""

import asyncio

from smarttherapy.onboarding.gateway import SubmissionError
from smarttherapy.onboarding.steps import OnboardingStep, derive_step
from smarttherapy.schemas.onboarding import (
    BillingCycle,
    ClinicFormData,
    OnboardingStatus,
    PaymentData,
    PaymentMethod,
    SubscriptionData,
)

CLINIC = ClinicFormData(
    name="Klinik Sehat",
    address="Jl. Merdeka No. 10, Jakarta",
    phone="+62 21 555 0100",
    email="klinik@example.com",
)
SUBSCRIPTION = SubscriptionData(tier_code="alpha", billing_cycle=BillingCycle.MONTHLY, amount=100_000)
PAYMENT = PaymentData(payment_method=PaymentMethod.BANK_TRANSFER, amount=100_000, transaction_id="TX-1")


def status_for(step: OnboardingStep) -> OnboardingStatus:
    index = ["clinic_info", "subscription", "payment", "complete"].index(step.value)
    return OnboardingStatus(
        needs_onboarding=step != OnboardingStep.COMPLETE,
        has_clinic=index >= 1,
        has_active_subscription=index >= 2,
        payment_confirmed=index >= 3,
        current_step=step,
    )


class FakeBackend:
    """Plays both the gateway and the eligibility provider."""

    def __init__(self):
        self.has_clinic = False
        self.has_subscription = False
        self.payment_confirmed = False
        self.completed = False
        self.calls: list[str] = []
        self.fail: dict[str, Exception] = {}
        self.fetch_calls = 0
        self.release_fetch: asyncio.Event | None = None
        self.gate: asyncio.Event | None = None

    @property
    def step(self) -> OnboardingStep:
        return derive_step(self.has_clinic, self.has_subscription, self.payment_confirmed)

    def _status(self) -> OnboardingStatus:
        return status_for(self.step)

    async def _run(self, name: str) -> None:
        self.calls.append(name)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if name in self.fail:
            raise self.fail[name]

    async def submit_clinic_data(self, data):
        await self._run("clinic")
        self.has_clinic = True
        return self._status()

    async def submit_subscription(self, data):
        await self._run("subscription")
        if not self.has_clinic:
            raise SubmissionError("Must complete clinic setup first")
        self.has_subscription = True
        return self._status()

    async def submit_payment(self, data):
        await self._run("payment")
        self.payment_confirmed = True
        return self._status()

    async def complete_onboarding(self):
        await self._run("complete")
        if self.step != OnboardingStep.COMPLETE:
            raise SubmissionError("Must complete all onboarding steps first")
        self.completed = True
        return self._status()

    async def fetch_status(self):
        self.fetch_calls += 1
        if self.release_fetch is not None:
            await self.release_fetch.wait()
        if "fetch" in self.fail:
            raise self.fail["fetch"]
        return self._status()
