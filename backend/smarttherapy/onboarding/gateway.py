"""Collaborators the onboarding store talks to.

OnboardingGateway   submits step payloads (clinic, subscription, payment)
                    and finalizes the flow.
EligibilityProvider reports server truth: which step the stored facts
                    support.

ServiceGateway implements both in-process on top of services.onboarding,
bound to one request's database session and user.  Gateways raise
SubmissionError for any failure the store should show to the user.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from smarttherapy.middleware.exceptions import SmartTherapyException
from smarttherapy.models.user import User
from smarttherapy.schemas.onboarding import (
    ClinicFormData,
    OnboardingStatus,
    PaymentData,
    SubscriptionData,
)
from smarttherapy.services import onboarding as onboarding_service


class SubmissionError(Exception):
    """A step submission was rejected or could not be delivered."""

    def __init__(self, message: str, error_code: str = "SUBMISSION_FAILED"):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class OnboardingGateway(Protocol):
    async def submit_clinic_data(self, data: ClinicFormData) -> OnboardingStatus: ...

    async def submit_subscription(self, data: SubscriptionData) -> OnboardingStatus: ...

    async def submit_payment(self, data: PaymentData) -> OnboardingStatus: ...

    async def complete_onboarding(self) -> OnboardingStatus: ...


class EligibilityProvider(Protocol):
    async def fetch_status(self) -> OnboardingStatus: ...


class ServiceGateway:
    """Gateway + eligibility provider backed by the onboarding service."""

    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    async def _call(self, operation, *args) -> OnboardingStatus:
        # Savepoint: a rejected step must not poison the request's session,
        # which still has to persist the wizard state afterwards.
        try:
            async with self.db.begin_nested():
                return await operation(self.db, self.user, *args)
        except SmartTherapyException as exc:
            raise SubmissionError(exc.message, exc.error_code) from exc

    async def submit_clinic_data(self, data: ClinicFormData) -> OnboardingStatus:
        return await self._call(onboarding_service.submit_clinic_data, data)

    async def submit_subscription(self, data: SubscriptionData) -> OnboardingStatus:
        return await self._call(onboarding_service.submit_subscription, data)

    async def submit_payment(self, data: PaymentData) -> OnboardingStatus:
        return await self._call(onboarding_service.submit_payment, data)

    async def complete_onboarding(self) -> OnboardingStatus:
        return await self._call(onboarding_service.complete_onboarding)

    async def fetch_status(self) -> OnboardingStatus:
        # Uncached: reconciliation must see the latest facts.
        return await onboarding_service.check_onboarding_status(self.db, self.user)
