"""Onboarding wizard steps and the server-truth step rule.

The wizard is strictly linear:

    clinic_info → subscription → payment → complete

`derive_step` maps the server-side facts (clinic record, active
subscription, confirmed payment) to the step the user should be on.
"""

from __future__ import annotations

import enum


class OnboardingStep(str, enum.Enum):
    CLINIC_INFO = "clinic_info"
    SUBSCRIPTION = "subscription"
    PAYMENT = "payment"
    COMPLETE = "complete"


STEP_ORDER: tuple[OnboardingStep, ...] = (
    OnboardingStep.CLINIC_INFO,
    OnboardingStep.SUBSCRIPTION,
    OnboardingStep.PAYMENT,
    OnboardingStep.COMPLETE,
)

FIRST_STEP = STEP_ORDER[0]
FINAL_STEP = STEP_ORDER[-1]


def step_index(step: OnboardingStep) -> int:
    return STEP_ORDER.index(step)


def next_step(step: OnboardingStep) -> OnboardingStep | None:
    idx = step_index(step) + 1
    return STEP_ORDER[idx] if idx < len(STEP_ORDER) else None


def previous_step(step: OnboardingStep) -> OnboardingStep | None:
    idx = step_index(step) - 1
    return STEP_ORDER[idx] if idx >= 0 else None


def is_ahead_of(local: OnboardingStep, server: OnboardingStep) -> bool:
    return step_index(local) > step_index(server)


def derive_step(
    has_clinic: bool,
    has_active_subscription: bool,
    payment_confirmed: bool,
) -> OnboardingStep:
    if not has_clinic:
        return OnboardingStep.CLINIC_INFO
    if not has_active_subscription:
        return OnboardingStep.SUBSCRIPTION
    if not payment_confirmed:
        return OnboardingStep.PAYMENT
    return OnboardingStep.COMPLETE
