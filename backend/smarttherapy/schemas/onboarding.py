"""Pydantic schemas for the clinic onboarding flow.

Step payloads (ClinicFormData, SubscriptionData, PaymentData) are both the
request bodies of the submission endpoints and the values the onboarding
store keeps in `data`.
"""

import enum
import re
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from smarttherapy.onboarding.steps import OnboardingStep

PHONE_REGEX = re.compile(r"^\+?[0-9][0-9\- ]{5,19}$")


class BillingCycle(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    E_WALLET = "e_wallet"
    VIRTUAL_ACCOUNT = "virtual_account"


# ── Step 1: Clinic information ──────────────────────────────

class ClinicFormData(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    address: str = Field(min_length=10, max_length=500)
    phone: str
    email: EmailStr
    website: str | None = None
    description: str | None = Field(default=None, max_length=1000)
    province: str | None = None
    working_hours: str | None = None

    @field_validator("name", "address")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Must not be blank")
        return v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        v = v.strip()
        if not PHONE_REGEX.match(v):
            raise ValueError("Invalid phone number")
        return v


# ── Step 2: Subscription ────────────────────────────────────

class SubscriptionData(BaseModel):
    tier_code: str = Field(min_length=1, max_length=50)
    billing_cycle: BillingCycle
    amount: int = Field(ge=0)
    currency: str = "IDR"


# ── Step 3: Payment ─────────────────────────────────────────

class PaymentData(BaseModel):
    payment_method: PaymentMethod
    amount: int = Field(gt=0)
    currency: str = "IDR"
    transaction_id: str | None = None
    payment_id: str | None = None


class OnboardingData(BaseModel):
    clinic: ClinicFormData | None = None
    subscription: SubscriptionData | None = None
    payment: PaymentData | None = None


# ── Server truth / responses ────────────────────────────────

class OnboardingStatus(BaseModel):
    needs_onboarding: bool
    has_clinic: bool
    has_active_subscription: bool
    payment_confirmed: bool
    current_step: OnboardingStep
    clinic_id: str | None = None
    clinic_name: str | None = None
    subscription_tier: str | None = None
    subscription_expires: datetime | None = None


class SubmissionResult(BaseModel):
    success: bool
    message: str
    status: OnboardingStatus | None = None


class OnboardingStateOut(BaseModel):
    current_step: OnboardingStep
    data: OnboardingData
    is_loading: bool = False
    error: str | None = None
    is_complete: bool = False
    just_completed_subscription: bool = False
    can_go_back: bool = False
    can_go_forward: bool = False
    redirect_to: str | None = None
