"""Clinic onboarding: server-side facts and step submissions.

The wizard position a user *should* be on is always derived from the
database, never from what the client last saw:

    no clinic record                 → clinic_info
    clinic, no active subscription   → subscription
    subscription, payment unconfirmed → payment
    all present                      → complete

Each submission validates its prerequisites against those same facts, so
a step cannot be skipped even by calling the endpoints out of order.
Rule violations raise BusinessLogicError / ConflictError.
"""

import calendar
import logging
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from smarttherapy.config import settings
from smarttherapy.database import utcnow
from smarttherapy.middleware.exceptions import BusinessLogicError, ConflictError
from smarttherapy.models.clinic import DEFAULT_WORKING_HOURS, Clinic
from smarttherapy.models.subscription_tier import SubscriptionTier
from smarttherapy.models.user import User
from smarttherapy.onboarding.steps import OnboardingStep, derive_step
from smarttherapy.schemas.onboarding import (
    BillingCycle,
    ClinicFormData,
    OnboardingStatus,
    PaymentData,
    SubscriptionData,
)
from smarttherapy.utils.cache import cached, invalidate_cache

logger = logging.getLogger("smarttherapy.onboarding")

STATUS_CACHE_PREFIX = "onboarding:status"


# ── Helpers ──────────────────────────────────────────────────

def _add_months(dt: datetime, months: int) -> datetime:
    """Same day-of-month `months` later, clamped to the month's last day."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def subscription_expiry(start: datetime, cycle: BillingCycle) -> datetime:
    return _add_months(start, 12 if cycle == BillingCycle.YEARLY else 1)


async def _load_clinic(db: AsyncSession, user: User) -> Clinic | None:
    # Re-read instead of trusting user.clinic: the record may have been
    # deleted by an admin since the user was loaded.
    if not user.clinic_id:
        return None
    result = await db.execute(select(Clinic).where(Clinic.id == user.clinic_id))
    return result.scalar_one_or_none()


async def _require_clinic(db: AsyncSession, user: User, message: str) -> Clinic:
    clinic = await _load_clinic(db, user)
    if clinic is None:
        raise BusinessLogicError(message, error_code="CLINIC_REQUIRED")
    return clinic


async def _invalidate_status(user: User) -> None:
    await invalidate_cache(f"{STATUS_CACHE_PREFIX}:{user.id}")


# ── Server truth ─────────────────────────────────────────────

async def check_onboarding_status(db: AsyncSession, user: User) -> OnboardingStatus:
    clinic = await _load_clinic(db, user)
    has_clinic = clinic is not None
    has_subscription = bool(clinic and clinic.has_active_subscription())
    payment_confirmed = bool(clinic and clinic.payment_confirmed)

    step = derive_step(has_clinic, has_subscription, payment_confirmed)

    tier = None
    if clinic is not None and clinic.subscription_tier_id:
        tier = await db.get(SubscriptionTier, clinic.subscription_tier_id)

    return OnboardingStatus(
        needs_onboarding=step != OnboardingStep.COMPLETE,
        has_clinic=has_clinic,
        has_active_subscription=has_subscription,
        payment_confirmed=payment_confirmed,
        current_step=step,
        clinic_id=clinic.id if clinic else None,
        clinic_name=clinic.name if clinic else None,
        subscription_tier=tier.name if tier else None,
        subscription_expires=clinic.subscription_expires if clinic else None,
    )


@cached(
    ttl=settings.onboarding_status_cache_ttl,
    prefix=STATUS_CACHE_PREFIX,
    key_builder=lambda db, user: user.id,
)
async def _cached_status(db: AsyncSession, user: User) -> OnboardingStatus:
    return await check_onboarding_status(db, user)


async def get_onboarding_status_cached(db: AsyncSession, user: User) -> OnboardingStatus:
    result = await _cached_status(db, user)
    if isinstance(result, dict):
        return OnboardingStatus.model_validate(result)
    return result


# ── Step 1: clinic ───────────────────────────────────────────

async def submit_clinic_data(
    db: AsyncSession, user: User, data: ClinicFormData
) -> OnboardingStatus:
    if await _load_clinic(db, user) is not None:
        raise BusinessLogicError(
            "User already has a clinic assigned",
            error_code="CLINIC_ALREADY_ASSIGNED",
        )

    existing = await db.execute(
        select(Clinic.id).where(
            or_(Clinic.name == data.name, Clinic.email == str(data.email))
        ).limit(1)
    )
    if existing.scalar_one_or_none():
        raise ConflictError(
            "Clinic with same name or email already exists",
            error_code="CLINIC_EXISTS",
        )

    clinic = Clinic(
        name=data.name,
        address=data.address,
        phone=data.phone,
        email=str(data.email),
        website=data.website,
        description=data.description,
        province=data.province,
        working_hours=data.working_hours or DEFAULT_WORKING_HOURS,
        status="active",
        is_active=True,
    )
    db.add(clinic)
    await db.flush()

    user.clinic_id = clinic.id
    await db.flush()
    await _invalidate_status(user)

    logger.info("Clinic %s created for user %s", clinic.id, user.id)
    return await check_onboarding_status(db, user)


# ── Step 2: subscription ────────────────────────────────────

async def submit_subscription(
    db: AsyncSession, user: User, data: SubscriptionData
) -> OnboardingStatus:
    clinic = await _require_clinic(db, user, "Must complete clinic setup first")

    result = await db.execute(
        select(SubscriptionTier).where(
            SubscriptionTier.code == data.tier_code,
            SubscriptionTier.is_active == True,  # noqa: E712
        )
    )
    tier = result.scalar_one_or_none()
    if tier is None:
        raise BusinessLogicError("Invalid subscription tier", error_code="INVALID_TIER")

    expected = tier.price_for(data.billing_cycle.value)
    if data.amount != expected:
        raise BusinessLogicError(
            f"Invalid amount for selected tier and billing cycle. Expected: {expected}",
            error_code="INVALID_AMOUNT",
            details={"expected": expected, "received": data.amount},
        )

    clinic.subscription_tier_id = tier.id
    clinic.billing_cycle = data.billing_cycle.value
    clinic.subscription_expires = subscription_expiry(utcnow(), data.billing_cycle)
    clinic.status = "active"
    await db.flush()
    await _invalidate_status(user)

    logger.info(
        "Clinic %s subscribed to %s (%s) until %s",
        clinic.id,
        tier.code,
        data.billing_cycle.value,
        clinic.subscription_expires.isoformat(),
    )
    return await check_onboarding_status(db, user)


# ── Step 3: payment ─────────────────────────────────────────

async def submit_payment(
    db: AsyncSession, user: User, data: PaymentData
) -> OnboardingStatus:
    clinic = await _require_clinic(
        db, user, "Must complete clinic and subscription setup first"
    )
    if not clinic.has_active_subscription():
        raise BusinessLogicError(
            "Must complete clinic and subscription setup first",
            error_code="SUBSCRIPTION_REQUIRED",
        )

    # Provider integration is out of scope: a well-formed payment is
    # recorded as confirmed.
    clinic.payment_method = data.payment_method.value
    clinic.payment_reference = data.transaction_id or data.payment_id
    clinic.payment_confirmed_at = utcnow()
    await db.flush()
    await _invalidate_status(user)

    logger.info(
        "Payment of %d %s recorded for clinic %s via %s",
        data.amount,
        data.currency,
        clinic.id,
        data.payment_method.value,
    )
    return await check_onboarding_status(db, user)


# ── Completion ───────────────────────────────────────────────

async def complete_onboarding(db: AsyncSession, user: User) -> OnboardingStatus:
    status = await check_onboarding_status(db, user)
    if status.current_step != OnboardingStep.COMPLETE:
        raise BusinessLogicError(
            "Must complete all onboarding steps first",
            error_code="ONBOARDING_INCOMPLETE",
            details={"current_step": status.current_step.value},
        )

    if user.onboarding_completed_at is None:
        user.onboarding_completed_at = utcnow()
        await db.flush()
        logger.info("Onboarding completed for user %s", user.id)

    return status
