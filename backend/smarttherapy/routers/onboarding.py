"""Clinic onboarding router — 4-step wizard with server-side progress.

Endpoints:
  GET  /api/onboarding/status                 → server truth (cached)
  POST /api/onboarding/clinic                 → submit step 1 directly
  POST /api/onboarding/subscription           → submit step 2 directly
  POST /api/onboarding/payment                → submit step 3 directly
  POST /api/onboarding/complete               → finalize onboarding

  GET  /api/onboarding/wizard                 → stored wizard state,
                                                reconciled with server truth
  POST /api/onboarding/wizard/clinic          ┐
  POST /api/onboarding/wizard/subscription    ├ drive the wizard store
  POST /api/onboarding/wizard/payment         ┘
  POST /api/onboarding/wizard/back|next|reset|clear-error|complete

Design:
  - The direct endpoints raise on rule violations (JSON error envelope).
  - The wizard endpoints always answer 200 with the wizard state; a
    rejected submission shows up in `error` and the step does not move.
  - The wizard state (OnboardingStore snapshot) is stored per user in
    onboarding_states and reconciled on every GET.
  - After payment the response carries `redirect_to`; the client shows the
    success screen and follows it after the completion delay.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smarttherapy.auth.deps import require_role
from smarttherapy.config import settings
from smarttherapy.database import get_db
from smarttherapy.models.onboarding_state import OnboardingState
from smarttherapy.models.user import User, UserRole
from smarttherapy.onboarding.gateway import ServiceGateway
from smarttherapy.onboarding.reconciler import StepReconciler
from smarttherapy.onboarding.store import OnboardingStore
from smarttherapy.schemas.onboarding import (
    ClinicFormData,
    OnboardingStateOut,
    OnboardingStatus,
    PaymentData,
    SubmissionResult,
    SubscriptionData,
)
from smarttherapy.services import onboarding as onboarding_service

logger = logging.getLogger("smarttherapy.onboarding")

router = APIRouter()

onboarding_user = require_role(UserRole.CLINIC_ADMIN, UserRole.ADMINISTRATOR)


# ── Helpers ──────────────────────────────────────────────────

async def _get_or_create_state(db: AsyncSession, user: User) -> OnboardingState:
    result = await db.execute(
        select(OnboardingState).where(OnboardingState.user_id == user.id)
    )
    state = result.scalar_one_or_none()
    if not state:
        state = OnboardingState(
            user_id=user.id, current_step="clinic_info", furthest_step="clinic_info", data={}
        )
        db.add(state)
        await db.flush()
    return state


async def _load_store(
    db: AsyncSession, user: User
) -> tuple[OnboardingState, OnboardingStore, ServiceGateway]:
    row = await _get_or_create_state(db, user)
    gateway = ServiceGateway(db, user)
    store = OnboardingStore.from_snapshot(
        gateway,
        {
            "current_step": row.current_step,
            "furthest_step": row.furthest_step,
            "data": row.data,
            "error": row.error,
            "is_complete": row.is_complete,
            "just_completed_subscription": row.just_completed_subscription,
        },
    )
    return row, store, gateway


async def _save(db: AsyncSession, row: OnboardingState, store: OnboardingStore) -> None:
    snapshot = store.snapshot()
    row.current_step = snapshot["current_step"]
    row.furthest_step = snapshot["furthest_step"]
    row.data = snapshot["data"]
    row.error = snapshot["error"]
    row.is_complete = snapshot["is_complete"]
    row.just_completed_subscription = snapshot["just_completed_subscription"]
    await db.flush()


def _state_out(store: OnboardingStore) -> OnboardingStateOut:
    redirect_to = None
    if store.is_complete or store.just_completed_subscription:
        redirect_to = settings.portal_path
    return store.to_schema(redirect_to=redirect_to)


# ── Server truth ─────────────────────────────────────────────

@router.get("/status", response_model=OnboardingStatus)
async def get_status(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    return await onboarding_service.get_onboarding_status_cached(db, user)


# ── Direct submissions ───────────────────────────────────────

@router.post("/clinic", response_model=SubmissionResult, status_code=201)
async def submit_clinic(
    body: ClinicFormData,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    status = await onboarding_service.submit_clinic_data(db, user, body)
    return SubmissionResult(success=True, message="Clinic created", status=status)


@router.post("/subscription", response_model=SubmissionResult)
async def submit_subscription(
    body: SubscriptionData,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    status = await onboarding_service.submit_subscription(db, user, body)
    return SubmissionResult(success=True, message="Subscription selected", status=status)


@router.post("/payment", response_model=SubmissionResult)
async def submit_payment(
    body: PaymentData,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    status = await onboarding_service.submit_payment(db, user, body)
    return SubmissionResult(success=True, message="Payment recorded", status=status)


@router.post("/complete", response_model=SubmissionResult)
async def complete(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    status = await onboarding_service.complete_onboarding(db, user)
    return SubmissionResult(success=True, message="Onboarding completed", status=status)


# ── Wizard ───────────────────────────────────────────────────

@router.get("/wizard", response_model=OnboardingStateOut)
async def get_wizard(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    row, store, gateway = await _load_store(db, user)
    outcome = await StepReconciler(store, gateway).reconcile()
    logger.debug("Wizard for user %s: %s", user.id, outcome.value)
    await _save(db, row, store)
    return _state_out(store)


@router.post("/wizard/clinic", response_model=OnboardingStateOut)
async def wizard_clinic(
    body: ClinicFormData,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    row, store, _ = await _load_store(db, user)
    await store.submit_clinic_data(body)
    await _save(db, row, store)
    return _state_out(store)


@router.post("/wizard/subscription", response_model=OnboardingStateOut)
async def wizard_subscription(
    body: SubscriptionData,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    row, store, _ = await _load_store(db, user)
    await store.submit_subscription(body)
    await _save(db, row, store)
    return _state_out(store)


@router.post("/wizard/payment", response_model=OnboardingStateOut)
async def wizard_payment(
    body: PaymentData,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    row, store, _ = await _load_store(db, user)
    await store.submit_payment(body)
    await _save(db, row, store)
    return _state_out(store)


@router.post("/wizard/back", response_model=OnboardingStateOut)
async def wizard_back(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    row, store, _ = await _load_store(db, user)
    store.prev_step()
    await _save(db, row, store)
    return _state_out(store)


@router.post("/wizard/next", response_model=OnboardingStateOut)
async def wizard_next(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    row, store, _ = await _load_store(db, user)
    store.next_step()
    await _save(db, row, store)
    return _state_out(store)


@router.post("/wizard/reset", response_model=OnboardingStateOut)
async def wizard_reset(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    row, store, gateway = await _load_store(db, user)
    store.reset_onboarding()
    # Clear the local view, then land on whatever step the records support.
    await StepReconciler(store, gateway).reconcile()
    await _save(db, row, store)
    return _state_out(store)


@router.post("/wizard/clear-error", response_model=OnboardingStateOut)
async def wizard_clear_error(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    row, store, _ = await _load_store(db, user)
    store.clear_error()
    await _save(db, row, store)
    return _state_out(store)


@router.post("/wizard/complete", response_model=OnboardingStateOut)
async def wizard_complete(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(onboarding_user),
):
    row, store, _ = await _load_store(db, user)
    if await store.complete_onboarding():
        store.clear_just_completed_subscription()
    await _save(db, row, store)
    return _state_out(store)
