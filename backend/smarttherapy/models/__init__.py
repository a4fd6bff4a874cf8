"""Aggregate model imports for Alembic auto-detection."""

from smarttherapy.models.subscription_tier import SubscriptionTier  # noqa: F401
from smarttherapy.models.clinic import Clinic  # noqa: F401
from smarttherapy.models.user import User, UserRole  # noqa: F401
from smarttherapy.models.onboarding_state import OnboardingState  # noqa: F401
from smarttherapy.models.therapy_session import SessionStatus, TherapySession  # noqa: F401
