"""Persisted onboarding wizard position per user.

One row per user (created on first wizard access). Holds the locally
tracked step, the per-step form payloads submitted so far, and the last
submission error. The row is a cache of the wizard's view; the clinic
and subscription records remain the source of truth.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from smarttherapy.database import Base, utcnow


class OnboardingState(Base):
    __tablename__ = "onboarding_states"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    current_step: Mapped[str] = mapped_column(String(20), default="clinic_info")
    # Furthest step a submission or the server has confirmed
    furthest_step: Mapped[str] = mapped_column(String(20), default="clinic_info")
    # {"clinic": {...}, "subscription": {...}, "payment": {...}}
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    error: Mapped[str | None] = mapped_column(String(500), default=None)
    is_complete: Mapped[bool] = mapped_column(Boolean, default=False)
    just_completed_subscription: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
