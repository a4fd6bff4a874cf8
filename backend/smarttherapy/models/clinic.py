"""Clinic record created by the first onboarding step.

The subscription and payment columns are filled by the later onboarding
steps; together they are the server-side facts the wizard position is
derived from.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from smarttherapy.database import Base, utcnow

DEFAULT_WORKING_HOURS = "Mon-Fri: 08:00-17:00, Sat: 09:00-15:00, Sun: Closed"


class Clinic(Base):
    __tablename__ = "clinics"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    website: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    province: Mapped[str | None] = mapped_column(String(100))
    working_hours: Mapped[str] = mapped_column(String(255), default=DEFAULT_WORKING_HOURS)
    timezone: Mapped[str] = mapped_column(String(50), default="Asia/Jakarta")
    language: Mapped[str] = mapped_column(String(10), default="id")
    status: Mapped[str] = mapped_column(String(20), default="active")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Subscription (onboarding step 2)
    subscription_tier_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("subscription_tiers.id")
    )
    billing_cycle: Mapped[str | None] = mapped_column(String(20))
    subscription_expires: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Payment (onboarding step 3)
    payment_method: Mapped[str | None] = mapped_column(String(30))
    payment_reference: Mapped[str | None] = mapped_column(String(100))
    payment_confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    subscription_tier = relationship("SubscriptionTier", lazy="selectin")
    users = relationship("User", back_populates="clinic")

    def has_active_subscription(self, now: datetime | None = None) -> bool:
        if self.subscription_tier_id is None or self.subscription_expires is None:
            return False
        expires = self.subscription_expires
        if expires.tzinfo is None:
            # stored as UTC; some backends hand it back naive
            expires = expires.replace(tzinfo=timezone.utc)
        return expires > (now or utcnow())

    @property
    def payment_confirmed(self) -> bool:
        return self.payment_confirmed_at is not None
