"""Subscription tiers offered during onboarding.

Prices are whole Indonesian Rupiah. Seeded via `python -m smarttherapy.cli seed-tiers`.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from smarttherapy.database import Base, utcnow


class SubscriptionTier(Base):
    __tablename__ = "subscription_tiers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    monthly_price: Mapped[int] = mapped_column(Integer, nullable=False)
    yearly_price: Mapped[int] = mapped_column(Integer, nullable=False)
    therapist_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    new_clients_per_day_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    is_recommended: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def price_for(self, billing_cycle: str) -> int:
        if billing_cycle == "yearly":
            return self.yearly_price
        return self.monthly_price
