"""A single therapy session within a client's therapy plan.

Therapy, client and therapist are referenced by ID only; their records
belong to other parts of the portal and are not cascaded from here.
Status changes go through `services.session_transitions`.
"""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum as SAEnum, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from smarttherapy.database import Base, utcnow


class SessionStatus(str, enum.Enum):
    NEW = "new"
    SCHEDULED = "scheduled"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class TherapySession(Base):
    __tablename__ = "therapy_sessions"
    __table_args__ = (
        UniqueConstraint(
            "client_id", "therapist_id", "session_number",
            name="uq_therapy_sessions_client_therapist_number",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    clinic_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    therapy_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    client_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    therapist_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    session_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    session_date: Mapped[date] = mapped_column(Date, nullable=False)
    session_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    duration_minutes: Mapped[int] = mapped_column(Integer, default=60)
    status: Mapped[SessionStatus] = mapped_column(
        SAEnum(
            SessionStatus,
            name="sessionstatus",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=SessionStatus.NEW,
        index=True,
    )
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
