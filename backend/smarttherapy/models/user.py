import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from smarttherapy.database import Base, utcnow


class UserRole(str, enum.Enum):
    ADMINISTRATOR = "administrator"
    CLINIC_ADMIN = "clinic_admin"
    THERAPIST = "therapist"


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str | None] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(SAEnum(UserRole), default=UserRole.CLINIC_ADMIN)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Null until the onboarding clinic step is submitted
    clinic_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("clinics.id", ondelete="SET NULL")
    )
    onboarding_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    clinic = relationship("Clinic", back_populates="users", lazy="selectin")
