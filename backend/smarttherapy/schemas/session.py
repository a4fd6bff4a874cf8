"""Pydantic schemas for therapy sessions and status changes."""

import re
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from smarttherapy.models.therapy_session import SessionStatus

TIME_REGEX = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


class SessionCreate(BaseModel):
    therapy_id: str = Field(..., min_length=1, max_length=36)
    client_id: str = Field(..., min_length=1, max_length=36)
    therapist_id: str = Field(..., min_length=1, max_length=36)
    session_number: int = Field(..., ge=1, le=50)
    title: str = Field(..., min_length=3, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    session_date: date
    session_time: str
    duration_minutes: int = Field(default=60, ge=15, le=300)
    notes: str | None = None

    @field_validator("session_time")
    @classmethod
    def _time(cls, v: str) -> str:
        if not TIME_REGEX.match(v):
            raise ValueError("Time must be in HH:MM format")
        return v


class SessionStatusUpdate(BaseModel):
    status: SessionStatus


class TransitionCheck(BaseModel):
    current_status: SessionStatus
    new_status: SessionStatus


class SessionOut(BaseModel):
    id: str
    clinic_id: str
    therapy_id: str
    client_id: str
    therapist_id: str
    session_number: int
    title: str
    description: str | None
    session_date: date
    session_time: str
    duration_minutes: int
    status: SessionStatus
    notes: str | None
    allowed_transitions: list[SessionStatus] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
