"""Therapy session router.

Endpoints:
    POST  /api/sessions/                      Create session (status "new")
    GET   /api/sessions/                      List with filters + sorting
    GET   /api/sessions/{id}                  Session detail
    PATCH /api/sessions/{id}/status           Change status (validated)
    POST  /api/sessions/validate-transition   Check a status change, no write
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smarttherapy.auth.deps import require_clinic
from smarttherapy.database import get_db
from smarttherapy.models.therapy_session import SessionStatus
from smarttherapy.models.user import User
from smarttherapy.schemas.common import PaginatedResponse, ValidationResult
from smarttherapy.schemas.session import (
    SessionCreate,
    SessionOut,
    SessionStatusUpdate,
    TransitionCheck,
)
from smarttherapy.services import sessions as session_service
from smarttherapy.services.session_transitions import validate_status_transition

router = APIRouter()


@router.post("/", response_model=SessionOut, status_code=201)
async def create_session(
    body: SessionCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_clinic),
):
    session = await session_service.create_session(db, user.clinic_id, body)
    return session_service.to_out(session)


@router.get("/", response_model=PaginatedResponse[SessionOut])
async def list_sessions(
    status: SessionStatus | None = None,
    client_id: str | None = None,
    therapist_id: str | None = None,
    sort_by: str = "session_date",
    sort_order: Literal["asc", "desc"] = "desc",
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_clinic),
):
    items, total = await session_service.list_sessions(
        db,
        user.clinic_id,
        status=status,
        client_id=client_id,
        therapist_id=therapist_id,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return PaginatedResponse[SessionOut](
        items=[session_service.to_out(s) for s in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/validate-transition", response_model=ValidationResult[bool])
async def validate_transition(
    body: TransitionCheck,
    _user: User = Depends(require_clinic),
):
    """Speculative check; the status PATCH re-validates before writing."""
    return validate_status_transition(body.current_status, body.new_status)


@router.get("/{session_id}", response_model=SessionOut)
async def get_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_clinic),
):
    session = await session_service.get_session(db, user.clinic_id, session_id)
    return session_service.to_out(session)


@router.patch("/{session_id}/status", response_model=SessionOut)
async def update_status(
    session_id: str,
    body: SessionStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_clinic),
):
    session = await session_service.update_session_status(
        db, user.clinic_id, session_id, body.status
    )
    return session_service.to_out(session)
