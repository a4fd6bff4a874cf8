"""Therapy session persistence.

All reads and writes are scoped to one clinic.  New sessions always start
at the initial status; every later status change is re-validated here
against the transition table before it is written, whatever the client
checked beforehand.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smarttherapy.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    ResourceNotFoundError,
)
from smarttherapy.models.therapy_session import SessionStatus, TherapySession
from smarttherapy.schemas.session import SessionCreate, SessionOut
from smarttherapy.services.session_transitions import (
    INITIAL_STATUS,
    allowed_transitions,
    validate_status_transition,
)

logger = logging.getLogger("smarttherapy.sessions")

SORTABLE_FIELDS = {
    "session_date": TherapySession.session_date,
    "session_number": TherapySession.session_number,
    "status": TherapySession.status,
    "created_at": TherapySession.created_at,
    "title": TherapySession.title,
}


def to_out(session: TherapySession) -> SessionOut:
    out = SessionOut.model_validate(session)
    out.allowed_transitions = allowed_transitions(session.status)
    return out


async def create_session(
    db: AsyncSession, clinic_id: str, data: SessionCreate
) -> TherapySession:
    existing = await db.execute(
        select(TherapySession.id).where(
            TherapySession.client_id == data.client_id,
            TherapySession.therapist_id == data.therapist_id,
            TherapySession.session_number == data.session_number,
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictError(
            f"Session number {data.session_number} already exists for this client and therapist",
            error_code="SESSION_NUMBER_EXISTS",
        )

    session = TherapySession(
        clinic_id=clinic_id,
        status=INITIAL_STATUS,
        **data.model_dump(),
    )
    db.add(session)
    await db.flush()

    logger.info("Session %s created for client %s", session.id, session.client_id)
    return session


async def list_sessions(
    db: AsyncSession,
    clinic_id: str,
    status: SessionStatus | None = None,
    client_id: str | None = None,
    therapist_id: str | None = None,
    sort_by: str = "session_date",
    sort_order: str = "desc",
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[TherapySession], int]:
    if sort_by not in SORTABLE_FIELDS:
        raise BusinessLogicError(
            f"Cannot sort by {sort_by!r}",
            error_code="INVALID_SORT_FIELD",
            details={"allowed": sorted(SORTABLE_FIELDS)},
        )

    filters = [TherapySession.clinic_id == clinic_id]
    if status is not None:
        filters.append(TherapySession.status == status)
    if client_id:
        filters.append(TherapySession.client_id == client_id)
    if therapist_id:
        filters.append(TherapySession.therapist_id == therapist_id)

    total = (
        await db.execute(select(func.count(TherapySession.id)).where(*filters))
    ).scalar_one()

    column = SORTABLE_FIELDS[sort_by]
    order = column.asc() if sort_order == "asc" else column.desc()
    result = await db.execute(
        select(TherapySession)
        .where(*filters)
        .order_by(order, TherapySession.session_number)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


def session_query(clinic_id: str, session_id: str, *, for_update: bool = False):
    query = select(TherapySession).where(
        TherapySession.id == session_id,
        TherapySession.clinic_id == clinic_id,
    )
    if for_update:
        # Lock the row and re-read it so the status check sees committed state.
        query = query.with_for_update().execution_options(populate_existing=True)
    return query


async def get_session(
    db: AsyncSession, clinic_id: str, session_id: str, *, for_update: bool = False
) -> TherapySession:
    result = await db.execute(session_query(clinic_id, session_id, for_update=for_update))
    session = result.scalar_one_or_none()
    if session is None:
        raise ResourceNotFoundError("Session", session_id)
    return session


async def update_session_status(
    db: AsyncSession,
    clinic_id: str,
    session_id: str,
    new_status: SessionStatus,
) -> TherapySession:
    session = await get_session(db, clinic_id, session_id, for_update=True)

    check = validate_status_transition(session.status, new_status)
    if not check.success:
        raise BusinessLogicError(
            check.errors[0].message,
            error_code="INVALID_STATUS_TRANSITION",
            details={"errors": [issue.model_dump() for issue in check.errors]},
        )

    previous = session.status
    session.status = new_status
    await db.flush()

    logger.info(
        "Session %s status %s → %s", session.id, previous.value, new_status.value
    )
    return session
