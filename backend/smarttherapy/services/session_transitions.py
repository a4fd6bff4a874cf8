"""Therapy session status transitions.

Every status has an explicit successor set (possibly empty). A status
change is legal only when the new status is in the current status's set;
self-transitions are not listed and therefore rejected.

    new        → scheduled, cancelled
    scheduled  → started, cancelled, no_show
    started    → completed, cancelled
    completed / cancelled / no_show → (terminal)

`validate_status_transition` returns a ValidationResult instead of
raising: a rejected transition is an expected business outcome. The
caller that persists the change (services.sessions) decides whether to
turn it into an error.
"""

from __future__ import annotations

from smarttherapy.models.therapy_session import SessionStatus
from smarttherapy.schemas.common import ValidationIssue, ValidationResult

VALID_STATUS_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.NEW: frozenset({SessionStatus.SCHEDULED, SessionStatus.CANCELLED}),
    SessionStatus.SCHEDULED: frozenset(
        {SessionStatus.STARTED, SessionStatus.CANCELLED, SessionStatus.NO_SHOW}
    ),
    SessionStatus.STARTED: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
    SessionStatus.NO_SHOW: frozenset(),
}

def check_table_complete(table: dict[SessionStatus, frozenset[SessionStatus]]) -> None:
    missing = set(SessionStatus) - set(table)
    if missing:
        raise RuntimeError(
            f"VALID_STATUS_TRANSITIONS is missing: {sorted(s.value for s in missing)}"
        )


# A new status without a table entry must fail at import time.
check_table_complete(VALID_STATUS_TRANSITIONS)

INITIAL_STATUS = SessionStatus.NEW

TERMINAL_STATUSES: frozenset[SessionStatus] = frozenset(
    status for status, successors in VALID_STATUS_TRANSITIONS.items() if not successors
)


def _require_status(value: object, name: str) -> SessionStatus:
    if not isinstance(value, SessionStatus):
        raise TypeError(f"{name} must be a SessionStatus, got {value!r}")
    return value


def allowed_transitions(current: SessionStatus) -> list[SessionStatus]:
    """Successors of `current`, in declaration order of SessionStatus."""
    successors = VALID_STATUS_TRANSITIONS[_require_status(current, "current")]
    return [status for status in SessionStatus if status in successors]


def is_terminal(status: SessionStatus) -> bool:
    return _require_status(status, "status") in TERMINAL_STATUSES


def validate_status_transition(
    current: SessionStatus,
    new: SessionStatus,
) -> ValidationResult[bool]:
    """Check `current → new` against the transition table."""
    current = _require_status(current, "current")
    new = _require_status(new, "new")

    if new in VALID_STATUS_TRANSITIONS[current]:
        return ValidationResult[bool].ok(True)

    return ValidationResult[bool].fail(
        False,
        ValidationIssue(
            path="status",
            message=f'Status transition from "{current.value}" to "{new.value}" is not allowed',
        ),
    )
