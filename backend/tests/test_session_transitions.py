"""Session status transition table tests."""

import itertools

import pytest

from smarttherapy.models.therapy_session import SessionStatus
from smarttherapy.services.session_transitions import (
    TERMINAL_STATUSES,
    VALID_STATUS_TRANSITIONS,
    allowed_transitions,
    check_table_complete,
    is_terminal,
    validate_status_transition,
)

ALL_PAIRS = list(itertools.product(SessionStatus, repeat=2))


@pytest.mark.unit
class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(VALID_STATUS_TRANSITIONS) == set(SessionStatus)

    def test_incomplete_table_is_rejected(self):
        table = dict(VALID_STATUS_TRANSITIONS)
        del table[SessionStatus.NO_SHOW]
        with pytest.raises(RuntimeError, match="no_show"):
            check_table_complete(table)
        check_table_complete(VALID_STATUS_TRANSITIONS)

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {
            SessionStatus.COMPLETED,
            SessionStatus.CANCELLED,
            SessionStatus.NO_SHOW,
        }
        assert is_terminal(SessionStatus.NO_SHOW)
        assert not is_terminal(SessionStatus.SCHEDULED)

    def test_allowed_transitions_in_declaration_order(self):
        assert allowed_transitions(SessionStatus.SCHEDULED) == [
            SessionStatus.STARTED,
            SessionStatus.CANCELLED,
            SessionStatus.NO_SHOW,
        ]
        assert allowed_transitions(SessionStatus.COMPLETED) == []


@pytest.mark.unit
class TestValidateStatusTransition:
    @pytest.mark.parametrize(
        "current,new",
        [
            (SessionStatus.NEW, SessionStatus.SCHEDULED),
            (SessionStatus.NEW, SessionStatus.CANCELLED),
            (SessionStatus.SCHEDULED, SessionStatus.STARTED),
            (SessionStatus.SCHEDULED, SessionStatus.NO_SHOW),
            (SessionStatus.STARTED, SessionStatus.COMPLETED),
            (SessionStatus.STARTED, SessionStatus.CANCELLED),
        ],
    )
    def test_allowed(self, current, new):
        result = validate_status_transition(current, new)
        assert result.success is True
        assert result.data is True
        assert result.errors == []

    def test_every_unlisted_pair_fails_on_status_path(self):
        for current, new in ALL_PAIRS:
            if new in VALID_STATUS_TRANSITIONS[current]:
                continue
            result = validate_status_transition(current, new)
            assert result.success is False, (current, new)
            assert result.data is False
            assert [issue.path for issue in result.errors] == ["status"]

    @pytest.mark.parametrize("current", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    def test_terminal_status_never_moves(self, current):
        for new in SessionStatus:
            assert not validate_status_transition(current, new).success

    def test_scheduled_cannot_skip_started(self):
        result = validate_status_transition(SessionStatus.SCHEDULED, SessionStatus.COMPLETED)
        assert not result.success
        message = result.errors[0].message
        assert "scheduled" in message and "completed" in message

    def test_self_transition_rejected(self):
        for status in SessionStatus:
            assert not validate_status_transition(status, status).success

    def test_non_status_value_is_a_type_error(self):
        with pytest.raises(TypeError):
            validate_status_transition("new", SessionStatus.SCHEDULED)
        with pytest.raises(TypeError):
            validate_status_transition(SessionStatus.NEW, None)
