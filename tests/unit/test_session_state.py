"""
Unit tests for the session state machine and expiry policy.
"""

from datetime import datetime, timedelta, timezone

import pytest

from fretboard_quiz.schemas.enums import SessionStatus
from fretboard_quiz.services.session_state import expires_at, is_expired, is_terminal, transition
from fretboard_quiz.utils.errors import Conflict, InvalidStatusTransition

STARTED = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


class TestTransition:

    @pytest.mark.parametrize("target", [SessionStatus.COMPLETED, SessionStatus.ABANDONED])
    def test_in_progress_can_close(self, target):
        assert transition(SessionStatus.IN_PROGRESS, target) == target

    def test_accepts_plain_strings(self):
        assert transition("in_progress", "abandoned") == SessionStatus.ABANDONED

    @pytest.mark.parametrize("current", [SessionStatus.COMPLETED, SessionStatus.ABANDONED])
    @pytest.mark.parametrize("target", [SessionStatus.COMPLETED, SessionStatus.ABANDONED])
    def test_terminal_states_have_no_exits(self, current, target):
        with pytest.raises(Conflict):
            transition(current, target)

    @pytest.mark.parametrize("current", list(SessionStatus))
    def test_in_progress_is_never_a_target(self, current):
        with pytest.raises(InvalidStatusTransition):
            transition(current, SessionStatus.IN_PROGRESS)

    def test_is_terminal(self):
        assert not is_terminal(SessionStatus.IN_PROGRESS)
        assert is_terminal(SessionStatus.COMPLETED)
        assert is_terminal("abandoned")


class TestExpiry:
    """Timed sessions expire after limit * questions plus grace."""

    def test_untimed_sessions_never_expire(self):
        assert expires_at(STARTED, None, 10, 300) is None
        assert not is_expired("in_progress", STARTED, None, 10, 300, now=STARTED + timedelta(days=30))

    def test_deadline(self):
        assert expires_at(STARTED, 60, 10, 300) == STARTED + timedelta(seconds=900)

    def test_naive_started_at_is_utc(self):
        naive = STARTED.replace(tzinfo=None)
        assert expires_at(naive, 60, 10, 300) == STARTED + timedelta(seconds=900)

    def test_expired_only_after_deadline(self):
        deadline = STARTED + timedelta(seconds=900)
        assert not is_expired("in_progress", STARTED, 60, 10, 300, now=deadline)
        assert is_expired("in_progress", STARTED, 60, 10, 300, now=deadline + timedelta(seconds=1))

    @pytest.mark.parametrize("status", ["completed", "abandoned"])
    def test_closed_sessions_do_not_expire(self, status):
        assert not is_expired(status, STARTED, 60, 10, 300, now=STARTED + timedelta(days=1))
