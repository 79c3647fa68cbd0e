"""
Quiz session state machine

in_progress -> completed | abandoned. Terminal states have no exits.
"""
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Optional

from fretboard_quiz.schemas.enums import SessionStatus
from fretboard_quiz.utils.clock import as_utc, utcnow
from fretboard_quiz.utils.errors import Conflict, InvalidStatusTransition

TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.COMPLETED, SessionStatus.ABANDONED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.ABANDONED: frozenset(),
}


def is_terminal(status: SessionStatus) -> bool:
    return not TRANSITIONS[SessionStatus(status)]


def transition(current: SessionStatus, target: SessionStatus) -> SessionStatus:
    """
    Compute the next state

    Raises:
        InvalidStatusTransition: target is not a state a session can be closed into
        Conflict: current state is terminal
    """
    current = SessionStatus(current)
    target = SessionStatus(target)

    if target == SessionStatus.IN_PROGRESS:
        raise InvalidStatusTransition("in_progress is only an initial state and cannot be requested")
    if is_terminal(current):
        raise Conflict(f"Session is already {current.value}")
    if target not in TRANSITIONS[current]:
        raise InvalidStatusTransition(f"Cannot transition from {current.value} to {target.value}")
    return target


def expires_at(
    started_at: datetime,
    time_limit_seconds: Optional[int],
    questions_per_quiz: int,
    grace_seconds: int,
) -> Optional[datetime]:
    """
    Deadline after which an unfinished timed session counts as abandoned

    time_limit_seconds is a per-question limit, so the whole quiz gets
    limit * questions plus a grace period. Untimed sessions never expire.
    """
    if not time_limit_seconds:
        return None
    return as_utc(started_at) + timedelta(seconds=time_limit_seconds * questions_per_quiz + grace_seconds)


def is_expired(
    status: SessionStatus,
    started_at: datetime,
    time_limit_seconds: Optional[int],
    questions_per_quiz: int,
    grace_seconds: int,
    now: Optional[datetime] = None,
) -> bool:
    if SessionStatus(status) != SessionStatus.IN_PROGRESS:
        return False
    deadline = expires_at(started_at, time_limit_seconds, questions_per_quiz, grace_seconds)
    if deadline is None:
        return False
    return as_utc(now or utcnow()) > deadline
