"""
Integration tests for the persistence guarantees of the session services.

Two database sessions stand in for two concurrent API workers: the unique
constraint and the conditional status update must decide the race even when
the in-application checks were passed on stale state.
"""

import threading
import uuid
from datetime import timedelta

import pytest

from fretboard_quiz.models import QuizAnswer, QuizSession
from fretboard_quiz.services.answer_ledger import AnswerLedger
from fretboard_quiz.services.quiz_session_service import QuizSessionService
from fretboard_quiz.utils.errors import Conflict, DuplicateQuestion, NotFound, SessionClosed, Unauthorized
from fretboard_quiz.utils.session_lock import SessionLockService


@pytest.fixture
def lock_service():
    return SessionLockService(redis_url="", timeout=1)


@pytest.fixture
def sessions(lock_service):
    return QuizSessionService(lock_service=lock_service)


@pytest.fixture
def ledger(sessions, lock_service):
    return AnswerLedger(session_service=sessions, lock_service=lock_service)


@pytest.fixture
def other_db(session_factory):
    session = session_factory()
    yield session
    session.close()


def record(number, correct=True):
    return {
        "question_number": number,
        "is_correct": correct,
        "time_taken_ms": None,
        "fret_position": 5,
        "string_number": 6,
        "target_note": "A",
        "user_answer_note": None,
    }


class TestAnswerLedger:

    def test_concurrent_duplicate_loses_on_unique_constraint(self, db, other_db, sessions, ledger, user_id, now):
        session = sessions.open_session(db, user_id, {"quiz_type": "find_note", "difficulty": "easy"}, now=now)
        stale_copy = other_db.get(QuizSession, session.id)

        ledger.append(db, session, record(1), now=now)

        with pytest.raises(DuplicateQuestion):
            ledger.append(other_db, stale_copy, record(1, correct=False), now=now)

        stored = ledger.read(db, session.id)
        assert len(stored) == 1
        assert stored[0].is_correct is True

    def test_read_orders_by_question_number(self, db, sessions, ledger, user_id, now):
        session = sessions.open_session(db, user_id, {"quiz_type": "find_note", "difficulty": "easy"}, now=now)
        for number in (3, 1, 2):
            ledger.append(db, session, record(number), now=now)

        assert [answer.question_number for answer in ledger.read(db, session.id)] == [1, 2, 3]

    def test_submit_validates_and_stamps(self, db, sessions, ledger, user_id, now):
        session = sessions.open_session(db, user_id, {"quiz_type": "name_note", "difficulty": "medium"}, now=now)

        answer = ledger.submit_answer(
            db, user_id, session.id,
            {"question_number": 1, "is_correct": False, "target_note": "D#", "user_answer_note": "E"},
            now=now,
        )

        assert isinstance(answer, QuizAnswer)
        assert answer.target_note == "D#"
        assert answer.created_at.replace(tzinfo=None) == now.replace(tzinfo=None)

    def test_submit_to_foreign_session(self, db, sessions, ledger, user_id, now):
        session = sessions.open_session(db, user_id, {"quiz_type": "find_note", "difficulty": "easy"}, now=now)

        with pytest.raises(Unauthorized) as exc_info:
            ledger.submit_answer(db, uuid.uuid4(), session.id, record(1), now=now)

        assert exc_info.value.status_code == 403

    def test_list_unknown_session(self, db, ledger, user_id):
        with pytest.raises(NotFound):
            ledger.list_answers(db, user_id, uuid.uuid4())

    def test_parallel_submissions_store_one_answer(self, db, session_factory, user_id, now):
        lock_service = SessionLockService(redis_url="", timeout=10)
        sessions = QuizSessionService(lock_service=lock_service)
        ledger = AnswerLedger(session_service=sessions, lock_service=lock_service)
        session = sessions.open_session(db, user_id, {"quiz_type": "find_note", "difficulty": "easy"}, now=now)

        workers = 8
        barrier = threading.Barrier(workers)
        outcomes = []

        def submit():
            worker_db = session_factory()
            try:
                barrier.wait()
                ledger.submit_answer(worker_db, user_id, session.id, record(1), now=now)
                outcomes.append("ok")
            except DuplicateQuestion:
                outcomes.append("dup")
            except Exception as e:
                outcomes.append(repr(e))
            finally:
                worker_db.close()

        threads = [threading.Thread(target=submit) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(outcomes) == ["dup"] * 7 + ["ok"]
        assert len(ledger.read(db, session.id)) == 1
        assert lock_service._local_locks == {}


class TestCompareAndSet:

    def test_stale_close_conflicts(self, db, other_db, sessions, user_id, now):
        session = sessions.open_session(db, user_id, {"quiz_type": "find_note", "difficulty": "easy"}, now=now)
        other_db.get(QuizSession, session.id)

        sessions.close_session(db, user_id, session.id, {"status": "abandoned"}, now=now)

        with pytest.raises(Conflict):
            QuizSessionService._compare_and_set_status(other_db, session.id, status="abandoned")

    def test_close_through_stale_session_conflicts(self, db, other_db, sessions, user_id, now):
        session = sessions.open_session(db, user_id, {"quiz_type": "find_note", "difficulty": "easy"}, now=now)
        stale_copy = other_db.get(QuizSession, session.id)
        assert stale_copy.status == "in_progress"

        sessions.close_session(db, user_id, session.id, {"status": "abandoned"}, now=now)

        with pytest.raises(Conflict):
            sessions.close_session(other_db, user_id, session.id, {"status": "abandoned"}, now=now)

    def test_completion_scores_correct_answers(self, db, sessions, ledger, user_id, now):
        session = sessions.open_session(db, user_id, {"quiz_type": "find_note", "difficulty": "easy"}, now=now)
        for number in range(1, 11):
            ledger.append(db, session, record(number, correct=number % 2 == 0), now=now)

        closed = sessions.close_session(
            db, user_id, session.id, {"status": "completed", "time_taken_seconds": 75},
            now=now + timedelta(minutes=2),
        )

        assert closed.status == "completed"
        assert closed.score == 5
        assert closed.time_taken_seconds == 75


class TestExpiry:
    """A hard session with a 60s limit expires 10 * 60 + 300 seconds after start."""

    @pytest.fixture
    def timed(self, db, sessions, user_id, now):
        return sessions.open_session(
            db, user_id, {"quiz_type": "find_note", "difficulty": "hard", "time_limit_seconds": 60}, now=now,
        )

    def test_within_deadline_stays_open(self, db, sessions, timed, user_id, now):
        session = sessions.get_owned_session(db, user_id, timed.id, now=now + timedelta(seconds=900))
        assert session.status == "in_progress"

    def test_read_after_deadline_abandons(self, db, sessions, timed, user_id, now):
        session = sessions.get_owned_session(db, user_id, timed.id, now=now + timedelta(seconds=901))

        assert session.status == "abandoned"
        assert session.completed_at is not None
        assert session.score is None

    def test_answer_after_deadline(self, db, ledger, timed, user_id, now):
        with pytest.raises(SessionClosed):
            ledger.submit_answer(db, user_id, timed.id, record(1), now=now + timedelta(hours=1))

    def test_close_after_deadline(self, db, sessions, timed, user_id, now):
        with pytest.raises(Conflict):
            sessions.close_session(db, user_id, timed.id, {"status": "abandoned"}, now=now + timedelta(hours=1))

    def test_sweep(self, db, sessions, timed, user_id, now):
        untimed = sessions.open_session(db, user_id, {"quiz_type": "find_note", "difficulty": "easy"}, now=now)

        assert sessions.abandon_expired_sessions(db, now=now + timedelta(hours=1)) == 1
        assert sessions.abandon_expired_sessions(db, now=now + timedelta(hours=2)) == 0

        db.refresh(untimed)
        assert untimed.status == "in_progress"
