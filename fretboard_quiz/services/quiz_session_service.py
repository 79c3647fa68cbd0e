"""
Quiz session lifecycle service
Opens, lists, reads and closes sessions; enforces ownership and expiry
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fretboard_quiz.config import settings
from fretboard_quiz.models import QuizAnswer, QuizSession
from fretboard_quiz.schemas.enums import SessionStatus
from fretboard_quiz.schemas.quiz_session import QuizSessionListQuery
from fretboard_quiz.services.session_state import is_expired, transition
from fretboard_quiz.services.validation_service import validation_service
from fretboard_quiz.utils.clock import utcnow
from fretboard_quiz.utils.errors import (
    CommandValidationError,
    Conflict,
    NotFound,
    PersistenceError,
    Unauthorized,
)
from fretboard_quiz.utils.session_lock import session_lock_service

logger = logging.getLogger(__name__)


def parse_session_id(session_id: Any) -> UUID:
    """Session ids that are not UUIDs cannot exist"""
    if isinstance(session_id, UUID):
        return session_id
    try:
        return UUID(str(session_id))
    except ValueError:
        raise NotFound("Quiz session not found") from None


class QuizSessionService:
    """
    Service owning the session state machine

    Every transition is persisted as a compare-and-set on status, so two
    racing closes cannot both succeed.
    """

    def __init__(self, lock_service=None):
        self.lock_service = lock_service or session_lock_service

    def open_session(
        self,
        db: Session,
        user_id: UUID,
        payload: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> QuizSession:
        """
        Validate and create a new in-progress session

        Args:
            db: Database session
            user_id: Owner of the new session
            payload: {quiz_type, difficulty, time_limit_seconds?}
            now: Acceptance time (defaults to current UTC time)

        Returns:
            The created QuizSession
        """
        command = validation_service.validate_open(payload)

        session = QuizSession(
            user_id=user_id,
            quiz_type=command.quiz_type.value,
            difficulty=command.difficulty,
            time_limit_seconds=command.time_limit_seconds,
            status=SessionStatus.IN_PROGRESS.value,
            started_at=now or utcnow(),
        )

        try:
            db.add(session)
            db.commit()
            db.refresh(session)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create quiz session: {str(e)}")
            raise PersistenceError("Failed to create quiz session") from e

        logger.info(
            f"Session opened: {session.id} (user={user_id}, type={session.quiz_type}, "
            f"difficulty={session.difficulty})"
        )
        return session

    def get_owned_session(
        self,
        db: Session,
        user_id: UUID,
        session_id: Any,
        now: Optional[datetime] = None,
    ) -> QuizSession:
        """
        Load a session the caller owns, abandoning it first if it expired

        Raises:
            NotFound: unknown or malformed id
            Unauthorized: session belongs to another user (403)
        """
        sid = parse_session_id(session_id)
        session = db.get(QuizSession, sid)

        if session is None:
            raise NotFound("Quiz session not found")

        if session.user_id != user_id:
            logger.warning(f"User {user_id} denied access to session {sid}")
            raise Unauthorized("You cannot access this session", status_code=403)

        if settings.AUTO_ABANDON_EXPIRED_SESSIONS and self._expired(session, now):
            self._abandon_expired(db, session, now)

        return session

    def list_sessions(
        self,
        db: Session,
        user_id: UUID,
        query: QuizSessionListQuery,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Paginated listing of the caller's sessions

        Sort nulls last so unfinished sessions trail completed ones.
        """
        if settings.AUTO_ABANDON_EXPIRED_SESSIONS:
            self.abandon_expired_sessions(db, user_id=user_id, now=now)

        base_query = db.query(QuizSession).filter(QuizSession.user_id == user_id)

        if query.quiz_type:
            base_query = base_query.filter(QuizSession.quiz_type == query.quiz_type.value)
        if query.difficulty:
            base_query = base_query.filter(QuizSession.difficulty == query.difficulty.value)
        if query.status:
            base_query = base_query.filter(QuizSession.status == query.status.value)

        total = base_query.count()

        column = getattr(QuizSession, query.sort_field)
        ordering = column.asc() if query.ascending else column.desc()

        rows = (
            base_query
            .order_by(ordering.nulls_last(), QuizSession.started_at.desc(), QuizSession.id)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
            .all()
        )

        return {
            "data": rows,
            "pagination": {
                "page": query.page,
                "limit": query.limit,
                "total": total,
                "total_pages": math.ceil(total / query.limit),
            },
        }

    def close_session(
        self,
        db: Session,
        user_id: UUID,
        session_id: Any,
        payload: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> QuizSession:
        """
        Transition an in-progress session to completed or abandoned

        Completion requires every question answered; the score is the number
        of correct answers.

        Raises:
            InvalidStatusTransition: target is not completed/abandoned
            CommandValidationError: missing/invalid time_taken_seconds, or
                unanswered questions on completion
            Conflict: session already terminal or a concurrent close won
        """
        command = validation_service.validate_close(payload)
        session = self.get_owned_session(db, user_id, session_id, now=now)

        with self.lock_service.hold(session.id):
            db.refresh(session)
            target = transition(session.status, command.status)

            score = None
            if target == SessionStatus.COMPLETED:
                answered, correct = self._tally_answers(db, session.id)
                if answered != settings.QUESTIONS_PER_QUIZ:
                    raise CommandValidationError(
                        f"Cannot complete session without all {settings.QUESTIONS_PER_QUIZ} answers "
                        f"({answered} submitted)",
                        kind="incomplete_session",
                    )
                score = correct

            self._compare_and_set_status(
                db,
                session.id,
                status=target.value,
                score=score,
                time_taken_seconds=command.time_taken_seconds,
                completed_at=now or utcnow(),
            )
            db.refresh(session)

        logger.info(f"Session {session.id} closed as {session.status} (score={session.score})")
        return session

    def abandon_expired_sessions(
        self,
        db: Session,
        user_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Sweep timed in-progress sessions past their deadline

        Usable lazily per user or as a periodic job over all users.

        Returns:
            Number of sessions abandoned
        """
        candidates = db.query(QuizSession).filter(
            QuizSession.status == SessionStatus.IN_PROGRESS.value,
            QuizSession.time_limit_seconds.isnot(None),
        )
        if user_id is not None:
            candidates = candidates.filter(QuizSession.user_id == user_id)

        abandoned = 0
        for session in candidates.all():
            if self._expired(session, now) and self._abandon_expired(db, session, now):
                abandoned += 1
        return abandoned

    def _expired(self, session: QuizSession, now: Optional[datetime]) -> bool:
        return is_expired(
            session.status,
            session.started_at,
            session.time_limit_seconds,
            settings.QUESTIONS_PER_QUIZ,
            settings.SESSION_EXPIRY_GRACE_SECONDS,
            now=now,
        )

    def _abandon_expired(self, db: Session, session: QuizSession, now: Optional[datetime]) -> bool:
        """Returns False when another writer closed the session first"""
        try:
            self._compare_and_set_status(
                db,
                session.id,
                status=SessionStatus.ABANDONED.value,
                completed_at=now or utcnow(),
            )
        except Conflict:
            logger.debug(f"Session {session.id} already closed while expiring")
            db.refresh(session)
            return False

        db.refresh(session)
        logger.info(f"Session {session.id} auto-abandoned after time limit")
        return True

    @staticmethod
    def _tally_answers(db: Session, session_id: UUID) -> Tuple[int, int]:
        outcomes: List[bool] = [
            row.is_correct
            for row in db.query(QuizAnswer.is_correct).filter(QuizAnswer.session_id == session_id)
        ]
        return len(outcomes), sum(1 for is_correct in outcomes if is_correct)

    @staticmethod
    def _compare_and_set_status(db: Session, session_id: UUID, **values: Any) -> None:
        """
        UPDATE ... WHERE status = 'in_progress'

        Raises:
            Conflict: no row matched, the session already left in_progress
            PersistenceError: storage failure
        """
        stmt = (
            update(QuizSession)
            .where(
                QuizSession.id == session_id,
                QuizSession.status == SessionStatus.IN_PROGRESS.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = db.execute(stmt)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update quiz session {session_id}: {str(e)}")
            raise PersistenceError("Failed to update quiz session") from e

        if result.rowcount == 0:
            raise Conflict("Session is already completed or abandoned")


# Global instance
quiz_session_service = QuizSessionService()
