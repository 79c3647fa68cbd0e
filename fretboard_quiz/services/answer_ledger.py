"""
Answer ledger - append-only answer log per session
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fretboard_quiz.models import QuizAnswer, QuizSession
from fretboard_quiz.schemas.enums import QuizType, SessionStatus
from fretboard_quiz.services.quiz_session_service import QuizSessionService, quiz_session_service
from fretboard_quiz.services.validation_service import validation_service
from fretboard_quiz.utils.clock import utcnow
from fretboard_quiz.utils.errors import DuplicateQuestion, PersistenceError, SessionClosed
from fretboard_quiz.utils.session_lock import session_lock_service

logger = logging.getLogger(__name__)


class AnswerLedger:
    """
    Appends validated answers to in-progress sessions

    Question numbers are unique per session. The unique constraint on
    (session_id, question_number) is the authority; the pre-check only
    produces a friendlier error on the common path.
    """

    def __init__(self, session_service: QuizSessionService = None, lock_service=None):
        self.session_service = session_service or quiz_session_service
        self.lock_service = lock_service or session_lock_service

    def submit_answer(
        self,
        db: Session,
        user_id: UUID,
        session_id: Any,
        payload: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> QuizAnswer:
        """
        Validate and append an answer

        Args:
            db: Database session
            user_id: Caller, must own the session
            session_id: Target session
            payload: Answer fields for the session's quiz type
            now: Recording time

        Returns:
            The stored QuizAnswer

        Raises:
            NotFound / Unauthorized: unknown or foreign session
            SessionClosed: session is completed or abandoned
            CommandValidationError: payload does not match the quiz type
            DuplicateQuestion: question_number already answered
        """
        session = self.session_service.get_owned_session(db, user_id, session_id, now=now)
        answer = validation_service.validate_answer(QuizType(session.quiz_type), payload)

        with self.lock_service.hold(session.id):
            db.refresh(session)
            self._ensure_open(session)

            existing = (
                db.query(QuizAnswer.id)
                .filter(
                    QuizAnswer.session_id == session.id,
                    QuizAnswer.question_number == answer.question_number,
                )
                .first()
            )
            if existing:
                raise DuplicateQuestion(f"Answer for question {answer.question_number} already submitted")

            return self.append(db, session, answer.to_record(), now=now)

    def append(
        self,
        db: Session,
        session: QuizSession,
        record: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> QuizAnswer:
        """
        Insert-if-absent for (session, question_number)

        Raises:
            SessionClosed: session is not in progress
            DuplicateQuestion: a concurrent writer stored the same question first
            PersistenceError: storage failure
        """
        self._ensure_open(session)

        row = QuizAnswer(session_id=session.id, created_at=now or utcnow(), **record)
        try:
            db.add(row)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(
                f"Duplicate answer rejected: session={session.id}, question={record.get('question_number')}"
            )
            raise DuplicateQuestion(
                f"Answer for question {record.get('question_number')} already submitted"
            ) from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to store answer for session {session.id}: {str(e)}")
            raise PersistenceError("Failed to submit answer") from e

        db.refresh(row)
        logger.info(f"Answer recorded: session={session.id}, question={row.question_number}, correct={row.is_correct}")
        return row

    def list_answers(self, db: Session, user_id: UUID, session_id: Any) -> Dict[str, Any]:
        """Answers of an owned session ordered by question number"""
        session = self.session_service.get_owned_session(db, user_id, session_id)
        return {"session_id": session.id, "answers": self.read(db, session.id)}

    @staticmethod
    def read(db: Session, session_id: UUID) -> List[QuizAnswer]:
        return (
            db.query(QuizAnswer)
            .filter(QuizAnswer.session_id == session_id)
            .order_by(QuizAnswer.question_number)
            .all()
        )

    @staticmethod
    def _ensure_open(session: QuizSession) -> None:
        if SessionStatus(session.status) != SessionStatus.IN_PROGRESS:
            raise SessionClosed(f"Quiz session is {session.status}, answers can no longer be submitted")


# Global instance
answer_ledger = AnswerLedger()
