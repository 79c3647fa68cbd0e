"""
Quiz session and answer API endpoints
"""

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session
from typing import Any, Optional
from uuid import UUID
import logging

from fretboard_quiz.api.deps import get_current_user_id
from fretboard_quiz.database import get_db
from fretboard_quiz.schemas.enums import Difficulty, QuizType, SessionStatus
from fretboard_quiz.schemas.quiz_answer import QuizAnswerResponse, QuizAnswersList
from fretboard_quiz.schemas.quiz_session import (
    SORT_PATTERN,
    QuizSessionDetail,
    QuizSessionListQuery,
    QuizSessionListResponse,
    QuizSessionResponse,
)
from fretboard_quiz.services.answer_ledger import answer_ledger
from fretboard_quiz.services.quiz_session_service import quiz_session_service


router = APIRouter(prefix="/api/quiz-sessions", tags=["quiz-sessions"])
logger = logging.getLogger(__name__)


@router.post("", response_model=QuizSessionResponse, status_code=201)
async def open_quiz_session(
    payload: Any = Body(...),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Open a new quiz session

    - quiz_type: find_note | name_note | mark_chord | recognize_interval
    - difficulty: easy | medium | hard
    - time_limit_seconds: required for hard, optional otherwise
    """
    session = quiz_session_service.open_session(db, user_id, payload)
    return QuizSessionResponse.model_validate(session)


@router.get("", response_model=QuizSessionListResponse)
async def list_quiz_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort: str = Query("completed_at:desc", pattern=SORT_PATTERN),
    quiz_type: Optional[QuizType] = None,
    difficulty: Optional[Difficulty] = None,
    status: Optional[SessionStatus] = None,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    List the caller's sessions

    Sort by started_at, completed_at or score, asc or desc
    (default completed_at:desc, unfinished sessions last).
    """
    query = QuizSessionListQuery(
        page=page,
        limit=limit,
        sort=sort,
        quiz_type=quiz_type,
        difficulty=difficulty,
        status=status,
    )
    result = quiz_session_service.list_sessions(db, user_id, query)
    return QuizSessionListResponse.model_validate(result, from_attributes=True)


@router.get("/{session_id}", response_model=QuizSessionDetail)
async def get_quiz_session(
    session_id: str,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get a session with its answers ordered by question number"""
    session = quiz_session_service.get_owned_session(db, user_id, session_id)
    return QuizSessionDetail.model_validate(session)


@router.patch("/{session_id}", response_model=QuizSessionResponse)
async def close_quiz_session(
    session_id: str,
    payload: Any = Body(...),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Close a session

    - status: completed (requires time_taken_seconds and all 10 answers)
      or abandoned (time_taken_seconds optional)
    - Closing an already closed session is a 409 conflict
    """
    session = quiz_session_service.close_session(db, user_id, session_id, payload)
    return QuizSessionResponse.model_validate(session)


@router.post("/{session_id}/answers", response_model=QuizAnswerResponse, status_code=201)
async def submit_answer(
    session_id: str,
    payload: Any = Body(...),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Record the answer to one question

    Each question_number (1-10) can be answered once per session.
    """
    answer = answer_ledger.submit_answer(db, user_id, session_id, payload)
    return QuizAnswerResponse.model_validate(answer)


@router.get("/{session_id}/answers", response_model=QuizAnswersList)
async def list_answers(
    session_id: str,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List a session's answers ordered by question number"""
    result = answer_ledger.list_answers(db, user_id, session_id)
    return QuizAnswersList.model_validate(result, from_attributes=True)
