"""
Mastery analytics API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from datetime import date
import logging

from fretboard_quiz.api.deps import get_current_user_id
from fretboard_quiz.database import get_db
from fretboard_quiz.schemas.analytics import HeatmapResponse, NoteMasteryResponse, StatsOverview
from fretboard_quiz.schemas.enums import QuizType
from fretboard_quiz.services.analytics_service import analytics_service
from fretboard_quiz.utils.errors import CommandValidationError, QuizError

router = APIRouter(prefix="/api/stats", tags=["analytics"])
logger = logging.getLogger(__name__)

FRET_RANGES = (12, 24)


@router.get("/note-mastery", response_model=NoteMasteryResponse)
async def get_note_mastery(
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Accuracy per pitch class across the caller's answer history

    Returns all 12 notes, zero-filled when never asked.
    """

    try:
        logger.info(f"Fetching note mastery for user {user_id}")

        mastery = analytics_service.get_note_mastery(db, user_id)

        return NoteMasteryResponse(**mastery)

    except QuizError:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch note mastery: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch note mastery: {str(e)}"
        )


@router.get("/heatmap", response_model=HeatmapResponse)
async def get_heatmap(
    quiz_type: Optional[QuizType] = None,
    from_date: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    to_date: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    fret_range: Optional[int] = Query(None, description="12 or 24; materialize every cell up to this fret"),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Fretboard error heatmap

    Returns:
    - Cells with at least one error, with intensity relative to the worst cell
    - max_error_count and total_errors
    - Full grid for strings 1-6 when fret_range is given
    """

    if from_date and to_date and from_date > to_date:
        raise CommandValidationError("from_date must not be after to_date", kind="out_of_range", field="from_date")
    if fret_range is not None and fret_range not in FRET_RANGES:
        raise CommandValidationError("fret_range must be 12 or 24", kind="out_of_range", field="fret_range")

    try:
        logger.info(f"Fetching heatmap for user {user_id}")

        heatmap = analytics_service.get_heatmap(
            db,
            user_id,
            quiz_type=quiz_type,
            from_date=from_date,
            to_date=to_date,
            fret_range=fret_range,
        )

        return HeatmapResponse(**heatmap)

    except QuizError:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch heatmap: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch heatmap: {str(e)}"
        )


@router.get("/overview", response_model=StatsOverview)
async def get_overview(
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Stats overview

    Returns:
    - Total completed quizzes and time spent
    - Current and longest streak (UTC days)
    - Breakdown by quiz type and by difficulty
    - Last 7 days vs previous 7 days trend
    """

    try:
        logger.info(f"Fetching stats overview for user {user_id}")

        overview = analytics_service.get_overview(db, user_id)

        return StatsOverview(**overview)

    except QuizError:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch stats overview: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch statistics: {str(e)}"
        )
