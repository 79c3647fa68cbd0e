"""
Pydantic schemas for analytics endpoints
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date

from fretboard_quiz.schemas.enums import QuizType
from fretboard_quiz.schemas.fretboard import Note


class NoteMasteryItem(BaseModel):
    """Mastery for a single pitch class"""
    note: Note
    total_attempts: int
    correct_count: int
    error_count: int
    accuracy: int = Field(..., ge=0, le=100)


class NoteMasteryResponse(BaseModel):
    """Mastery for all 12 pitch classes"""
    data: List[NoteMasteryItem]
    total_attempts: int
    total_errors: int
    overall_accuracy: int


class HeatmapCell(BaseModel):
    """Errors at one (string, fret) coordinate"""
    string_number: int
    fret_position: int
    error_count: int
    intensity: float = Field(..., ge=0.0, le=1.0)


class HeatmapFilters(BaseModel):
    quiz_type: Optional[QuizType] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None


class HeatmapResponse(BaseModel):
    """Fretboard error heatmap"""
    data: List[HeatmapCell]
    max_error_count: int
    total_errors: int
    filters: HeatmapFilters
    grid: Optional[List[HeatmapCell]] = None


class QuizTypeStats(BaseModel):
    count: int
    average_score: Optional[float] = None
    best_score: Optional[int] = None
    total_time_seconds: int


class DifficultyStats(BaseModel):
    count: int
    average_score: Optional[float] = None


class TrendWindow(BaseModel):
    quizzes: int
    average_score: float


class RecentTrend(BaseModel):
    last_7_days: TrendWindow
    previous_7_days: TrendWindow
    improvement: float


class StatsOverview(BaseModel):
    """Completed-quiz totals, breakdowns and streaks"""
    total_quizzes: int
    total_time_seconds: int
    current_streak: int
    longest_streak: int
    by_quiz_type: Dict[str, QuizTypeStats]
    by_difficulty: Dict[str, DifficultyStats]
    recent_trend: RecentTrend
