"""
Analytics service for fretboard mastery tracking

Every view is recomputed from the session/answer log on each query. The
compute_* functions are pure: the same facts always give the same result.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fretboard_quiz.models import QuizAnswer, QuizSession
from fretboard_quiz.schemas.enums import Difficulty, QuizType, SessionStatus
from fretboard_quiz.schemas.fretboard import CHROMATIC_NOTES, MAX_STRING, MIN_STRING, Note
from fretboard_quiz.utils.clock import as_utc, utc_date, utcnow
from fretboard_quiz.utils.errors import PersistenceError

logger = logging.getLogger(__name__)


class AnswerFact(NamedTuple):
    """One answer joined with the fields of its session analytics need"""
    quiz_type: str
    is_correct: bool
    target_note: Optional[str] = None
    target_root_note: Optional[str] = None
    fret_position: Optional[int] = None
    string_number: Optional[int] = None
    session_completed_at: Optional[datetime] = None


class SessionFact(NamedTuple):
    quiz_type: str
    difficulty: str
    status: str
    score: Optional[int] = None
    time_taken_seconds: Optional[int] = None
    completed_at: Optional[datetime] = None


class StreakState(NamedTuple):
    current_streak: int
    longest_streak: int


def percent(part: int, whole: int) -> int:
    """Integer percentage rounded half-up; 0 for an empty whole"""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def round_one(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def mean_score(scores: Sequence[int]) -> Optional[float]:
    if not scores:
        return None
    return round_one(sum(scores) / len(scores))


# ---------------------------------------------------------------------------
# Note mastery
# ---------------------------------------------------------------------------


def mastery_note(fact: AnswerFact) -> Optional[Note]:
    """The pitch class a question was about: target note, else chord root"""
    name = fact.target_note or fact.target_root_note
    return Note(name) if name else None


def compute_note_mastery(facts: Iterable[AnswerFact]) -> Dict[str, Any]:
    """
    Per-pitch-class accuracy over answer outcomes

    All 12 notes are always reported, in chromatic order from C, so callers
    can render them uniformly.
    """
    correct: Dict[Note, int] = defaultdict(int)
    total: Dict[Note, int] = defaultdict(int)

    for fact in facts:
        note = mastery_note(fact)
        if note is None:
            continue
        total[note] += 1
        if fact.is_correct:
            correct[note] += 1

    data = [
        {
            "note": note.value,
            "total_attempts": total[note],
            "correct_count": correct[note],
            "error_count": total[note] - correct[note],
            "accuracy": percent(correct[note], total[note]),
        }
        for note in CHROMATIC_NOTES
    ]

    total_attempts = sum(item["total_attempts"] for item in data)
    total_errors = sum(item["error_count"] for item in data)

    return {
        "data": data,
        "total_attempts": total_attempts,
        "total_errors": total_errors,
        "overall_accuracy": percent(total_attempts - total_errors, total_attempts),
    }


# ---------------------------------------------------------------------------
# Error heatmap
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Heatmap:
    """
    Error counts per (string, fret)

    Only cells with errors are stored; any other cell is derived as zero.
    """
    errors: Mapping[Tuple[int, int], int] = field(default_factory=dict)

    @property
    def max_error_count(self) -> int:
        return max(self.errors.values(), default=0)

    @property
    def total_errors(self) -> int:
        return sum(self.errors.values())

    def intensity(self, error_count: int) -> float:
        peak = self.max_error_count
        if peak == 0:
            return 0.0
        return error_count / peak

    def cell(self, string_number: int, fret_position: int) -> Dict[str, Any]:
        error_count = self.errors.get((string_number, fret_position), 0)
        return {
            "string_number": string_number,
            "fret_position": fret_position,
            "error_count": error_count,
            "intensity": self.intensity(error_count),
        }

    def cells(self) -> List[Dict[str, Any]]:
        """Non-empty cells ordered by string then fret"""
        return [self.cell(string_number, fret) for string_number, fret in sorted(self.errors)]

    def grid(self, max_fret: int) -> List[Dict[str, Any]]:
        """Every cell for strings 1-6 and frets 0..max_fret"""
        return [
            self.cell(string_number, fret)
            for string_number in range(MIN_STRING, MAX_STRING + 1)
            for fret in range(0, max_fret + 1)
        ]


def compute_heatmap(facts: Iterable[AnswerFact]) -> Heatmap:
    """Count incorrect answers that carry a fretboard position"""
    errors: Dict[Tuple[int, int], int] = defaultdict(int)
    for fact in facts:
        if fact.is_correct or fact.fret_position is None or fact.string_number is None:
            continue
        errors[(fact.string_number, fact.fret_position)] += 1
    return Heatmap(errors=dict(errors))


def filter_answer_facts(
    facts: Iterable[AnswerFact],
    quiz_type: Optional[QuizType] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> List[AnswerFact]:
    """
    Restrict facts by quiz type and session completion date (inclusive)

    Answers of sessions that never closed have no date and pass date filters.
    """
    selected = []
    for fact in facts:
        if quiz_type is not None and fact.quiz_type != QuizType(quiz_type).value:
            continue
        completed_on = utc_date(fact.session_completed_at)
        if completed_on is not None:
            if from_date is not None and completed_on < from_date:
                continue
            if to_date is not None and completed_on > to_date:
                continue
        selected.append(fact)
    return selected


# ---------------------------------------------------------------------------
# Streaks and overview
# ---------------------------------------------------------------------------


def compute_streak(dates: Iterable[date], today: date) -> StreakState:
    """
    Streaks over distinct practice dates

    current_streak counts the run ending today, or ending yesterday when
    nothing was completed today yet; longest_streak is the longest run
    anywhere in history.
    """
    days = sorted(set(dates))
    if not days:
        return StreakState(current_streak=0, longest_streak=0)

    longest = run = 1
    for previous, day in zip(days, days[1:]):
        run = run + 1 if day - previous == timedelta(days=1) else 1
        longest = max(longest, run)

    current = 0
    if days[-1] in (today, today - timedelta(days=1)):
        current = 1
        for index in range(len(days) - 1, 0, -1):
            if days[index] - days[index - 1] != timedelta(days=1):
                break
            current += 1

    return StreakState(current_streak=current, longest_streak=longest)


def compute_recent_trend(sessions: Iterable[SessionFact], now: datetime) -> Dict[str, Any]:
    """Last 7 days vs the 7 days before, over completed sessions"""
    now = as_utc(now)
    week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)

    last_scores: List[int] = []
    previous_scores: List[int] = []
    last_count = previous_count = 0

    for session in sessions:
        if session.status != SessionStatus.COMPLETED.value or session.completed_at is None:
            continue
        completed_at = as_utc(session.completed_at)
        if week_ago <= completed_at <= now:
            last_count += 1
            if session.score is not None:
                last_scores.append(session.score)
        elif two_weeks_ago <= completed_at < week_ago:
            previous_count += 1
            if session.score is not None:
                previous_scores.append(session.score)

    last_avg = mean_score(last_scores) or 0.0
    previous_avg = mean_score(previous_scores) or 0.0

    improvement = 0.0
    if previous_avg > 0:
        improvement = round_one((last_avg - previous_avg) / previous_avg * 100)
    elif last_avg > 0:
        improvement = 100.0

    return {
        "last_7_days": {"quizzes": last_count, "average_score": last_avg},
        "previous_7_days": {"quizzes": previous_count, "average_score": previous_avg},
        "improvement": improvement,
    }


def compute_stats_overview(
    sessions: Iterable[SessionFact],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Totals, per-quiz-type and per-difficulty breakdowns, streaks and trend

    Only completed sessions count. Averages are None for empty buckets.
    """
    now = as_utc(now or utcnow())
    completed = [s for s in sessions if s.status == SessionStatus.COMPLETED.value]

    by_quiz_type = {}
    for quiz_type in QuizType:
        bucket = [s for s in completed if s.quiz_type == quiz_type.value]
        scores = [s.score for s in bucket if s.score is not None]
        by_quiz_type[quiz_type.value] = {
            "count": len(bucket),
            "average_score": mean_score(scores),
            "best_score": max(scores) if scores else None,
            "total_time_seconds": sum(s.time_taken_seconds or 0 for s in bucket),
        }

    by_difficulty = {}
    for difficulty in Difficulty:
        bucket = [s for s in completed if s.difficulty == difficulty.value]
        scores = [s.score for s in bucket if s.score is not None]
        by_difficulty[difficulty.value] = {
            "count": len(bucket),
            "average_score": mean_score(scores),
        }

    streak = compute_streak(
        (utc_date(s.completed_at) for s in completed if s.completed_at is not None),
        today=now.date(),
    )

    return {
        "total_quizzes": len(completed),
        "total_time_seconds": sum(s.time_taken_seconds or 0 for s in completed),
        "current_streak": streak.current_streak,
        "longest_streak": streak.longest_streak,
        "by_quiz_type": by_quiz_type,
        "by_difficulty": by_difficulty,
        "recent_trend": compute_recent_trend(completed, now),
    }


class AnalyticsService:
    """Loads a user's ledger slice and runs the aggregators over it"""

    def get_note_mastery(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        """
        Per-note mastery for a user

        Args:
            db: Database session
            user_id: User UUID

        Returns:
            Dictionary with 12 note rows and overall totals
        """
        return compute_note_mastery(self._answer_facts(db, user_id))

    def get_heatmap(
        self,
        db: Session,
        user_id: UUID,
        quiz_type: Optional[QuizType] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        fret_range: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Error heatmap for a user

        Args:
            quiz_type: Only answers of this quiz type
            from_date / to_date: Session completion date bounds (inclusive)
            fret_range: When given, also materialize every cell up to this fret

        Returns:
            Dictionary with sparse cells, totals, echoed filters and optional grid
        """
        facts = filter_answer_facts(self._answer_facts(db, user_id), quiz_type, from_date, to_date)
        heatmap = compute_heatmap(facts)

        logger.info(
            f"Heatmap for user {user_id}: {len(heatmap.errors)} cells, max={heatmap.max_error_count}"
        )

        return {
            "data": heatmap.cells(),
            "max_error_count": heatmap.max_error_count,
            "total_errors": heatmap.total_errors,
            "filters": {
                "quiz_type": QuizType(quiz_type).value if quiz_type else None,
                "from_date": from_date,
                "to_date": to_date,
            },
            "grid": heatmap.grid(fret_range) if fret_range is not None else None,
        }

    def get_overview(self, db: Session, user_id: UUID, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Stats overview including streaks and recent trend"""
        return compute_stats_overview(self._session_facts(db, user_id), now=now)

    @staticmethod
    def _answer_facts(db: Session, user_id: UUID) -> List[AnswerFact]:
        try:
            rows = (
                db.query(
                    QuizSession.quiz_type,
                    QuizAnswer.is_correct,
                    QuizAnswer.target_note,
                    QuizAnswer.target_root_note,
                    QuizAnswer.fret_position,
                    QuizAnswer.string_number,
                    QuizSession.completed_at,
                )
                .join(QuizSession, QuizAnswer.session_id == QuizSession.id)
                .filter(QuizSession.user_id == user_id)
                .order_by(QuizSession.started_at, QuizAnswer.question_number)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load answers for user {user_id}: {str(e)}")
            raise PersistenceError("Failed to load answer history") from e

        return [AnswerFact(*row) for row in rows]

    @staticmethod
    def _session_facts(db: Session, user_id: UUID) -> List[SessionFact]:
        try:
            rows = (
                db.query(
                    QuizSession.quiz_type,
                    QuizSession.difficulty,
                    QuizSession.status,
                    QuizSession.score,
                    QuizSession.time_taken_seconds,
                    QuizSession.completed_at,
                )
                .filter(QuizSession.user_id == user_id)
                .order_by(QuizSession.started_at)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load sessions for user {user_id}: {str(e)}")
            raise PersistenceError("Failed to load session history") from e

        return [SessionFact(*row) for row in rows]


# Global instance
analytics_service = AnalyticsService()
