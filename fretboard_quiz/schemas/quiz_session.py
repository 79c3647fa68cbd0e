"""
Pydantic schemas for quiz-session commands, queries and responses
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from fretboard_quiz.schemas.enums import QuizType, Difficulty, SessionStatus
from fretboard_quiz.schemas.quiz_answer import QuizAnswerResponse
from fretboard_quiz.utils.clock import UtcDatetime

TimeLimitSeconds = Annotated[int, Field(strict=True, ge=1)]
TimeTakenSeconds = Annotated[int, Field(strict=True, ge=0)]

SORT_PATTERN = r"^(started_at|completed_at|score):(asc|desc)$"


# Open-session variants, discriminated by difficulty


class TimedSessionOpen(BaseModel):
    """Hard mode: a countdown is mandatory"""
    quiz_type: QuizType
    difficulty: Literal["hard"]
    time_limit_seconds: TimeLimitSeconds


class UntimedSessionOpen(BaseModel):
    """Easy/medium: the time limit is optional"""
    quiz_type: QuizType
    difficulty: Literal["easy", "medium"]
    time_limit_seconds: Optional[TimeLimitSeconds] = None


OpenSessionCommand = Annotated[
    Union[TimedSessionOpen, UntimedSessionOpen],
    Field(discriminator="difficulty"),
]


# Close-session variants, discriminated by target status


class CompleteSessionCommand(BaseModel):
    status: Literal["completed"]
    time_taken_seconds: TimeTakenSeconds


class AbandonSessionCommand(BaseModel):
    status: Literal["abandoned"]
    time_taken_seconds: Optional[TimeTakenSeconds] = None


CloseSessionCommand = Annotated[
    Union[CompleteSessionCommand, AbandonSessionCommand],
    Field(discriminator="status"),
]


class QuizSessionListQuery(BaseModel):
    """Query parameters for listing sessions"""
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort: str = Field("completed_at:desc", pattern=SORT_PATTERN)
    quiz_type: Optional[QuizType] = None
    difficulty: Optional[Difficulty] = None
    status: Optional[SessionStatus] = None

    @property
    def sort_field(self) -> str:
        return self.sort.split(":")[0]

    @property
    def ascending(self) -> bool:
        return self.sort.split(":")[1] == "asc"


class QuizSessionResponse(BaseModel):
    """A session as returned by open/close"""
    id: UUID
    user_id: UUID
    quiz_type: QuizType
    difficulty: Difficulty
    status: SessionStatus
    score: Optional[int] = None
    time_limit_seconds: Optional[int] = None
    time_taken_seconds: Optional[int] = None
    started_at: UtcDatetime
    completed_at: Optional[UtcDatetime] = None

    model_config = ConfigDict(from_attributes=True)


class QuizSessionListItem(BaseModel):
    id: UUID
    quiz_type: QuizType
    difficulty: Difficulty
    score: Optional[int] = None
    status: SessionStatus
    time_taken_seconds: Optional[int] = None
    started_at: UtcDatetime
    completed_at: Optional[UtcDatetime] = None

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class QuizSessionListResponse(BaseModel):
    data: List[QuizSessionListItem]
    pagination: Pagination


class QuizSessionDetail(QuizSessionResponse):
    """Session including its answers ordered by question number"""
    answers: List[QuizAnswerResponse] = []
