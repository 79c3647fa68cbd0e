"""
Pydantic schemas for answer submission, one variant per quiz type
"""
from pydantic import BaseModel, ConfigDict, Field, StrictBool, model_validator
from pydantic_core import PydanticCustomError
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple, Type
from uuid import UUID

from fretboard_quiz.schemas.enums import QuizType
from fretboard_quiz.schemas.fretboard import (
    ChordType, FretNumber, FretPosition, Interval, Note, StringNumber,
)
from fretboard_quiz.utils.clock import UtcDatetime

MAX_QUESTION_NUMBER = 10

QuestionNumber = Annotated[int, Field(strict=True, ge=1, le=MAX_QUESTION_NUMBER)]
TimeTakenMs = Annotated[int, Field(strict=True, ge=0)]

# Target/answer columns owned by exactly one family of quiz types
PAYLOAD_FIELDS: Tuple[str, ...] = (
    "target_note",
    "user_answer_note",
    "target_root_note",
    "target_chord_type",
    "user_answer_positions",
    "target_interval",
    "reference_fret_position",
    "reference_string_number",
    "user_answer_interval",
)


class AnswerSubmission(BaseModel):
    """
    Fields common to every quiz type

    Payload fields belonging to another quiz type may be absent or null but
    never populated.
    """
    model_config = ConfigDict(extra="ignore")

    payload_fields: ClassVar[Tuple[str, ...]] = ()

    question_number: QuestionNumber
    is_correct: StrictBool
    time_taken_ms: Optional[TimeTakenMs] = None
    fret_position: Optional[FretNumber] = None
    string_number: Optional[StringNumber] = None

    @model_validator(mode="before")
    @classmethod
    def reject_foreign_payload(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for field in PAYLOAD_FIELDS:
                if field not in cls.payload_fields and data.get(field) is not None:
                    raise PydanticCustomError(
                        "unexpected_field",
                        "{field} does not apply to this quiz type",
                        {"field": field},
                    )
        return data

    def to_record(self) -> Dict[str, Any]:
        """Column values for the answer row"""
        return self.model_dump(mode="json")


class FindNoteAnswer(AnswerSubmission):
    payload_fields: ClassVar[Tuple[str, ...]] = ("target_note", "user_answer_note")

    target_note: Note
    user_answer_note: Optional[Note] = None


class NameNoteAnswer(AnswerSubmission):
    payload_fields: ClassVar[Tuple[str, ...]] = ("target_note", "user_answer_note")

    target_note: Note
    user_answer_note: Optional[Note] = None


class MarkChordAnswer(AnswerSubmission):
    payload_fields: ClassVar[Tuple[str, ...]] = (
        "target_root_note", "target_chord_type", "user_answer_positions",
    )

    target_root_note: Note
    target_chord_type: ChordType
    user_answer_positions: Optional[List[FretPosition]] = None


class RecognizeIntervalAnswer(AnswerSubmission):
    payload_fields: ClassVar[Tuple[str, ...]] = (
        "target_interval", "reference_fret_position", "reference_string_number", "user_answer_interval",
    )

    target_interval: Interval
    reference_fret_position: Optional[FretNumber] = None
    reference_string_number: Optional[StringNumber] = None
    user_answer_interval: Optional[Interval] = None


ANSWER_VARIANTS: Dict[QuizType, Type[AnswerSubmission]] = {
    QuizType.FIND_NOTE: FindNoteAnswer,
    QuizType.NAME_NOTE: NameNoteAnswer,
    QuizType.MARK_CHORD: MarkChordAnswer,
    QuizType.RECOGNIZE_INTERVAL: RecognizeIntervalAnswer,
}


class QuizAnswerResponse(BaseModel):
    """A stored answer"""
    id: UUID
    session_id: UUID
    question_number: int
    is_correct: bool
    time_taken_ms: Optional[int] = None
    fret_position: Optional[int] = None
    string_number: Optional[int] = None
    target_note: Optional[Note] = None
    user_answer_note: Optional[Note] = None
    target_root_note: Optional[Note] = None
    target_chord_type: Optional[ChordType] = None
    user_answer_positions: Optional[List[FretPosition]] = None
    target_interval: Optional[Interval] = None
    reference_fret_position: Optional[int] = None
    reference_string_number: Optional[int] = None
    user_answer_interval: Optional[Interval] = None
    created_at: UtcDatetime

    model_config = ConfigDict(from_attributes=True)


class QuizAnswersList(BaseModel):
    session_id: UUID
    answers: List[QuizAnswerResponse]
