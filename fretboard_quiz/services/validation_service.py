"""
Command validation layer

Validates open/close/answer payloads against their discriminated variants and
translates pydantic errors into the quiz-core error taxonomy.
"""
import logging
from typing import Any, Dict, Mapping, Union

from pydantic import TypeAdapter, ValidationError

from fretboard_quiz.schemas.enums import QuizType
from fretboard_quiz.schemas.quiz_answer import ANSWER_VARIANTS, AnswerSubmission
from fretboard_quiz.schemas.quiz_session import (
    AbandonSessionCommand,
    CloseSessionCommand,
    CompleteSessionCommand,
    OpenSessionCommand,
    TimedSessionOpen,
    UntimedSessionOpen,
)
from fretboard_quiz.utils.errors import CommandValidationError, InvalidStatusTransition

logger = logging.getLogger(__name__)

# Fields that are required only under certain enum values
CONDITIONAL_FIELDS = {
    "time_limit_seconds",
    "time_taken_seconds",
    "target_note",
    "target_root_note",
    "target_chord_type",
    "target_interval",
}

# Vocabulary fields: an absent value is as invalid as an unknown one
ENUM_FIELDS = {"quiz_type", "difficulty"}

ENUM_ERROR_TYPES = {"enum", "literal_error", "union_tag_invalid"}
NUMERIC_ERROR_TYPES = {"int_type", "int_parsing", "int_from_float"}
RANGE_ERROR_TYPES = {"greater_than", "greater_than_equal", "less_than", "less_than_equal"}


class ValidationService:
    """Validates commands as a pure function of the payload and session state"""

    def __init__(self):
        self._open_adapter = TypeAdapter(OpenSessionCommand)
        self._close_adapter = TypeAdapter(CloseSessionCommand)

    def validate_open(self, payload: Any) -> Union[TimedSessionOpen, UntimedSessionOpen]:
        """
        Validate an open-session command

        Raises:
            CommandValidationError: invalid enum, missing time limit for hard
                mode, non-integer or non-positive time limit
        """
        try:
            return self._open_adapter.validate_python(self._as_mapping(payload))
        except ValidationError as e:
            raise self._translate(e, discriminator="difficulty") from e

    def validate_close(self, payload: Any) -> Union[CompleteSessionCommand, AbandonSessionCommand]:
        """
        Validate a close-session command

        Raises:
            InvalidStatusTransition: target status missing or not completed/abandoned
            CommandValidationError: completion without time_taken_seconds,
                negative or non-integer durations
        """
        payload = self._as_mapping(payload)
        try:
            return self._close_adapter.validate_python(payload)
        except ValidationError as e:
            for error in e.errors():
                if error["type"] in ("union_tag_invalid", "union_tag_not_found"):
                    logger.warning(f"Rejected close with status={payload.get('status')!r}")
                    raise InvalidStatusTransition(
                        "Target status must be 'completed' or 'abandoned' "
                        f"(got {payload.get('status')!r})"
                    ) from e
            raise self._translate(e, discriminator="status") from e

    def validate_answer(self, quiz_type: QuizType, payload: Any) -> AnswerSubmission:
        """
        Validate an answer against the variant for the session's quiz type

        Raises:
            CommandValidationError: out-of-range question/position, missing
                target for the quiz type, populated foreign payload field,
                fractional durations
        """
        variant = ANSWER_VARIANTS[QuizType(quiz_type)]
        try:
            return variant.model_validate(self._as_mapping(payload))
        except ValidationError as e:
            raise self._translate(e) from e

    @staticmethod
    def _as_mapping(payload: Any) -> Mapping[str, Any]:
        if not isinstance(payload, Mapping):
            raise CommandValidationError("Request body must be a JSON object", kind="invalid_field")
        return payload

    @staticmethod
    def _translate(exc: ValidationError, discriminator: str = None) -> CommandValidationError:
        """Map the first pydantic error onto a CommandValidationError kind"""
        error: Dict[str, Any] = exc.errors()[0]
        error_type = error["type"]
        loc = [str(part) for part in error["loc"]]

        # Discriminated unions prefix the location with the matched tag
        if discriminator and loc and error_type not in ("union_tag_invalid", "union_tag_not_found"):
            loc = loc[1:]

        field = ".".join(loc) or None
        leaf = loc[-1] if loc else None

        if error_type == "union_tag_not_found":
            field = discriminator
            kind = "invalid_enum"
            message = f"{discriminator} is required"
        elif error_type == "union_tag_invalid":
            field = discriminator
            kind = "invalid_enum"
            message = f"Invalid {discriminator}"
        elif error_type == "unexpected_field":
            field = error.get("ctx", {}).get("field")
            kind = "unexpected_field"
            message = error["msg"]
        elif error_type == "missing" or (leaf in CONDITIONAL_FIELDS and error.get("input", 0) is None):
            if leaf in CONDITIONAL_FIELDS:
                kind = "missing_conditional_field"
            elif leaf in ENUM_FIELDS:
                kind = "invalid_enum"
            else:
                kind = "invalid_field"
            message = f"{field} is required"
        elif error_type in ENUM_ERROR_TYPES:
            kind = "invalid_enum"
            message = f"Invalid {leaf}"
        elif error_type in NUMERIC_ERROR_TYPES:
            kind = "invalid_numeric_format"
            message = f"{field} must be an integer"
        elif error_type in RANGE_ERROR_TYPES:
            kind = "out_of_range"
            message = f"{field}: {error['msg']}"
        else:
            kind = "invalid_field"
            message = f"{field}: {error['msg']}" if field else error["msg"]

        logger.warning(f"Command rejected ({kind}): {message}")
        return CommandValidationError(message, kind=kind, field=field)


# Global instance
validation_service = ValidationService()
