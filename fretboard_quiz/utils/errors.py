"""
Domain error taxonomy

Every command failure is raised as a QuizError subclass carrying a stable
machine-readable code and the HTTP status the API layer renders it with.
"""
from typing import Any, Dict, Optional


class QuizError(Exception):
    """Base class for all quiz-core errors"""

    status_code: int = 400
    code: str = "bad_request"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class CommandValidationError(QuizError):
    """
    Malformed, missing or conditionally-required field

    kind is one of: invalid_enum, missing_conditional_field,
    invalid_numeric_format, out_of_range, unexpected_field,
    incomplete_session, invalid_field
    """

    code = "validation_error"

    def __init__(self, message: str, kind: str = "invalid_field", field: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["kind"] = self.kind
        body["field"] = self.field
        return body


class InvalidStatusTransition(QuizError):
    """Requested target state is not a legal close target"""

    code = "invalid_status_transition"


class Conflict(QuizError):
    """Session already left in_progress (terminal or lost a concurrent close)"""

    status_code = 409
    code = "conflict"


class DuplicateQuestion(QuizError):
    """An answer for this question number already exists in the session"""

    status_code = 409
    code = "duplicate_question"


class SessionClosed(QuizError):
    """Write attempted against a completed or abandoned session"""

    status_code = 409
    code = "session_closed"


class NotFound(QuizError):
    status_code = 404
    code = "not_found"


class Unauthorized(QuizError):
    """Caller has no identity (401) or does not own the session (403)"""

    status_code = 401
    code = "unauthorized"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code)
        if self.status_code == 403:
            self.code = "forbidden"


class PersistenceError(QuizError):
    """Storage failure; transient, the caller may retry"""

    status_code = 503
    code = "persistence_unavailable"
