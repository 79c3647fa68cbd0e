"""
Quiz vocabularies shared by commands, models and analytics
"""
from enum import Enum


class QuizType(str, Enum):
    FIND_NOTE = "find_note"
    NAME_NOTE = "name_note"
    MARK_CHORD = "mark_chord"
    RECOGNIZE_INTERVAL = "recognize_interval"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SessionStatus(str, Enum):
    """Clients may only request the terminal states"""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
