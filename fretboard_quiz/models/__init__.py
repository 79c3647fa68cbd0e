"""
Database models package
"""
from fretboard_quiz.models.quiz_session import QuizSession
from fretboard_quiz.models.quiz_answer import QuizAnswer

__all__ = ["QuizSession", "QuizAnswer"]
