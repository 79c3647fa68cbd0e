"""
QuizAnswer model - append-only answer records
"""
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, ForeignKey, CheckConstraint,
    UniqueConstraint, Uuid, JSON,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from fretboard_quiz.database import Base
import uuid


class QuizAnswer(Base):
    """
    Quiz answers table - one response per question within a session

    Polymorphic: each quiz type populates its own subset of the target/answer
    columns, the rest stay null.
    """
    __tablename__ = "quiz_answers"
    __table_args__ = (
        UniqueConstraint("session_id", "question_number", name="uq_answer_session_question"),
        CheckConstraint("question_number >= 1 AND question_number <= 10", name="ck_answer_question_number"),
        CheckConstraint("time_taken_ms IS NULL OR time_taken_ms >= 0", name="ck_answer_time_taken"),
        CheckConstraint(
            "fret_position IS NULL OR (fret_position >= 0 AND fret_position <= 24)",
            name="ck_answer_fret",
        ),
        CheckConstraint(
            "string_number IS NULL OR (string_number >= 1 AND string_number <= 6)",
            name="ck_answer_string",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("quiz_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    question_number = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    time_taken_ms = Column(Integer)

    # Position the question was asked about / answered at (heatmap source)
    fret_position = Column(Integer)
    string_number = Column(Integer)

    # find_note / name_note
    target_note = Column(String(2))
    user_answer_note = Column(String(2))

    # mark_chord
    target_root_note = Column(String(2))
    target_chord_type = Column(String(20))
    user_answer_positions = Column(JSON().with_variant(JSONB, "postgresql"))  # [{"fret": 3, "string": 5}]

    # recognize_interval
    target_interval = Column(String(20))
    reference_fret_position = Column(Integer)
    reference_string_number = Column(Integer)
    user_answer_interval = Column(String(20))

    created_at = Column(DateTime(timezone=True), nullable=False)

    session = relationship("QuizSession", back_populates="answers")

    def __repr__(self):
        return (
            f"<QuizAnswer(session_id={self.session_id}, question={self.question_number}, "
            f"correct={self.is_correct})>"
        )
