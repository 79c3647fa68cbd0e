"""
QuizSession model - one row per quiz attempt
"""
from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint, Uuid, text
from sqlalchemy.orm import relationship
from fretboard_quiz.database import Base
import uuid


class QuizSession(Base):
    """
    Quiz sessions table - lifecycle and results of a single quiz attempt
    """
    __tablename__ = "quiz_sessions"
    __table_args__ = (
        CheckConstraint("time_limit_seconds IS NULL OR time_limit_seconds > 0", name="ck_session_time_limit"),
        CheckConstraint("time_taken_seconds IS NULL OR time_taken_seconds >= 0", name="ck_session_time_taken"),
        CheckConstraint("score IS NULL OR (score >= 0 AND score <= 10)", name="ck_session_score"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    quiz_type = Column(String(20), nullable=False)
    difficulty = Column(String(20), nullable=False)
    score = Column(Integer)  # null until completed
    status = Column(String(20), nullable=False, default="in_progress", index=True)
    time_limit_seconds = Column(Integer)  # per-question limit, hard mode
    time_taken_seconds = Column(Integer)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True))  # set on completed or abandoned
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))

    answers = relationship(
        "QuizAnswer",
        back_populates="session",
        order_by="QuizAnswer.question_number",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<QuizSession(id={self.id}, quiz_type={self.quiz_type}, status={self.status})>"
