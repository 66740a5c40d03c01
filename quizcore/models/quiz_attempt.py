"""
QuizAttempt model - one student's run through a quiz
"""
from sqlalchemy import (
    Column, Integer, Boolean, TIMESTAMP, DECIMAL, ForeignKey, Uuid,
    UniqueConstraint, Index, text
)
from sqlalchemy.orm import relationship
from quizcore.database import Base
from quizcore.utils.time import utcnow
import uuid


class QuizAttempt(Base):
    """
    Quiz attempts table
    
    score/max_score are a snapshot written once at submission. The
    authoritative figures live on TestResult, which recomputes them.
    The partial unique index allows only one incomplete attempt per
    (quiz, student) across every service instance.
    """
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint("quiz_id", "student_id", "attempt_number", name="uq_quiz_attempts_number"),
        Index(
            "uq_quiz_attempts_active",
            "quiz_id",
            "student_id",
            unique=True,
            sqlite_where=text("is_completed = 0"),
            postgresql_where=text("is_completed = false"),
        ),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)
    score = Column(DECIMAL(10, 2))
    max_score = Column(DECIMAL(10, 2))
    started_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    completed_at = Column(TIMESTAMP)
    is_completed = Column(Boolean, nullable=False, default=False)
    
    quiz = relationship("Quiz")
    student = relationship("User")
    answers = relationship("StudentAnswer", back_populates="attempt")
    
    def __repr__(self):
        return (
            f"<QuizAttempt(id={self.id}, quiz_id={self.quiz_id}, student_id={self.student_id}, "
            f"number={self.attempt_number}, completed={self.is_completed})>"
        )
