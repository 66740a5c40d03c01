"""
TestResult model - authoritative, recomputed outcome of a completed attempt
"""
from sqlalchemy import (
    Column, Integer, BigInteger, String, TIMESTAMP, DECIMAL, ForeignKey, Enum, Uuid, func
)
from sqlalchemy.orm import relationship
from quizcore.database import Base
from quizcore.models.enums import TestResultStatus
from quizcore.utils.time import utcnow
import uuid


class TestResult(Base):
    """
    Test results table - at most one row per quiz attempt
    """
    __tablename__ = "test_results"
    __test__ = False  # not a pytest test class
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_attempt_id = Column(Uuid(as_uuid=True), ForeignKey("quiz_attempts.id"), nullable=False, unique=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id"), nullable=False, index=True)
    score = Column(DECIMAL(10, 2), nullable=False)
    max_score = Column(DECIMAL(10, 2), nullable=False)
    percentage = Column(DECIMAL(5, 2), nullable=False)  # 0.00 to 100.00, not clamped
    passing_score = Column(DECIMAL(5, 2))
    status = Column(
        Enum(TestResultStatus, native_enum=False, length=20),
        nullable=False,
        default=TestResultStatus.IN_PROGRESS,
        index=True
    )
    time_spent_seconds = Column(BigInteger)
    started_at = Column(TIMESTAMP, nullable=False)
    completed_at = Column(TIMESTAMP)
    correct_answers = Column(Integer)
    total_questions = Column(Integer)
    calculation_time_ms = Column(BigInteger)
    error_message = Column(String(500))
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())
    
    quiz_attempt = relationship("QuizAttempt")
    student = relationship("User")
    quiz = relationship("Quiz")
    
    @property
    def formatted_time_spent(self) -> str:
        """Human-readable time spent, e.g. '1h 2m 3s'"""
        if self.time_spent_seconds is None:
            return "N/A"
        
        hours, remainder = divmod(int(self.time_spent_seconds), 3600)
        minutes, seconds = divmod(remainder, 60)
        
        if hours > 0:
            return f"{hours}h {minutes}m {seconds}s"
        if minutes > 0:
            return f"{minutes}m {seconds}s"
        return f"{seconds}s"
    
    @property
    def is_passed(self) -> bool:
        if self.status not in (TestResultStatus.PASSED, TestResultStatus.FAILED):
            return False
        if self.passing_score is None:
            return self.status == TestResultStatus.PASSED
        return self.percentage >= self.passing_score
    
    def __repr__(self):
        return f"<TestResult(attempt_id={self.quiz_attempt_id}, status={self.status}, percentage={self.percentage})>"
