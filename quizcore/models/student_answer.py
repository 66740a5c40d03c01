"""
StudentAnswer model - graded answer to one question within an attempt
"""
from sqlalchemy import Column, Text, Boolean, DECIMAL, JSON, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from quizcore.database import Base
import uuid


class StudentAnswer(Base):
    """
    Student answers table - written once during submission, never updated
    """
    __tablename__ = "student_answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_student_answers_attempt_question"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    attempt_id = Column(Uuid(as_uuid=True), ForeignKey("quiz_attempts.id"), nullable=False, index=True)
    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id"), nullable=False)
    answer_text = Column(Text)
    selected_option_ids = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)  # ["<uuid>", ...]
    is_correct = Column(Boolean, nullable=False, default=False)
    points_earned = Column(DECIMAL(10, 2), nullable=False, default=0)
    skipped = Column(Boolean, nullable=False, default=False)  # audit row for an unanswered question
    
    attempt = relationship("QuizAttempt", back_populates="answers")
    question = relationship("Question")
    
    def __repr__(self):
        return f"<StudentAnswer(attempt_id={self.attempt_id}, question_id={self.question_id}, correct={self.is_correct})>"
