"""
Quiz model - a timed assessment belonging to a course
"""
from sqlalchemy import Column, String, Text, Integer, Boolean, TIMESTAMP, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from quizcore.database import Base
from quizcore.utils.time import utcnow
import uuid


class Quiz(Base):
    """
    Quizzes table - soft-deleted via is_active, never hard-deleted once attempted
    """
    __tablename__ = "quizzes"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    max_attempts = Column(Integer)  # None = unlimited
    time_limit_minutes = Column(Integer)  # None = no limit
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    
    course = relationship("Course", back_populates="quizzes")
    questions = relationship(
        "Question",
        back_populates="quiz",
        order_by="Question.order_index",
        cascade="all, delete-orphan"
    )
    
    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, active={self.is_active})>"
