"""
Course model - only the ownership data the quiz core needs
"""
from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from quizcore.database import Base
from quizcore.utils.time import utcnow
import uuid


class Course(Base):
    """
    Courses table - a course groups quizzes and is owned by one teacher
    """
    __tablename__ = "courses"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    
    teacher = relationship("User")
    quizzes = relationship("Quiz", back_populates="course")
    
    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title})>"
