"""
Question and AnswerOption models
"""
from sqlalchemy import Column, Text, Integer, Boolean, ForeignKey, Enum, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from quizcore.database import Base
from quizcore.models.enums import QuestionType
import uuid


class Question(Base):
    """
    Questions table - ordered within a quiz by order_index
    """
    __tablename__ = "questions"
    __table_args__ = (
        CheckConstraint("points > 0", name="ck_questions_points_positive"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(Enum(QuestionType, native_enum=False, length=20), nullable=False)
    points = Column(Integer, nullable=False, default=1)
    order_index = Column(Integer, nullable=False, default=0)
    
    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "AnswerOption",
        back_populates="question",
        order_by="AnswerOption.order_index",
        cascade="all, delete-orphan"
    )
    
    def __repr__(self):
        return f"<Question(id={self.id}, type={self.question_type}, points={self.points})>"


class AnswerOption(Base):
    """
    Answer options table - is_correct is never sent to the answering client
    """
    __tablename__ = "answer_options"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id"), nullable=False, index=True)
    option_text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False, default=0)
    
    question = relationship("Question", back_populates="options")
    
    def __repr__(self):
        return f"<AnswerOption(id={self.id}, correct={self.is_correct})>"
