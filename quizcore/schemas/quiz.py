"""
Pydantic schemas for the student-facing quiz view
"""
from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID

from quizcore.models.enums import QuestionType


class AnswerOptionView(BaseModel):
    """Answer option without its correctness flag"""
    id: UUID
    option_text: str
    order_index: int
    
    class Config:
        from_attributes = True


class QuestionView(BaseModel):
    """Question as shown to the student answering it"""
    id: UUID
    question_text: str
    question_type: QuestionType
    points: int
    order_index: int
    options: List[AnswerOptionView] = []
    
    class Config:
        from_attributes = True


class QuizView(BaseModel):
    """Quiz with ordered questions, safe to send to students"""
    id: UUID
    course_id: UUID
    title: str
    description: Optional[str] = None
    max_attempts: Optional[int] = None
    time_limit_minutes: Optional[int] = None
    is_active: bool
    questions: List[QuestionView] = []
    
    class Config:
        from_attributes = True
