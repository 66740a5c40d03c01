"""
Pydantic schemas for starting and submitting quiz attempts
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from decimal import Decimal


class AttemptStartRequest(BaseModel):
    """Request schema for starting (or resuming) an attempt"""
    student_id: UUID


class StudentAnswerRequest(BaseModel):
    """Answer to a single question"""
    question_id: UUID
    answer_text: Optional[str] = Field(None, max_length=10000)
    selected_option_ids: List[UUID] = []


class QuizSubmission(BaseModel):
    """Schema for quiz submission"""
    student_id: UUID
    answers: List[StudentAnswerRequest] = []


class QuizAttemptResponse(BaseModel):
    """Attempt as returned by start/submit; score fields are a snapshot"""
    id: UUID
    quiz_id: UUID
    student_id: UUID
    attempt_number: int
    score: Optional[Decimal] = None
    max_score: Optional[Decimal] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    is_completed: bool
    
    class Config:
        from_attributes = True
