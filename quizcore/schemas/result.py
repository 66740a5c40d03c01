"""
Pydantic schemas for test result calculation and queries
"""
from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import datetime
from decimal import Decimal

from quizcore.models.enums import TestResultStatus


class TestResultCalculationRequest(BaseModel):
    """Request schema for result calculation"""
    __test__ = False  # not a pytest test class
    
    quiz_attempt_id: UUID
    passing_score: Optional[Decimal] = Field(None, ge=0, le=100, description="Percentage needed to pass (default 70)")
    force_recalculation: bool = False


class TestResultResponse(BaseModel):
    """Calculated (authoritative) result of an attempt"""
    __test__ = False  # not a pytest test class
    
    id: UUID
    quiz_attempt_id: UUID
    student_id: UUID
    quiz_id: UUID
    score: Decimal
    max_score: Decimal
    percentage: Decimal
    passing_score: Optional[Decimal] = None
    status: TestResultStatus
    is_passed: bool
    time_spent_seconds: Optional[int] = None
    formatted_time_spent: str
    correct_answers: Optional[int] = None
    total_questions: Optional[int] = None
    calculation_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True


class QuizStatistics(BaseModel):
    """Aggregate results for a quiz"""
    quiz_id: UUID
    average_percentage: float
    passed_count: int
    failed_count: int
    total_attempts: int


class TimeoutSweepResponse(BaseModel):
    """Outcome of a manual timeout sweep"""
    timeout_minutes: int
    timed_out: int
