"""
Test result API endpoints
"""
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
from datetime import datetime
import logging

from quizcore.api.dependencies import get_result_service
from quizcore.config import settings
from quizcore.database import get_db
from quizcore.exceptions import InvalidStateError
from quizcore.models.enums import TestResultStatus
from quizcore.schemas.result import (
    QuizStatistics,
    TestResultCalculationRequest,
    TestResultResponse,
    TimeoutSweepResponse,
)
from quizcore.services.result_service import ResultCalculationService


router = APIRouter(prefix="/api/test-results", tags=["test-results"])
logger = logging.getLogger(__name__)


@router.post("/calculate", response_model=TestResultResponse, status_code=201)
def calculate_result(
    request: TestResultCalculationRequest,
    response: Response,
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    """
    Calculate the result of a completed attempt

    - 201 when a result is written, 200 when an existing result is returned
    - Idempotent unless force_recalculation is set
    - Protected by circuit breaker and retry; when calculation is
      unavailable an ERROR result is stored and returned
    """
    logger.info(f"Calculate test result request for attempt: {request.quiz_attempt_id}")

    already_calculated = (
        not request.force_recalculation
        and service.result_exists_for_attempt(db, request.quiz_attempt_id)
    )

    result = service.calculate_result(
        request.quiz_attempt_id,
        passing_score=request.passing_score,
        force_recalculation=request.force_recalculation
    )

    if already_calculated:
        response.status_code = 200
    return result


@router.post("/process-timeouts", response_model=TimeoutSweepResponse)
def process_timeouts(
    timeout_minutes: int = Query(settings.RESULT_TIMEOUT_MINUTES, ge=1),
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    """Run the timeout sweep immediately"""
    timed_out = service.process_timed_out_attempts(db, timeout_minutes)
    return TimeoutSweepResponse(timeout_minutes=timeout_minutes, timed_out=timed_out)


@router.get("/range", response_model=List[TestResultResponse])
def get_results_in_date_range(
    start: datetime,
    end: datetime,
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    if start > end:
        raise InvalidStateError("start must not be after end")
    return service.get_results_in_date_range(db, start, end)


@router.get("/attempt/{attempt_id}", response_model=TestResultResponse)
def get_result_by_attempt(
    attempt_id: UUID,
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    return service.get_result_by_attempt(db, attempt_id)


@router.get("/student/{student_id}", response_model=List[TestResultResponse])
def get_results_by_student(
    student_id: UUID,
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    return service.get_results_by_student(db, student_id)


@router.get("/quiz/{quiz_id}", response_model=List[TestResultResponse])
def get_results_by_quiz(
    quiz_id: UUID,
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    return service.get_results_by_quiz(db, quiz_id)


@router.get("/quiz/{quiz_id}/student/{student_id}", response_model=List[TestResultResponse])
def get_results_by_student_and_quiz(
    quiz_id: UUID,
    student_id: UUID,
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    return service.get_results_by_student_and_quiz(db, student_id, quiz_id)


@router.get("/quiz/{quiz_id}/top-scores", response_model=List[TestResultResponse])
def get_top_scores(
    quiz_id: UUID,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    return service.get_top_scores_by_quiz(db, quiz_id, limit)


@router.get("/quiz/{quiz_id}/statistics", response_model=QuizStatistics)
def get_quiz_statistics(
    quiz_id: UUID,
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    return service.get_quiz_statistics(db, quiz_id)


@router.get("/status/{status}", response_model=List[TestResultResponse])
def get_results_by_status(
    status: TestResultStatus,
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    return service.get_results_by_status(db, status)


@router.get("/{result_id}", response_model=TestResultResponse)
def get_result_by_id(
    result_id: UUID,
    db: Session = Depends(get_db),
    service: ResultCalculationService = Depends(get_result_service)
):
    return service.get_result_by_id(db, result_id)
