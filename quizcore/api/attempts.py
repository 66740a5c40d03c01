"""
Quiz attempt API endpoints: quiz view, start, submit, attempt lookups
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from quizcore.api.dependencies import get_attempt_service
from quizcore.database import get_db
from quizcore.exceptions import NotFoundError
from quizcore.schemas.attempt import AttemptStartRequest, QuizAttemptResponse, QuizSubmission
from quizcore.schemas.quiz import QuizView
from quizcore.services.attempt_service import AttemptService
from quizcore.services.catalog_service import catalog_service


router = APIRouter(prefix="/api", tags=["attempts"])
logger = logging.getLogger(__name__)


@router.get("/quizzes/{quiz_id}", response_model=QuizView)
def get_quiz(quiz_id: UUID, db: Session = Depends(get_db)):
    """
    Get a quiz with its ordered questions and options

    Option correctness is never included.
    """
    quiz = catalog_service.get_quiz_with_questions(db, quiz_id)
    if not quiz:
        raise NotFoundError(f"Quiz not found with ID: {quiz_id}")
    return quiz


@router.post("/quizzes/{quiz_id}/attempts", response_model=QuizAttemptResponse, status_code=201)
def start_attempt(
    quiz_id: UUID,
    request: AttemptStartRequest,
    db: Session = Depends(get_db),
    service: AttemptService = Depends(get_attempt_service)
):
    """
    Start a quiz attempt

    - Returns the student's current incomplete attempt if there is one
    - Enforces quiz activity and the maximum number of attempts
    """
    logger.info(f"Start attempt request for quiz {quiz_id} by student {request.student_id}")
    return service.start_attempt(db, quiz_id, request.student_id)


@router.post("/quizzes/{quiz_id}/attempts/submit", response_model=QuizAttemptResponse)
def submit_attempt(
    quiz_id: UUID,
    submission: QuizSubmission,
    db: Session = Depends(get_db),
    service: AttemptService = Depends(get_attempt_service)
):
    """
    Submit and grade the active attempt

    Grading:
    - SINGLE_CHOICE: exactly one selected option, which must be correct
    - MULTIPLE_CHOICE: selected set equals the correct set
    - TEXT: accepted with full points

    A second submission of the same attempt returns 404.
    """
    logger.info(f"Submit attempt request for quiz {quiz_id} by student {submission.student_id}")
    return service.submit_attempt(db, quiz_id, submission.student_id, submission.answers)


@router.get("/quizzes/{quiz_id}/attempts", response_model=List[QuizAttemptResponse])
def get_quiz_attempts(
    quiz_id: UUID,
    db: Session = Depends(get_db),
    service: AttemptService = Depends(get_attempt_service)
):
    return service.get_quiz_attempts(db, quiz_id)


@router.get("/attempts/{attempt_id}", response_model=QuizAttemptResponse)
def get_attempt(
    attempt_id: UUID,
    db: Session = Depends(get_db),
    service: AttemptService = Depends(get_attempt_service)
):
    return service.get_attempt(db, attempt_id)


@router.get("/students/{student_id}/attempts", response_model=List[QuizAttemptResponse])
def get_student_attempts(
    student_id: UUID,
    db: Session = Depends(get_db),
    service: AttemptService = Depends(get_attempt_service)
):
    return service.get_student_attempts(db, student_id)
