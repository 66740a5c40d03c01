"""
Test result calculation service

Isolated from the attempt lifecycle: it runs in its own session, behind
a circuit breaker and retry policy, and degrades to a persisted ERROR
result instead of failing the caller.
"""
import logging
import time
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from quizcore.config import settings
from quizcore.database import SessionLocal
from quizcore.exceptions import InvalidStateError, NotFoundError, ResultCalculationError
from quizcore.models import QuizAttempt, StudentAnswer, TestResult, TestResultStatus
from quizcore.services.catalog_service import catalog_service
from quizcore.services.grading_service import ZERO, grading_service
from quizcore.utils.cache import cache_service
from quizcore.utils.resilience import ResiliencePolicy
from quizcore.utils.time import utcnow

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
TWO_PLACES = Decimal("0.01")
ERROR_MESSAGE_MAX_LENGTH = 500


def calculate_percentage(score: Decimal, max_score: Decimal) -> Decimal:
    """score * 100 / max_score, HALF_UP to 2 places; 0.00 when max_score is 0"""
    if max_score <= 0:
        return ZERO.quantize(TWO_PLACES)
    return (Decimal(score) * HUNDRED / Decimal(max_score)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class ResultCalculationService:
    """
    Turns completed attempts into TestResult rows

    Scores are recomputed from the stored answers and the current
    question set by re-running the grading rules; the attempt's own
    score/max_score snapshot is not trusted.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        policy: ResiliencePolicy,
        catalog=None,
        grader=None,
        cache=None,
        default_passing_score: Optional[Decimal] = None
    ):
        self.session_factory = session_factory
        self.policy = policy
        self.catalog = catalog or catalog_service
        self.grader = grader or grading_service
        self.cache = cache or cache_service
        self.default_passing_score = Decimal(
            str(settings.DEFAULT_PASSING_SCORE if default_passing_score is None else default_passing_score)
        )

    def calculate_result(
        self,
        attempt_id: UUID,
        passing_score: Optional[Decimal] = None,
        force_recalculation: bool = False
    ) -> TestResult:
        """
        Calculate and persist the result of a completed attempt

        Returns the existing result unless force_recalculation is set.
        Transient failures are retried; an open circuit or exhausted
        retries produce a persisted ERROR result.

        Raises:
            NotFoundError: attempt does not exist
            InvalidStateError: attempt is not completed
            ResultCalculationError: the fallback could not run either
        """
        logger.debug(f"Initiating test result calculation for attempt: {attempt_id}")

        return self.policy.execute(
            lambda: self._calculate_in_new_session(attempt_id, passing_score, force_recalculation),
            lambda error: self._calculate_fallback(attempt_id, error)
        )

    def _calculate_in_new_session(
        self,
        attempt_id: UUID,
        passing_score: Optional[Decimal],
        force_recalculation: bool
    ) -> TestResult:
        with self.session_factory() as db:
            try:
                result = self._compute_result(db, attempt_id, passing_score, force_recalculation)
                db.commit()
            except IntegrityError:
                # Another request wrote the result first; theirs is the answer
                db.rollback()
                result = self._find_by_attempt(db, attempt_id)
                if result is None:
                    raise
                logger.info(f"Test result for attempt {attempt_id} was calculated concurrently, returning it")
                db.expunge(result)
                return result
            except Exception:
                db.rollback()
                raise
            db.refresh(result)
            db.expunge(result)
        return result

    def _compute_result(
        self,
        db: Session,
        attempt_id: UUID,
        passing_score: Optional[Decimal],
        force_recalculation: bool
    ) -> TestResult:
        start_time = time.monotonic()
        logger.info(f"Calculating test result for quiz attempt: {attempt_id}")

        existing = self._find_by_attempt(db, attempt_id)
        if existing is not None and not force_recalculation:
            logger.info(f"Test result already exists for attempt: {attempt_id}")
            return existing

        attempt = db.get(QuizAttempt, attempt_id)
        if not attempt:
            raise NotFoundError(f"Quiz attempt not found with ID: {attempt_id}")

        if not attempt.is_completed:
            raise InvalidStateError("Cannot calculate result for incomplete attempt")

        answers = db.query(StudentAnswer).filter(StudentAnswer.attempt_id == attempt_id).all()
        answers_by_question = {answer.question_id: answer for answer in answers}
        questions = self.catalog.get_questions_with_options(db, attempt.quiz_id)

        total_score = ZERO
        max_score = ZERO
        correct_answers = 0

        for question in questions:
            max_score += Decimal(question.points)

            answer = answers_by_question.get(question.id)
            if answer is None or answer.skipped:
                continue

            is_correct, points = self.grader.grade_answer(
                question, answer.answer_text, answer.selected_option_ids
            )
            if is_correct:
                total_score += points
                correct_answers += 1

        percentage = calculate_percentage(total_score, max_score)

        if passing_score is None:
            passing_score = self.default_passing_score
        passing_score = Decimal(str(passing_score))

        status = TestResultStatus.PASSED if percentage >= passing_score else TestResultStatus.FAILED

        time_spent_seconds = None
        if attempt.started_at and attempt.completed_at:
            time_spent_seconds = int((attempt.completed_at - attempt.started_at).total_seconds())

        if existing is not None:
            logger.info(f"Replacing test result {existing.id} for attempt {attempt_id} (forced recalculation)")
            db.delete(existing)
            db.flush()

        result = TestResult(
            quiz_attempt_id=attempt.id,
            student_id=attempt.student_id,
            quiz_id=attempt.quiz_id,
            score=total_score,
            max_score=max_score,
            percentage=percentage,
            passing_score=passing_score,
            status=status,
            time_spent_seconds=time_spent_seconds,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
            correct_answers=correct_answers,
            total_questions=len(questions),
        )
        result.calculation_time_ms = int((time.monotonic() - start_time) * 1000)
        db.add(result)
        db.flush()

        self._invalidate_quiz_stats(attempt.quiz_id)

        logger.info(
            f"Test result calculated: attempt={attempt_id}, score={total_score}/{max_score}, "
            f"percentage={percentage}%, status={status.value}, time={result.calculation_time_ms}ms"
        )
        return result

    def _calculate_fallback(self, attempt_id: UUID, error: Exception) -> TestResult:
        """
        Persist an ERROR result when calculation is unavailable

        If the attempt itself cannot be read there is nothing left to
        degrade to, and ResultCalculationError is raised.
        """
        logger.error(
            f"Failed to calculate test result for attempt: {attempt_id}. Reason: {str(error)}",
            exc_info=error
        )

        try:
            with self.session_factory() as db:
                existing = self._find_by_attempt(db, attempt_id)
                if existing is not None:
                    logger.warning(f"Keeping existing test result {existing.id} for attempt {attempt_id}")
                    db.expunge(existing)
                    return existing

                attempt = db.get(QuizAttempt, attempt_id)
                if not attempt:
                    raise NotFoundError(f"Quiz attempt not found with ID: {attempt_id}")

                message = f"Calculation service unavailable: {str(error)}"
                result = TestResult(
                    quiz_attempt_id=attempt.id,
                    student_id=attempt.student_id,
                    quiz_id=attempt.quiz_id,
                    score=ZERO,
                    max_score=attempt.max_score if attempt.max_score is not None else ZERO,
                    percentage=ZERO,
                    status=TestResultStatus.ERROR,
                    started_at=attempt.started_at,
                    completed_at=attempt.completed_at,
                    error_message=message[:ERROR_MESSAGE_MAX_LENGTH],
                )
                db.add(result)
                db.commit()
                db.refresh(result)
                db.expunge(result)
        except Exception as fallback_error:
            logger.error(f"Fallback also failed for attempt: {attempt_id}", exc_info=fallback_error)
            raise ResultCalculationError("Test result calculation completely failed") from fallback_error

        self._invalidate_quiz_stats(result.quiz_id)
        return result

    def process_timed_out_attempts(self, db: Session, timeout_minutes: int) -> int:
        """
        Move IN_PROGRESS results older than timeout_minutes to TIMEOUT

        Returns:
            Number of results transitioned
        """
        logger.info(f"Processing timed out test attempts (timeout: {timeout_minutes} minutes)")

        now = utcnow()
        cutoff = now - timedelta(minutes=timeout_minutes)
        timed_out = (
            db.query(TestResult)
            .filter(TestResult.status == TestResultStatus.IN_PROGRESS, TestResult.created_at < cutoff)
            .all()
        )

        for result in timed_out:
            result.status = TestResultStatus.TIMEOUT
            result.completed_at = now
            result.error_message = f"Test timed out after {timeout_minutes} minutes"

        db.commit()

        if timed_out:
            logger.info(f"Marked {len(timed_out)} test attempts as timed out")
        return len(timed_out)

    @staticmethod
    def _find_by_attempt(db: Session, attempt_id: UUID) -> Optional[TestResult]:
        return db.query(TestResult).filter(TestResult.quiz_attempt_id == attempt_id).first()

    def _invalidate_quiz_stats(self, quiz_id: UUID) -> None:
        self.cache.invalidate_quiz_stats(quiz_id)

    def get_result_by_id(self, db: Session, result_id: UUID) -> TestResult:
        result = db.get(TestResult, result_id)
        if not result:
            raise NotFoundError(f"Test result not found with ID: {result_id}")
        return result

    def get_result_by_attempt(self, db: Session, attempt_id: UUID) -> TestResult:
        result = self._find_by_attempt(db, attempt_id)
        if not result:
            raise NotFoundError(f"Test result not found for quiz attempt ID: {attempt_id}")
        return result

    def result_exists_for_attempt(self, db: Session, attempt_id: UUID) -> bool:
        return self._find_by_attempt(db, attempt_id) is not None

    def get_results_by_student(self, db: Session, student_id: UUID) -> List[TestResult]:
        return (
            db.query(TestResult)
            .filter(TestResult.student_id == student_id)
            .order_by(TestResult.created_at.desc())
            .all()
        )

    def get_results_by_quiz(self, db: Session, quiz_id: UUID) -> List[TestResult]:
        return (
            db.query(TestResult)
            .filter(TestResult.quiz_id == quiz_id)
            .order_by(TestResult.created_at.desc())
            .all()
        )

    def get_results_by_student_and_quiz(self, db: Session, student_id: UUID, quiz_id: UUID) -> List[TestResult]:
        return (
            db.query(TestResult)
            .filter(TestResult.student_id == student_id, TestResult.quiz_id == quiz_id)
            .order_by(TestResult.created_at.desc())
            .all()
        )

    def get_results_by_status(self, db: Session, status: TestResultStatus) -> List[TestResult]:
        return db.query(TestResult).filter(TestResult.status == status).all()

    def get_top_scores_by_quiz(self, db: Session, quiz_id: UUID, limit: int = 10) -> List[TestResult]:
        return (
            db.query(TestResult)
            .filter(TestResult.quiz_id == quiz_id, TestResult.status == TestResultStatus.PASSED)
            .order_by(TestResult.score.desc())
            .limit(limit)
            .all()
        )

    def get_results_in_date_range(self, db: Session, start: datetime, end: datetime) -> List[TestResult]:
        return (
            db.query(TestResult)
            .filter(TestResult.completed_at.between(start, end))
            .order_by(TestResult.completed_at.desc())
            .all()
        )

    def get_quiz_statistics(self, db: Session, quiz_id: UUID) -> Dict[str, Any]:
        """
        Pass/fail counts and average percentage over graded results

        Served from the cache when possible; ERROR and TIMEOUT results
        are excluded.
        """
        cached = self.cache.get_quiz_stats(quiz_id)
        if cached:
            return cached

        average = (
            db.query(func.avg(TestResult.percentage))
            .filter(
                TestResult.quiz_id == quiz_id,
                TestResult.status.in_([TestResultStatus.PASSED, TestResultStatus.FAILED])
            )
            .scalar()
        )
        passed = self._count_by_status(db, quiz_id, TestResultStatus.PASSED)
        failed = self._count_by_status(db, quiz_id, TestResultStatus.FAILED)

        statistics = {
            "quiz_id": str(quiz_id),
            "average_percentage": round(float(average), 2) if average is not None else 0.0,
            "passed_count": passed,
            "failed_count": failed,
            "total_attempts": passed + failed
        }

        self.cache.store_quiz_stats(quiz_id, statistics)
        return statistics

    @staticmethod
    def _count_by_status(db: Session, quiz_id: UUID, status: TestResultStatus) -> int:
        return (
            db.query(func.count(TestResult.id))
            .filter(TestResult.quiz_id == quiz_id, TestResult.status == status)
            .scalar()
        ) or 0


# Global instance
result_service = ResultCalculationService(
    session_factory=SessionLocal,
    policy=ResiliencePolicy.from_settings("testResultCalculation")
)
