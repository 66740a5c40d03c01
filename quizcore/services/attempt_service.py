"""
Quiz attempt lifecycle: start, submit, look up

Invariants enforced here together with the store:
- at most one incomplete attempt per (student, quiz)
- attempt numbers are 1-based and unique per (quiz, student)
- an attempt is completed exactly once
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quizcore.config import settings
from quizcore.exceptions import BusinessRuleError, NotFoundError
from quizcore.models import QuestionType, QuizAttempt, StudentAnswer
from quizcore.services.catalog_service import catalog_service
from quizcore.services.grading_service import ZERO, grading_service
from quizcore.services.visit_tracking import visit_tracker
from quizcore.utils.time import utcnow

logger = logging.getLogger(__name__)


class AttemptService:
    """
    Service for starting and submitting quiz attempts

    Collaborators are injected so tests can swap the visit sink or the
    grader without touching module globals. Visit notifications run on
    `notifier` (any object with submit(fn, *args)), off the request thread.
    """

    def __init__(
        self,
        catalog=None,
        grader=None,
        visit_sink=None,
        record_unanswered: Optional[bool] = None,
        max_start_retries: Optional[int] = None,
        notifier=None
    ):
        self.catalog = catalog or catalog_service
        self.grader = grader or grading_service
        self.visit_sink = visit_sink or visit_tracker
        self.record_unanswered = (
            settings.RECORD_UNANSWERED_QUESTIONS if record_unanswered is None else record_unanswered
        )
        self.max_start_retries = max_start_retries or settings.START_ATTEMPT_MAX_RETRIES
        self.notifier = notifier or ThreadPoolExecutor(
            max_workers=settings.VISIT_NOTIFICATION_WORKERS,
            thread_name_prefix="visit-notify"
        )

    def start_attempt(self, db: Session, quiz_id: UUID, student_id: UUID) -> QuizAttempt:
        """
        Start (or resume) an attempt

        An existing incomplete attempt is returned unchanged. Two
        concurrent starts race on the store's unique indexes: the loser
        rolls back and re-reads the winner's attempt.

        Raises:
            NotFoundError: quiz or student does not exist
            BusinessRuleError: quiz inactive or attempts exhausted
        """
        logger.debug(f"Starting quiz attempt for quiz {quiz_id} by student {student_id}")

        for retry in range(self.max_start_retries):
            quiz = self.catalog.get_quiz_by_id(db, quiz_id)
            if not quiz:
                raise NotFoundError(f"Quiz not found with ID: {quiz_id}")

            student = self.catalog.get_user_by_id(db, student_id)
            if not student:
                raise NotFoundError(f"Student not found with ID: {student_id}")

            if not quiz.is_active:
                raise BusinessRuleError("Quiz is not active")

            active_attempt = self.find_active_attempt(db, student_id, quiz_id)
            if active_attempt:
                logger.info(f"Returning existing active attempt {active_attempt.id} for student {student_id}")
                return active_attempt

            attempt_count = self.count_attempts(db, student_id, quiz_id)
            if quiz.max_attempts is not None and attempt_count >= quiz.max_attempts:
                raise BusinessRuleError("Maximum attempts exceeded for this quiz")

            attempt = QuizAttempt(
                quiz_id=quiz_id,
                student_id=student_id,
                attempt_number=attempt_count + 1,
                is_completed=False,
                started_at=utcnow()
            )
            db.add(attempt)

            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                logger.warning(
                    f"Concurrent start detected for student {student_id} and quiz {quiz_id} "
                    f"(try {retry + 1}/{self.max_start_retries}): {e.orig}"
                )
                winner = self.find_active_attempt(db, student_id, quiz_id)
                if winner:
                    return winner
                continue

            db.refresh(attempt)
            self._notify_start(student_id, quiz.course_id, quiz_id)
            logger.info(f"Quiz attempt started: {attempt.id} (number {attempt.attempt_number})")
            return attempt

        raise BusinessRuleError("Could not start attempt because of concurrent modifications, please retry")

    def submit_attempt(
        self,
        db: Session,
        quiz_id: UUID,
        student_id: UUID,
        answers: Iterable[Any]
    ) -> QuizAttempt:
        """
        Grade and complete the student's active attempt

        Every question of the quiz counts towards max_score, answered or
        not. Answer rows are flushed before the attempt is completed, and
        the completion is a conditional update so a second submission of
        the same attempt cannot overwrite the first.

        Args:
            answers: items with question_id, answer_text, selected_option_ids

        Raises:
            NotFoundError: no active attempt (including double submission)
            BusinessRuleError: time limit exceeded
        """
        logger.debug(f"Submitting quiz attempt for quiz {quiz_id} by student {student_id}")

        attempt = self.find_active_attempt(db, student_id, quiz_id)
        if not attempt:
            raise NotFoundError("No active attempt found for this quiz")

        quiz = attempt.quiz
        now = utcnow()
        if quiz.time_limit_minutes is not None:
            deadline = attempt.started_at + timedelta(minutes=quiz.time_limit_minutes)
            if now > deadline:
                raise BusinessRuleError("Time limit exceeded for this quiz")

        questions = self.catalog.get_questions_with_options(db, quiz_id)
        submitted = self._index_answers(answers)

        student_answers: List[StudentAnswer] = []
        total_score = ZERO
        max_score = ZERO

        for question in questions:
            max_score += Decimal(question.points)

            answer = submitted.get(question.id)
            if answer is None:
                if self.record_unanswered:
                    student_answers.append(StudentAnswer(
                        attempt_id=attempt.id,
                        question_id=question.id,
                        selected_option_ids=[],
                        is_correct=False,
                        points_earned=ZERO,
                        skipped=True
                    ))
                continue

            student_answer = self._grade(attempt, question, answer)
            student_answers.append(student_answer)
            total_score += student_answer.points_earned

        try:
            db.add_all(student_answers)
            db.flush()

            updated = (
                db.query(QuizAttempt)
                .filter(QuizAttempt.id == attempt.id, QuizAttempt.is_completed.is_(False))
                .update(
                    {
                        QuizAttempt.score: total_score,
                        QuizAttempt.max_score: max_score,
                        QuizAttempt.completed_at: now,
                        QuizAttempt.is_completed: True,
                    },
                    synchronize_session=False
                )
            )
            if updated != 1:
                raise NotFoundError("No active attempt found for this quiz")

            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Attempt {attempt.id} was submitted concurrently")
            raise NotFoundError("No active attempt found for this quiz")
        except NotFoundError:
            db.rollback()
            logger.warning(f"Attempt {attempt.id} was completed before this submission")
            raise

        db.refresh(attempt)

        duration_seconds = max(int((attempt.completed_at - attempt.started_at).total_seconds()), 0)
        self._notify_completion(student_id, quiz.course_id, quiz_id, duration_seconds)

        logger.info(f"Quiz attempt submitted: {attempt.id}, score: {total_score}/{max_score}")
        return attempt

    def _grade(self, attempt: QuizAttempt, question, answer) -> StudentAnswer:
        selected = self.grader.normalize_option_ids(getattr(answer, "selected_option_ids", None))
        answer_text = getattr(answer, "answer_text", None)

        is_correct, points = self.grader.grade_answer(question, answer_text, selected)

        is_text = QuestionType(question.question_type) == QuestionType.TEXT
        return StudentAnswer(
            attempt_id=attempt.id,
            question_id=question.id,
            answer_text=answer_text if is_text else None,
            selected_option_ids=[] if is_text else selected,
            is_correct=is_correct,
            points_earned=points,
            skipped=False
        )

    @staticmethod
    def _index_answers(answers: Iterable[Any]) -> Dict[UUID, Any]:
        """Map question id -> answer; the first answer for a question wins"""
        indexed: Dict[UUID, Any] = {}
        for answer in answers or []:
            question_id = answer.question_id
            if not isinstance(question_id, UUID):
                question_id = UUID(str(question_id))
            indexed.setdefault(question_id, answer)
        return indexed

    def find_active_attempt(self, db: Session, student_id: UUID, quiz_id: UUID) -> Optional[QuizAttempt]:
        return (
            db.query(QuizAttempt)
            .filter(
                QuizAttempt.student_id == student_id,
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.is_completed.is_(False)
            )
            .first()
        )

    def count_attempts(self, db: Session, student_id: UUID, quiz_id: UUID) -> int:
        return (
            db.query(func.count(QuizAttempt.id))
            .filter(QuizAttempt.student_id == student_id, QuizAttempt.quiz_id == quiz_id)
            .scalar()
        ) or 0

    def get_attempt(self, db: Session, attempt_id: UUID) -> QuizAttempt:
        attempt = db.get(QuizAttempt, attempt_id)
        if not attempt:
            raise NotFoundError(f"Quiz attempt not found with ID: {attempt_id}")
        return attempt

    def get_student_attempts(self, db: Session, student_id: UUID) -> List[QuizAttempt]:
        return (
            db.query(QuizAttempt)
            .filter(QuizAttempt.student_id == student_id)
            .order_by(QuizAttempt.started_at.desc())
            .all()
        )

    def get_quiz_attempts(self, db: Session, quiz_id: UUID) -> List[QuizAttempt]:
        return (
            db.query(QuizAttempt)
            .filter(QuizAttempt.quiz_id == quiz_id)
            .order_by(QuizAttempt.started_at.desc())
            .all()
        )

    def _notify_start(self, student_id: UUID, course_id: UUID, quiz_id: UUID) -> None:
        self._dispatch(self._send_start, student_id, course_id, quiz_id)

    def _notify_completion(
        self,
        student_id: UUID,
        course_id: UUID,
        quiz_id: UUID,
        duration_seconds: int
    ) -> None:
        self._dispatch(self._send_completion, student_id, course_id, quiz_id, duration_seconds)

    def _dispatch(self, send, *args) -> None:
        """Hand a visit notification to the notifier; the request never waits on the sink"""
        try:
            self.notifier.submit(send, *args)
        except RuntimeError as e:
            # notifier already shut down
            logger.warning(f"Visit notification dropped: {str(e)}")

    def _send_start(self, student_id: UUID, course_id: UUID, quiz_id: UUID) -> None:
        try:
            self.visit_sink.record_quiz_start(student_id, course_id, quiz_id)
        except Exception as e:
            logger.warning(f"Visit notification (quiz start) failed: {str(e)}")

    def _send_completion(
        self,
        student_id: UUID,
        course_id: UUID,
        quiz_id: UUID,
        duration_seconds: int
    ) -> None:
        try:
            self.visit_sink.record_quiz_completion(student_id, course_id, quiz_id, duration_seconds)
        except Exception as e:
            logger.warning(f"Visit notification (quiz completion) failed: {str(e)}")

    def shutdown(self, wait: bool = False) -> None:
        self.notifier.shutdown(wait=wait)


# Global instance
attempt_service = AttemptService()
