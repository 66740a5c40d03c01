import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6399/0")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quizcore.database import Base, get_db
from quizcore.models import (
    AnswerOption, Course, Question, QuestionType, Quiz, QuizAttempt,
    TestResult, TestResultStatus, User, UserRole,
)
from quizcore.services.attempt_service import AttemptService
from quizcore.services.result_service import ResultCalculationService
from quizcore.utils.cache import CacheService
from quizcore.utils.resilience import CircuitBreaker, ResiliencePolicy
from quizcore.utils.time import utcnow


class FakeVisitSink:
    def __init__(self):
        self.starts = []
        self.completions = []

    def record_quiz_start(self, user_id, course_id, quiz_id):
        self.starts.append((user_id, course_id, quiz_id))

    def record_quiz_completion(self, user_id, course_id, quiz_id, duration_seconds):
        self.completions.append((user_id, course_id, quiz_id, duration_seconds))


class ImmediateExecutor:
    """Runs submitted work inline so notification assertions are deterministic"""

    def submit(self, fn, *args, **kwargs):
        fn(*args, **kwargs)

    def shutdown(self, wait=True):
        pass


class FakeCache(CacheService):
    """In-memory stand-in for the Redis cache"""

    def __init__(self):
        super().__init__(redis_client=None)
        self.store = {}
        self.deleted = []

    def get_quiz_stats(self, quiz_id):
        return self.store.get(self.quiz_stats_key(quiz_id))

    def store_quiz_stats(self, quiz_id, statistics, ttl=None):
        self.store[self.quiz_stats_key(quiz_id)] = statistics
        return True

    def invalidate_quiz_stats(self, quiz_id):
        key = self.quiz_stats_key(quiz_id)
        self.deleted.append(key)
        self.store.pop(key, None)
        return True


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def visit_sink():
    return FakeVisitSink()


@pytest.fixture
def attempt_service(visit_sink):
    return AttemptService(visit_sink=visit_sink, record_unanswered=False, notifier=ImmediateExecutor())


@pytest.fixture
def policy():
    breaker = CircuitBreaker(
        name="test",
        window_size=10,
        failure_rate_threshold=50.0,
        minimum_calls=5,
        open_seconds=30.0,
        half_open_calls=2
    )
    return ResiliencePolicy(breaker=breaker, max_attempts=3, wait_multiplier=0, max_wait=0)


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def result_service(session_factory, policy, fake_cache):
    return ResultCalculationService(session_factory=session_factory, policy=policy, cache=fake_cache)


@pytest.fixture
def quiz_data(db):
    """
    Two-question quiz:
    q1 SINGLE_CHOICE 5 pts, correct = {opt1}
    q2 MULTIPLE_CHOICE 5 pts, correct = {opt3, opt4}
    """
    teacher = User(email="teacher@example.com", full_name="Teacher", role=UserRole.TEACHER)
    student = User(email="student@example.com", full_name="Student", role=UserRole.STUDENT)
    db.add_all([teacher, student])
    db.flush()

    course = Course(title="Algebra", teacher_id=teacher.id)
    db.add(course)
    db.flush()

    quiz = Quiz(course_id=course.id, title="Quadratics", max_attempts=None, is_active=True)
    db.add(quiz)
    db.flush()

    q1 = Question(
        quiz_id=quiz.id, question_text="Pick the root of x - 1 = 0",
        question_type=QuestionType.SINGLE_CHOICE, points=5, order_index=0
    )
    q2 = Question(
        quiz_id=quiz.id, question_text="Pick the roots of x^2 - 5x + 6 = 0",
        question_type=QuestionType.MULTIPLE_CHOICE, points=5, order_index=1
    )
    db.add_all([q1, q2])
    db.flush()

    opt1 = AnswerOption(question_id=q1.id, option_text="1", is_correct=True, order_index=0)
    opt2 = AnswerOption(question_id=q1.id, option_text="2", is_correct=False, order_index=1)
    opt3 = AnswerOption(question_id=q2.id, option_text="2", is_correct=True, order_index=0)
    opt4 = AnswerOption(question_id=q2.id, option_text="3", is_correct=True, order_index=1)
    opt5 = AnswerOption(question_id=q2.id, option_text="5", is_correct=False, order_index=2)
    db.add_all([opt1, opt2, opt3, opt4, opt5])
    db.commit()

    return SimpleNamespace(
        teacher=teacher, student=student, course=course, quiz=quiz,
        q1=q1, q2=q2, opt1=opt1, opt2=opt2, opt3=opt3, opt4=opt4, opt5=opt5
    )


def answer(question_id, selected=(), text=None):
    return SimpleNamespace(question_id=question_id, selected_option_ids=list(selected), answer_text=text)


@pytest.fixture
def completed_attempt(db, quiz_data, attempt_service):
    """Attempt answered fully correctly (10/10)"""
    attempt_service.start_attempt(db, quiz_data.quiz.id, quiz_data.student.id)
    return attempt_service.submit_attempt(db, quiz_data.quiz.id, quiz_data.student.id, [
        answer(quiz_data.q1.id, [quiz_data.opt1.id]),
        answer(quiz_data.q2.id, [quiz_data.opt3.id, quiz_data.opt4.id]),
    ])


@pytest.fixture
def make_result(db, quiz_data):
    """Insert a TestResult directly, backed by its own completed attempt"""
    counter = {"number": 0}

    def _make(status=TestResultStatus.IN_PROGRESS, age_minutes=0):
        counter["number"] += 1
        created = utcnow() - timedelta(minutes=age_minutes)
        attempt = QuizAttempt(
            quiz_id=quiz_data.quiz.id,
            student_id=quiz_data.student.id,
            attempt_number=counter["number"],
            started_at=created,
            completed_at=created,
            is_completed=True
        )
        db.add(attempt)
        db.flush()
        result = TestResult(
            quiz_attempt_id=attempt.id,
            student_id=quiz_data.student.id,
            quiz_id=quiz_data.quiz.id,
            score=0,
            max_score=10,
            percentage=0,
            status=status,
            started_at=created,
            created_at=created
        )
        db.add(result)
        db.commit()
        return result

    return _make


@pytest.fixture
def client(session_factory, attempt_service, result_service):
    from quizcore.api.dependencies import get_attempt_service, get_result_service
    from quizcore.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_attempt_service] = lambda: attempt_service
    app.dependency_overrides[get_result_service] = lambda: result_service

    yield TestClient(app)

    app.dependency_overrides.clear()
