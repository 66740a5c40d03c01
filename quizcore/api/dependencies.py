"""
FastAPI dependency providers for services

Overridden in tests via app.dependency_overrides.
"""
from quizcore.services.attempt_service import AttemptService, attempt_service
from quizcore.services.result_service import ResultCalculationService, result_service


def get_attempt_service() -> AttemptService:
    return attempt_service


def get_result_service() -> ResultCalculationService:
    return result_service
