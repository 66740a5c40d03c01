"""
Domain error taxonomy

Each error carries the HTTP status the API surfaces it with. Only
transient infrastructure failures are retried, and only inside the
result calculation path.
"""


class QuizCoreError(Exception):
    """Base class for errors surfaced to callers"""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(QuizCoreError):
    """Quiz, student, attempt or result does not exist (or no active attempt)"""
    status_code = 404
    error = "not_found"


class BusinessRuleError(QuizCoreError):
    """Client-correctable rule violation: inactive quiz, attempts or time exceeded"""
    status_code = 409
    error = "business_rule_violation"


class InvalidStateError(QuizCoreError):
    """Operation is not valid for the entity's current state"""
    status_code = 400
    error = "invalid_state"


class ResultCalculationError(QuizCoreError):
    """Calculation and its fallback both failed"""
    status_code = 503
    error = "result_calculation_failed"
