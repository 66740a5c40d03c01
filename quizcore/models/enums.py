"""
Enumerations shared by models and schemas
"""
import enum


class UserRole(str, enum.Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"


class QuestionType(str, enum.Enum):
    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TEXT = "TEXT"


class TestResultStatus(str, enum.Enum):
    """
    Lifecycle of a test result.
    
    Calculation writes PASSED/FAILED directly, the fallback path writes ERROR,
    and the timeout sweep moves IN_PROGRESS to TIMEOUT.
    """
    __test__ = False  # not a pytest test class
    
    IN_PROGRESS = "IN_PROGRESS"
    PASSED = "PASSED"
    FAILED = "FAILED"
    ERROR = "ERROR"
    TIMEOUT = "TIMEOUT"
