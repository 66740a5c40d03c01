"""
Database models package
"""
from quizcore.models.user import User
from quizcore.models.course import Course
from quizcore.models.quiz import Quiz
from quizcore.models.question import Question, AnswerOption
from quizcore.models.quiz_attempt import QuizAttempt
from quizcore.models.student_answer import StudentAnswer
from quizcore.models.test_result import TestResult
from quizcore.models.enums import UserRole, QuestionType, TestResultStatus

__all__ = [
    "User", "Course", "Quiz", "Question", "AnswerOption", "QuizAttempt",
    "StudentAnswer", "TestResult", "UserRole", "QuestionType", "TestResultStatus",
]
