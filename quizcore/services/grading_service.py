"""
Deterministic quiz grading
SINGLE_CHOICE / MULTIPLE_CHOICE: exact match against correct options
TEXT: auto-accepted with full points
"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Set, Tuple

from quizcore.models.enums import QuestionType

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class GradingService:
    """
    Pure grading rules, no database access.

    Points are all-or-nothing: full question points when correct,
    zero otherwise.
    """

    def grade_answer(
        self,
        question,
        answer_text: Optional[str],
        selected_option_ids: Optional[Iterable] = None
    ) -> Tuple[bool, Decimal]:
        """
        Grade one submitted answer

        Args:
            question: Question with question_type, points and options
            answer_text: Free text answer (TEXT questions)
            selected_option_ids: Selected option ids (choice questions)

        Returns:
            Tuple of (is_correct, points_earned)
        """
        q_type = QuestionType(question.question_type)
        selected = self.normalize_option_ids(selected_option_ids)

        if q_type == QuestionType.TEXT:
            # Auto-accepted until a manual review workflow exists
            is_correct = True
        elif q_type == QuestionType.SINGLE_CHOICE:
            is_correct = self._grade_single_choice(question, selected)
        elif q_type == QuestionType.MULTIPLE_CHOICE:
            is_correct = self._grade_multiple_choice(question, selected)
        else:
            raise ValueError(f"Unsupported question type: {q_type}")

        points = Decimal(question.points) if is_correct else ZERO
        return is_correct, points

    def _grade_single_choice(self, question, selected: List[str]) -> bool:
        if len(selected) != 1:
            return False
        return selected[0] in self._correct_ids(question)

    def _grade_multiple_choice(self, question, selected: List[str]) -> bool:
        return set(selected) == self._correct_ids(question)

    @staticmethod
    def _correct_ids(question) -> Set[str]:
        return {str(option.id) for option in question.options if option.is_correct}

    @staticmethod
    def normalize_option_ids(option_ids: Optional[Iterable]) -> List[str]:
        """Stringify ids and drop duplicates, keeping first-seen order"""
        seen = []
        for option_id in option_ids or []:
            key = str(option_id)
            if key not in seen:
                seen.append(key)
        return seen


# Global instance
grading_service = GradingService()
