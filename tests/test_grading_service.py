"""
Tests for the grading rules

Covers:
- SINGLE_CHOICE exact single selection
- MULTIPLE_CHOICE set equality
- TEXT auto-accept
"""
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from quizcore.models.enums import QuestionType
from quizcore.services.grading_service import GradingService


def make_question(question_type, correct, incorrect, points=5):
    options = [SimpleNamespace(id=option_id, is_correct=True) for option_id in correct]
    options += [SimpleNamespace(id=option_id, is_correct=False) for option_id in incorrect]
    return SimpleNamespace(question_type=question_type, points=points, options=options)


@pytest.fixture
def grader():
    return GradingService()


class TestSingleChoice:
    """Exactly one selection, and it must be a correct option."""

    def setup_method(self):
        self.a, self.b, self.c = uuid4(), uuid4(), uuid4()
        self.question = make_question(QuestionType.SINGLE_CHOICE, [self.a], [self.b, self.c])

    def test_correct_option_gets_full_points(self, grader):
        assert grader.grade_answer(self.question, None, [self.a]) == (True, Decimal(5))

    def test_two_selections_are_incorrect(self, grader):
        assert grader.grade_answer(self.question, None, [self.a, self.b]) == (False, Decimal(0))

    def test_empty_selection_is_incorrect(self, grader):
        assert grader.grade_answer(self.question, None, []) == (False, Decimal(0))

    def test_none_selection_is_incorrect(self, grader):
        assert grader.grade_answer(self.question, None, None) == (False, Decimal(0))

    def test_wrong_option_is_incorrect(self, grader):
        assert grader.grade_answer(self.question, None, [self.b]) == (False, Decimal(0))

    def test_string_ids_match_uuid_options(self, grader):
        assert grader.grade_answer(self.question, None, [str(self.a)])[0] is True

    def test_repeated_id_counts_once(self, grader):
        assert grader.grade_answer(self.question, None, [self.a, self.a])[0] is True


class TestMultipleChoice:
    """Selected set must equal the correct set."""

    def setup_method(self):
        self.a, self.b, self.c = uuid4(), uuid4(), uuid4()
        self.question = make_question(QuestionType.MULTIPLE_CHOICE, [self.a, self.b], [self.c], points=4)

    def test_exact_set_is_correct(self, grader):
        assert grader.grade_answer(self.question, None, [self.a, self.b]) == (True, Decimal(4))

    def test_order_does_not_matter(self, grader):
        assert grader.grade_answer(self.question, None, [self.b, self.a])[0] is True

    def test_subset_is_incorrect(self, grader):
        assert grader.grade_answer(self.question, None, [self.a]) == (False, Decimal(0))

    def test_superset_is_incorrect(self, grader):
        assert grader.grade_answer(self.question, None, [self.a, self.b, self.c]) == (False, Decimal(0))

    def test_duplicates_are_treated_as_a_set(self, grader):
        assert grader.grade_answer(self.question, None, [self.a, self.b, self.a])[0] is True

    def test_no_correct_options_and_no_selection_is_correct(self, grader):
        question = make_question(QuestionType.MULTIPLE_CHOICE, [], [self.c])
        assert grader.grade_answer(question, None, [])[0] is True


class TestTextQuestions:

    def test_text_answer_is_accepted_with_full_points(self, grader):
        question = make_question(QuestionType.TEXT, [], [], points=3)
        assert grader.grade_answer(question, "anything", []) == (True, Decimal(3))

    def test_blank_text_answer_is_accepted(self, grader):
        question = make_question(QuestionType.TEXT, [], [], points=3)
        assert grader.grade_answer(question, "", None) == (True, Decimal(3))


def test_unknown_question_type_is_rejected(grader):
    question = make_question("ESSAY", [], [])
    with pytest.raises(ValueError):
        grader.grade_answer(question, "text", [])


def test_normalize_option_ids_keeps_first_seen_order():
    a, b = uuid4(), uuid4()
    assert GradingService.normalize_option_ids([b, a, b]) == [str(b), str(a)]
