import pytest
from pydantic import ValidationError

from quizgame.core import MasteryScope, aggregate, base_score, grade_answer, mastery_percent, starting_state
from quizgame.core.mastery import mastery_percentages, round_percent
from quizgame.core.types import CATEGORIES, CategoryMasteryState, GradedAnswer, Question


def graded(category, is_correct, points=10):
	return GradedAnswer(question_id="q", category=category, is_correct=is_correct, points_awarded=points if is_correct else 0)


@pytest.mark.parametrize("difficulty,points", [(1, 10), (2, 20), (3, 30), (0, 10), (5, 30)])
def test_base_score(difficulty, points):
	assert base_score(difficulty) == points


def test_grade_answer_awards_points_only_when_correct():
	q = Question(id="q1", category="FINANCE", difficulty=2, input_type="CALCULATION", target_value=10)
	right = grade_answer(q, "5+5")
	wrong = grade_answer(q, "5+4")
	assert (right.is_correct, right.points_awarded, right.category) == (True, 20, "FINANCE")
	assert (wrong.is_correct, wrong.points_awarded) == (False, 0)


def test_mastery_percent_formula():
	assert mastery_percent(CategoryMasteryState(correct_count=1, total_count=3)) == 33
	assert mastery_percent(CategoryMasteryState(correct_count=2, total_count=3)) == 67
	assert mastery_percent(CategoryMasteryState(correct_count=1, total_count=2)) == 50
	assert mastery_percent(CategoryMasteryState(correct_count=5, total_count=5)) == 100


def test_mastery_percent_empty_is_zero():
	assert mastery_percent(CategoryMasteryState()) == 0


def test_round_percent_rounds_halves_up():
	assert round_percent(1, 8) == 13  # 12.5
	assert round_percent(1, 200) == 1  # 0.5
	assert round_percent(0, 0) == 0


@pytest.mark.parametrize("correct,total", [(0, 1), (1, 1), (3, 7), (99, 100), (1, 1000)])
def test_mastery_percent_bounds(correct, total):
	assert 0 <= mastery_percent(CategoryMasteryState(correct_count=correct, total_count=total)) <= 100


def test_state_rejects_negative_counts():
	with pytest.raises(ValidationError):
		CategoryMasteryState(correct_count=-1, total_count=0)


def test_state_rejects_more_correct_than_total():
	with pytest.raises(ValidationError):
		CategoryMasteryState(correct_count=5, total_count=3)
	assert mastery_percent(CategoryMasteryState(correct_count=3, total_count=3)) == 100


def test_starting_state_session_ignores_stored():
	stored = {"HEALTH": CategoryMasteryState(correct_count=4, total_count=5)}
	state = starting_state(MasteryScope.SESSION, stored)
	assert set(state) == set(CATEGORIES)
	assert state["HEALTH"] == CategoryMasteryState()


def test_starting_state_lifetime_keeps_stored():
	stored = {"HEALTH": CategoryMasteryState(correct_count=4, total_count=5)}
	state = starting_state(MasteryScope.LIFETIME, stored)
	assert state["HEALTH"].correct_count == 4
	assert state["FINANCE"] == CategoryMasteryState()


def test_aggregate_counts_per_category():
	start = starting_state(MasteryScope.SESSION)
	result = aggregate(start, [
		graded("HEALTH", True),
		graded("HEALTH", False),
		graded("FINANCE", True),
	])
	assert result["HEALTH"] == CategoryMasteryState(correct_count=1, total_count=2)
	assert result["FINANCE"] == CategoryMasteryState(correct_count=1, total_count=1)
	assert result["DIGITAL"] == CategoryMasteryState()
	assert mastery_percentages(result)["HEALTH"] == 50


def test_aggregate_lifetime_accumulates():
	stored = {"HEALTH": CategoryMasteryState(correct_count=2, total_count=2)}
	result = aggregate(starting_state(MasteryScope.LIFETIME, stored), [graded("HEALTH", False), graded("HEALTH", False)])
	assert result["HEALTH"] == CategoryMasteryState(correct_count=2, total_count=4)
	assert mastery_percent(result["HEALTH"]) == 50


def test_aggregate_does_not_mutate_start():
	start = {"HEALTH": CategoryMasteryState(correct_count=1, total_count=1)}
	aggregate(start, [graded("HEALTH", True)])
	assert start == {"HEALTH": CategoryMasteryState(correct_count=1, total_count=1)}


def test_aggregate_empty_game_keeps_state():
	start = starting_state(MasteryScope.SESSION)
	assert aggregate(start, []) == start


def test_correct_never_exceeds_total():
	result = aggregate({}, [graded("COGNITION", True)] * 3 + [graded("COGNITION", False)])
	s = result["COGNITION"]
	assert s.correct_count <= s.total_count
