from __future__ import annotations
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional

from .grading import grade
from .types import CATEGORIES, CategoryMasteryState, GradedAnswer, Question


SCORE_EASY = 10
SCORE_MEDIUM = 20
SCORE_HARD = 30


class MasteryScope(str, Enum):
	# SESSION: stored percentages are replaced by the last game's result.
	# LIFETIME: the last game is folded into the stored counters.
	SESSION = "session"
	LIFETIME = "lifetime"


def base_score(difficulty: int) -> int:
	if difficulty >= 3:
		return SCORE_HARD
	if difficulty == 2:
		return SCORE_MEDIUM
	return SCORE_EASY


def round_percent(part: int, whole: int) -> int:
	"""``round(100 * part / whole)`` with halves rounded up, ``0`` for an empty whole."""
	if whole <= 0:
		return 0
	return (200 * part + whole) // (2 * whole)


def mastery_percent(state: CategoryMasteryState) -> int:
	return round_percent(state.correct_count, state.total_count)


def grade_answer(question: Question, submitted: Optional[str]) -> GradedAnswer:
	result = grade(question, submitted)
	return GradedAnswer(
		question_id=question.id,
		category=question.category,
		is_correct=result.is_correct,
		points_awarded=base_score(question.difficulty) if result.is_correct else 0,
	)


def empty_state() -> Dict[str, CategoryMasteryState]:
	return {c: CategoryMasteryState() for c in CATEGORIES}


def starting_state(
	scope: MasteryScope,
	stored: Optional[Mapping[str, CategoryMasteryState]] = None,
) -> Dict[str, CategoryMasteryState]:
	state = empty_state()
	if scope == MasteryScope.LIFETIME and stored:
		state.update(stored)
	return state


def aggregate(
	start: Mapping[str, CategoryMasteryState],
	graded: Iterable[GradedAnswer],
) -> Dict[str, CategoryMasteryState]:
	"""Fold graded answers into per-category counters.

	``start`` is left untouched; a new mapping is returned. Categories missing
	from ``start`` begin at zero.
	"""
	counts: Dict[str, list[int]] = {
		cat: [s.correct_count, s.total_count] for cat, s in start.items()
	}
	for answer in graded:
		entry = counts.setdefault(answer.category, [0, 0])
		entry[1] += 1
		if answer.is_correct:
			entry[0] += 1
	return {
		cat: CategoryMasteryState(correct_count=correct, total_count=total)
		for cat, (correct, total) in counts.items()
	}


def mastery_percentages(state: Mapping[str, CategoryMasteryState]) -> Dict[str, int]:
	return {cat: mastery_percent(s) for cat, s in state.items()}
