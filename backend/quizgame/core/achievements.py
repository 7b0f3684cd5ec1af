from __future__ import annotations
from typing import List, Optional, Tuple

from .mastery import round_percent


FIRST_GAME = "FIRST_GAME"
PERFECT_SCORE = "PERFECT_SCORE"
CATEGORY_MASTER = "CATEGORY_MASTER"
SPEED_DEMON = "SPEED_DEMON"
MIXED_UNLOCK = "MIXED_UNLOCK"

CATEGORY_MASTER_PERCENT = 90
SPEED_DEMON_SECONDS = 120


def earned_achievements(
	*,
	category: str,
	correct_answers: int,
	total_questions: int,
	time_spent: float,
	games_played: int,
) -> List[Tuple[str, Optional[str]]]:
	"""Achievements earned by one completed game, as ``(type, category)`` pairs.

	``category`` is the game category (``"MIXED"`` for mixed games) and
	``games_played`` counts completed games including this one. Category-bound
	achievements carry the category; the rest carry ``None``.
	"""
	earned: List[Tuple[str, Optional[str]]] = []
	mixed = category == "MIXED"
	bound = None if mixed else category
	if games_played == 1:
		earned.append((FIRST_GAME, None))
	if mixed:
		earned.append((MIXED_UNLOCK, None))
	if total_questions > 0:
		percent = round_percent(correct_answers, total_questions)
		if correct_answers == total_questions:
			earned.append((PERFECT_SCORE, bound))
		if percent >= CATEGORY_MASTER_PERCENT and not mixed:
			earned.append((CATEGORY_MASTER, bound))
		if time_spent < SPEED_DEMON_SECONDS:
			earned.append((SPEED_DEMON, bound))
	return earned
