from quizgame.core.achievements import (
	CATEGORY_MASTER,
	FIRST_GAME,
	MIXED_UNLOCK,
	PERFECT_SCORE,
	SPEED_DEMON,
	earned_achievements,
)


def earned(**overrides):
	kwargs = dict(category="HEALTH", correct_answers=5, total_questions=10, time_spent=300, games_played=2)
	kwargs.update(overrides)
	return earned_achievements(**kwargs)


def test_first_game():
	assert (FIRST_GAME, None) in earned(games_played=1)
	assert (FIRST_GAME, None) not in earned(games_played=2)


def test_perfect_score_is_category_bound():
	result = earned(correct_answers=10)
	assert (PERFECT_SCORE, "HEALTH") in result
	assert (CATEGORY_MASTER, "HEALTH") in result


def test_category_master_threshold():
	assert (CATEGORY_MASTER, "HEALTH") in earned(correct_answers=9)
	assert (CATEGORY_MASTER, "HEALTH") not in earned(correct_answers=8)


def test_speed_demon():
	assert (SPEED_DEMON, "HEALTH") in earned(time_spent=119.5)
	assert (SPEED_DEMON, "HEALTH") not in earned(time_spent=120)


def test_mixed_game():
	result = earned(category="MIXED", correct_answers=10, time_spent=60)
	assert (MIXED_UNLOCK, None) in result
	assert (PERFECT_SCORE, None) in result
	assert (SPEED_DEMON, None) in result
	assert all(t != CATEGORY_MASTER for t, _ in result)


def test_empty_game_earns_nothing_score_based():
	assert earned(correct_answers=0, total_questions=0, time_spent=0) == []
