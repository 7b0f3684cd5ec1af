from __future__ import annotations
from typing import Iterable, List

from .errors import CallerError
from .mastery import round_percent
from .types import LeaderboardEntry, LeaderboardRow


def rank_leaderboard(rows: Iterable[LeaderboardRow], limit: int) -> List[LeaderboardEntry]:
	"""Rank aggregated rows by score, highest first.

	Ties keep their input order (``sorted`` is stable), so callers control the
	tie-break by how they order ``rows``.
	"""
	if limit <= 0:
		raise CallerError("limit must be a positive integer")
	ordered = sorted(rows, key=lambda r: r.score, reverse=True)[:limit]
	return [
		LeaderboardEntry(
			rank=i + 1,
			user_id=row.user_id,
			display_name=row.display_name,
			total_score=row.score,
			games_played=row.games_played,
			accuracy_percent=round_percent(row.correct_answers, row.total_questions),
		)
		for i, row in enumerate(ordered)
	]
