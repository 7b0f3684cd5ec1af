from .errors import CallerError
from .grading import grade, grade_batch
from .leaderboard import rank_leaderboard
from .mastery import MasteryScope, aggregate, base_score, grade_answer, mastery_percent, starting_state

__all__ = [
	"CallerError",
	"MasteryScope",
	"aggregate",
	"base_score",
	"grade",
	"grade_answer",
	"grade_batch",
	"mastery_percent",
	"rank_leaderboard",
	"starting_state",
]
