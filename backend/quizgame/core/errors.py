class CallerError(ValueError):
	"""Raised when the calling layer hands the core an invalid record.

	Examples are a TEXT question with no accepted answers, a CALCULATION question
	without a target value, or a non-positive leaderboard limit. These point at a
	misconfigured question or request, never at what the player typed.
	"""
