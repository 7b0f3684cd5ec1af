from __future__ import annotations
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Category(str, Enum):
	HEALTH = "HEALTH"
	COGNITION = "COGNITION"
	DIGITAL = "DIGITAL"
	FINANCE = "FINANCE"


CATEGORIES: List[str] = [c.value for c in Category]


class InputType(str, Enum):
	TEXT = "TEXT"
	MULTIPLE_CHOICE_3 = "MULTIPLE_CHOICE_3"
	MULTIPLE_CHOICE_4 = "MULTIPLE_CHOICE_4"
	CALCULATION = "CALCULATION"


MULTIPLE_CHOICE_TYPES = (InputType.MULTIPLE_CHOICE_3.value, InputType.MULTIPLE_CHOICE_4.value)


class Question(BaseModel):
	"""A question as the grader sees it, already resolved to one language."""

	id: str
	category: str
	difficulty: int = 1
	# Plain string so unrecognised input types from storage still grade (as incorrect).
	input_type: str
	correct_answers: List[str] = Field(default_factory=list)
	target_value: Optional[float] = None


class SubmittedAnswer(BaseModel):
	question_id: str
	answer: str = ""
	time_spent: float = 0


class GradeResult(BaseModel):
	model_config = ConfigDict(frozen=True)

	is_correct: bool
	normalized_answer: str


class GradedAnswer(BaseModel):
	model_config = ConfigDict(frozen=True)

	question_id: str
	category: str
	is_correct: bool
	points_awarded: int


class CategoryMasteryState(BaseModel):
	model_config = ConfigDict(frozen=True)

	correct_count: int = Field(default=0, ge=0)
	total_count: int = Field(default=0, ge=0)

	@model_validator(mode="after")
	def _correct_within_total(self) -> "CategoryMasteryState":
		if self.correct_count > self.total_count:
			raise ValueError("correct_count cannot exceed total_count")
		return self


class LeaderboardRow(BaseModel):
	user_id: str
	display_name: str
	score: int = 0
	correct_answers: int = 0
	total_questions: int = 0
	games_played: int = 0


class LeaderboardEntry(BaseModel):
	rank: int
	user_id: str
	display_name: str
	total_score: int
	games_played: int
	accuracy_percent: int
