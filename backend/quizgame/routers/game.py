from __future__ import annotations
import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core import types as core
from ..core.achievements import earned_achievements
from ..core.errors import CallerError
from ..core.mastery import MasteryScope, aggregate, grade_answer, mastery_percentages, round_percent, starting_state
from ..crud import (
	completed_games, load_mastery, pick_translation, player_view, sample_questions,
	store_mastery, to_core_question, unlock_achievements,
)
from ..db import get_db
from ..models import GameQuestion, GameResult, Question, User
from ..ratelimit import game_limiter
from ..settings import settings
from .auth import get_current_user


router = APIRouter(prefix="/game", tags=["game"])
logger = logging.getLogger(__name__)

MIXED = "MIXED"


class StartRequest(BaseModel):
	category: str = Field(default=MIXED, description="A category or MIXED")
	question_count: Optional[int] = Field(default=None, ge=1, le=100)
	lang: Optional[str] = None


class AnswerIn(BaseModel):
	id: str
	chosen: Optional[str] = ""
	time_spent: float = Field(default=0, ge=0)


class CompleteRequest(BaseModel):
	session_id: str
	answers: List[AnswerIn] = Field(default_factory=list)


@router.post("/start", dependencies=[Depends(game_limiter)])
async def start_game(req: StartRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	lang = req.lang or user.lang or settings.default_lang
	category = req.category.upper()
	rng = random.Random()

	if category == MIXED:
		questions: List[Question] = []
		for cat in core.CATEGORIES:
			questions.extend(sample_questions(db, cat, settings.questions_per_category_mixed, lang, rng))
		rng.shuffle(questions)
	elif category in core.CATEGORIES:
		count = req.question_count or settings.questions_per_game
		questions = sample_questions(db, category, count, lang, rng)
	else:
		raise HTTPException(status_code=400, detail=f"category must be one of {core.CATEGORIES + [MIXED]}")

	if not questions:
		raise HTTPException(status_code=404, detail="No questions available for this category")

	result = GameResult(
		user_id=user.id,
		category=category,
		lang=lang,
		total_questions=len(questions),
		issued_question_ids=[q.id for q in questions],
		is_completed=False,
	)
	db.add(result)
	db.commit()
	db.refresh(result)
	return {
		"session_id": result.id,
		"category": category,
		"lang": lang,
		"questions": [player_view(q, lang) for q in questions],
	}


def _grade_one(question: Question, answer: core.SubmittedAnswer, lang: str) -> core.GradedAnswer:
	core_q = to_core_question(question, lang)
	try:
		if core_q is None:
			raise CallerError(f"question {question.id} has no translation")
		return grade_answer(core_q, answer.answer)
	except CallerError as e:
		# A broken question must not stop the player from finishing the game
		logger.warning("Grading skipped for misconfigured question: %s", e)
		return core.GradedAnswer(
			question_id=question.id, category=question.category, is_correct=False, points_awarded=0,
		)


def _issued_answers(result: GameResult, answers: List[AnswerIn]) -> List[AnswerIn]:
	"""Keep the first answer for each question handed out with this game."""
	issued = set(result.issued_question_ids or [])
	seen: Set[str] = set()
	kept = []
	for answer in answers:
		if answer.id not in issued or answer.id in seen:
			continue
		seen.add(answer.id)
		kept.append(answer)
	dropped = len(answers) - len(kept)
	if dropped:
		logger.warning("Game %s: ignored %d duplicate or unissued answers", result.id, dropped)
	return kept


@router.post("/complete", dependencies=[Depends(game_limiter)])
async def complete_game(req: CompleteRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	result = db.get(GameResult, req.session_id)
	if not result or result.user_id != user.id:
		raise HTTPException(status_code=404, detail="Game session not found")
	if result.is_completed:
		raise HTTPException(status_code=409, detail="Game session already completed")

	answers = _issued_answers(result, req.answers)
	ids = [a.id for a in answers]
	by_id: Dict[str, Question] = {
		q.id: q for q in db.query(Question).filter(Question.id.in_(ids)).all()
	} if ids else {}

	graded: List[core.GradedAnswer] = []
	details: List[Dict[str, Any]] = []
	total_time = 0.0
	for answer in answers:
		question = by_id.get(answer.id)
		if question is None:
			continue
		submitted = core.SubmittedAnswer(question_id=question.id, answer=answer.chosen or "", time_spent=answer.time_spent)
		g = _grade_one(question, submitted, result.lang)
		graded.append(g)
		total_time += answer.time_spent
		db.add(GameQuestion(
			game_result_id=result.id,
			question_id=question.id,
			user_answer=answer.chosen or "",
			is_correct=g.is_correct,
			points_awarded=g.points_awarded,
			time_spent=answer.time_spent,
		))
		details.append({"id": question.id, "is_correct": g.is_correct, "points": g.points_awarded})

	score = sum(g.points_awarded for g in graded)
	correct = sum(1 for g in graded if g.is_correct)

	result.score = score
	result.correct_answers = correct
	result.total_questions = len(graded)
	result.time_spent = total_time
	result.is_completed = True
	result.completed_at = datetime.utcnow()

	profile = user.profile
	if profile is not None:
		profile.total_score += score
		profile.games_played += 1

	scope = MasteryScope(settings.mastery_scope)
	new_state = aggregate(starting_state(scope, load_mastery(db, user.id)), graded)
	played = {g.category for g in graded}
	store_mastery(db, user.id, new_state, played)

	db.flush()
	earned = earned_achievements(
		category=result.category,
		correct_answers=correct,
		total_questions=len(graded),
		time_spent=total_time,
		games_played=completed_games(db, user.id),
	)
	unlocked = unlock_achievements(db, user.id, earned)
	db.commit()

	logger.info("Game %s completed by %s: score=%s correct=%s/%s", result.id, user.username, score, correct, len(graded))
	return {
		"ok": True,
		"session_id": result.id,
		"score": score,
		"correct": correct,
		"total": len(graded),
		"mastery": {cat: pct for cat, pct in mastery_percentages(new_state).items() if cat in played},
		"achievements": [{"type": a.type, "category": a.category} for a in unlocked],
		"results": details,
	}


@router.get("/session/{session_id}")
async def get_session(session_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	result = db.get(GameResult, session_id)
	if not result or result.user_id != user.id:
		raise HTTPException(status_code=404, detail="Game session not found")

	questions = []
	for gq in result.game_questions:
		t = pick_translation(gq.question, result.lang)
		questions.append({
			"id": gq.question_id,
			"category": gq.question.category,
			"question_text": t.question_text if t else "",
			"user_answer": gq.user_answer,
			"correct_answer": str(t.correct_answers[0]) if t and t.correct_answers else "",
			"explanation": t.explanation if t else "",
			"is_correct": gq.is_correct,
			"points": gq.points_awarded,
		})

	return {
		"session_id": result.id,
		"category": result.category,
		"completed": result.is_completed,
		"score": result.score,
		"correct_answers": result.correct_answers,
		"total_questions": result.total_questions,
		"accuracy_percent": round_percent(result.correct_answers, result.total_questions),
		"questions": questions,
	}
