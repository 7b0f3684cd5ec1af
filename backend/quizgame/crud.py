from __future__ import annotations
import random
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from .core import types as core
from .core.mastery import mastery_percent
from .models import (
	Achievement, CategoryMastery, GameResult, Profile, Question, QuestionTranslation, User,
)


PERIOD_DAYS: Dict[str, Optional[int]] = {"daily": 1, "weekly": 7, "monthly": 30, "all": None}


def pick_translation(question: Question, lang: str) -> Optional[QuestionTranslation]:
	t = question.translation(lang)
	if t is None and question.translations:
		t = question.translations[0]
	return t


def to_core_question(question: Question, lang: str) -> Optional[core.Question]:
	t = pick_translation(question, lang)
	if t is None:
		return None
	return core.Question(
		id=question.id,
		category=question.category,
		difficulty=question.difficulty,
		input_type=question.input_type,
		correct_answers=[str(a) for a in (t.correct_answers or [])],
		target_value=t.target_value,
	)


def player_view(question: Question, lang: str) -> Dict[str, Any]:
	"""Question as sent to a player; accepted answers stay on the server."""
	t = pick_translation(question, lang)
	return {
		"id": question.id,
		"category": question.category,
		"type": question.type,
		"input_type": question.input_type,
		"difficulty": question.difficulty,
		"question_text": t.question_text if t else "",
		"options": list(t.options or []) if t else [],
		"image_url": t.image_url if t else None,
		"target_value": t.target_value if t else None,
	}


def sample_questions(db: Session, category: str, count: int, lang: str, rng: Optional[random.Random] = None) -> List[Question]:
	rng = rng or random.Random()
	rows = (
		db.query(Question)
		.filter(Question.category == category, Question.is_active.is_(True))
		.order_by(Question.id)
		.all()
	)
	rows = [q for q in rows if pick_translation(q, lang) is not None]
	rng.shuffle(rows)
	return rows[: max(0, count)]


def load_mastery(db: Session, user_id: str) -> Dict[str, core.CategoryMasteryState]:
	rows = db.query(CategoryMastery).filter(CategoryMastery.user_id == user_id).all()
	return {
		r.category: core.CategoryMasteryState(correct_count=r.correct_count, total_count=r.total_count)
		for r in rows
	}


def store_mastery(
	db: Session,
	user_id: str,
	state: Dict[str, core.CategoryMasteryState],
	categories: Iterable[str],
) -> None:
	"""Write ``state`` for ``categories`` onto the user's mastery rows. No commit."""
	existing = {
		r.category: r
		for r in db.query(CategoryMastery).filter(CategoryMastery.user_id == user_id).all()
	}
	for cat in categories:
		s = state.get(cat)
		if s is None:
			continue
		row = existing.get(cat)
		if row is None:
			row = CategoryMastery(user_id=user_id, category=cat)
			db.add(row)
		row.correct_count = s.correct_count
		row.total_count = s.total_count
		row.percent = mastery_percent(s)


def mastery_summary(db: Session, user_id: str) -> Dict[str, int]:
	stored = load_mastery(db, user_id)
	return {
		cat: mastery_percent(stored.get(cat, core.CategoryMasteryState()))
		for cat in core.CATEGORIES
	}


def leaderboard_rows(db: Session, period: str, category: str) -> List[core.LeaderboardRow]:
	"""Per-user totals of completed games in the window, ordered by user id."""
	q = (
		db.query(
			GameResult.user_id,
			func.sum(GameResult.score),
			func.sum(GameResult.correct_answers),
			func.sum(GameResult.total_questions),
			func.count(GameResult.id),
		)
		.filter(GameResult.is_completed.is_(True))
	)
	days = PERIOD_DAYS.get(period)
	if days is not None:
		q = q.filter(GameResult.completed_at >= datetime.utcnow() - timedelta(days=days))
	if category != "ALL":
		q = q.filter(GameResult.category == category)
	totals = q.group_by(GameResult.user_id).order_by(GameResult.user_id).all()
	if not totals:
		return []
	names = dict(
		db.query(User.id, func.coalesce(Profile.display_name, User.username))
		.outerjoin(Profile, Profile.user_id == User.id)
		.filter(User.id.in_([t[0] for t in totals]))
		.all()
	)
	return [
		core.LeaderboardRow(
			user_id=user_id,
			display_name=names.get(user_id) or "Unknown",
			score=int(score or 0),
			correct_answers=int(correct or 0),
			total_questions=int(total or 0),
			games_played=int(games or 0),
		)
		for user_id, score, correct, total, games in totals
	]


def unlock_achievements(
	db: Session,
	user_id: str,
	earned: Sequence[Tuple[str, Optional[str]]],
) -> List[Achievement]:
	"""Add the achievements the user does not have yet. No commit."""
	have = {
		(a.type, a.category)
		for a in db.query(Achievement).filter(Achievement.user_id == user_id).all()
	}
	created: List[Achievement] = []
	for type_, category in earned:
		if (type_, category) in have:
			continue
		row = Achievement(user_id=user_id, type=type_, category=category, is_completed=True)
		db.add(row)
		created.append(row)
		have.add((type_, category))
	return created


def completed_games(db: Session, user_id: str) -> int:
	return (
		db.query(func.count(GameResult.id))
		.filter(GameResult.user_id == user_id, GameResult.is_completed.is_(True))
		.scalar()
		or 0
	)
