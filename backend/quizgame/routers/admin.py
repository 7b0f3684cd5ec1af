from __future__ import annotations
import logging
import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..core import types as core
from ..core.errors import CallerError
from ..db import get_db
from ..models import GameQuestion, GameResult, Question, QuestionTranslation, User
from ..question_types import find_type
from .auth import LANGS, require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


class TranslationIn(BaseModel):
	question_text: str = Field(min_length=1)
	options: List[str] = Field(default_factory=list)
	correct_answers: List[str] = Field(default_factory=list)
	target_value: Optional[float] = None
	explanation: str = ""
	image_url: Optional[str] = None


class QuestionIn(BaseModel):
	category: str
	type: str
	input_type: Optional[str] = None
	difficulty: int = Field(default=1, ge=1, le=3)
	is_active: bool = True
	translations: Dict[str, TranslationIn]


class BulkToggleRequest(BaseModel):
	ids: List[str] = Field(min_length=1)
	is_active: bool


class ImportRequest(BaseModel):
	questions: List[Dict[str, Any]]


def _resolve_input_type(payload: QuestionIn) -> str:
	"""Check category/type/translations and return the question's input type.

	Raises CallerError for anything the grader could not work with later:
	an unknown type, a TEXT or multiple-choice translation with no accepted
	answers, or a CALCULATION translation without a target value.
	"""
	category = payload.category.upper()
	if category not in core.CATEGORIES:
		raise CallerError(f"category must be one of {core.CATEGORIES}")
	info = find_type(category, payload.type)
	if info is None:
		raise CallerError(f"unknown question type {payload.type!r} for {category}")
	input_type = payload.input_type or info["input_type"]
	if input_type != info["input_type"]:
		raise CallerError(f"{payload.type} questions use input type {info['input_type']}")
	if not payload.translations:
		raise CallerError("at least one translation is required")
	for lang, t in payload.translations.items():
		if lang not in LANGS:
			raise CallerError(f"translation language must be one of {LANGS}")
		if input_type == core.InputType.CALCULATION.value:
			if t.target_value is None:
				raise CallerError(f"{lang}: CALCULATION questions need a target_value")
		answers = [a for a in t.correct_answers if a.strip()]
		if input_type != core.InputType.CALCULATION.value and not answers:
			raise CallerError(f"{lang}: at least one correct answer is required")
		if input_type in core.MULTIPLE_CHOICE_TYPES and t.options and answers[0] not in t.options:
			raise CallerError(f"{lang}: the correct answer must be one of the options")
	return input_type


def _apply(question: Question, payload: QuestionIn, input_type: str) -> None:
	question.category = payload.category.upper()
	question.type = payload.type
	question.input_type = input_type
	question.difficulty = payload.difficulty
	question.is_active = payload.is_active
	existing = {t.lang: t for t in question.translations}
	for lang, t in payload.translations.items():
		row = existing.get(lang)
		if row is None:
			row = QuestionTranslation(lang=lang)
			question.translations.append(row)
		row.question_text = t.question_text
		row.options = list(t.options)
		row.correct_answers = [a for a in t.correct_answers if a.strip()]
		row.target_value = t.target_value
		row.explanation = t.explanation
		row.image_url = t.image_url


def question_out(question: Question) -> Dict[str, Any]:
	return {
		"id": question.id,
		"category": question.category,
		"type": question.type,
		"input_type": question.input_type,
		"difficulty": question.difficulty,
		"is_active": question.is_active,
		"created_at": question.created_at,
		"translations": {
			t.lang: {
				"question_text": t.question_text,
				"options": list(t.options or []),
				"correct_answers": list(t.correct_answers or []),
				"target_value": t.target_value,
				"explanation": t.explanation,
				"image_url": t.image_url,
			}
			for t in question.translations
		},
	}


def _get_question(db: Session, question_id: str) -> Question:
	question = db.get(Question, question_id)
	if not question:
		raise HTTPException(status_code=404, detail="Question not found")
	return question


@router.get("/stats")
async def admin_stats(db: Session = Depends(get_db)):
	per_category = dict(
		db.query(Question.category, func.count(Question.id)).group_by(Question.category).all()
	)
	avg_score = (
		db.query(func.avg(GameResult.score)).filter(GameResult.is_completed.is_(True)).scalar()
	)
	return {
		"total_questions": db.query(func.count(Question.id)).scalar() or 0,
		"active_questions": db.query(func.count(Question.id)).filter(Question.is_active.is_(True)).scalar() or 0,
		"categories": {cat: per_category.get(cat, 0) for cat in core.CATEGORIES},
		"total_users": db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0,
		"total_games": db.query(func.count(GameResult.id)).filter(GameResult.is_completed.is_(True)).scalar() or 0,
		"avg_score": int(math.floor(float(avg_score or 0) + 0.5)),
	}


@router.get("/questions")
async def list_questions(
	category: Optional[str] = None,
	is_active: Optional[bool] = None,
	search: Optional[str] = None,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=50, ge=1, le=200),
	db: Session = Depends(get_db),
):
	q = db.query(Question)
	if category:
		q = q.filter(Question.category == category.upper())
	if is_active is not None:
		q = q.filter(Question.is_active.is_(is_active))
	if search:
		pattern = f"%{search.strip()}%"
		q = q.filter(Question.translations.any(or_(
			QuestionTranslation.question_text.ilike(pattern),
			QuestionTranslation.explanation.ilike(pattern),
		)))
	total = q.count()
	rows = (
		q.order_by(Question.created_at.desc(), Question.id)
		.offset((page - 1) * limit)
		.limit(limit)
		.all()
	)
	return {
		"questions": [question_out(r) for r in rows],
		"total": total,
		"page": page,
		"total_pages": math.ceil(total / limit),
	}


@router.get("/questions/{question_id}")
async def get_question(question_id: str, db: Session = Depends(get_db)):
	return question_out(_get_question(db, question_id))


@router.post("/questions", status_code=201)
async def create_question(payload: QuestionIn, db: Session = Depends(get_db)):
	input_type = _resolve_input_type(payload)
	question = Question()
	_apply(question, payload, input_type)
	db.add(question)
	db.commit()
	db.refresh(question)
	logger.info("Question %s created (%s/%s)", question.id, question.category, question.type)
	return question_out(question)


@router.put("/questions/{question_id}")
async def update_question(question_id: str, payload: QuestionIn, db: Session = Depends(get_db)):
	question = _get_question(db, question_id)
	input_type = _resolve_input_type(payload)
	_apply(question, payload, input_type)
	db.commit()
	db.refresh(question)
	return question_out(question)


@router.delete("/questions/{question_id}")
async def delete_question(question_id: str, db: Session = Depends(get_db)):
	question = _get_question(db, question_id)
	# Played questions keep their history; they are retired instead
	if db.query(GameQuestion.id).filter(GameQuestion.question_id == question.id).first() is not None:
		question.is_active = False
		db.commit()
		return {"ok": True, "deleted": False, "deactivated": True}
	db.delete(question)
	db.commit()
	logger.info("Question %s deleted", question_id)
	return {"ok": True, "deleted": True, "deactivated": False}


@router.post("/questions/bulk-toggle")
async def bulk_toggle(req: BulkToggleRequest, db: Session = Depends(get_db)):
	updated = (
		db.query(Question)
		.filter(Question.id.in_(req.ids))
		.update({Question.is_active: req.is_active}, synchronize_session=False)
	)
	db.commit()
	return {"ok": True, "updated": updated}


@router.post("/questions/import")
async def import_questions(req: ImportRequest, db: Session = Depends(get_db)):
	success = 0
	errors: List[Dict[str, Any]] = []
	for index, raw in enumerate(req.questions):
		try:
			payload = QuestionIn.model_validate(raw)
			input_type = _resolve_input_type(payload)
		except (ValidationError, CallerError) as e:
			errors.append({"index": index, "error": str(e)})
			continue
		question = Question()
		_apply(question, payload, input_type)
		db.add(question)
		success += 1
	db.commit()
	logger.info("Imported %s questions, %s rejected", success, len(errors))
	return {
		"message": f"Bulk import completed. Success: {success}, Failed: {len(errors)}",
		"success": success,
		"failed": len(errors),
		"errors": errors,
	}
