from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional
from sqlalchemy.orm import Session

from ..core.grading import grade
from ..crud import pick_translation, to_core_question
from ..db import get_db
from ..models import Question, User
from ..question_types import QUESTION_TYPES
from .auth import get_current_user

router = APIRouter(prefix="/questions", tags=["questions"])


class ValidateAnswerRequest(BaseModel):
	question_id: str
	user_answer: str = ""
	lang: Optional[str] = None


@router.post("/validate-answer")
async def validate_answer(req: ValidateAnswerRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	lang = req.lang or user.lang
	question = db.get(Question, req.question_id)
	t = pick_translation(question, lang) if question else None
	if t is None:
		raise HTTPException(status_code=404, detail="Question not found")
	# CallerError from a misconfigured question is turned into a 400 by the app handler
	result = grade(to_core_question(question, lang), req.user_answer)
	return {
		"is_correct": result.is_correct,
		"correct_answers": list(t.correct_answers or []),
		"explanation": t.explanation,
	}


@router.get("/types")
async def question_types():
	return QUESTION_TYPES
