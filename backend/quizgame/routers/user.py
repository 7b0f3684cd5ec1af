from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Optional
from sqlalchemy.orm import Session

from ..crud import mastery_summary
from ..db import get_db
from ..models import Achievement, GameResult, Profile, User
from .auth import LANGS, get_current_user

router = APIRouter(prefix="/user", tags=["user"])


class ProfileUpdateRequest(BaseModel):
	display_name: Optional[str] = Field(default=None, max_length=64)
	avatar_url: Optional[str] = Field(default=None, max_length=512)
	lang: Optional[str] = None


def _profile_payload(user: User) -> dict:
	profile = user.profile
	return {
		"id": user.id,
		"username": user.username,
		"role": user.role,
		"lang": user.lang,
		"is_anonymous": bool(user.is_anonymous),
		"display_name": (profile.display_name if profile else None) or user.username,
		"avatar_url": profile.avatar_url if profile else None,
		"total_score": profile.total_score if profile else 0,
		"games_played": profile.games_played if profile else 0,
	}


@router.get("/profile")
async def get_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	out = _profile_payload(user)
	out["mastery"] = mastery_summary(db, user.id)
	return out


@router.put("/profile")
async def update_profile(req: ProfileUpdateRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if req.lang is not None and req.lang not in LANGS:
		raise HTTPException(status_code=400, detail=f"lang must be one of {LANGS}")
	profile = user.profile
	if profile is None:
		profile = Profile(user_id=user.id)
		db.add(profile)
		user.profile = profile
	if req.display_name is not None:
		name = req.display_name.strip()
		if not name:
			raise HTTPException(status_code=400, detail="display_name cannot be empty")
		profile.display_name = name
	if req.avatar_url is not None:
		profile.avatar_url = req.avatar_url.strip() or None
	if req.lang is not None:
		user.lang = req.lang
	db.commit()
	db.refresh(user)
	return _profile_payload(user)


@router.get("/stats")
async def get_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	recent = (
		db.query(GameResult)
		.filter(GameResult.user_id == user.id, GameResult.is_completed.is_(True))
		.order_by(GameResult.completed_at.desc())
		.limit(10)
		.all()
	)
	profile = user.profile
	return {
		"total_score": profile.total_score if profile else 0,
		"games_played": profile.games_played if profile else 0,
		"mastery": mastery_summary(db, user.id),
		"recent_games": [
			{
				"session_id": g.id,
				"category": g.category,
				"score": g.score,
				"correct_answers": g.correct_answers,
				"total_questions": g.total_questions,
				"completed_at": g.completed_at,
			}
			for g in recent
		],
	}


@router.get("/achievements")
async def get_achievements(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	rows = (
		db.query(Achievement)
		.filter(Achievement.user_id == user.id)
		.order_by(Achievement.unlocked_at.desc(), Achievement.id.desc())
		.all()
	)
	return [{"type": a.type, "category": a.category, "unlocked_at": a.unlocked_at} for a in rows]
