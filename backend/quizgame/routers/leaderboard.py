from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..core import types as core
from ..core.leaderboard import rank_leaderboard
from ..crud import leaderboard_rows
from ..db import get_db
from ..models import User
from .auth import get_current_user

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("", response_model=List[core.LeaderboardEntry])
async def get_leaderboard(
	period: Literal["daily", "weekly", "monthly", "all"] = "weekly",
	category: str = "ALL",
	limit: int = Query(default=10, le=100),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	category = category.upper()
	if category != "ALL" and category not in core.CATEGORIES:
		raise HTTPException(status_code=400, detail=f"category must be ALL or one of {core.CATEGORIES}")
	# Rows arrive ordered by user id, which is the tie-break for equal scores.
	# A non-positive limit raises CallerError, answered with 400.
	return rank_leaderboard(leaderboard_rows(db, period, category), limit)
