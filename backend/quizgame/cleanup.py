from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import AuthSession, GameResult

logger = logging.getLogger(__name__)

ABANDONED_GAME_AGE = timedelta(days=7)


def purge_expired(db: Session, now: Optional[datetime] = None) -> int:
	"""Remove expired auth sessions and games that were started but never completed.

	A game is abandoned once it has been open for a week. Returns the number of
	rows removed.
	"""
	now = now or datetime.utcnow()
	removed = 0

	res = db.execute(delete(AuthSession).where(AuthSession.expires_at < now))
	removed += res.rowcount or 0

	# Incomplete games have no GameQuestion rows; answers are only stored on completion
	threshold = now - ABANDONED_GAME_AGE
	stale = (
		db.query(GameResult)
		.filter(GameResult.is_completed.is_(False), GameResult.created_at < threshold)
		.all()
	)
	for game in stale:
		db.delete(game)
		removed += 1

	db.commit()
	if removed:
		logger.info("Cleanup removed %s expired rows", removed)
	return removed
