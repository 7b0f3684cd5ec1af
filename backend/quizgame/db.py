from __future__ import annotations
import logging
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings

logger = logging.getLogger(__name__)


DATABASE_URL = settings.database_url or "sqlite:///./quizgame.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Lightweight migrations for databases created before a column was added (SQLite-friendly)
def ensure_schema(bind=None) -> None:
	bind = bind if bind is not None else engine
	inspector = inspect(bind)
	if "game_results" not in inspector.get_table_names():
		return
	cols = {c["name"] for c in inspector.get_columns("game_results")}
	if "issued_question_ids" not in cols:
		with bind.begin() as conn:
			conn.exec_driver_sql("ALTER TABLE game_results ADD COLUMN issued_question_ids JSON DEFAULT '[]' NOT NULL")
		logger.info("Added game_results.issued_question_ids")
